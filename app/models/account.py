from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Account(Base):
    """Customer organisation tracked by a tenant's CS team.

    Every account belongs to exactly one tenant (``org_id``).  Health is an
    optional 1:1 attachment created by the first recalculation.
    """

    __tablename__ = "accounts"
    account_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    org_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    industry = Column(String(100))
    type = Column(String(50), nullable=False, server_default="CUSTOMER")
    assigned_to_id = Column(String(64))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    health = relationship(
        "AccountHealth",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )
    contacts = relationship(
        "Contact", back_populates="account", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_accounts_org", "org_id"),)

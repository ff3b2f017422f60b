import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.constants import (
    LOW_RISK_MIN_SCORE,
    MEDIUM_RISK_MIN_SCORE,
    NEUTRAL_SCORE,
    WEAK_DIMENSION_SCORE,
)
from app.schemas.common import HealthDimension, RiskLevel
from app.services.health_metrics import (
    AccountMetrics,
    AdoptionSignals,
    EngagementSignals,
    FinancialSignals,
    RelationshipSignals,
    SupportSignals,
)

logger = logging.getLogger(__name__)


def _clamp(value: float) -> int:
    return int(min(100, max(0, value)))


def _days_since(moment: datetime, now: datetime) -> int:
    """Whole days elapsed between *moment* and *now*."""
    return (now - moment).days


# ---------------------------------------------------------------------------
# Component scorers: pure ``signals -> 0..100``
# ---------------------------------------------------------------------------


def score_engagement(signals: Optional[EngagementSignals], now: datetime) -> int:
    """Activity volume, note taking and recency of the last touchpoint."""
    if signals is None:
        return NEUTRAL_SCORE

    score = 50
    recent = signals.recent_activity_count
    if recent >= 5:
        score += 25
    elif recent >= 3:
        score += 15
    elif recent >= 1:
        score += 5
    else:
        score -= 20

    notes = signals.note_count
    if notes >= 5:
        score += 15
    elif notes >= 2:
        score += 10
    elif notes >= 1:
        score += 5

    if signals.last_contact_at is None:
        score -= 15
    else:
        days = _days_since(signals.last_contact_at, now)
        if days <= 7:
            score += 10
        elif days <= 14:
            score += 5
        elif days > 60:
            score -= 20
        elif days > 30:
            score -= 10

    return _clamp(score)


def score_support(signals: Optional[SupportSignals], now: datetime) -> int:
    """Open ticket load, their severity, and recent CSAT."""
    if signals is None:
        return NEUTRAL_SCORE

    score = 70
    open_count = signals.open_ticket_count
    if open_count == 0:
        score += 20
    elif open_count == 1:
        score -= 5
    elif open_count == 2:
        score -= 15
    else:
        score -= 30

    score -= signals.urgent_open_count * 10
    score -= signals.high_open_count * 5

    csat = signals.average_csat
    if csat is not None:
        if csat >= 4.5:
            score += 15
        elif csat >= 4:
            score += 10
        elif csat >= 3:
            pass
        elif csat >= 2:
            score -= 10
        else:
            score -= 20

    return _clamp(score)


def score_relationship(signals: Optional[RelationshipSignals], now: datetime) -> int:
    if signals is None:
        return NEUTRAL_SCORE

    score = 50
    contacts = signals.contact_count
    if contacts >= 5:
        score += 20
    elif contacts >= 3:
        score += 15
    elif contacts == 2:
        score += 10
    elif contacts == 1:
        score += 5
    else:
        score -= 20

    if signals.has_primary_contact:
        score += 10

    tasks = signals.recent_task_count
    if tasks >= 3:
        score += 10
    elif tasks >= 1:
        score += 5

    if (
        signals.last_meeting_at is not None
        and _days_since(signals.last_meeting_at, now) <= 30
    ):
        score += 10

    return _clamp(score)


def score_financial(signals: Optional[FinancialSignals], now: datetime) -> int:
    """Renewal outlook, churn history and invoice payment health."""
    if signals is None:
        return NEUTRAL_SCORE

    score = 60
    probability = signals.active_renewal_probability
    if probability is not None:
        if probability >= 80:
            score += 20
        elif probability >= 60:
            score += 10
        elif probability >= 40:
            pass
        elif probability >= 20:
            score -= 10
        else:
            score -= 20

    score -= signals.churned_renewal_count * 15

    overdue = signals.overdue_invoice_count
    if overdue == 0:
        score += 10
    elif overdue == 1:
        score -= 10
    else:
        score -= 20

    paid = signals.recent_paid_invoice_count
    if paid >= 2:
        score += 10
    elif paid >= 1:
        score += 5

    return _clamp(score)


def score_adoption(signals: Optional[AdoptionSignals], now: datetime) -> int:
    """Login recency and breadth of feature use.

    Neutral when the product has never reported usage for the account.
    """
    if signals is None or not signals.has_usage_data:
        return NEUTRAL_SCORE

    score = 50
    if signals.last_login_at is None:
        score -= 25
    else:
        days = _days_since(signals.last_login_at, now)
        if days <= 7:
            score += 20
        elif days <= 30:
            score += 10
        elif days > 60:
            score -= 25
        else:
            score -= 10

    features = signals.active_feature_count
    if features >= 5:
        score += 20
    elif features >= 3:
        score += 10
    elif features >= 1:
        score += 5
    else:
        score -= 10

    if signals.usage_event_count >= 50:
        score += 10

    return _clamp(score)


# ---------------------------------------------------------------------------
# Composite score
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentScores:
    engagement: int
    support: int
    relationship: int
    financial: int
    adoption: int

    def as_dict(self) -> Dict[HealthDimension, int]:
        return {dimension: getattr(self, dimension.value) for dimension in HealthDimension}


@dataclass(frozen=True)
class HealthWeights:
    """Relative weight of each dimension in the composite score.

    Weights need not sum to one; they are normalised when applied.
    """

    engagement: float = 0.2
    support: float = 0.2
    relationship: float = 0.2
    financial: float = 0.2
    adoption: float = 0.2

    def __post_init__(self) -> None:
        values = [getattr(self, d.value) for d in HealthDimension]
        if any(w < 0 for w in values):
            raise ValueError("Health weights must be non-negative")
        if sum(values) <= 0:
            raise ValueError("At least one health weight must be positive")

    @classmethod
    def from_settings(cls) -> "HealthWeights":
        return cls(
            engagement=settings.HEALTH_WEIGHT_ENGAGEMENT,
            support=settings.HEALTH_WEIGHT_SUPPORT,
            relationship=settings.HEALTH_WEIGHT_RELATIONSHIP,
            financial=settings.HEALTH_WEIGHT_FINANCIAL,
            adoption=settings.HEALTH_WEIGHT_ADOPTION,
        )


def calculate_composite_score(
    components: ComponentScores, weights: Optional[HealthWeights] = None
) -> int:
    """Weighted mean of the sub-scores, rounded half-up and clamped to 0..100."""
    weights = weights or HealthWeights()
    total_weight = 0.0
    weighted = 0.0
    for dimension, value in components.as_dict().items():
        weight = getattr(weights, dimension.value)
        weighted += min(100, max(0, value)) * weight
        total_weight += weight

    # round() first so float noise like 69.49999999 does not flip the result
    mean = round(weighted / total_weight, 6)
    return _clamp(math.floor(mean + 0.5))


# ---------------------------------------------------------------------------
# Risk classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskThresholds:
    """Score floors for each risk bucket.

    ``>= low_min`` LOW, ``>= medium_min`` MEDIUM, ``>= critical_below`` HIGH,
    otherwise CRITICAL.
    """

    low_min: int = LOW_RISK_MIN_SCORE
    medium_min: int = MEDIUM_RISK_MIN_SCORE
    critical_below: int = 30

    def __post_init__(self) -> None:
        if not 0 <= self.critical_below <= self.medium_min <= self.low_min <= 100:
            raise ValueError(
                "Risk thresholds must satisfy "
                "0 <= critical_below <= medium_min <= low_min <= 100"
            )

    @classmethod
    def from_settings(cls) -> "RiskThresholds":
        return cls(critical_below=settings.HEALTH_CRITICAL_BELOW)


def classify_risk(score: int, thresholds: Optional[RiskThresholds] = None) -> RiskLevel:
    thresholds = thresholds or RiskThresholds()
    if score >= thresholds.low_min:
        return RiskLevel.LOW
    if score >= thresholds.medium_min:
        return RiskLevel.MEDIUM
    if score >= thresholds.critical_below:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def is_at_risk(level: RiskLevel) -> bool:
    return level in (RiskLevel.HIGH, RiskLevel.CRITICAL)


class RiskReasonCode(str, Enum):
    LOW_ENGAGEMENT = "LOW_ENGAGEMENT"
    NO_CONTACT_60_DAYS = "NO_CONTACT_60_DAYS"
    NO_CONTACT_30_DAYS = "NO_CONTACT_30_DAYS"
    SUPPORT_CONCERNS = "SUPPORT_CONCERNS"
    OPEN_TICKETS = "OPEN_TICKETS"
    WEAK_RELATIONSHIP = "WEAK_RELATIONSHIP"
    NO_CONTACTS = "NO_CONTACTS"
    FINANCIAL_RISK = "FINANCIAL_RISK"
    OVERDUE_INVOICES = "OVERDUE_INVOICES"
    LOW_ADOPTION = "LOW_ADOPTION"
    NO_LOGIN_60_DAYS = "NO_LOGIN_60_DAYS"
    NO_LOGIN_30_DAYS = "NO_LOGIN_30_DAYS"
    CRITICAL_SCORE = "CRITICAL_SCORE"


@dataclass(frozen=True)
class RiskReason:
    code: RiskReasonCode
    message: str
    dimension: Optional[HealthDimension] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "dimension": self.dimension.value if self.dimension else None,
            "message": self.message,
        }


def _staleness_reason(
    last_at: Optional[datetime],
    now: datetime,
    dimension: HealthDimension,
    codes: tuple,
    subject: str,
) -> Optional[RiskReason]:
    code_60, code_30 = codes
    if last_at is None or _days_since(last_at, now) > 60:
        return RiskReason(code_60, f"No {subject} in 60+ days", dimension)
    if _days_since(last_at, now) > 30:
        return RiskReason(code_30, f"No {subject} in 30+ days", dimension)
    return None


def build_risk_reasons(
    components: ComponentScores,
    metrics: AccountMetrics,
    score: int,
    now: datetime,
    thresholds: Optional[RiskThresholds] = None,
) -> List[RiskReason]:
    """Explain which dimensions are weak, in dimension priority order.

    Each check is independent.  Checks that need raw signals are skipped
    for a dimension whose source was unavailable.
    """
    thresholds = thresholds or RiskThresholds()
    reasons: List[RiskReason] = []

    # engagement
    if components.engagement < WEAK_DIMENSION_SCORE:
        reasons.append(
            RiskReason(
                RiskReasonCode.LOW_ENGAGEMENT,
                "Low engagement activity",
                HealthDimension.engagement,
            )
        )
    if metrics.engagement is not None:
        reason = _staleness_reason(
            metrics.engagement.last_contact_at,
            now,
            HealthDimension.engagement,
            (RiskReasonCode.NO_CONTACT_60_DAYS, RiskReasonCode.NO_CONTACT_30_DAYS),
            "contact",
        )
        if reason:
            reasons.append(reason)

    # support
    if components.support < WEAK_DIMENSION_SCORE:
        reasons.append(
            RiskReason(
                RiskReasonCode.SUPPORT_CONCERNS,
                "Support health concerns",
                HealthDimension.support,
            )
        )
    if metrics.support is not None and metrics.support.open_ticket_count >= 3:
        reasons.append(
            RiskReason(
                RiskReasonCode.OPEN_TICKETS,
                f"{metrics.support.open_ticket_count} open support tickets",
                HealthDimension.support,
            )
        )

    # relationship
    if components.relationship < WEAK_DIMENSION_SCORE:
        reasons.append(
            RiskReason(
                RiskReasonCode.WEAK_RELATIONSHIP,
                "Relationship needs attention",
                HealthDimension.relationship,
            )
        )
    if metrics.relationship is not None and metrics.relationship.contact_count == 0:
        reasons.append(
            RiskReason(
                RiskReasonCode.NO_CONTACTS,
                "No contacts on file",
                HealthDimension.relationship,
            )
        )

    # financial
    if components.financial < WEAK_DIMENSION_SCORE:
        reasons.append(
            RiskReason(
                RiskReasonCode.FINANCIAL_RISK,
                "Financial health at risk",
                HealthDimension.financial,
            )
        )
    if metrics.financial is not None and metrics.financial.overdue_invoice_count:
        overdue = metrics.financial.overdue_invoice_count
        reasons.append(
            RiskReason(
                RiskReasonCode.OVERDUE_INVOICES,
                f"{overdue} overdue invoice{'s' if overdue != 1 else ''}",
                HealthDimension.financial,
            )
        )

    # adoption
    if components.adoption < WEAK_DIMENSION_SCORE:
        reasons.append(
            RiskReason(
                RiskReasonCode.LOW_ADOPTION,
                "Low product adoption",
                HealthDimension.adoption,
            )
        )
    if metrics.adoption is not None and metrics.adoption.has_usage_data:
        reason = _staleness_reason(
            metrics.adoption.last_login_at,
            now,
            HealthDimension.adoption,
            (RiskReasonCode.NO_LOGIN_60_DAYS, RiskReasonCode.NO_LOGIN_30_DAYS),
            "login",
        )
        if reason:
            reasons.append(reason)

    if score < thresholds.critical_below:
        reasons.append(
            RiskReason(
                RiskReasonCode.CRITICAL_SCORE, "Overall health score critically low"
            )
        )

    return reasons


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HealthCalculation:
    """Result of scoring one account; maps 1:1 onto an ``AccountHealth`` row."""

    components: ComponentScores
    score: int
    risk_level: RiskLevel
    is_at_risk: bool
    risk_reasons: List[RiskReason] = field(default_factory=list)
    degraded_dimensions: List[HealthDimension] = field(default_factory=list)
    last_login_at: Optional[datetime] = None
    last_contact_at: Optional[datetime] = None
    last_meeting_at: Optional[datetime] = None
    open_ticket_count: int = 0

    def to_row(self) -> Dict[str, Any]:
        """Column values for the ``account_health`` upsert."""
        return {
            "score": self.score,
            "risk_level": self.risk_level.value,
            "is_at_risk": self.is_at_risk,
            "risk_reasons": [r.to_dict() for r in self.risk_reasons],
            "degraded_dimensions": [d.value for d in self.degraded_dimensions],
            "engagement_score": self.components.engagement,
            "support_score": self.components.support,
            "relationship_score": self.components.relationship,
            "financial_score": self.components.financial,
            "adoption_score": self.components.adoption,
            "last_login_at": self.last_login_at,
            "last_contact_at": self.last_contact_at,
            "last_meeting_at": self.last_meeting_at,
            "open_ticket_count": self.open_ticket_count,
        }


class AccountHealthScorer:
    """Turn collected ``AccountMetrics`` into a ``HealthCalculation``.

    Pure and deterministic for a given ``now``: identical metrics always
    produce an identical result.
    """

    def __init__(
        self,
        weights: Optional[HealthWeights] = None,
        thresholds: Optional[RiskThresholds] = None,
    ) -> None:
        self._weights = weights or HealthWeights()
        self._thresholds = thresholds or RiskThresholds()

    @classmethod
    def from_settings(cls) -> "AccountHealthScorer":
        return cls(
            weights=HealthWeights.from_settings(),
            thresholds=RiskThresholds.from_settings(),
        )

    def score(self, metrics: AccountMetrics, now: datetime) -> HealthCalculation:
        components = ComponentScores(
            engagement=score_engagement(metrics.engagement, now),
            support=score_support(metrics.support, now),
            relationship=score_relationship(metrics.relationship, now),
            financial=score_financial(metrics.financial, now),
            adoption=score_adoption(metrics.adoption, now),
        )
        score = calculate_composite_score(components, self._weights)
        risk_level = classify_risk(score, self._thresholds)
        reasons = build_risk_reasons(
            components, metrics, score, now, self._thresholds
        )
        return HealthCalculation(
            components=components,
            score=score,
            risk_level=risk_level,
            is_at_risk=is_at_risk(risk_level),
            risk_reasons=reasons,
            degraded_dimensions=list(metrics.unavailable),
            last_login_at=metrics.last_login_at,
            last_contact_at=metrics.last_contact_at,
            last_meeting_at=metrics.last_meeting_at,
            open_ticket_count=metrics.open_ticket_count,
        )

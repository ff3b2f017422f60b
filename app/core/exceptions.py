class CRMError(Exception):
    """Base class for all CRM domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except CRMError`` clause can catch any domain error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class AccountNotFoundError(CRMError):
    """Raised when a requested account does not exist in the tenant."""

    def __init__(self, detail: str = "Account not found"):
        super().__init__(detail)


class DataUnavailableError(CRMError):
    """Raised when a metric source cannot be read.

    The metric aggregator catches this per dimension and scores the
    dimension as neutral, so it never reaches the HTTP layer.
    """

    def __init__(
        self, detail: str = "Metric source unavailable", dimension: str = ""
    ):
        self.dimension = dimension
        super().__init__(detail)


class PersistenceError(CRMError):
    """Raised when an account health row or its audit entry cannot be saved."""

    def __init__(self, detail: str = "Failed to persist account health"):
        super().__init__(detail)


class InvalidRecalculationRequestError(CRMError):
    """Raised when a recalculation request names neither an account nor ``all``."""

    def __init__(self, detail: str = "Provide account_id or set all=true"):
        super().__init__(detail)

"""Prediction lifecycle exceptions."""


class OracleError(Exception):
    """Base exception for the prediction engine."""

    pass


class ParseError(OracleError):
    """Deadline fragment did not match any recognized pattern."""

    def __init__(self, message: str, fragment: str | None = None):
        super().__init__(message)
        self.fragment = fragment


class NotFoundError(OracleError):
    """Referenced topic, forecast or agent does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class AlreadyResolvedError(OracleError):
    """Topic or forecast has already been settled."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} already resolved: {record_id}")
        self.kind = kind
        self.record_id = record_id


class SettlementInProgressError(OracleError):
    """A settlement batch for the same topic is already running."""

    pass


class LedgerError(OracleError):
    """External ledger settlement failed."""

    def __init__(self, message: str, external_ref: str | None = None):
        super().__init__(message)
        self.external_ref = external_ref

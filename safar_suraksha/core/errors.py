"""Error taxonomy shared by the API layer and the core services."""


class SafetyServiceError(Exception):
    """Base class for errors raised by the safety service"""


class InvalidInputError(SafetyServiceError):
    """A required field is missing or malformed. Reported to the caller as 400."""


class ZoneConfigurationError(SafetyServiceError):
    """The zone catalog could not be read at all."""


class LedgerUnavailableError(SafetyServiceError):
    """A ledger call failed. Contained by the registrar and turned into a fallback."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class TransactionBroadcastError(SafetyServiceError):
    """
    The ledger accepted the transaction but it did not confirm.

    The nonce is spent, so the submission must not be re-sent. ``pending`` is
    set when the receipt wait ran out rather than the transaction reverting.
    """

    def __init__(self, transaction_ref: str, message: str, pending: bool = False):
        super().__init__(f"{transaction_ref}: {message}")
        self.transaction_ref = transaction_ref
        self.pending = pending

"""
Error taxonomy shared by the ledger, the transfer pipeline and the external
scoring clients.
"""
import enum


class TransferFailure(str, enum.Enum):
    InvalidAmount = "Amount must be positive."
    SenderNotFound = "Sender not found."
    InsufficientBalance = "Insufficient balance."
    ReceiverNotFound = "Receiver account number not found."
    SelfTransfer = "You cannot send money to yourself."


class TransferValidationError(Exception):
    """A transfer request that can never succeed as submitted."""

    def __init__(self, failure: TransferFailure):
        super().__init__(failure.value)
        self.failure = failure

    @property
    def code(self) -> str:
        return self.failure.name

    @property
    def message(self) -> str:
        return self.failure.value


class FraudWarning(Exception):
    """Soft stop raised by the fraud heuristics; the caller may confirm and retry."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class LedgerError(Exception):
    pass


class UserNotFoundError(LedgerError):
    def __init__(self, uid: str):
        super().__init__(f"User {uid} not found")
        self.uid = uid


class InsufficientFundsError(LedgerError):
    def __init__(self, uid: str):
        super().__init__(f"Insufficient funds for user {uid}")
        self.uid = uid


class ExternalServiceError(Exception):
    pass


class LLMError(ExternalServiceError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RiskScorerError(ExternalServiceError):
    pass


class FraudExplainerError(ExternalServiceError):
    pass

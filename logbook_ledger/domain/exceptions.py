"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidCycleDay(DomainException):
    """Billing cycle start day is missing or outside 1..31"""

    pass


class CycleNotConfigured(InvalidCycleDay):
    """User has not configured a usable billing cycle start day"""

    pass


class UserNotFound(DomainException):
    """No user exists with the given identifier"""

    pass


class StatementProcessingError(DomainException):
    """Base for failures that abort a statement upload"""

    reason = "statement_processing_failed"


class ExtractionFailed(StatementProcessingError):
    """Uploaded document could not be parsed as a PDF with a text layer"""

    reason = "invalid_document"


class LLMUnavailable(StatementProcessingError):
    """Model provider timed out, was unreachable, or returned an error"""

    reason = "llm_unavailable"


class UnparsableModelResponse(StatementProcessingError):
    """Model output could not be repaired into a valid transaction array"""

    reason = "unparsable_model_response"

    def __init__(self, message: str, sanitized_text: str = ""):
        super().__init__(message)
        self.sanitized_text = sanitized_text

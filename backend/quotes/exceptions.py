from typing import Dict, List, Optional

RATE_LOCKED = 'RATE_LOCKED'
CLOSE_REASON_REQUIRED = 'CLOSE_REASON_REQUIRED'
IMMUTABLE_FIELD_CHANGED = 'IMMUTABLE_FIELD_CHANGED'
VALIDATION_FAILED = 'VALIDATION_FAILED'
CONCURRENT_UPDATE = 'CONCURRENT_UPDATE'


class QuotationError(Exception):
    """Base exception for quotation related errors"""
    pass


class QuotationNotFound(QuotationError):
    """Raised when a quotation id does not resolve to a stored record"""
    def __init__(self, quotation_id):
        super().__init__(f"Quotation {quotation_id} not found")
        self.quotation_id = quotation_id


class ConcurrentUpdateError(QuotationError):
    """Raised when the stored record moved on between read and write; safe to retry"""
    code = CONCURRENT_UPDATE
    retryable = True

    def __init__(self, quotation_id, expected_version=None, actual_version=None):
        super().__init__(
            f"Quotation {quotation_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.quotation_id = quotation_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class UpdateRejection(QuotationError):
    """Raised when an update breaks a business rule; the request must be corrected"""
    reason_code = VALIDATION_FAILED

    def __init__(self, message: str, fields: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}


class PatchValidationError(UpdateRejection):
    """Raised when scalar fields or rate entries in the request are malformed"""
    reason_code = VALIDATION_FAILED


class RateLockedError(UpdateRejection):
    """Raised when rate collections change while the status locks them"""
    reason_code = RATE_LOCKED


class CloseReasonRequiredError(UpdateRejection):
    """Raised when a closing status has no usable close reason"""
    reason_code = CLOSE_REASON_REQUIRED


class ImmutableFieldError(UpdateRejection):
    """Raised when the request tries to change the reference number"""
    reason_code = IMMUTABLE_FIELD_CHANGED

"""
Custom exceptions for the application.
Following domain-driven design principles with specific exception types.
"""


class BaseApplicationException(Exception):
    """Base exception for all application-specific exceptions"""
    default_message = "An application error occurred"
    default_code = "APPLICATION_ERROR"
    status_code = 400

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseApplicationException):
    """Raised when validation fails"""
    default_message = "Validation failed"
    default_code = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationException):
    """Raised when a resource is not found"""
    default_message = "Resource not found"
    default_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource_type=None, resource_id=None, **kwargs):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if 'message' not in kwargs and resource_type:
            kwargs['message'] = f"{resource_type} {resource_id} not found"
        super().__init__(**kwargs)


class BusinessLogicError(BaseApplicationException):
    """Raised when business rule is violated"""
    default_message = "Business rule violation"
    default_code = "BUSINESS_RULE_VIOLATION"


class ConfigurationMissing(BusinessLogicError):
    """Room type or dormitory configuration is absent"""
    default_message = "Dormitory configuration is missing"
    default_code = "CONFIGURATION_MISSING"


class InvalidReading(ValidationError):
    """Meter value is inconsistent with the reading history"""
    default_message = "Invalid meter reading"
    default_code = "INVALID_READING"


class DuplicateBill(BusinessLogicError):
    """A bill already exists for the room and period; retry with force_duplicate"""
    default_message = "A bill already exists for this room and period"
    default_code = "DUPLICATE_BILL"
    status_code = 409


class BillingPreconditionFailed(BusinessLogicError):
    """The room or tenant is not in a billable state"""
    default_message = "Room is not ready for billing"
    default_code = "BILLING_PRECONDITION_FAILED"


class BillNotModifiable(BusinessLogicError):
    """Paid bills cannot be deleted or reverted"""
    default_message = "Paid bills cannot be modified"
    default_code = "BILL_NOT_MODIFIABLE"
    status_code = 409


class InvalidAmount(ValidationError):
    """Payment amount is out of range"""
    default_message = "Invalid payment amount"
    default_code = "INVALID_AMOUNT"


class MissingEvidence(ValidationError):
    """Transfer payments need a reference code and evidence"""
    default_message = "Reference code and payment evidence are required for transfers"
    default_code = "MISSING_EVIDENCE"


class EvidenceUploadFailed(BaseApplicationException):
    """Evidence could not be stored; the payment was not recorded"""
    default_message = "Payment evidence upload failed"
    default_code = "EVIDENCE_UPLOAD_FAILED"
    status_code = 502


class RoomStateConflict(BusinessLogicError):
    """Room is not in a state that allows the requested transition"""
    default_message = "Room status changed, refresh and retry"
    default_code = "ROOM_STATE_CONFLICT"
    status_code = 409


class OutstandingBalance(BusinessLogicError):
    """Tenant still owes money"""
    default_message = "Tenant has an outstanding balance"
    default_code = "OUTSTANDING_BALANCE"
    status_code = 409


class ConcurrentModificationError(BusinessLogicError):
    """Raised when concurrent modification is detected"""
    default_message = "Resource is being modified by another user"
    default_code = "CONCURRENT_MODIFICATION"
    status_code = 409

"""
Domain errors for the CSA apps.

Services raise these; the API layer renders them through a single
exception handler registered in config/urls.py. Each error carries the
HTTP status it maps to, so entity/state problems surface as 4xx and
catalog misconfiguration surfaces as 5xx.
"""
from typing import Optional


class CSAError(Exception):
    """Base exception for all CSA domain errors."""

    status_code = 400
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(CSAError):
    """Raised when an entity id is unknown."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} not found: {entity_id}"
        super().__init__(msg)


class Forbidden(CSAError):
    """Raised when the requester does not own the entity."""

    status_code = 403
    code = "forbidden"


class InvalidState(CSAError):
    """Raised when a transition is not allowed from the current status."""

    status_code = 409
    code = "invalid_state"

    def __init__(self, message: str, current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message)


class PreconditionFailed(InvalidState):
    """Raised when a transition requires a specific status that is not met."""

    code = "precondition_failed"


class EditWindowClosed(CSAError):
    """Raised when an order is edited after its cutoff or once it is no longer pending."""

    status_code = 409
    code = "edit_window_closed"


class ValidationFailed(CSAError):
    """Raised when request data does not match the catalog (box size, interval)."""

    status_code = 400
    code = "validation_failed"


class InvalidFulfillmentType(CSAError):
    """Raised when no catalog entry matches a fulfillment type."""

    status_code = 500
    code = "invalid_fulfillment_type"

    def __init__(self, fulfillment_type: str):
        self.fulfillment_type = fulfillment_type
        super().__init__(f"Invalid fulfillment type: {fulfillment_type}")


class NoSchedulesAvailable(CSAError):
    """Raised when a fulfillment type has no active schedule rows."""

    status_code = 500
    code = "no_schedules_available"

    def __init__(self, fulfillment_type: str):
        self.fulfillment_type = fulfillment_type
        super().__init__(f"No fulfillment schedules available for: {fulfillment_type}")


class PaymentFailed(CSAError):
    """Raised when the payment gateway declines or errors."""

    status_code = 402
    code = "payment_failed"

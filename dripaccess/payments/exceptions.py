"""
Error taxonomy for payments and entitlements.

Every error carries a human-readable ``detail`` and a stable ``code``. Views
map them to HTTP responses; none of them ever expose internals to end users.

    VerificationFailed   untrusted input, reject with no state change
    UnknownOrder         event references an order we never created
    TransactionConflict  transient storage conflict, retry the whole call
    GatewayUnavailable   order creation could not reach the gateway
    DataIntegrity        stored data is inconsistent, page an operator
"""


class EntitlementError(Exception):
    """Base exception for payment and entitlement errors."""

    def __init__(self, detail: str, code: str = "entitlement_error"):
        self.detail = detail
        self.code = code
        super().__init__(detail)


class VerificationFailed(EntitlementError):
    """Raised when a gateway signature is missing or does not match."""

    def __init__(self, detail: str = "Signature verification failed."):
        super().__init__(detail, code="verification_failed")


class MalformedEvent(EntitlementError):
    """Raised when a verified webhook body cannot be interpreted."""

    def __init__(self, detail: str = "Webhook payload could not be parsed."):
        super().__init__(detail, code="malformed_event")


class UnknownOrder(EntitlementError):
    """Raised when an event references an order that does not exist."""

    def __init__(self, gateway_order_id: str):
        self.gateway_order_id = gateway_order_id
        super().__init__(
            f"No order exists for gateway order id {gateway_order_id!r}.",
            code="unknown_order",
        )


class InvalidOrderTransition(EntitlementError):
    """Raised when an order is asked to leave a terminal status."""

    def __init__(self, detail: str):
        super().__init__(detail, code="invalid_order_transition")


class InvalidOrderRequest(EntitlementError):
    """Raised when an order request is rejected before reaching the gateway."""

    def __init__(self, detail: str):
        super().__init__(detail, code="invalid_order_request")


class InvalidPlanType(EntitlementError):
    """Raised for a plan type outside the closed PlanType set."""

    def __init__(self, plan_type):
        self.plan_type = plan_type
        super().__init__(f"Invalid plan type {plan_type!r}.", code="invalid_plan_type")


class UnknownWebinar(EntitlementError):
    """Raised when a webinar purchase references a missing webinar."""

    def __init__(self, webinar_id):
        self.webinar_id = webinar_id
        super().__init__(
            f"Webinar {webinar_id!r} does not exist.",
            code="unknown_webinar",
        )


class GatewayUnavailable(EntitlementError):
    """Raised when the payment gateway cannot create an order. Retryable."""

    def __init__(self, detail: str = "Payment gateway is unavailable."):
        super().__init__(detail, code="gateway_unavailable")


class TransactionConflict(EntitlementError):
    """Raised on a transient storage conflict. Safe to retry the whole call."""

    def __init__(self, detail: str = "Storage conflict while resolving entitlement."):
        super().__init__(detail, code="transaction_conflict")


class DataIntegrity(EntitlementError):
    """Raised when stored data is inconsistent. Never swallowed."""

    def __init__(self, detail: str, code: str = "data_integrity"):
        super().__init__(detail, code=code)


class UserNotFound(DataIntegrity):
    """Raised when an order or grant references a user that does not exist."""

    def __init__(self, user_ref):
        self.user_ref = user_ref
        super().__init__(f"User {user_ref!r} not found.", code="user_not_found")


class AlreadyEntitled(EntitlementError):
    """Raised when an administrative grant duplicates an active plan."""

    def __init__(self, plan_type):
        self.plan_type = plan_type
        super().__init__(
            f"User already has an active {plan_type} subscription.",
            code="already_entitled",
        )


class FreeTrialUnavailable(EntitlementError):
    """Raised when a user has already used their free trial."""

    def __init__(self, detail: str = "Free trial already used."):
        super().__init__(detail, code="free_trial_used")

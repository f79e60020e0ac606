"""Error taxonomy shared by the store, dispatcher and transports."""


class DashboardError(Exception):
    """Base class for errors surfaced to the caller of an operation."""

    code = "dashboard_error"
    status_code = 500


class NotFound(DashboardError):
    """Unknown participant or message id."""

    code = "not_found"
    status_code = 404


class InvalidSender(DashboardError):
    """Message sender is neither a registered agent nor the owner."""

    code = "invalid_sender"
    status_code = 400


class EmptyContent(DashboardError):
    """Message body is empty after trimming."""

    code = "empty_content"
    status_code = 400


class Forbidden(DashboardError):
    """Caller lacks the owner role required for the operation."""

    code = "forbidden"
    status_code = 403


class GatewayTimeout(DashboardError):
    """Agent responder did not answer within the bounded wait."""

    code = "gateway_timeout"
    status_code = 504


class GatewayFailure(DashboardError):
    """Agent responder errored or returned nothing usable."""

    code = "gateway_failure"
    status_code = 502

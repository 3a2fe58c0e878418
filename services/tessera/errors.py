"""Caller-visible request errors.

Services raise these; the API layer renders them as
``{"code": ..., "message": ...}`` with the carried HTTP status.
"""

from typing import Any


class RequestError(Exception):
    """An error that terminates the current request with a known status."""

    status: int = 400
    default_message: str = "Request failed"

    def __init__(
        self,
        code: str,
        *,
        status: int | None = None,
        message: str | None = None,
        **data: Any,
    ) -> None:
        self.code = code
        if status is not None:
            self.status = status
        self.message = message or self.default_message
        self.data = data
        super().__init__(f"{code}: {self.message}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API response body."""
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            body["data"] = self.data
        return body


class NotFoundError(RequestError):
    status = 404
    default_message = "Resource not found"


class ConflictError(RequestError):
    status = 409
    default_message = "Resource already exists"


class InvalidApplicationTypeError(RequestError):
    """The application cannot be used for IdP-initiated SSO.

    Only first-party traditional web applications qualify.
    """

    status = 400
    default_message = (
        "Only first-party traditional web applications can be used for "
        "IdP-initiated SAML authentication"
    )

    def __init__(self, **data: Any) -> None:
        super().__init__("connector.saml_idp_initiated_auth_invalid_application_type", **data)


class InvalidRedirectUriError(RequestError):
    status = 400
    default_message = "No redirect URI could be resolved for the sign-in request"

    def __init__(self, **data: Any) -> None:
        super().__init__("oidc.invalid_redirect_uri", **data)

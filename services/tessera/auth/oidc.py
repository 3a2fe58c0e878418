"""OIDC authorization request contract.

Query keys and values understood by the platform's OIDC authorization
endpoint (``<issuer>/auth``). The endpoint is implemented elsewhere; the
names here must stay in sync with it.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum


class QueryKey(StrEnum):
    """Authorization request query parameter names."""

    CLIENT_ID = "client_id"
    REDIRECT_URI = "redirect_uri"
    RESPONSE_TYPE = "response_type"
    PROMPT = "prompt"
    SCOPE = "scope"
    STATE = "state"
    DIRECT_SIGN_IN = "direct_sign_in"


class Prompt(StrEnum):
    CONSENT = "consent"
    LOGIN = "login"
    NONE = "none"


class ReservedScope(StrEnum):
    """Scopes every authorization request carries."""

    OPENID = "openid"
    OFFLINE_ACCESS = "offline_access"
    PROFILE = "profile"


RESERVED_SCOPES: tuple[str, ...] = tuple(s.value for s in ReservedScope)


def with_reserved_scopes(scopes: Iterable[str] | None = None) -> str:
    """Return a space-delimited scope string that includes the reserved scopes.

    Reserved scopes come first, followed by the requested ones in order.
    Duplicates and empty tokens are dropped.
    """
    merged = dict.fromkeys(RESERVED_SCOPES)
    for scope in scopes or ():
        if scope:
            merged.setdefault(scope)
    return " ".join(merged)


@dataclass(frozen=True)
class DirectSignInOptions:
    """Tells the authorization endpoint to skip method selection.

    Serialized as ``<method>:<target>``, e.g. ``sso:<connector id>``.
    """

    method: str
    target: str

    def __str__(self) -> str:
        return f"{self.method}:{self.target}"

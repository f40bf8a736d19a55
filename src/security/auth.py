"""Upstream authorization for D-ID calls.

D-ID accepts either Basic auth built from the account API key, or a
browser client key sent as "Client-Key <key>" (the WordPress plugin's
fetch interceptor also sends client keys as Basic <base64(key:)>).
"""

import base64
from enum import Enum

CLIENT_AUTH_SCHEMES = ("client-key", "basic")


class AuthMode(str, Enum):
    SERVER = "server"  # always the server credential
    CALLER_OR_SERVER = "caller_or_server"  # caller's client key when present


def basic_auth_header(api_key: str) -> str:
    """Build the Basic Authorization value from an "identifier:secret" key.

    D-ID keys already contain the colon separator, so the whole key is
    encoded as-is.
    """
    encoded = base64.b64encode(api_key.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def caller_authorization(header: str | None) -> str | None:
    """Return the caller's Authorization value if it carries a usable scheme."""
    if not header:
        return None
    scheme, _, credentials = header.strip().partition(" ")
    if scheme.lower() not in CLIENT_AUTH_SCHEMES or not credentials.strip():
        return None
    return header.strip()


def resolve_authorization(mode: AuthMode, api_key: str, inbound: str | None = None) -> str:
    """Pick the Authorization header to send upstream."""
    if mode == AuthMode.CALLER_OR_SERVER:
        passthrough = caller_authorization(inbound)
        if passthrough is not None:
            return passthrough
    return basic_auth_header(api_key)

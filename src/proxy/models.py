"""Data carried through the gateway."""

from dataclasses import dataclass, field

DEFAULT_CLIENT_KEY_TTL = 3600  # seconds


class InvalidClientKeyRequest(ValueError):
    """Caller sent a client-key field with an unusable type."""


def _string_list(field_name: str, value) -> list[str] | None:
    """Accept a single string or a list of strings."""
    if not value:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    raise InvalidClientKeyRequest(f"{field_name} must be a string or a list of strings")


@dataclass
class ClientKeyRequest:
    allowed: list[str]
    expires_in: int = DEFAULT_CLIENT_KEY_TTL
    capabilities: list[str] | None = None
    origins_field: str = "allowed_origins"  # "allowed_origins" | "allowed_domains"

    @classmethod
    def from_body(cls, body: dict | None, default_origin: str) -> "ClientKeyRequest":
        """Build a request from caller input, substituting defaults."""
        body = body or {}
        origins_field = "allowed_origins"
        allowed = _string_list("allowed_origins", body.get("allowed_origins"))
        if not allowed and body.get("allowed_domains"):
            origins_field = "allowed_domains"
            allowed = _string_list("allowed_domains", body["allowed_domains"])
        return cls(
            allowed=allowed or [default_origin],
            expires_in=body.get("expires_in") or DEFAULT_CLIENT_KEY_TTL,
            capabilities=_string_list("capabilities", body.get("capabilities")),
            origins_field=origins_field,
        )

    def to_upstream(self) -> dict:
        payload = {self.origins_field: self.allowed, "expires_in": self.expires_in}
        if self.capabilities:
            payload["capabilities"] = self.capabilities
        return payload


@dataclass
class IssuedClientKey:
    """Client key issued by D-ID, relayed unchanged."""
    body: dict
    source: str = field(default="issued", init=False)


@dataclass
class FallbackClientKey:
    """Locally built key object returned when issuance failed.

    Carries the raw server credential as client_key.
    """
    body: dict
    reason: str = ""
    source: str = field(default="fallback", init=False)


ClientKeyResult = IssuedClientKey | FallbackClientKey


@dataclass
class UpstreamResponse:
    status_code: int
    content: bytes
    content_type: str = ""

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type.lower()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

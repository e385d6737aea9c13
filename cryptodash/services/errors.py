"""Failure type shared by every adapter and by the proxy.

Callers tell failure categories apart by ``status_code`` only:

    0    network / transport failure, no response received
    429  upstream rate limit
    401  upstream rejected the credential (proxied deployments only)
    *    any other non-2xx upstream status
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from cryptodash.config.settings import API_KEY_ENV_VARS, PROVIDER_LABELS

NETWORK_ERROR_MESSAGE = "Network error while loading crypto data. Please retry in a moment."
RATE_LIMIT_MESSAGE = "Rate limit reached (429). Please wait a moment and retry."
INVALID_RESPONSE_MESSAGE = "Crypto API returned an invalid response."


class ApiFailure(Exception):
    """Raised by every adapter call that could not produce data."""

    def __init__(self, message: str, status_code: int, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def __repr__(self) -> str:
        return f"ApiFailure(status_code={self.status_code!r}, message={self.message!r})"

    def to_envelope(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


def credential_hint(provider: str) -> tuple[str, str]:
    """(error, detail) pair telling the operator which key to configure."""
    label = PROVIDER_LABELS.get(provider, "Upstream")
    env_var = API_KEY_ENV_VARS.get(provider, "UPSTREAM_API_KEY")
    return (
        f"{label} rejected the request (401).",
        f"Set {env_var} (or UPSTREAM_API_KEY) in the deployment environment, then redeploy.",
    )


REDACTED = "***"


def scrub(text: str, secret: Optional[str]) -> str:
    """Blank out a configured credential wherever it shows up in text."""
    if secret:
        return text.replace(secret, REDACTED)
    return text


def network_failure(exc: BaseException | None = None, secret: Optional[str] = None) -> ApiFailure:
    # transport errors can quote the request URL, key parameter included
    detail = scrub(str(exc), secret) if exc is not None and str(exc) else None
    return ApiFailure(NETWORK_ERROR_MESSAGE, 0, detail=detail)


def classify_status(
    status_code: int,
    *,
    provider: str = "",
    credential_hints: bool = False,
) -> ApiFailure:
    """Map a non-2xx upstream status to an ApiFailure."""
    if status_code == 429:
        return ApiFailure(RATE_LIMIT_MESSAGE, 429)
    if status_code == 401 and credential_hints:
        error, detail = credential_hint(provider)
        return ApiFailure(f"{error} {detail}", 401)
    return ApiFailure(f"Crypto API request failed: {status_code}", status_code)


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300

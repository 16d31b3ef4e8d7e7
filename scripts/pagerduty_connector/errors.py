"""Error kinds raised by the connector core.

Nothing here is retried internally; the host sync loop owns retry policy.
"""

from __future__ import annotations

from typing import Optional


class ConnectorError(Exception):
    """Base class for every connector error."""


class MalformedTokenError(ConnectorError, ValueError):
    """A continuation token could not be decoded."""


class MalformedIdError(ConnectorError, ValueError):
    """A composite id did not split into <type>:<resource>:<entitlement>."""


class UpstreamError(ConnectorError):
    """A PagerDuty listing, fetch or mutation failed."""

    def __init__(self, operation: str, detail: str = "", status_code: Optional[int] = None) -> None:
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        msg = f"pagerduty-connector: failed to {operation}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class UnsupportedPrincipalError(ConnectorError):
    """Grant/revoke targeted a principal that is not a user."""


class UnsupportedRoleError(ConnectorError):
    """An observed or requested role has no known entitlement."""


class ValidationError(ConnectorError):
    """Credentials were rejected or lack the required privileges."""

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message)

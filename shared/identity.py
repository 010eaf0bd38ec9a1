"""
Identity forwarded by the gateway to backend services.

The gateway verifies the bearer token once and passes the resulting claims
downstream as plain headers. Backend services trust these headers and do not
re-verify signatures, so the gateway strips any client supplied copies.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
USER_EXPIRY_HEADER = "X-User-Expiry"

IDENTITY_HEADERS = (USER_ID_HEADER, USER_ROLE_HEADER, USER_EXPIRY_HEADER)


@dataclass(frozen=True)
class ForwardedIdentity:
    """Authenticated caller as seen by backend services."""

    subject: str
    role: Optional[str] = None
    expiry: Optional[int] = None

    def to_headers(self) -> Dict[str, str]:
        headers = {USER_ID_HEADER: self.subject}
        if self.role:
            headers[USER_ROLE_HEADER] = self.role
        if self.expiry is not None:
            headers[USER_EXPIRY_HEADER] = str(self.expiry)
        return headers

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["ForwardedIdentity"]:
        """Read the identity headers; ``None`` when the request carries none."""
        subject = headers.get(USER_ID_HEADER)
        if not subject:
            return None

        expiry_raw = headers.get(USER_EXPIRY_HEADER)
        try:
            expiry = int(expiry_raw) if expiry_raw else None
        except ValueError:
            expiry = None

        return cls(subject=subject, role=headers.get(USER_ROLE_HEADER), expiry=expiry)

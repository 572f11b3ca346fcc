# app/client/session.py

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Session:
    """
    Client-side login state: the bearer token and the user it belongs to.

    Built once by the caller and handed to `CRMClient`; nothing reads it from
    global storage.
    """

    token: Optional[str] = None
    user: dict[str, Any] = field(default_factory=dict)
    grantee_kind: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def start(self, login_data: dict) -> None:
        """Populate from the `data` block of a login response."""
        self.token = login_data["access_token"]
        self.user = dict(login_data.get("user") or {})
        self.grantee_kind = login_data.get("grantee_kind")

    def clear(self) -> None:
        self.token = None
        self.user = {}
        self.grantee_kind = None

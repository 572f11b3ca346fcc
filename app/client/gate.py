# app/client/gate.py
"""
Client-side permission gate.

Mirrors the server's decision so screens can hide controls and redirect
away from routes up front. The server stays the authority; this only spares
the user requests that would be refused.
"""

from typing import Optional

from loguru import logger

from app.client.api import APIError, AuthenticationError, CRMClient, NetworkError

ACTIONS = ("view", "add", "edit", "delete")

LOADING = "loading"
READY = "ready"
ERROR = "error"


class PermissionGate:
    def __init__(self, client: CRMClient, fallback_route: str = "/dashboard"):
        self.client = client
        self.fallback_route = fallback_route
        self.state = LOADING
        self.grantee_kind: Optional[str] = None
        self._rights: dict[str, dict[str, bool]] = {}

    async def load(self) -> str:
        """
        Fetch the caller's matrix. Any failure leaves the gate in the error
        state, where every check is denied. A 401 still propagates so the
        caller can send the user back to the login screen.
        """
        self.state = LOADING
        self._rights = {}
        try:
            data = await self.client.my_permissions()
        except AuthenticationError:
            self.state = ERROR
            raise
        except (APIError, NetworkError) as e:
            logger.warning(f"Permission lookup failed, denying all: {e}")
            self.state = ERROR
            return self.state

        self.grantee_kind = data.get("grantee_kind")
        for entry in data.get("permissions") or []:
            self._rights[entry["activity_name"]] = {
                action: bool(entry.get(f"can_{action}")) for action in ACTIONS
            }
        self.state = READY
        return self.state

    def check_permission(self, activity_name: str, action: str) -> bool:
        if self.state != READY:
            return False
        return self._rights.get(activity_name, {}).get(action, False)

    def visible_actions(self, activity_name: str) -> list[str]:
        """Actions whose controls should be rendered for this activity."""
        return [action for action in ACTIONS if self.check_permission(activity_name, action)]

    def guard_route(self, activity_name: str, route: str) -> str:
        """The route to render: `route` when viewable, the fallback otherwise."""
        if self.check_permission(activity_name, "view"):
            return route
        return self.fallback_route

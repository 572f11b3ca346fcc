# app/client/api.py
"""
Async REST client for the CRM API.

Every response is the `{success, message, data, errors}` envelope. A 401
clears the session and raises `AuthenticationError`; other failures raise
`APIError` carrying the field errors, and transport problems raise
`NetworkError`. Nothing is retried.
"""

from typing import Any, Optional

import httpx
from loguru import logger

from app.client.session import Session


class ClientError(Exception):
    """Base class for client-side API failures."""


class NetworkError(ClientError):
    """The request never got a response."""


class AuthenticationError(ClientError):
    """Missing, expired or rejected token. The session has been cleared."""


class APIError(ClientError):
    def __init__(self, status_code: int, message: str, errors: Optional[list[dict]] = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors or []
        super().__init__(f"{status_code}: {message}")

    def field_errors(self) -> dict[str, str]:
        """field name -> message, for mapping back onto form inputs."""
        return {err["field"]: err["message"] for err in self.errors if "field" in err}


class CRMClient:
    def __init__(
        self,
        base_url: str,
        session: Session,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.session = session
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "CRMClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------
    async def request(self, method: str, path: str, **kwargs) -> Any:
        headers = {**kwargs.pop("headers", {}), **self.session.auth_headers()}
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError("Network error, please try again") from e

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            # Proxies and gateways can answer with bare JSON lists or strings
            body = {"message": response.text}

        if response.status_code == 401:
            self.session.clear()
            raise AuthenticationError(body.get("message") or "Not authenticated")

        if response.is_error or body.get("success") is False:
            raise APIError(response.status_code, body.get("message") or "Request failed", body.get("errors"))

        return body.get("data")

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> Any:
        return await self.request("PATCH", path, **kwargs)

    # ------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------
    async def login(self, username: str, password: str, admin: bool = False) -> dict:
        path = "/api/auth/admin/login" if admin else "/api/auth/user/login"
        data = await self.post(path, json={"username": username, "password": password})
        self.session.start(data)
        return data

    def logout(self) -> None:
        self.session.clear()

    async def my_permissions(self) -> dict:
        return await self.get("/api/permissions/me")

    # ------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------
    async def forgot_password(self, email: str) -> dict:
        return await self.post("/api/auth/forgot-password", json={"email": email}) or {}

    async def verify_otp(self, email: str, otp: str) -> None:
        await self.post("/api/auth/verify-otp", json={"email": email, "otp": otp})

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        await self.post(
            "/api/auth/reset-password",
            json={"email": email, "otp": otp, "new_password": new_password},
        )

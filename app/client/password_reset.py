# app/client/password_reset.py

import time
from typing import Callable, Optional

from app.client.api import CRMClient

DEFAULT_RESEND_SECONDS = 120


class PasswordResetFlow:
    """
    Forgot-password screen state: request an OTP, count down until a resend
    is allowed, verify, then set the new password.

    Every new request restarts the countdown; the server accepts only the
    latest OTP.
    """

    def __init__(self, client: CRMClient, clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.clock = clock
        self.email: Optional[str] = None
        self.verified_otp: Optional[str] = None
        self._resend_at: Optional[float] = None

    def seconds_remaining(self) -> int:
        if self._resend_at is None:
            return 0
        return max(0, int(round(self._resend_at - self.clock())))

    def can_resend(self) -> bool:
        return self.seconds_remaining() == 0

    async def request_otp(self, email: str) -> int:
        data = await self.client.forgot_password(email)
        self.email = email
        self.verified_otp = None
        self._resend_at = self.clock() + data.get("resend_after_seconds", DEFAULT_RESEND_SECONDS)
        return self.seconds_remaining()

    async def verify(self, otp: str) -> None:
        if not self.email:
            raise RuntimeError("Request an OTP first")
        await self.client.verify_otp(self.email, otp)
        self.verified_otp = otp

    async def reset(self, new_password: str) -> None:
        if not self.email or not self.verified_otp:
            raise RuntimeError("Verify the OTP first")
        await self.client.reset_password(self.email, self.verified_otp, new_password)
        self.verified_otp = None
        self._resend_at = None

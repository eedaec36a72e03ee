"""Explicit two-state OAuth token request."""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from mediarelay.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class HandshakeState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"


class TokenHandshake:
    """Bridges a callback-style consent popup to an awaitable.

    ``request_token()`` moves to ``pending`` and returns a future. The popup
    glue later calls exactly one of ``token_received`` or ``token_denied``.
    A granted token is reused until ``revoke()``.
    """

    def __init__(self, scope: str):
        self.scope = scope
        self.state = HandshakeState.IDLE
        self.token: Optional[str] = None
        self._future: Optional[asyncio.Future] = None

    def request_token(self) -> asyncio.Future:
        if self.state == HandshakeState.PENDING and self._future is not None:
            return self._future
        self._future = asyncio.get_running_loop().create_future()
        self.state = HandshakeState.PENDING
        return self._future

    def token_received(self, token: str) -> None:
        if self.state != HandshakeState.PENDING:
            logger.warning("Token received with no pending request", extra={"scope": self.scope})
            return
        self.token = token
        self.state = HandshakeState.GRANTED
        self._future.set_result(token)

    def token_denied(self, reason: str) -> None:
        if self.state != HandshakeState.PENDING:
            logger.warning("Token denial with no pending request", extra={"scope": self.scope})
            return
        logger.error("OAuth consent failed", extra={"scope": self.scope, "reason": reason})
        self.state = HandshakeState.DENIED
        self._future.set_exception(AuthError(reason))

    async def get_token(self, open_consent: Callable[[], None]) -> str:
        """Return the cached token or run the consent flow once.

        Raises:
            AuthError: If the user or provider denies the request
        """
        if self.state == HandshakeState.GRANTED and self.token:
            return self.token
        future = self.request_token()
        open_consent()
        return await future

    def revoke(self) -> None:
        self.token = None
        self.state = HandshakeState.IDLE
        self._future = None

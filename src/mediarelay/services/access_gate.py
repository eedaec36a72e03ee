"""Shared site password check applied at the relay boundary."""

import hmac
import logging
from typing import Optional

from mediarelay.core.exceptions import AccessDenied, ConfigError

logger = logging.getLogger(__name__)

INVALID_PASSWORD_MESSAGE = "Password non valida"


class AccessGate:
    """Single shared-secret check. Not an identity system."""

    def __init__(self, secret: str):
        self._secret = secret

    def check(self, provided: Optional[str]) -> None:
        """Raise AccessDenied unless *provided* equals the configured secret.

        Raises:
            ConfigError: If no secret is configured
            AccessDenied: If *provided* is missing or wrong
        """
        if not self._secret:
            raise ConfigError("SITE_PASSWORD not configured")
        if not provided or not hmac.compare_digest(provided.encode(), self._secret.encode()):
            logger.warning("Rejected request with invalid site password")
            raise AccessDenied(INVALID_PASSWORD_MESSAGE)

    def check_if_present(self, provided: Optional[str]) -> None:
        """Check *provided* only when the caller sent one."""
        if provided:
            self.check(provided)

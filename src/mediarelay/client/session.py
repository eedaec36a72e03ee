"""Per-session shared secret held by the client."""

from typing import Optional

from mediarelay.core.exceptions import ConfigError


class ClientSession:
    """Holds the site password for the lifetime of one client session.

    The secret is only ever checked by the relay; ``unlocked`` records that
    the user has entered one.
    """

    def __init__(self):
        self._secret: Optional[str] = None

    @property
    def unlocked(self) -> bool:
        return self._secret is not None

    def unlock(self, password: str) -> None:
        if not password:
            raise ConfigError("Site password is empty")
        self._secret = password

    def lock(self) -> None:
        self._secret = None

    @property
    def secret(self) -> Optional[str]:
        return self._secret

    def require_secret(self) -> str:
        """Return the secret or raise ConfigError if the session is locked."""
        if self._secret is None:
            raise ConfigError("Site password not set")
        return self._secret

"""Client-side configuration."""

from typing import Optional

from pydantic import BaseModel, Field

from mediarelay.core.exceptions import ConfigError

RELAY_URL_PLACEHOLDER = "YOUR_WORKER_URL"
CLIENT_ID_PLACEHOLDER = "YOUR_CLIENT_ID_HERE"


class ClientConfig(BaseModel):
    """Settings for a client session talking to the relay (and, optionally, Graph)."""

    relay_url: str = ""
    azure_client_id: str = ""

    # Upload Constraints
    upload_chunk_size_mb: int = 5
    max_file_size_mb: int = 500
    allowed_types: list[str] = Field(default_factory=lambda: ["image/*", "video/*"])

    # Destination folder for direct uploads
    drive_id: Optional[str] = None
    folder_id: Optional[str] = None
    folder_name: str = "CMP GVNG"
    share_link: Optional[str] = None

    # Photos picker polling
    picker_poll_interval_seconds: float = 1.0
    picker_initial_delay_seconds: float = 2.0
    picker_closed_window_polls: int = 15
    picker_max_polls: int = 1800  # 30 minutes at 1 poll/s

    request_timeout: float = 120.0

    @property
    def max_file_size_bytes(self) -> int:
        """Convert max_file_size_mb to bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def upload_chunk_size_bytes(self) -> int:
        """Convert upload_chunk_size_mb to bytes."""
        return self.upload_chunk_size_mb * 1024 * 1024

    def validate_config(self, direct_uploads: bool = False) -> None:
        """Fail fast before any network call.

        Args:
            direct_uploads: Also require the Azure client id used to talk to Graph

        Raises:
            ConfigError: Listing every missing or placeholder value
        """
        errors = []
        if not self.relay_url or RELAY_URL_PLACEHOLDER in self.relay_url:
            errors.append("Relay URL not configured")
        if direct_uploads and (not self.azure_client_id or self.azure_client_id == CLIENT_ID_PLACEHOLDER):
            errors.append("Azure client id not configured")
        if self.upload_chunk_size_mb <= 0:
            errors.append("Upload chunk size must be positive")
        if errors:
            raise ConfigError("; ".join(errors))

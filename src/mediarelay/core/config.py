"""Configuration management for the Media Relay service."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "mediarelay"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Shared site password checked on user-data routes
    SITE_PASSWORD: str = ""

    # Azure AD application used to refresh the storage token
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    AZURE_REFRESH_TOKEN: str = ""
    AZURE_TENANT: str = "common"
    GRAPH_SCOPE: str = "https://graph.microsoft.com/Files.ReadWrite.All offline_access"

    # Target OneDrive folder
    ONEDRIVE_DRIVE_ID: str = ""
    ONEDRIVE_FOLDER_ID: str = ""

    # Upload Constraints
    MAX_FILE_SIZE_MB: int = 500
    RELAY_CHUNK_SIZE_MB: int = 10  # Relay favours fewer round trips

    # CORS
    CORS_ORIGIN: str = "*"

    # Outbound HTTP
    REQUEST_TIMEOUT: int = 120  # seconds for provider calls

    # Access token caching (off: every privileged call refreshes)
    TOKEN_CACHE_ENABLED: bool = False
    TOKEN_EXPIRY_MARGIN_SECONDS: int = 60

    @property
    def token_endpoint(self) -> str:
        """OAuth2 token endpoint for the configured tenant."""
        return f"https://login.microsoftonline.com/{self.AZURE_TENANT}/oauth2/v2.0/token"

    @property
    def authorize_endpoint(self) -> str:
        """OAuth2 authorization endpoint for the configured tenant."""
        return f"https://login.microsoftonline.com/{self.AZURE_TENANT}/oauth2/v2.0/authorize"

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_FILE_SIZE_MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def relay_chunk_size_bytes(self) -> int:
        """Convert RELAY_CHUNK_SIZE_MB to bytes."""
        return self.RELAY_CHUNK_SIZE_MB * 1024 * 1024


# Singleton settings instance
settings = Settings()

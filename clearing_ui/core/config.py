# clearing_ui/core/config.py
import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # General
    ENV: str = "dev"
    APP_NAME: str = "Clearing UI"

    # Base cache path; OSSelot descriptors live under <CACHE_DIR>/util/osselot
    CACHE_DIR: str = tempfile.gettempdir()

    # OSSelot lookups
    OSSELOT_BASE_URL: str = "https://rest.osselot.org/"
    OSSELOT_PACKAGES_URL: str = (
        "https://api.github.com/repos/Open-Source-Compliance/"
        "package-analysis/contents/analysed-packages"
    )
    OSSELOT_CACHE_TTL: int = 86400  # 24h
    HTTP_CONNECT_TIMEOUT: float = 5
    HTTP_TIMEOUT: float = 300
    HTTP_USER_AGENT: str = "Fossology-OsselotHelper"

    # Optional GitHub token for the analysed-packages listing
    GITHUB_TOKEN: str = ""

    # Reuser panel
    DISPLAY_TIMEZONE: str = "UTC"
    DEFAULT_PACKAGE_NAME: str = "angular"

    # Sessions
    SESSION_TTL_SECONDS: int = 10 * 60 * 60

    # Account seeded into an empty user store
    DEFAULT_ADMIN_USERNAME: str = "fossy"
    DEFAULT_ADMIN_PASSWORD: str = "fossy"

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

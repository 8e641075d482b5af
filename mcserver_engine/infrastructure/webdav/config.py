#mcserver_engine\infrastructure\webdav\config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class WebDavSettings(BaseSettings):
    """WebDAV access from environment variables (WEBDAV_*)."""

    model_config = SettingsConfigDict(
        env_prefix="WEBDAV_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    url: str = "http://localhost:8080"
    username: Optional[str] = None
    password: Optional[str] = None
    server_base_path: str = "/minecraft-servers"
    timeout: int = 30


settings = WebDavSettings()

#mcserver_engine\infrastructure\portainer\config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class PortainerSettings(BaseSettings):
    """Portainer API access from environment variables (PORTAINER_*)."""

    model_config = SettingsConfigDict(
        env_prefix="PORTAINER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    url: str = "http://localhost:9000"
    api_key: str = ""
    env_id: Optional[int] = None
    timeout: int = 30
    verify_tls: bool = True


settings = PortainerSettings()

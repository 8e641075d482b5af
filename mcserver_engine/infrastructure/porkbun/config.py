#mcserver_engine\infrastructure\porkbun\config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class PorkbunSettings(BaseSettings):
    """Porkbun DNS API access from environment variables (PORKBUN_*)."""

    model_config = SettingsConfigDict(
        env_prefix="PORKBUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    api_url: str = "https://api.porkbun.com/api/json/v3"
    api_key: str = ""
    secret_key: str = ""
    domain: str = "example.com"
    # Host the SRV records point at; defaults to the domain itself.
    target: str = ""
    ttl: int = 600
    timeout: int = 15


settings = PorkbunSettings()

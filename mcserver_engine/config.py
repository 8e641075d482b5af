#mcserver_engine\config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Orchestration policy from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Ports
    server_port_min: int = 25566
    server_port_max: int = 25595
    important_ports: List[int] = [
        3306, 5432, 6379, 9000, 9443, 8080, 8443, 3000, 5000, 27017, 30001,
    ]

    # Names
    reserved_subdomains: List[str] = [
        "admin", "api", "www", "mail", "ftp", "smtp", "pop", "imap", "ns1", "ns2",
        "dns", "portainer", "dashboard", "panel", "proxy", "velocity", "status",
        "cdn", "static", "assets", "test", "dev", "staging",
    ]

    # File manager
    protected_paths: List[str] = [
        "server.properties", "eula.txt", "world", "world_nether", "world_the_end",
    ]

    # Polling
    container_start_attempts: int = 30
    container_start_interval: float = 2.0
    files_wait_attempts: int = 40
    files_wait_interval: float = 3.0
    proxy_stop_settle_seconds: float = 3.0

    # Deletion
    delete_server_folders: bool = True

    # Proxies
    proxies_file: str = "proxies.yaml"
    velocity_forwarding_secret: str = ""

    # Storage as seen from the container host, mounted at /data
    host_data_root: str = "/mnt/minecraft-servers"

    # Identifier resolution
    allow_legacy_aliases: bool = True

    # "token:email[:admin]" entries for the static identity provider
    api_tokens: List[str] = []


settings = EngineSettings()

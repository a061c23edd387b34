from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # HTTP fetcher
    http_timeout: float = 10.0
    http_max_retries: int = 0  # retries on timeouts / connect errors only
    http_verify_ssl: bool = True  # set False behind corporate SSL-inspection proxies
    user_agent: str = "EchoscrapeBot/1.0 (+https://github.com/tijnjh/echoscrape)"

    # URL guard
    block_private_addresses: bool = True
    resolve_hosts: bool = False  # also reject names that resolve to private ranges

    # HTTP surface
    cors_allow_origins: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"


settings = Settings()

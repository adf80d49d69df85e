"""Configuration via pydantic-settings — 12-factor app style."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Mattersplunk configuration — loaded from env vars / .env file."""

    model_config = SettingsConfigDict(env_prefix="MATTERSPLUNK_", env_file=".env")

    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for the plugin KV store")
    key_prefix: str = Field(default="mattersplunk", description="Namespace prefix for every stored key")
    splunk_server: str = Field(default="", description="Default Splunk base URL (https://host:8089)")
    http_timeout: float = Field(default=10.0, description="Timeout in seconds for Splunk REST calls")
    bot_username: str = Field(default="splunk", description="Username of the bot that posts alerts")


settings = Settings()

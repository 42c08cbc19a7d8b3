"""
Configuration settings for KPI Copilot.

Uses pydantic-settings for environment variable support.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="COPILOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(default="INFO", description="Loguru sink level used by the CLI")

    # ========================================
    # Data source
    # ========================================
    graph_file: Optional[str] = Field(
        default=None,
        description="JSON payload with nodes/edges; the bundled dataset is used when unset",
    )

    # ========================================
    # Conversation context
    # ========================================
    history_size: int = Field(default=10, ge=1, description="Queries kept in the conversation history")
    recently_viewed_size: int = Field(default=20, ge=1, description="Nodes kept in the recently viewed list")
    max_state_messages: int = Field(default=50, ge=1, description="Messages kept in a thread's checkpointed log")

    # ========================================
    # Response rendering
    # ========================================
    max_listed_nodes: int = Field(default=10, ge=1, description="Nodes listed in a query_nodes answer")

    # ========================================
    # API settings
    # ========================================
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)


# Global settings instance
settings = Settings()

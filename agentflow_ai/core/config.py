"""
Configuration Settings.

This module defines the engine configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", alias="AGENTFLOW_LOG_LEVEL", description="Root console log level")
    format: str = Field(
        default="detailed", alias="AGENTFLOW_LOG_FORMAT", description="Log format (simple, detailed, json)"
    )
    file_dir: str = Field(default="logs", alias="AGENTFLOW_LOG_FILE_DIR", description="Directory for log files")
    enable_file_logging: bool = Field(
        default=False, alias="AGENTFLOW_ENABLE_FILE_LOGGING", description="Write logs to a file as well"
    )

    model_config = {"populate_by_name": True}


class CompletionConfig(BaseModel):
    """Completion provider configuration."""

    model: str = Field(
        default="openai:gpt-4o-mini",
        alias="AGENTFLOW_COMPLETION_MODEL",
        description="pydantic-ai model identifier used by the plan and llm tools",
    )
    pricing_model: str = Field(
        default="gpt-4o-mini",
        alias="AGENTFLOW_PRICING_MODEL",
        description="Model name used to look up credit rates when a run does not set one",
    )

    model_config = {"populate_by_name": True}


class SearchConfig(BaseModel):
    """Web search provider configuration."""

    base_url: Optional[str] = Field(
        default=None, alias="AGENTFLOW_SEARCH_BASE_URL", description="JSON search endpoint base URL"
    )
    api_key: Optional[str] = Field(default=None, alias="AGENTFLOW_SEARCH_API_KEY", description="Search API key")
    timeout: float = Field(default=10.0, alias="AGENTFLOW_SEARCH_TIMEOUT", description="Request timeout in seconds")

    model_config = {"populate_by_name": True}


class EngineConfig(BaseModel):
    """Run orchestrator configuration."""

    tool_timeout_seconds: Optional[float] = Field(
        default=None,
        alias="AGENTFLOW_TOOL_TIMEOUT_SECONDS",
        description="Per tool invocation timeout; unset means no timeout",
    )
    default_plan_tier: str = Field(
        default="free", alias="AGENTFLOW_DEFAULT_PLAN_TIER", description="Plan tier used when a request sets none"
    )
    enable_local_executor: bool = Field(
        default=False,
        alias="AGENTFLOW_ENABLE_LOCAL_EXECUTOR",
        description="Allow operator_exec to run commands as local subprocesses (no sandbox)",
    )

    model_config = {"populate_by_name": True}


class LogfireConfig(BaseModel):
    """Logfire monitoring configuration."""

    enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED", description="Enable Logfire tracing")
    token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN", description="Logfire write token")
    service_name: str = Field(default="agentflow-ai", alias="LOGFIRE_SERVICE_NAME", description="Service name")
    environment: str = Field(default="development", alias="LOGFIRE_ENVIRONMENT", description="Deployment environment")

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Engine settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(default="INFO", alias="AGENTFLOW_LOG_LEVEL")
    log_format: str = Field(default="detailed", alias="AGENTFLOW_LOG_FORMAT")
    log_file_dir: str = Field(default="logs", alias="AGENTFLOW_LOG_FILE_DIR")
    enable_file_logging: bool = Field(default=False, alias="AGENTFLOW_ENABLE_FILE_LOGGING")

    # =====================================================================
    # Completion / Pricing
    # =====================================================================
    completion_model: str = Field(default="openai:gpt-4o-mini", alias="AGENTFLOW_COMPLETION_MODEL")
    pricing_model: str = Field(default="gpt-4o-mini", alias="AGENTFLOW_PRICING_MODEL")

    # =====================================================================
    # Search
    # =====================================================================
    search_base_url: Optional[str] = Field(default=None, alias="AGENTFLOW_SEARCH_BASE_URL")
    search_api_key: Optional[str] = Field(default=None, alias="AGENTFLOW_SEARCH_API_KEY")
    search_timeout: float = Field(default=10.0, alias="AGENTFLOW_SEARCH_TIMEOUT")

    # =====================================================================
    # Engine
    # =====================================================================
    tool_timeout_seconds: Optional[float] = Field(default=None, alias="AGENTFLOW_TOOL_TIMEOUT_SECONDS")
    default_plan_tier: str = Field(default="free", alias="AGENTFLOW_DEFAULT_PLAN_TIER")
    enable_local_executor: bool = Field(default=False, alias="AGENTFLOW_ENABLE_LOCAL_EXECUTOR")

    # =====================================================================
    # Database
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./agentflow.db",
        alias="AGENTFLOW_DATABASE_URL",
        description="Async SQLAlchemy URL for run persistence",
    )

    # =====================================================================
    # Logfire
    # =====================================================================
    logfire_enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED")
    logfire_token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN")
    logfire_service_name: str = Field(default="agentflow-ai", alias="LOGFIRE_SERVICE_NAME")
    logfire_environment: str = Field(default="development", alias="LOGFIRE_ENVIRONMENT")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return LoggingConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def completion(self) -> CompletionConfig:
        """Get completion provider configuration."""
        return CompletionConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def search(self) -> SearchConfig:
        """Get web search configuration."""
        return SearchConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def engine(self) -> EngineConfig:
        """Get run orchestrator configuration."""
        return EngineConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def logfire(self) -> LogfireConfig:
        """Get Logfire configuration."""
        return LogfireConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings

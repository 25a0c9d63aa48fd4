"""Runtime settings and configuration.

This module provides Pydantic settings classes for runtime configuration,
loaded from environment variables with support for nested configuration.

Example:
    GLOVE_LOGGING__LEVEL=debug GLOVE_RUNTIME__MAX_RETRIES=5 python app.py
"""

import logging
from typing import Any

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from glove.constants import (
    DEFAULT_COMPACTION_CONTEXT_LIMIT,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TURNS,
    SERVICE_NAME,
)
from glove.core.config import CompactionConfig


class LoggingSettings(BaseModel):
    level: str = Field("INFO")
    json_output: bool = Field(True, description="True=JSON, False=colored console")

    @field_validator("level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class RuntimeSettings(BaseModel):
    """Agent loop and tool execution limits.

    Attributes:
        agent_name: Label used for metrics
        max_retries: Retries of a failing tool body after the first attempt
        max_iterations: Model calls allowed within one request
        retry_wait: Seconds to wait between tool retries
    """

    agent_name: str = Field(SERVICE_NAME)
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=0)
    max_iterations: int = Field(DEFAULT_MAX_ITERATIONS, ge=1)
    retry_wait: float = Field(0.0, ge=0.0)


class CompactionSettings(BaseModel):
    max_turns: int = Field(DEFAULT_MAX_TURNS, ge=1)
    compaction_context_limit: int = Field(DEFAULT_COMPACTION_CONTEXT_LIMIT, ge=1)


class StoreSettings(BaseModel):
    url: str = Field("sqlite+aiosqlite:///glove.db")
    echo: bool = False


class BugsnagSettings(BaseModel):
    api_key: str
    release_stage: str = Field("development")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix="GLOVE_", env_nested_delimiter="__"
    )

    logging: LoggingSettings = LoggingSettings()
    runtime: RuntimeSettings = RuntimeSettings()
    compaction: CompactionSettings = CompactionSettings()
    store: StoreSettings = StoreSettings()

    # Error reporting is optional
    bugsnag: BugsnagSettings | None = None

    def compaction_config(self, compaction_instructions: str) -> CompactionConfig:
        """Build the compaction config from these settings.

        Args:
            compaction_instructions: Prompt the model receives to summarize the history

        Returns:
            Compaction config for GloveConfig
        """
        return CompactionConfig(
            compaction_instructions=compaction_instructions,
            max_turns=self.compaction.max_turns,
            compaction_context_limit=self.compaction.compaction_context_limit,
        )

    def runtime_kwargs(self) -> dict[str, Any]:
        """GloveConfig keyword arguments taken from the runtime settings."""
        return self.runtime.model_dump()

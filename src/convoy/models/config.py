"""Configuration models."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class AgentConfig(BaseModel):
    """Agent configuration."""
    log_level: str = Field(default="INFO")
    state_dir: str = Field(default="./state")
    recreate_on_drift: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class EngineConfig(BaseModel):
    """Container engine connection settings."""
    host: Optional[str] = Field(None, description="Engine endpoint, DOCKER_HOST when unset")
    api_version: str = Field(default="auto")
    timeout: int = Field(default=30, ge=1)
    stop_timeout: int = Field(default=10, ge=0)


class ConvoyConfig(BaseModel):
    """Main configuration model."""
    agent: AgentConfig = Field(default_factory=AgentConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    class Config:
        """Pydantic config."""
        extra = "ignore"

"""
symbolic_core/config.py - Engine configuration

Typed configuration for the logic interpreter and the causal engine.

Uses Pydantic v2 models for the per-engine configs (frozen, validated) and
pydantic-settings for process-wide defaults loaded from environment
variables prefixed with ``SYMBOLIC_`` (or a local ``.env`` file).

Example:
    from symbolic_core.config import LogicConfig, get_settings

    config = LogicConfig(max_solutions=10, timeout=None)
    defaults = get_settings().logic_config()
"""
from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# =============================================================================
# LOGIC ENGINE
# =============================================================================

class LogicConfig(BaseModel):
    """Configuration for SLD resolution."""

    max_depth: int | None = Field(
        default=None,
        ge=1,
        description="Maximum resolution depth (None = bounded only by cancellation)"
    )
    max_solutions: int | None = Field(
        default=None,
        ge=1,
        description="Stop after this many solutions (None = exhaust search space)"
    )
    timeout: float | None = Field(
        default=5.0,
        gt=0.0,
        description="Per-query timeout in seconds (None = no deadline)"
    )
    enable_cut: bool = Field(default=True, description="Honour ! (cut)")
    enable_negation: bool = Field(default=True, description="Allow \\+ negation-as-failure")
    occurs_check: bool = Field(default=True, description="Reject cyclic bindings like X = f(X)")
    trace_execution: bool = Field(default=False, description="Record goal expansions")

    model_config = {"frozen": True}


# =============================================================================
# CAUSAL ENGINE
# =============================================================================

class CausalConfig(BaseModel):
    """Search bounds for graph analysis."""

    max_adjustment_size: int = Field(
        default=6,
        ge=0,
        le=32,
        description="Largest subset size tried by separating/adjustment search"
    )
    max_paths: int = Field(
        default=10000,
        ge=1,
        description="Path enumeration bound"
    )

    model_config = {"frozen": True}


class CounterfactualConfig(BaseModel):
    """Noise model for structural equations."""

    default_noise_mean: float = Field(default=0.0)
    default_noise_std: float = Field(default=1.0)
    uniform_epsilon: float = Field(
        default=1e-12,
        gt=0.0,
        lt=1.0,
        description="Replacement for a uniform draw of exactly 0 before log()"
    )
    consistency_tolerance: float = Field(default=1e-9, ge=0.0)

    @field_validator("default_noise_std")
    @classmethod
    def validate_std(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("default_noise_std must be positive")
        return v

    model_config = {"frozen": True}


# =============================================================================
# PROCESS SETTINGS
# =============================================================================

class Settings(BaseSettings):
    """Process-wide defaults loaded from environment variables."""

    logic_max_depth: int | None = Field(default=None, ge=1)
    logic_max_solutions: int | None = Field(default=None)
    logic_timeout: float | None = Field(default=5.0)
    logic_occurs_check: bool = Field(default=True)
    logic_trace: bool = Field(default=False)

    causal_max_adjustment_size: int = Field(default=6, ge=0)
    causal_max_paths: int = Field(default=10000, ge=1)

    noise_mean: float = Field(default=0.0)
    noise_std: float = Field(default=1.0)

    model_config = SettingsConfigDict(
        env_prefix="SYMBOLIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def logic_config(self) -> LogicConfig:
        return LogicConfig(
            max_depth=self.logic_max_depth,
            max_solutions=self.logic_max_solutions,
            timeout=self.logic_timeout,
            occurs_check=self.logic_occurs_check,
            trace_execution=self.logic_trace,
        )

    def causal_config(self) -> CausalConfig:
        return CausalConfig(
            max_adjustment_size=self.causal_max_adjustment_size,
            max_paths=self.causal_max_paths,
        )

    def counterfactual_config(self) -> CounterfactualConfig:
        return CounterfactualConfig(
            default_noise_mean=self.noise_mean,
            default_noise_std=self.noise_std,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    logger.debug(
        "Loaded settings: max_depth=%s timeout=%s",
        settings.logic_max_depth,
        settings.logic_timeout,
    )
    return settings

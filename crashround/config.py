"""
Configuration management for the crash round engine.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from pathlib import Path
from typing import List, Optional

import pytz
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

# Project root directory (parent of the 'crashround' folder)
PROJECT_ROOT = Path(__file__).parent.parent


def get_env(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


# ==================== Configuration Models ====================

class EngineConfig(BaseModel):
    """Round timing, multiplier growth and bankroll settings."""
    crash_probability: float = 0.02  # Per flight tick
    countdown_seconds: int = Field(default=5, ge=1)
    countdown_interval: float = Field(default=1.0, gt=0)
    flight_interval: float = Field(default=0.1, gt=0)
    crash_dwell: float = Field(default=3.0, gt=0)
    increment_base: float = Field(default=0.02, gt=0)
    increment_spread: float = Field(default=0.1, ge=0)
    history_size: int = Field(default=20, ge=1)
    starting_balance: float = Field(default=10000.0, ge=0)
    default_stake: float = Field(default=0.2, gt=0)
    min_stake: float = Field(default=0.1, gt=0)
    countdown_alert_seconds: int = Field(default=3, ge=0)
    timezone: str = "UTC"
    seed_history: List[float] = Field(default_factory=list)

    @field_validator("crash_probability")
    @classmethod
    def _check_probability(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("crash_probability must be in (0, 1]")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("seed_history")
    @classmethod
    def _check_seed_history(cls, value: List[float]) -> List[float]:
        if any(m < 1.0 for m in value):
            raise ValueError("seed_history multipliers must be >= 1.00")
        return value


class SimulationConfig(BaseModel):
    rounds: int = Field(default=10000, ge=1)
    cash_out_targets: List[float] = Field(default_factory=lambda: [1.5, 2.0, 3.0, 5.0, 10.0])


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"


class PathsConfig(BaseModel):
    """All paths are relative to PROJECT_ROOT."""
    config_file: str = "config.json"
    log_file: str = "data/engine.log"

    def get_config_path(self) -> Path:
        return PROJECT_ROOT / self.config_file

    def get_log_path(self) -> Path:
        return PROJECT_ROOT / self.log_file


class AppConfig(BaseModel):
    """Main application configuration."""
    engine: EngineConfig = Field(default_factory=EngineConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==================== Configuration Loading ====================

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from config.json with environment variable overrides.
    Environment variables take precedence over config.json values.
    """
    if config_path is None:
        config_path = PROJECT_ROOT / "config.json"

    data = {}

    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

    if get_env("CRASH_PROBABILITY"):
        data.setdefault("engine", {})["crash_probability"] = get_env_float("CRASH_PROBABILITY", 0.02)
    if get_env("COUNTDOWN_SECONDS"):
        data.setdefault("engine", {})["countdown_seconds"] = get_env_int("COUNTDOWN_SECONDS", 5)
    if get_env("HISTORY_SIZE"):
        data.setdefault("engine", {})["history_size"] = get_env_int("HISTORY_SIZE", 20)
    if get_env("STARTING_BALANCE"):
        data.setdefault("engine", {})["starting_balance"] = get_env_float("STARTING_BALANCE", 10000.0)
    if get_env("ENGINE_TIMEZONE"):
        data.setdefault("engine", {})["timezone"] = get_env("ENGINE_TIMEZONE")

    if get_env("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = get_env("LOG_LEVEL")
    if get_env("LOG_TO_FILE"):
        data.setdefault("logging", {})["log_to_file"] = get_env_bool("LOG_TO_FILE")
    if get_env("LOG_FORMATTER"):
        data.setdefault("logging", {})["formatter"] = get_env("LOG_FORMATTER")

    return AppConfig(**data)


def save_config(config: AppConfig, config_path: Optional[Path] = None):
    """Save configuration to config.json."""
    if config_path is None:
        config_path = PROJECT_ROOT / "config.json"

    # Paths are computed, not persisted
    data = config.model_dump(exclude={"paths"})

    with open(config_path, "w") as f:
        json.dump(data, f, indent=4)


# Global config instance
settings = load_config()

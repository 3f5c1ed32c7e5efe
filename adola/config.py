"""
Configuration management for the Adola engine.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field

# Try to load dotenv if available
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, use system env vars only

# Project root directory (parent of 'adola' folder)
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


# ==================== Configuration Models ====================

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    name: str = "Adola Engine"


class EngineConfig(BaseModel):
    """Win/loss pattern parameters."""
    pattern_wins: int = 2
    pattern_length: int = 10
    pattern_follow_rate: float = 0.9
    override_win_rate: float = 0.15
    multiplier_decay: float = 0.6
    seed: Optional[int] = None  # Set to get reproducible outcomes (SeededRNG)


class TablesConfig(BaseModel):
    file: str = "GAME-TABLES.json"

    def get_path(self) -> Path:
        path = Path(self.file)
        return path if path.is_absolute() else PROJECT_ROOT / path


class SessionsConfig(BaseModel):
    ttl_seconds: int = 3600
    max_sessions: int = 10000


class RateLimitConfig(BaseModel):
    enabled: bool = True
    game_requests: str = "30/minute"  # For plays, bets, reveals
    api_requests: str = "60/minute"   # For stats and tables


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"
    log_file: str = "data/app.log"

    def get_log_path(self) -> Path:
        return PROJECT_ROOT / self.log_file


class AppConfig(BaseModel):
    """Main application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    tables: TablesConfig = Field(default_factory=TablesConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


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

    # Apply environment variable overrides
    if get_env("SERVER_HOST"):
        data.setdefault("server", {})["host"] = get_env("SERVER_HOST")
    if get_env("SERVER_PORT"):
        data.setdefault("server", {})["port"] = get_env_int("SERVER_PORT", 8000)
    if get_env("DEBUG"):
        data.setdefault("server", {})["debug"] = get_env_bool("DEBUG")

    if get_env("ENGINE_SEED"):
        data.setdefault("engine", {})["seed"] = get_env_int("ENGINE_SEED")
    if get_env("TABLES_FILE"):
        data.setdefault("tables", {})["file"] = get_env("TABLES_FILE")

    if get_env("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = get_env("LOG_LEVEL")
    if get_env("LOG_TO_FILE"):
        data.setdefault("logging", {})["log_to_file"] = get_env_bool("LOG_TO_FILE")
    if get_env("LOG_FORMATTER"):
        data.setdefault("logging", {})["formatter"] = get_env("LOG_FORMATTER")

    if get_env("RATE_LIMIT_ENABLED"):
        data.setdefault("rate_limit", {})["enabled"] = get_env_bool("RATE_LIMIT_ENABLED", True)
    if get_env("RATE_LIMIT_GAME_REQUESTS"):
        data.setdefault("rate_limit", {})["game_requests"] = get_env("RATE_LIMIT_GAME_REQUESTS")
    if get_env("RATE_LIMIT_API_REQUESTS"):
        data.setdefault("rate_limit", {})["api_requests"] = get_env("RATE_LIMIT_API_REQUESTS")

    return AppConfig(**data)


# Global config instance
settings = load_config()

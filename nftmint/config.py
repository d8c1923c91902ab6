"""Configuration management for nftmint.

Centralizes all configurable parameters with environment variable support
and runtime overrides.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import json


DEFAULT_BASE_URI = "ipfs://halekseeey/tokens/"


def _env_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def _env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class CollectionConfig:
    """Parameters a collection is deployed with. Immutable once deployed."""

    max_supply: int = field(default_factory=lambda: _env_int("NFT_MAX_SUPPLY", 1000))
    max_mint_per_tx: int = field(default_factory=lambda: _env_int("NFT_MAX_MINT_PER_TX", 3))
    token_price: int = field(default_factory=lambda: _env_int("NFT_TOKEN_PRICE", 2))
    set_price: int = field(default_factory=lambda: _env_int("NFT_SET_PRICE", 6))
    # Stored explicitly; never derived from set_price / token_price.
    set_size: int = field(default_factory=lambda: _env_int("NFT_SET_SIZE", 6))
    base_uri: str = field(default_factory=lambda: _env_str("NFT_BASE_URI", DEFAULT_BASE_URI))


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _env_str("NFT_LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: _env_bool("NFT_LOG_JSON", False))
    log_dir: str = field(default_factory=lambda: _env_str("NFT_LOG_DIR", ""))
    console_output: bool = field(default_factory=lambda: _env_bool("NFT_LOG_CONSOLE", True))


@dataclass
class Config:
    """Main configuration container for nftmint."""

    collection: CollectionConfig = field(default_factory=CollectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        from dataclasses import asdict
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Create configuration from dictionary."""
        return cls(
            collection=CollectionConfig(**d.get("collection", {})) if d.get("collection") else CollectionConfig(),
            logging=LoggingConfig(**d.get("logging", {})) if d.get("logging") else LoggingConfig(),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Config":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> "Config":
        """Load configuration from JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_json(f.read())

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())


# Global configuration instance (singleton pattern)
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates a default configuration if one doesn't exist.
    """
    global _global_config
    if _global_config is None:
        _global_config = Config()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def load_config(path: str) -> Config:
    """Load configuration from file and set as global."""
    config = Config.from_file(path)
    set_config(config)
    return config


def reset_config() -> None:
    """Reset global configuration to default."""
    global _global_config
    _global_config = None

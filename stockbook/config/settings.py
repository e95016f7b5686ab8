"""
Configuration settings for the stock order book.

This module provides centralized configuration management
with environment variable support and validation.
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

INTERFACES = ("rest", "console")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"Invalid decimal value for {name}: {raw}")


class Settings:
    """
    Configuration settings for the stock order book.

    Supports environment variables and provides sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment variables."""
        # Book configuration
        self.book_symbol = os.getenv("BOOK_SYMBOL", "AAPL").strip().upper()
        self.interface = os.getenv("INTERFACE", "rest").strip().lower()

        # Server configuration
        self.rest_host = os.getenv("REST_HOST", "0.0.0.0")
        self.rest_port = int(os.getenv("REST_PORT", "5000"))

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE", "logs/stockbook.log")
        self.audit_log_file = os.getenv("AUDIT_LOG_FILE", "logs/audit.log")

        # Persistence
        self.enable_persistence = _env_bool("ENABLE_PERSISTENCE", "true")
        self.snapshot_file = os.getenv("SNAPSHOT_FILE", "data/stock_orders.json")

        # Order validation
        self.max_quantity = int(os.getenv("MAX_QUANTITY", "1000000"))
        self.min_price = _env_decimal("MIN_PRICE", "0.00000001")
        self.max_price = _env_decimal("MAX_PRICE", "10000000")
        self.max_book_depth = int(os.getenv("MAX_BOOK_DEPTH", "100"))

        # Performance monitoring
        self.enable_performance_monitoring = _env_bool("ENABLE_PERFORMANCE_MONITORING", "true")

        # Security
        self.enable_cors = _env_bool("ENABLE_CORS", "true")
        self.cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")

        # Debug mode
        self.debug = _env_bool("DEBUG", "false")

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "book_symbol": self.book_symbol,
            "interface": self.interface,
            "rest_host": self.rest_host,
            "rest_port": self.rest_port,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "audit_log_file": self.audit_log_file,
            "enable_persistence": self.enable_persistence,
            "snapshot_file": self.snapshot_file,
            "max_quantity": self.max_quantity,
            "min_price": str(self.min_price),
            "max_price": str(self.max_price),
            "max_book_depth": self.max_book_depth,
            "enable_performance_monitoring": self.enable_performance_monitoring,
            "enable_cors": self.enable_cors,
            "cors_origins": self.cors_origins,
            "debug": self.debug,
        }

    def validate(self) -> None:
        """Validate configuration settings."""
        errors = []

        if not self.book_symbol:
            errors.append("Book symbol cannot be empty")

        if self.interface not in INTERFACES:
            errors.append(f"Invalid interface: {self.interface}. Must be one of: {list(INTERFACES)}")

        if not (1 <= self.rest_port <= 65535):
            errors.append(f"Invalid REST port: {self.rest_port}")

        if self.enable_persistence and not self.snapshot_file:
            errors.append("Snapshot file is required when persistence is enabled")

        if self.max_quantity <= 0:
            errors.append(f"Max quantity must be positive: {self.max_quantity}")

        if self.min_price <= 0:
            errors.append(f"Min price must be positive: {self.min_price}")

        if self.max_price <= self.min_price:
            errors.append(f"Max price must be greater than min price: {self.max_price} <= {self.min_price}")

        if self.max_book_depth <= 0:
            errors.append(f"Max book depth must be positive: {self.max_book_depth}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate()
    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from environment variables.

    Returns:
        New settings instance
    """
    global _settings
    _settings = Settings()
    _settings.validate()
    return _settings

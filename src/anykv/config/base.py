"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

BackendType = Literal["sqlite", "surrealdb", "redis"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

DEFAULT_SCOPE = "anykv"


__all__ = ["BackendType", "LogLevel", "LogFormat", "DEFAULT_SCOPE"]

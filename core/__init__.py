"""
Core Module Package.

This package contains the infrastructure components that all other
packages depend on.

Components:
- clock: Unified time abstraction
- config: Application configuration
- logging_utils: Process-wide logging setup
"""

from .clock import ClockFactory, ClockProtocol, MockClock, SystemClock
from .config import AppConfig, get_config, set_config
from .logging_utils import setup_logging


__all__ = [
    "ClockFactory",
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "AppConfig",
    "get_config",
    "set_config",
    "setup_logging",
]

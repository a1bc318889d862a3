"""
Core module for the RehearseAI backend.

Configuration, the error taxonomy, logging, rate limiting, the LLM client and
its prompt template, and the recording step state machine.
"""

from .config import AppConfig, load_config
from .errors import (
    AuthorizationError,
    ConfigurationError,
    DeviceError,
    FlowStateError,
    ParseError,
    RehearseError,
    RemoteError,
)
from .logging_utils import configure_logging

__all__ = [
    "AppConfig",
    "load_config",
    "RehearseError",
    "ConfigurationError",
    "AuthorizationError",
    "DeviceError",
    "RemoteError",
    "ParseError",
    "FlowStateError",
    "configure_logging",
]

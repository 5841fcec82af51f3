"""
Error taxonomy shared by the generation services
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a stage can report"""

    CONFIGURATION = "configuration"
    UPSTREAM_EMPTY = "upstream_empty"
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"
    PARSE = "parse"
    NETWORK = "network"
    INVALID_INPUT = "invalid_input"


class DesignChainError(Exception):
    """Base exception for designchain"""

    kind: ErrorKind = ErrorKind.UPSTREAM


class ConfigurationError(DesignChainError):
    """A required credential or setting is missing. Raised before any network call."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, setting_name: str, message: str = ""):
        self.setting_name = setting_name
        super().__init__(message or f"{setting_name.upper()} not found in environment variables")

"""
Core configuration, logging and error types
"""
from designchain.core.config import Settings, settings
from designchain.core.exceptions import ConfigurationError, DesignChainError, ErrorKind
from designchain.core.result import Deadline, Err, Ok, Result

__all__ = [
    "Settings",
    "settings",
    "ConfigurationError",
    "DesignChainError",
    "ErrorKind",
    "Deadline",
    "Err",
    "Ok",
    "Result",
]

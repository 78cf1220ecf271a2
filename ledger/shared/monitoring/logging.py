import logging
import os
import sys
from typing import Any, Dict


def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> None:
    """
    Configure console and file logging for the ledger service
    """
    os.makedirs(log_dir, exist_ok=True)

    # Clear existing handlers to avoid conflicts with uvicorn
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    level = getattr(logging, log_level.upper())
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"), mode="a")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    error_handler = logging.FileHandler(os.path.join(log_dir, "error.log"), mode="a")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    root_logger.addHandler(error_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """
    Mixin to add a class-named logger to repositories and services
    """

    @property
    def logger(self):
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger


def mask_token(token: str, visible: int = 4) -> str:
    """
    Render a bearer token safe for log output: keep the prefix and the
    last few characters, hide everything else.
    """
    if not token:
        return ""
    prefix, sep, body = token.rpartition("_")
    if not sep:
        prefix, body = "", token
    if len(body) <= visible:
        return f"{prefix}{sep}{'*' * len(body)}"
    return f"{prefix}{sep}{'*' * (len(body) - visible)}{body[-visible:]}"


def log_database_operation(operation: str, table: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for database operations
    """
    return {
        "operation": operation,
        "table": table,
        "log_event": "database_operation",
        **kwargs,
    }


def log_token_operation(operation: str, hash_id: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for token operations. Only the hash id is ever
    included, never the token itself.
    """
    return {
        "operation": operation,
        "hash_id": hash_id,
        "log_event": "token_operation",
        **kwargs,
    }


def log_quota_operation(operation: str, account_ulid: str, **kwargs) -> Dict[str, Any]:
    """
    Create a log context for quota operations
    """
    return {
        "operation": operation,
        "account_ulid": account_ulid,
        "log_event": "quota_operation",
        **kwargs,
    }

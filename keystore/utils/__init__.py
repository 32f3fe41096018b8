"""Shared utilities (structured logging)."""

from keystore.utils.logger import get_logger, log_operation, redact_url, setup_logging

__all__ = ["get_logger", "log_operation", "redact_url", "setup_logging"]

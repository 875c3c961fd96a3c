"""
Logger factory for Multibourn.

Provides:
- get_logger(): Get a configured logger instance

Configuration of processors and renderers lives in shared.logging_config.
"""

from __future__ import annotations

import structlog
from structlog.stdlib import BoundLogger


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance

    Example:
        >>> from shared.logging import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("login_success", site_id="123")
    """
    return structlog.get_logger(name)


__all__ = ["get_logger"]

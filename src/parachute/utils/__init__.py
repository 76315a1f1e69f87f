"""
Utility functions for parachute
"""

from .logger import (
    get_logger,
    get_category_logger,
    configure_logger,
    Logger,
    BoundLogger,
)

__all__ = [
    'get_logger',
    'get_category_logger',
    'configure_logger',
    'Logger',
    'BoundLogger',
]

"""
Container Builder Utils Module

- logger: Logging setup and configuration

Usage:
    from containerbuilder.utils import setup_logger, parse_levels
"""

from .logger import setup_logger, parse_levels

__all__ = [
    'setup_logger',
    'parse_levels',
]

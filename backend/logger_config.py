"""Centralized logging configuration."""
import os
import sys

from loguru import logger


log_format = ' | '.join(
    (
        '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>',
        '<level>{level:<8}</level>',
        '<cyan>{name}:{function}:{line}</cyan>',
        '{message}',
    )
)

# Remove the default handler so records are not printed twice
logger.remove()
logger.add(sys.stderr, format=log_format, level=os.getenv('LOG_LEVEL', 'INFO').upper())

__all__ = ['logger']

"""
almadeploy Base Command Classes

Abstract base classes for consistent command structure.
"""

from .base_command import BaseCommand, ConfiguredCommand

__all__ = [
    "BaseCommand",
    "ConfiguredCommand",
]

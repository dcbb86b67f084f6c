"""
Application layer - Facade and command routing.
"""

from .api_facade import KioskClientFacade
from .command_handler import CommandHandler, CommandResponse


__all__ = [
    "KioskClientFacade",
    "CommandHandler",
    "CommandResponse",
]

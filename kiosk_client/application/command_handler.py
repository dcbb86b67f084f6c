"""
Command Handler - Routes Redis commands to facade methods.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from kiosk_client.loggers import logger


CommandHandlerFunc = Callable[..., Awaitable[dict[str, Any]]]


@dataclass
class CommandResponse:
    """
    Standardized response for command execution.

    Attributes:
        command_id: The ID of the executed command.
        success: Whether the command succeeded.
        message: Human-readable message.
        data: Optional response data.
    """

    command_id: Optional[int] = None
    success: bool = False
    message: Optional[str] = None
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "command_id": self.command_id,
            "success": self.success,
            "message": self.message,
            "data": self.data,
        }


@dataclass
class CommandDefinition:
    """A registered command and the arguments it requires."""

    name: str
    handler: CommandHandlerFunc
    required_args: list[str] = field(default_factory=list)
    description: str = ""


class CommandHandler:
    """
    Routes commands to their handlers on the facade.

    Commands arrive as `{"command": ..., "command_id": ..., "data": {...}}`.
    """

    def __init__(self, api: Any) -> None:
        """
        Initialize the command handler.

        Args:
            api: The KioskClientFacade instance.
        """
        self._api = api
        self._commands: dict[str, CommandDefinition] = {}
        self._register_default_commands()

    def _register_default_commands(self) -> None:
        self.register(
            "user_interaction",
            self._api.user_interaction,
            [],
            "Frontend saw a click or touch; unlocks audio",
        )
        self.register(
            "get_status",
            self._api.get_status,
            [],
            "Snapshot of session, diagnostics, overlay and audio",
        )
        self.register(
            "restart_session",
            self._api.restart_session,
            [],
            "Abandon the current session and create a new one",
        )

    def register(
        self,
        command_name: str,
        handler: CommandHandlerFunc,
        required_args: list[str],
        description: str = "",
    ) -> None:
        """
        Register a command handler.

        Args:
            command_name: The name of the command.
            handler: The async handler function.
            required_args: Required argument names, read from `data`.
            description: Human-readable description.
        """
        self._commands[command_name] = CommandDefinition(
            name=command_name,
            handler=handler,
            required_args=required_args,
            description=description,
        )

    def get_available_commands(self) -> list[dict[str, Any]]:
        return [
            {
                "name": cmd.name,
                "required_args": cmd.required_args,
                "description": cmd.description,
            }
            for cmd in self._commands.values()
        ]

    async def execute(self, command_data: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a command.

        Args:
            command_data: Dictionary containing 'command', 'command_id' and 'data'.

        Returns:
            Response dictionary with the execution result.
        """
        command = command_data.get("command")
        response = CommandResponse(command_id=command_data.get("command_id"))
        data = command_data.get("data") or {}

        definition = self._commands.get(command)
        if definition is None:
            logger.warning(f"Unknown command: {command}")
            response.message = f"Unknown command: {command}"
            return response.to_dict()

        kwargs = {arg: data.get(arg) for arg in definition.required_args}
        missing = [arg for arg, value in kwargs.items() if value is None]
        if missing:
            response.message = f"Missing required arguments: {missing}"
            return response.to_dict()

        try:
            result = await definition.handler(**kwargs)
        except Exception as e:
            logger.error(f"Error executing command '{command}': {e}")
            response.message = f"Error: {e}"
            return response.to_dict()

        if isinstance(result, dict):
            response.success = result.get("success", False)
            response.message = result.get("message")
            response.data = result.get("data")
        else:
            response.success = True
            response.data = result
        return response.to_dict()

"""
CommandRegistry - Explicit command registration pattern

Bounded Context: Command registration and validation
Responsibilities:
  - Register commands with handlers
  - Validate command existence before execution
  - Provide introspection (available_commands, get_help)

Problem: Optional callbacks make unclear which commands are available
Solution: Explicit registration pattern

Threading: Thread-safe (uses lock for write operations)
"""

import threading
from typing import Any, Callable, Dict, Optional, Set


class CommandNotAvailableError(Exception):
    """Raised when attempting to execute an unregistered command"""
    pass


CommandHandler = Callable[[Dict[str, Any]], Any]


class CommandRegistry:
    """
    Registry for MQTT commands with explicit registration.

    Handlers receive the full command payload (dict) and may return a
    JSON-serializable result, which the control plane publishes back on the
    status topic.

    Example:
        registry = CommandRegistry()
        registry.register('clear_alerts', service.clear_alerts, "Remove every alert")

        try:
            registry.execute('clear_alerts', {'command': 'clear_alerts'})
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, CommandHandler] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: CommandHandler, description: str) -> None:
        """
        Register a command with its handler function.

        Args:
            command: Command name (lowercase, no spaces)
            handler: Callable taking the command payload
            description: Human-readable description for help text

        Raises:
            ValueError: If command already registered (double registration)
        """
        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a registered command.

        Args:
            command: Command name to execute
            command_data: Full JSON payload (empty dict if None)

        Returns:
            Whatever the handler returns

        Raises:
            CommandNotAvailableError: If command not registered
        """
        with self._lock:
            handler = self._commands.get(command)

        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        return handler(command_data if command_data is not None else {})

    def is_available(self, command: str) -> bool:
        with self._lock:
            return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of all registered command names."""
        with self._lock:
            return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Snapshot of {command: description}."""
        with self._lock:
            return dict(self._descriptions)

    def count(self) -> int:
        with self._lock:
            return len(self._commands)

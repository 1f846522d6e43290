from __future__ import annotations


class ShipError(RuntimeError):
    """Base class for every error raised by ship-nodegui."""


class ConfigurationError(ShipError, ValueError):
    """The configuration is malformed or incomplete."""


class PreconditionError(ShipError):
    """A required tool is missing or a stage is configured inconsistently."""


class ExecutionError(ShipError):
    """A stage or one of its commands failed while packaging."""


class MissingVariable(ExecutionError, KeyError):
    """A command template references a variable no earlier stage exported."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Variable '${{{self.key}}}' is not defined"


class CommandNotStarted(ExecutionError):
    """The child process could not be started at all."""

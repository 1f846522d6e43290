from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Dict

from .errors import MissingVariable

_MISSING = object()


class VariableEnvironment(Mapping):
    """Append-only string mapping shared by every stage of one run.

    Keys are namespaced by the producing stage, e.g. ``prepareStep.tempDirectory``.
    Entries can be added or overwritten, never deleted.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._values: Dict[str, str] = {}
        if initial:
            self.merge(initial)

    def set(self, key: str, value: str) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError(f"Variable names must be non-empty strings, got {key!r}")
        if not isinstance(value, str):
            raise TypeError(f"Variable '{key}' must be a string, got {type(value).__name__}")
        self._values[key] = value

    def get(self, key: str, default: Any = _MISSING) -> Any:
        """Return the value for key.

        Without a default a missing key raises MissingVariable.
        """

        try:
            return self._values[key]
        except KeyError:
            if default is not _MISSING:
                return default
            raise MissingVariable(key) from None

    def merge(self, values: Mapping[str, str]) -> None:
        for key, value in values.items():
            self.set(key, value)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def __getitem__(self, key: str) -> str:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableEnvironment({self._values!r})"

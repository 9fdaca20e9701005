"""
Feature extensions.

An extension is a named payload attached to a feature. The payload kind is
fixed when the extension is created and is one of three variants:

    ArtifactsExtension   an ArtifactCollection
    TextExtension        a string, lines joined by "\\n"
    JsonExtension        a JSON object or array plus its compact text

`Extension` is the union of the three classes; code dispatches on the
concrete class (or on `extension.type`) instead of calling accessors that
fail at runtime.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Iterable, Iterator, List, Optional, Union

from .artifact import ArtifactCollection
from .errors import InvalidInputError


class ExtensionType(StrEnum):
    """Payload kinds of an extension."""
    ARTIFACTS = "artifacts"
    TEXT = "text"
    JSON = "json"


class ExtensionState(StrEnum):
    """How a runtime must treat an extension it does not understand."""
    REQUIRED = "required"
    OPTIONAL = "optional"
    TRANSIENT = "transient"


def _coerce_state(state: Union[ExtensionState, str, bool]) -> ExtensionState:
    # booleans are the legacy required/optional flag
    if isinstance(state, bool):
        return ExtensionState.REQUIRED if state else ExtensionState.OPTIONAL
    try:
        return ExtensionState(str(state).lower())
    except ValueError:
        raise InvalidInputError(f"Invalid extension state {state}", state)


@dataclass(eq=False)
class _ExtensionBase:
    name: str
    state: ExtensionState = ExtensionState.REQUIRED

    type: ClassVar[ExtensionType]

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidInputError("Extension name must not be empty", self.name)
        self.state = _coerce_state(self.state)

    @property
    def is_required(self) -> bool:
        return self.state == ExtensionState.REQUIRED

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ExtensionBase):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"Extension [name={self.name}, type={self.type}, state={self.state}]"


@dataclass(eq=False)
class ArtifactsExtension(_ExtensionBase):
    artifacts: ArtifactCollection = field(default_factory=ArtifactCollection)

    type: ClassVar[ExtensionType] = ExtensionType.ARTIFACTS

    def copy(self) -> "ArtifactsExtension":
        return ArtifactsExtension(self.name, self.state, self.artifacts.copy())


@dataclass(eq=False)
class TextExtension(_ExtensionBase):
    text: str = ""

    type: ClassVar[ExtensionType] = ExtensionType.TEXT

    def copy(self) -> "TextExtension":
        return TextExtension(self.name, self.state, self.text)


@dataclass(eq=False)
class JsonExtension(_ExtensionBase):
    """
    JSON payload. `value` is the parsed structure and `text` is always its
    compact serialization; assigning either keeps the other in sync.
    """

    value: Union[dict, list, None] = None

    type: ClassVar[ExtensionType] = ExtensionType.JSON

    @staticmethod
    def _check(value: Any) -> None:
        if value is not None and not isinstance(value, (dict, list)):
            raise InvalidInputError("JSON extension must hold an object or an array", value)

    @classmethod
    def from_text(
        cls, name: str, text: str, state: Union[ExtensionState, str, bool] = ExtensionState.REQUIRED
    ) -> "JsonExtension":
        extension = cls(name, state)
        extension.text = text
        return extension

    def __setattr__(self, key: str, value: Any) -> None:
        if key == "value":
            self._check(value)
        super().__setattr__(key, value)

    @property
    def text(self) -> Optional[str]:
        if self.value is None:
            return None
        return json.dumps(self.value, separators=(",", ":"))

    @text.setter
    def text(self, text: Optional[str]) -> None:
        if text is None:
            self.value = None
            return
        try:
            self.value = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Invalid JSON in extension {self.name}: {e}", text)

    def copy(self) -> "JsonExtension":
        return JsonExtension(self.name, self.state, json.loads(json.dumps(self.value)))


Extension = Union[ArtifactsExtension, TextExtension, JsonExtension]

_VARIANTS = {cls.type: cls for cls in (ArtifactsExtension, TextExtension, JsonExtension)}


def new_extension(
    type_: Union[ExtensionType, str],
    name: str,
    state: Union[ExtensionState, str, bool] = ExtensionState.REQUIRED,
) -> Extension:
    """Create an empty extension of the given kind."""
    try:
        variant = _VARIANTS[ExtensionType(str(type_).lower())]
    except ValueError:
        raise InvalidInputError(f"Invalid extension type {type_}", type_)
    return variant(name, state)


class ExtensionCollection(Sequence):
    """Ordered extensions with unique names."""

    def __init__(self, extensions: Optional[Iterable[Extension]] = None):
        self._extensions: List[Extension] = []
        for extension in extensions or ():
            self.add(extension)

    def __getitem__(self, index):
        return self._extensions[index]

    def __len__(self) -> int:
        return len(self._extensions)

    def __iter__(self) -> Iterator[Extension]:
        return iter(self._extensions)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return self.get_by_name(item) is not None
        return item in self._extensions

    def __repr__(self) -> str:
        return f"ExtensionCollection({[e.name for e in self._extensions]})"

    def add(self, extension: Extension) -> None:
        """
        Raises:
            InvalidInputError: If an extension with the same name exists.
        """
        if self.get_by_name(extension.name) is not None:
            raise InvalidInputError(f"Duplicate extension {extension.name}", extension.name)
        self._extensions.append(extension)

    def get_by_name(self, name: str) -> Optional[Extension]:
        return next((e for e in self._extensions if e.name == name), None)

    def remove(self, name: str) -> bool:
        extension = self.get_by_name(name)
        if extension is None:
            return False
        self._extensions.remove(extension)
        return True

    def clear(self) -> None:
        self._extensions.clear()

    def copy(self) -> "ExtensionCollection":
        return ExtensionCollection(e.copy() for e in self._extensions)

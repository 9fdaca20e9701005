"""
Error taxonomy for the feature model and the assembly engine.

Every failure is fatal for the call that raised it; there is no partial
success mode. The hierarchy lets callers catch one family at a time:

    FeatureModelError
    ├── InvalidInputError      bad constructor arguments, malformed ids
    ├── ResolutionError        missing or final prototype/include features
    ├── StructuralError
    │   ├── CycleError         prototype chain loops back on itself
    │   └── RemovalError       prototype removes something that is not there
    └── MergeConflictError     clashes no rule or policy resolves
        └── UndefinedVariableError
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence


class FeatureModelError(Exception):
    """Base class for all feature model errors."""


class InvalidInputError(FeatureModelError, ValueError):
    """
    Raised when an argument violates a constructor or parser contract.

    Attributes:
        value: The offending input, if there is a single one.
    """

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


class ResolutionError(FeatureModelError):
    """
    Raised when a referenced feature cannot be used.

    Attributes:
        feature_id: Id of the missing or forbidden feature.
    """

    def __init__(self, feature_id: Any, message: str):
        self.feature_id = feature_id
        super().__init__(message)


class StructuralError(FeatureModelError):
    """Raised when the shape of a prototype graph is invalid."""


class CycleError(StructuralError):
    """
    Raised when a prototype chain refers back to a feature being assembled.

    Attributes:
        path: Feature ids from the outermost feature to the repeated one.
    """

    def __init__(self, path: Sequence[Any]):
        self.path: List[Any] = list(path)
        chain = " -> ".join(str(p) for p in self.path)
        super().__init__(f"Recursive inclusion of {self.path[-1]} via {chain}")


class RemovalError(StructuralError):
    """
    Raised when a prototype removal names an element the prototype lacks.

    Attributes:
        element: The element that could not be removed.
        feature_id: Id of the feature it was supposed to be removed from.
    """

    def __init__(self, element: Any, feature_id: Any, kind: str = "Element"):
        self.element = element
        self.feature_id = feature_id
        super().__init__(
            f"{kind} {element} can't be removed from feature {feature_id} "
            "as it is not part of that feature."
        )


class MergeConflictError(FeatureModelError):
    """
    Raised when two contributions clash and nothing resolves the clash.

    Attributes:
        conflicting: The entities involved, for programmatic inspection.
    """

    def __init__(self, message: str, conflicting: Optional[Sequence[Any]] = None):
        self.conflicting: List[Any] = list(conflicting or [])
        super().__init__(message)


class UndefinedVariableError(MergeConflictError):
    """
    Raised when a ${name} placeholder has no value.

    Attributes:
        name: The variable name.
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: {name}", [name])

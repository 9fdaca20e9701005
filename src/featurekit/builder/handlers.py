"""
Collaborator interfaces of the assembly engine.

Providers are supplied by the caller: a FeatureProvider resolves prototype
and included features by id, an ArtifactProvider resolves artifact ids to
URLs for the benefit of extension handlers. The engine never calls the
artifact provider itself.

Extension handlers plug into the extension merge. Each handler is
registered under an explicit handler id, which selects its configuration
table from the builder context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Generic, Optional, Protocol, TypeVar, runtime_checkable

from ..core.artifact_id import ArtifactId
from ..core.errors import InvalidInputError
from ..core.extension import Extension

if TYPE_CHECKING:
    from ..core.feature import Feature


@runtime_checkable
class FeatureProvider(Protocol):
    def provide(self, feature_id: ArtifactId) -> Optional["Feature"]:
        """Return the feature with the given id, or None if unknown."""
        ...


@runtime_checkable
class ArtifactProvider(Protocol):
    def provide(self, artifact_id: ArtifactId) -> Optional[str]:
        """Return a URL for the artifact, or None if unknown."""
        ...


@dataclass(frozen=True)
class HandlerContext:
    """
    What a handler sees of the builder context.

    Attributes:
        artifact_provider: The caller's artifact provider, if any.
        configuration: The `all` handler table overlaid by the table
            registered for this handler's id.
        prototype_merge: The merge is part of prototype resolution.
        initial_merge: The target was empty before this merge.
    """

    artifact_provider: Optional[ArtifactProvider] = None
    configuration: Dict[str, str] = field(default_factory=dict)
    prototype_merge: bool = False
    initial_merge: bool = False


class MergeHandler(ABC):
    """
    Takes over the merge of extensions it recognises.

    Subclasses may set `handler_id` to register without an explicit id.
    """

    handler_id: Optional[str] = None

    @abstractmethod
    def can_merge(self, extension: Extension) -> bool:
        ...

    @abstractmethod
    def merge(
        self,
        context: HandlerContext,
        target: "Feature",
        source: "Feature",
        target_extension: Optional[Extension],
        source_extension: Extension,
    ) -> None:
        """
        Merge `source_extension` of `source` into `target`.

        `target_extension` is None when the target has no extension of
        that name yet; the handler then owns adding it.
        """


class PostProcessHandler(ABC):
    """Called once per target extension after every merge."""

    handler_id: Optional[str] = None

    @abstractmethod
    def post_process(self, context: HandlerContext, feature: "Feature", extension: Extension) -> None:
        ...


H = TypeVar("H", MergeHandler, PostProcessHandler)


@dataclass(frozen=True)
class RegisteredHandler(Generic[H]):
    handler_id: str
    handler: H

    @classmethod
    def of(cls, handler: H, handler_id: Optional[str] = None) -> "RegisteredHandler[H]":
        """
        Raises:
            InvalidInputError: If neither an id nor `handler.handler_id` is given.
        """
        resolved = handler_id or getattr(handler, "handler_id", None)
        if not resolved:
            raise InvalidInputError(
                f"Handler {type(handler).__name__} needs a handler id", handler
            )
        return cls(resolved, handler)

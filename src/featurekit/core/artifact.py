"""
Artifacts and ordered artifact collections.

An Artifact is an ArtifactId plus string metadata. Two metadata keys have
meaning to the engine: `alias` (comma separated ids that make other
artifacts count as this one during conflict detection) and `start-order`.
Which features contributed an artifact is tracked in the typed
`feature_origins` list rather than in the metadata.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union, overload

from ..config import ALIAS_DEFAULT_VERSION, KEY_ALIAS, KEY_FEATURE_ORIGINS, KEY_ID, KEY_START_ORDER
from .artifact_id import ArtifactId
from .errors import InvalidInputError


def unique_ids(ids: Iterable[Optional[ArtifactId]]) -> List[ArtifactId]:
    """Ordered, de-duplicated list of ids, skipping None."""
    result: List[ArtifactId] = []
    for artifact_id in ids:
        if artifact_id is not None and artifact_id not in result:
            result.append(artifact_id)
    return result


@dataclass(eq=False)
class Artifact:
    """
    An artifact referenced by a feature.

    Attributes:
        id: Coordinates of the artifact. Identity is by id only.
        metadata: Ordered string metadata (aliases, start order, ...).
        feature_origins: Features that contributed this artifact, in order.
        merge_origin: Feature that inserted the artifact during the
            current prototype merge. Set and cleared by the assembler.
    """

    id: ArtifactId
    metadata: Dict[str, str] = field(default_factory=dict)
    feature_origins: List[ArtifactId] = field(default_factory=list)
    merge_origin: Optional[ArtifactId] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, ArtifactId):
            raise InvalidInputError("id must not be null.", self.id)

    @classmethod
    def from_json(cls, value: Union[str, Dict[str, Any]]) -> "Artifact":
        """
        Build an artifact from its JSON value.

        Args:
            value: Either the id as a string, or an object with an `id`
                key and string/number/boolean metadata.

        Raises:
            InvalidInputError: On a missing id or non-scalar metadata.
        """
        if isinstance(value, str):
            return cls(ArtifactId.parse(value))
        if not isinstance(value, dict):
            raise InvalidInputError("JSON for artifact must be of type object or string", value)
        if not isinstance(value.get(KEY_ID), str):
            raise InvalidInputError("JSON for artifact is missing id property", value)

        artifact = cls(ArtifactId.parse(value[KEY_ID]))
        for key, item in value.items():
            if key == KEY_ID:
                continue
            if isinstance(item, bool):
                item = "true" if item else "false"
            elif not isinstance(item, (str, int, float)):
                raise InvalidInputError(
                    f"Key {key} is not one of the allowed types string, number or boolean", item
                )
            if key == KEY_FEATURE_ORIGINS:
                artifact.set_feature_origins(
                    ArtifactId.parse(o.strip()) for o in str(item).split(",") if o.strip()
                )
            else:
                artifact.metadata[key] = str(item)
        return artifact

    def aliases(self, include_main: bool = False) -> List[ArtifactId]:
        """
        Ids this artifact is equivalent to for conflict purposes.

        Aliases given without a version get version 0.0.0.
        """
        ids: List[ArtifactId] = [self.id] if include_main else []
        declared = self.metadata.get(KEY_ALIAS)
        if declared:
            for alias in declared.split(","):
                alias = alias.strip()
                if not alias:
                    continue
                if alias.count(":") == 1:
                    alias += f":{ALIAS_DEFAULT_VERSION}"
                ids.append(ArtifactId.from_mvn_id(alias))
        return unique_ids(ids)

    @property
    def start_order(self) -> int:
        """Start order, 0 when unset."""
        order = self.metadata.get(KEY_START_ORDER)
        if order is None:
            return 0
        try:
            value = int(order)
        except ValueError:
            raise InvalidInputError(f"Start order must be a number but is {order}", order)
        if value < 0:
            raise InvalidInputError(f"Start order must be >= 0 but is {order}", order)
        return value

    @start_order.setter
    def start_order(self, value: int) -> None:
        if value < 0:
            raise InvalidInputError(f"Start order must be >= 0 but is {value}", value)
        if value == 0:
            self.metadata.pop(KEY_START_ORDER, None)
        else:
            self.metadata[KEY_START_ORDER] = str(value)

    def set_feature_origins(self, origins: Iterable[Optional[ArtifactId]]) -> None:
        self.feature_origins = unique_ids(origins)

    def copy(self, artifact_id: Optional[ArtifactId] = None) -> "Artifact":
        """Detached copy with identical metadata, optionally under a new id."""
        return Artifact(
            id=artifact_id if artifact_id is not None else self.id,
            metadata=dict(self.metadata),
            feature_origins=list(self.feature_origins),
            merge_origin=self.merge_origin,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Artifact):
            return NotImplemented
        return self.id == other.id

    def __lt__(self, other: "Artifact") -> bool:
        return self.id < other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"Artifact [id={self.id.to_mvn_id()}]"


class ArtifactCollection(Sequence):
    """
    Ordered artifacts without exact-id duplicates.

    Insertion order is significant: it drives the start order of bundles
    downstream. Lookups come in two flavours, exact (full id) and same
    (ignoring the version).
    """

    def __init__(self, artifacts: Optional[Iterable[Artifact]] = None):
        self._artifacts: List[Artifact] = []
        for artifact in artifacts or ():
            self.add(artifact)

    @overload
    def __getitem__(self, index: int) -> Artifact: ...

    @overload
    def __getitem__(self, index: slice) -> List[Artifact]: ...

    def __getitem__(self, index):
        return self._artifacts[index]

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self._artifacts)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, ArtifactId):
            return self.contains_exact(item)
        return item in self._artifacts

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArtifactCollection):
            return self._artifacts == other._artifacts
        if isinstance(other, list):
            return self._artifacts == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ArtifactCollection({[a.id.to_mvn_id() for a in self._artifacts]})"

    def ids(self) -> List[ArtifactId]:
        return [a.id for a in self._artifacts]

    def add(self, artifact: Artifact) -> bool:
        """Append the artifact; no-op returning False if its id is present."""
        if self.contains_exact(artifact.id):
            return False
        self._artifacts.append(artifact)
        return True

    def insert(self, index: int, artifact: Artifact) -> bool:
        """Insert at a position; no-op returning False if its id is present."""
        if self.contains_exact(artifact.id):
            return False
        self._artifacts.insert(index, artifact)
        return True

    def remove(self, artifact: Artifact) -> None:
        self._artifacts.remove(artifact)

    def pop(self, index: int = -1) -> Artifact:
        return self._artifacts.pop(index)

    def clear(self) -> None:
        self._artifacts.clear()

    def get_exact(self, artifact_id: ArtifactId) -> Optional[Artifact]:
        return next((a for a in self._artifacts if a.id == artifact_id), None)

    def get_same(self, artifact_id: ArtifactId) -> Optional[Artifact]:
        return next((a for a in self._artifacts if a.id.is_same(artifact_id)), None)

    def contains_exact(self, artifact_id: ArtifactId) -> bool:
        return self.get_exact(artifact_id) is not None

    def contains_same(self, artifact_id: ArtifactId) -> bool:
        return self.get_same(artifact_id) is not None

    def remove_exact(self, artifact_id: ArtifactId) -> bool:
        found = self.get_exact(artifact_id)
        if found is None:
            return False
        self._artifacts.remove(found)
        return True

    def remove_same(self, artifact_id: ArtifactId) -> bool:
        """Remove the first artifact with the same id ignoring version."""
        found = self.get_same(artifact_id)
        if found is None:
            return False
        self._artifacts.remove(found)
        return True

    def copy(self) -> "ArtifactCollection":
        """Deep copy: every artifact is copied."""
        return ArtifactCollection(a.copy() for a in self._artifacts)

"""
The Feature aggregate and its parts.

A Feature describes a deployable unit: bundles, configurations, framework
properties, variables, requirements, capabilities and extensions. It may
extend a base feature through a Prototype, which also lists what to drop
from that base. The flags `final`, `complete` and `assembled` steer the
assembler; `assembled` marks a feature whose prototype chain has already
been flattened.

The feature exclusively owns its collections. `copy()` is deep for
everything the assembler mutates.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .artifact import ArtifactCollection, unique_ids
from .artifact_id import ArtifactId
from .configuration import ConfigurationCollection
from .errors import InvalidInputError
from .extension import ExtensionCollection


class PropertyMap(MutableMapping):
    """
    Ordered string map with optional metadata and origins per key.

    Used for framework properties and variables. Equality compares the
    values only; deleting a key drops its metadata and origins.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._origins: Dict[str, List[ArtifactId]] = {}
        if values:
            self.update(values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]
        self._metadata.pop(key, None)
        self._origins.pop(key, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyMap({self._values!r})"

    def get_metadata(self, key: str) -> Optional[Dict[str, Any]]:
        """Mutable metadata of a key, or None if the key is not present."""
        if key not in self._values:
            self._metadata.pop(key, None)
            return None
        return self._metadata.setdefault(key, {})

    def get_origins(self, key: str, default: Optional[ArtifactId] = None) -> List[ArtifactId]:
        origins = self._origins.get(key, [])
        if not origins and default is not None:
            return [default]
        return list(origins)

    def set_origins(self, key: str, origins: Iterable[Optional[ArtifactId]]) -> None:
        cleaned = unique_ids(origins)
        if cleaned:
            self._origins[key] = cleaned
        else:
            self._origins.pop(key, None)

    def copy(self) -> "PropertyMap":
        result = PropertyMap(self._values)
        result._metadata = {k: dict(v) for k, v in self._metadata.items() if k in self._values}
        result._origins = {k: list(v) for k, v in self._origins.items() if k in self._values}
        return result


@dataclass
class Requirement:
    """
    An opaque requirement record.

    Two requirements are equal when namespace, attributes and directives
    are; the defining resource is never compared.
    """

    namespace: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    directives: Dict[str, str] = field(default_factory=dict)
    resource: Any = field(default=None, compare=False, repr=False)

    def copy(self) -> "Requirement":
        return type(self)(self.namespace, dict(self.attributes), dict(self.directives))


@dataclass
class Capability(Requirement):
    """An opaque capability record, compared like a Requirement."""


@dataclass(eq=False)
class Prototype:
    """
    Reference to the base feature plus what to remove from it.

    Configuration removals are PIDs, or `pid@attribute` to drop a single
    property. Artifact extension removals map extension names to the
    artifact ids to drop from them.
    """

    id: ArtifactId
    bundle_removals: List[ArtifactId] = field(default_factory=list)
    configuration_removals: List[str] = field(default_factory=list)
    framework_properties_removals: List[str] = field(default_factory=list)
    extension_removals: List[str] = field(default_factory=list)
    artifact_extension_removals: Dict[str, List[ArtifactId]] = field(default_factory=dict)
    requirement_removals: List[Requirement] = field(default_factory=list)
    capability_removals: List[Capability] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.id, ArtifactId):
            raise InvalidInputError("id must not be null.", self.id)

    def copy(self) -> "Prototype":
        return Prototype(
            id=self.id,
            bundle_removals=list(self.bundle_removals),
            configuration_removals=list(self.configuration_removals),
            framework_properties_removals=list(self.framework_properties_removals),
            extension_removals=list(self.extension_removals),
            artifact_extension_removals={k: list(v) for k, v in self.artifact_extension_removals.items()},
            requirement_removals=[r.copy() for r in self.requirement_removals],
            capability_removals=[c.copy() for c in self.capability_removals],
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Prototype):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"Prototype [id={self.id.to_mvn_id()}]"


@dataclass(eq=False)
class Feature:
    """
    A feature. Identity, hashing and ordering use the id only.

    Attributes:
        id: Coordinates of the feature.
        prototype: Base feature reference, None if the feature has none.
        final: The feature must not be used as a prototype.
        complete: The feature has no dependencies outside itself.
        assembled: The prototype chain has already been flattened.
    """

    id: ArtifactId
    bundles: ArtifactCollection = field(default_factory=ArtifactCollection)
    configurations: ConfigurationCollection = field(default_factory=ConfigurationCollection)
    framework_properties: PropertyMap = field(default_factory=PropertyMap)
    variables: PropertyMap = field(default_factory=PropertyMap)
    requirements: List[Requirement] = field(default_factory=list)
    capabilities: List[Capability] = field(default_factory=list)
    extensions: ExtensionCollection = field(default_factory=ExtensionCollection)
    prototype: Optional[Prototype] = None

    final: bool = False
    complete: bool = False
    assembled: bool = False

    title: Optional[str] = None
    description: Optional[str] = None
    vendor: Optional[str] = None
    license: Optional[str] = None
    location: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    doc_url: Optional[str] = None
    scm_info: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, ArtifactId):
            raise InvalidInputError("id must not be null.", self.id)

    def copy(self, new_id: Optional[ArtifactId] = None) -> "Feature":
        """
        Copy the feature, optionally under a new id.

        Bundles, configurations, property maps, extensions and the
        prototype are copied deeply. Requirements and capabilities are
        copied without their defining resource.
        """
        return Feature(
            id=new_id if new_id is not None else self.id,
            bundles=self.bundles.copy(),
            configurations=self.configurations.copy(),
            framework_properties=self.framework_properties.copy(),
            variables=self.variables.copy(),
            requirements=[r.copy() for r in self.requirements],
            capabilities=[c.copy() for c in self.capabilities],
            extensions=self.extensions.copy(),
            prototype=self.prototype.copy() if self.prototype is not None else None,
            final=self.final,
            complete=self.complete,
            assembled=self.assembled,
            title=self.title,
            description=self.description,
            vendor=self.vendor,
            license=self.license,
            location=self.location,
            categories=list(self.categories),
            doc_url=self.doc_url,
            scm_info=self.scm_info,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Feature):
            return NotImplemented
        return self.id == other.id

    def __lt__(self, other: "Feature") -> bool:
        return self.id < other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        kind = "Assembled Feature" if self.assembled else "Feature"
        location = f", location={self.location}" if self.location else ""
        return f"{kind} [id={self.id.to_mvn_id()}{location}]"

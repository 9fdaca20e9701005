"""
OSGi configurations carried by a feature.

A configuration is addressed by a PID. Factory configurations encode the
factory PID and the instance name as `factoryPid~name`. Properties are an
ordered map whose values are scalars (str, bool, int, float) or
homogeneous lists of them. Keys starting with `:configurator:` are
bookkeeping and are filtered out by `configuration_properties()`.

Provenance is kept in typed fields: `feature_origins` for the whole
configuration and `property_origins` per property key.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..config import CONFIGURATOR_PREFIX, PROP_ARTIFACT_ID
from .artifact import unique_ids
from .artifact_id import ArtifactId
from .errors import InvalidInputError

FACTORY_SEPARATOR = "~"


def is_factory_pid(pid: str) -> bool:
    return FACTORY_SEPARATOR in pid


def split_factory_pid(pid: str) -> tuple[Optional[str], Optional[str]]:
    """Return (factory_pid, name), or (None, None) for a plain PID."""
    if not is_factory_pid(pid):
        return None, None
    factory_pid, _, name = pid.partition(FACTORY_SEPARATOR)
    return factory_pid, name


@dataclass(eq=False)
class Configuration:
    """
    A configuration with its properties and provenance.

    Equality, hashing and ordering use the PID only.
    """

    pid: str
    properties: Dict[str, Any] = field(default_factory=dict)
    feature_origins: List[ArtifactId] = field(default_factory=list)
    property_origins: Dict[str, List[ArtifactId]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.pid, str):
            raise InvalidInputError("pid must not be null", self.pid)

    @property
    def is_factory_configuration(self) -> bool:
        return is_factory_pid(self.pid)

    @property
    def factory_pid(self) -> Optional[str]:
        return split_factory_pid(self.pid)[0]

    @property
    def name(self) -> Optional[str]:
        return split_factory_pid(self.pid)[1]

    @property
    def artifact_id(self) -> Optional[ArtifactId]:
        """Bundle this configuration belongs to, if recorded."""
        location = self.properties.get(PROP_ARTIFACT_ID)
        if location is None:
            return None
        return ArtifactId.parse(str(location))

    def configuration_properties(self) -> Dict[str, Any]:
        """Properties without the internal `:configurator:` keys."""
        return {k: v for k, v in self.properties.items() if not k.startswith(CONFIGURATOR_PREFIX)}

    def get_feature_origins(self, default: Optional[ArtifactId] = None) -> List[ArtifactId]:
        """Origins of the configuration; `[default]` when none are recorded."""
        if not self.feature_origins and default is not None:
            return [default]
        return list(self.feature_origins)

    def set_feature_origins(self, origins: Iterable[Optional[ArtifactId]]) -> None:
        self.feature_origins = unique_ids(origins)

    def get_property_origins(
        self, key: str, default: Optional[ArtifactId] = None
    ) -> List[ArtifactId]:
        origins = self.property_origins.get(key, [])
        if not origins and default is not None:
            return [default]
        return list(origins)

    def set_property_origins(self, key: str, origins: Iterable[Optional[ArtifactId]]) -> None:
        cleaned = unique_ids(origins)
        if cleaned:
            self.property_origins[key] = cleaned
        else:
            self.property_origins.pop(key, None)

    def copy(self, pid: Optional[str] = None) -> "Configuration":
        """Copy under the same or a new PID; list values are copied too."""
        return Configuration(
            pid=pid if pid is not None else self.pid,
            properties={k: list(v) if isinstance(v, list) else v for k, v in self.properties.items()},
            feature_origins=list(self.feature_origins),
            property_origins={k: list(v) for k, v in self.property_origins.items()},
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self.pid == other.pid

    def __lt__(self, other: "Configuration") -> bool:
        return self.pid < other.pid

    def __hash__(self) -> int:
        return hash(self.pid)

    def __str__(self) -> str:
        return f"Configuration [pid={self.pid}, properties={self.properties}]"


class ConfigurationCollection(Sequence):
    """Ordered configurations with lookup by PID and by factory PID."""

    def __init__(self, configurations: Optional[Iterable[Configuration]] = None):
        self._configurations: List[Configuration] = list(configurations or ())

    def __getitem__(self, index):
        return self._configurations[index]

    def __setitem__(self, index: int, configuration: Configuration) -> None:
        self._configurations[index] = configuration

    def __len__(self) -> int:
        return len(self._configurations)

    def __iter__(self) -> Iterator[Configuration]:
        return iter(self._configurations)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return self.get_configuration(item) is not None
        return item in self._configurations

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConfigurationCollection):
            return self._configurations == other._configurations
        if isinstance(other, list):
            return self._configurations == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ConfigurationCollection({[c.pid for c in self._configurations]})"

    def add(self, configuration: Configuration) -> None:
        self._configurations.append(configuration)

    def remove(self, configuration: Configuration) -> None:
        self._configurations.remove(configuration)

    def clear(self) -> None:
        self._configurations.clear()

    def get_configuration(self, pid: str) -> Optional[Configuration]:
        return next((c for c in self._configurations if c.pid == pid), None)

    def get_factory_configurations(self, factory_pid: str) -> List[Configuration]:
        return [c for c in self._configurations if c.factory_pid == factory_pid]

    def copy(self) -> "ConfigurationCollection":
        return ConfigurationCollection(c.copy() for c in self._configurations)

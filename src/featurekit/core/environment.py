"""
Execution environment of a feature.

The `execution-environment` JSON extension describes what a feature needs
to run: the OSGi framework artifact, the Java version and JVM options.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..config import EXTENSION_NAME_EXECUTION_ENVIRONMENT
from .artifact import Artifact
from .errors import InvalidInputError
from .extension import Extension, JsonExtension
from .version import OsgiVersion

if TYPE_CHECKING:
    from .feature import Feature


@dataclass(frozen=True)
class ExecutionEnvironment:
    framework: Optional[Artifact] = None
    java_version: Optional[OsgiVersion] = None
    java_options: Optional[str] = None

    @classmethod
    def from_feature(cls, feature: Optional["Feature"]) -> Optional["ExecutionEnvironment"]:
        """Read the environment of a feature; None if it declares none."""
        if feature is None:
            return None
        return cls.from_extension(feature.extensions.get_by_name(EXTENSION_NAME_EXECUTION_ENVIRONMENT))

    @classmethod
    def from_extension(cls, extension: Optional[Extension]) -> Optional["ExecutionEnvironment"]:
        """
        Raises:
            InvalidInputError: If the extension is not a JSON object or a
                value has the wrong type.
        """
        if extension is None:
            return None
        if not isinstance(extension, JsonExtension):
            raise InvalidInputError(f"Extension {extension.name} must have JSON type", extension.name)
        structure = extension.value
        if not isinstance(structure, dict):
            raise InvalidInputError(f"Extension {extension.name} must hold a JSON object", structure)

        framework = structure.get("framework")
        java_version = structure.get("javaVersion")
        java_options = structure.get("javaOptions")
        if java_version is not None and not isinstance(java_version, str):
            raise InvalidInputError("javaVersion is not of type String", java_version)
        if java_options is not None and not isinstance(java_options, str):
            raise InvalidInputError("javaOptions is not of type String", java_options)

        return cls(
            framework=Artifact.from_json(framework) if framework is not None else None,
            java_version=OsgiVersion.parse(java_version) if java_version is not None else None,
            java_options=java_options,
        )

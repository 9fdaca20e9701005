"""
featurekit Core Module.

The feature data model:

Identity:
    - ArtifactId: Maven coordinates with three textual forms
    - OsgiVersion: OSGi version semantics used for ordering

Content:
    - Artifact, ArtifactCollection: bundles and extension artifacts
    - Configuration, ConfigurationCollection: OSGi configurations
    - Extension variants and ExtensionCollection
    - Feature, Prototype, PropertyMap, Requirement, Capability

Errors:
    - FeatureModelError and its subclasses
"""

from .artifact import Artifact, ArtifactCollection
from .artifact_id import ArtifactId
from .configuration import Configuration, ConfigurationCollection
from .environment import ExecutionEnvironment
from .errors import (
    CycleError,
    FeatureModelError,
    InvalidInputError,
    MergeConflictError,
    RemovalError,
    ResolutionError,
    StructuralError,
    UndefinedVariableError,
)
from .extension import (
    ArtifactsExtension,
    Extension,
    ExtensionCollection,
    ExtensionState,
    ExtensionType,
    JsonExtension,
    TextExtension,
    new_extension,
)
from .feature import Capability, Feature, PropertyMap, Prototype, Requirement
from .version import OsgiVersion, compare_versions

__all__ = [
    # Identity
    "ArtifactId",
    "OsgiVersion",
    "compare_versions",
    # Artifacts
    "Artifact",
    "ArtifactCollection",
    # Configurations
    "Configuration",
    "ConfigurationCollection",
    # Extensions
    "Extension",
    "ExtensionType",
    "ExtensionState",
    "ArtifactsExtension",
    "TextExtension",
    "JsonExtension",
    "ExtensionCollection",
    "new_extension",
    "ExecutionEnvironment",
    # Feature
    "Feature",
    "Prototype",
    "PropertyMap",
    "Requirement",
    "Capability",
    # Errors
    "FeatureModelError",
    "InvalidInputError",
    "ResolutionError",
    "StructuralError",
    "CycleError",
    "RemovalError",
    "MergeConflictError",
    "UndefinedVariableError",
]

"""
featurekit - Feature Model Assembly.

A feature describes a deployable unit: bundles, configurations, framework
properties, variables and named extensions. Features extend each other
through prototypes. featurekit flattens prototype chains and merges
independent features into one, resolving every conflict through explicit
override rules.

Key Components:
- core: the feature data model
- builder: the assembly and merge engine

Usage:
    from featurekit import BuilderContext, assemble

    context = BuilderContext(provider).add_artifacts_override("*:*:*:*:HIGHEST")
    flattened = assemble(feature, context)
"""

__version__ = "0.1.0"

from .builder import (
    BuilderContext,
    BuilderSettings,
    assemble,
    assemble_features,
    deduplicate,
    resolve,
    resolve_variables,
)
from .core import (
    Artifact,
    ArtifactCollection,
    ArtifactId,
    Configuration,
    Extension,
    Feature,
    FeatureModelError,
    Prototype,
)

__all__ = [
    "__version__",
    "Artifact",
    "ArtifactCollection",
    "ArtifactId",
    "Configuration",
    "Extension",
    "Feature",
    "Prototype",
    "FeatureModelError",
    "BuilderContext",
    "BuilderSettings",
    "assemble",
    "assemble_features",
    "deduplicate",
    "resolve",
    "resolve_variables",
]

"""
featurekit Builder Module.

The assembly and merge engine:

Entry points:
    - assemble: flatten the prototype chain of a feature
    - assemble_features: aggregate independent features
    - deduplicate, resolve, resolve_variables

Configuration:
    - BuilderContext: providers, override rules and handlers
    - BuilderSettings: the same loaded from featurekit.toml
    - ArtifactPolicy, ConfigPolicy: conflict resolution policies

Extension points:
    - FeatureProvider, ArtifactProvider
    - MergeHandler, PostProcessHandler, HandlerContext
"""

from .assembler import InclusionTracker, apply_removals, assemble, assemble_features, deduplicate, resolve
from .context import ArtifactPolicy, BuilderContext, ConfigPolicy
from .handlers import (
    ArtifactProvider,
    FeatureProvider,
    HandlerContext,
    MergeHandler,
    PostProcessHandler,
    RegisteredHandler,
)
from .merge import (
    merge_artifacts,
    merge_configurations,
    merge_extensions,
    merge_features,
    merge_json,
    select_artifact_override,
)
from .overrides import OverrideMatcher, find_config_policy, matches_pid, matches_rule
from .settings import BuilderSettings
from .variables import replace_variables, resolve_variables

__all__ = [
    # Entry points
    "assemble",
    "assemble_features",
    "deduplicate",
    "resolve",
    "apply_removals",
    "InclusionTracker",
    # Context
    "BuilderContext",
    "BuilderSettings",
    "ArtifactPolicy",
    "ConfigPolicy",
    # Handlers
    "FeatureProvider",
    "ArtifactProvider",
    "HandlerContext",
    "MergeHandler",
    "PostProcessHandler",
    "RegisteredHandler",
    # Merge
    "merge_features",
    "merge_artifacts",
    "merge_configurations",
    "merge_extensions",
    "merge_json",
    "select_artifact_override",
    # Overrides
    "OverrideMatcher",
    "matches_rule",
    "matches_pid",
    "find_config_policy",
    # Variables
    "replace_variables",
    "resolve_variables",
]

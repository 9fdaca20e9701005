"""
Builder context: everything an assembly call is parameterised with.

The context carries the caller's providers, the artifact override rules,
variable and framework property overrides, per-PID configuration merge
policies, the registered extension handlers and their configuration.
A context belongs to a single top-level assembly call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Union

from ..config import HANDLER_CONFIGURATION_ALL
from ..core.artifact_id import ArtifactId
from ..core.errors import InvalidInputError
from .handlers import (
    ArtifactProvider,
    FeatureProvider,
    HandlerContext,
    MergeHandler,
    PostProcessHandler,
    RegisteredHandler,
)

if TYPE_CHECKING:
    from .settings import BuilderSettings

logger = logging.getLogger(__name__)


class ArtifactPolicy(StrEnum):
    """
    Policy keywords allowed in the version field of an override rule.

    Any other version string is a literal version to select.
    """
    ALL = "ALL"
    HIGHEST = "HIGHEST"
    LATEST = "LATEST"
    FIRST = "FIRST"

    @classmethod
    def parse(cls, keyword: str) -> Optional["ArtifactPolicy"]:
        """Case-insensitive lookup; None for a literal version."""
        try:
            return cls(keyword.upper())
        except ValueError:
            return None


class ConfigPolicy(StrEnum):
    """How two configurations with the same PID are merged."""
    FAIL_ON_CLASH = "CLASH"
    FAIL_ON_PROPERTY_CLASH = "PROPERTY_CLASH"
    USE_LATEST = "USE_LATEST"
    USE_FIRST = "USE_FIRST"
    MERGE_LATEST = "MERGE_LATEST"
    MERGE_FIRST = "MERGE_FIRST"

    @classmethod
    def parse(cls, text: Union[str, "ConfigPolicy"]) -> "ConfigPolicy":
        """
        Accept the member name or its value, case-insensitively.

        Raises:
            InvalidInputError: For an unknown policy.
        """
        if isinstance(text, ConfigPolicy):
            return text
        key = str(text).strip().upper()
        if key in cls.__members__:
            return cls[key]
        try:
            return cls(key)
        except ValueError:
            raise InvalidInputError(f"Unknown configuration merge policy {text}", text)


def parse_override(rule: Union[str, ArtifactId]) -> ArtifactId:
    """Parse an override rule like `g:a:*:*:HIGHEST`."""
    if isinstance(rule, ArtifactId):
        return rule
    return ArtifactId.from_mvn_id(rule)


@dataclass
class BuilderContext:
    """
    Parameters of an assembly call.

    The `add_*`/`set_*` methods return the context so calls can be chained:

        context = (
            BuilderContext(provider)
            .add_artifacts_override("org.apache:*:*:*:HIGHEST")
            .add_configs_overrides({"org.apache.*": "MERGE_LATEST"})
        )
    """

    feature_provider: FeatureProvider
    artifact_provider: Optional[ArtifactProvider] = None
    artifact_overrides: List[ArtifactId] = field(default_factory=list)
    variables: Dict[str, str] = field(default_factory=dict)
    framework_properties: Dict[str, str] = field(default_factory=dict)
    config_overrides: Dict[str, ConfigPolicy] = field(default_factory=dict)
    merge_handlers: List[RegisteredHandler[MergeHandler]] = field(default_factory=list)
    post_process_handlers: List[RegisteredHandler[PostProcessHandler]] = field(default_factory=list)
    handler_configurations: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.feature_provider is None:
            raise InvalidInputError("Provider must not be null")

    @classmethod
    def from_settings(
        cls, provider: FeatureProvider, settings: "BuilderSettings"
    ) -> "BuilderContext":
        """Build a context from loaded settings."""
        context = cls(provider)
        for rule in settings.artifact_overrides:
            context.add_artifacts_override(rule)
        context.add_configs_overrides(settings.config_overrides)
        context.add_variables_overrides(settings.variables)
        context.add_framework_properties_overrides(settings.framework_properties)
        for name, table in settings.handlers.items():
            context.set_handler_configuration(name, table)
        logger.debug(
            f"Context from settings: {len(context.artifact_overrides)} artifact rules, "
            f"{len(context.config_overrides)} configuration rules"
        )
        return context

    def set_artifact_provider(self, provider: Optional[ArtifactProvider]) -> "BuilderContext":
        self.artifact_provider = provider
        return self

    def add_variables_overrides(self, variables: Mapping[str, str]) -> "BuilderContext":
        self.variables.update(variables)
        return self

    def add_framework_properties_overrides(self, properties: Mapping[str, str]) -> "BuilderContext":
        self.framework_properties.update(properties)
        return self

    def add_artifacts_override(self, rule: Union[str, ArtifactId]) -> "BuilderContext":
        self.artifact_overrides.append(parse_override(rule))
        return self

    def add_configs_overrides(
        self, overrides: Mapping[str, Union[str, ConfigPolicy]]
    ) -> "BuilderContext":
        for pattern, policy in overrides.items():
            self.config_overrides[pattern] = ConfigPolicy.parse(policy)
        return self

    def add_merge_handler(
        self, handler: MergeHandler, handler_id: Optional[str] = None
    ) -> "BuilderContext":
        self.merge_handlers.append(RegisteredHandler.of(handler, handler_id))
        return self

    def add_post_process_handler(
        self, handler: PostProcessHandler, handler_id: Optional[str] = None
    ) -> "BuilderContext":
        self.post_process_handlers.append(RegisteredHandler.of(handler, handler_id))
        return self

    def set_handler_configuration(self, handler_id: str, configuration: Mapping[str, str]) -> "BuilderContext":
        self.handler_configurations[handler_id] = dict(configuration)
        return self

    def handler_configuration(self, handler_id: str) -> Dict[str, str]:
        """The `all` table overlaid by the handler's own table."""
        result = dict(self.handler_configurations.get(HANDLER_CONFIGURATION_ALL, {}))
        result.update(self.handler_configurations.get(handler_id, {}))
        return result

    def handler_context(
        self, handler_id: str, prototype_merge: bool = False, initial_merge: bool = False
    ) -> HandlerContext:
        return HandlerContext(
            artifact_provider=self.artifact_provider,
            configuration=self.handler_configuration(handler_id),
            prototype_merge=prototype_merge,
            initial_merge=initial_merge,
        )

    def clone(self, feature_provider: FeatureProvider) -> "BuilderContext":
        """Copy of this context using another feature provider."""
        return BuilderContext(
            feature_provider=feature_provider,
            artifact_provider=self.artifact_provider,
            artifact_overrides=list(self.artifact_overrides),
            variables=dict(self.variables),
            framework_properties=dict(self.framework_properties),
            config_overrides=dict(self.config_overrides),
            merge_handlers=list(self.merge_handlers),
            post_process_handlers=list(self.post_process_handlers),
            handler_configurations={k: dict(v) for k, v in self.handler_configurations.items()},
        )

"""
Builder settings file.

Assembly parameters can be kept in a `featurekit.toml` file:

    [overrides]
    artifacts = ["org.apache.sling:*:*:*:HIGHEST", "g:a:1.2"]

    [overrides.configurations]
    "org.apache.sling.*" = "MERGE_LATEST"
    "*" = "PROPERTY_CLASH"

    [variables]
    port = "8080"

    [framework-properties]
    "org.osgi.framework.bootdelegation" = "sun.*"

    [handlers.all]
    verbose = "true"

    [handlers.repoinit]
    strict = "false"
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..config import SETTINGS_FILE_NAME
from ..core.artifact_id import ArtifactId
from ..core.errors import InvalidInputError
from .context import ConfigPolicy, parse_override

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class BuilderSettings(BaseModel):
    """Parsed settings; every table is optional."""

    artifact_overrides: List[ArtifactId] = Field(default_factory=list)
    config_overrides: Dict[str, ConfigPolicy] = Field(default_factory=dict)
    variables: Dict[str, str] = Field(default_factory=dict)
    framework_properties: Dict[str, str] = Field(default_factory=dict)
    handlers: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    @field_validator("artifact_overrides", mode="before")
    @classmethod
    def _parse_rules(cls, value: Any) -> List[ArtifactId]:
        return [parse_override(rule) for rule in value or []]

    @field_validator("config_overrides", mode="before")
    @classmethod
    def _parse_policies(cls, value: Any) -> Dict[str, ConfigPolicy]:
        return {pattern: ConfigPolicy.parse(policy) for pattern, policy in (value or {}).items()}

    @field_validator("variables", "framework_properties", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Dict[str, str]:
        return {key: _stringify(v) for key, v in (value or {}).items()}

    @field_validator("handlers", mode="before")
    @classmethod
    def _stringify_tables(cls, value: Any) -> Dict[str, Dict[str, str]]:
        return {
            name: {key: _stringify(v) for key, v in table.items()}
            for name, table in (value or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuilderSettings":
        """
        Build settings from the decoded TOML document.

        Raises:
            InvalidInputError: If a rule or policy is invalid.
        """
        overrides = data.get("overrides", {})
        try:
            return cls(
                artifact_overrides=overrides.get("artifacts", []),
                config_overrides=overrides.get("configurations", {}),
                variables=data.get("variables", {}),
                framework_properties=data.get("framework-properties", {}),
                handlers=data.get("handlers", {}),
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid builder settings: {e}", data)

    @classmethod
    def load(cls, path: Path) -> "BuilderSettings":
        """
        Load settings from a TOML file.

        Args:
            path: Path to the settings file, or a directory holding a
                `featurekit.toml`.

        Returns:
            The parsed settings, or defaults if the file does not exist.

        Raises:
            InvalidInputError: If the file is malformed.
        """
        if path.is_dir():
            path = path / SETTINGS_FILE_NAME
        if not path.exists():
            logger.debug(f"No settings file at {path}, using defaults")
            return cls()

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise InvalidInputError(f"Failed to parse {path}: {e}", str(path))

        return cls.from_dict(data)

"""
Variable substitution.

Configuration property values and framework property values may contain
`${name}` placeholders. A placeholder is replaced by the caller's override
for `name` if there is one, else by the feature's own variable. Replaced
text is not scanned again.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from ..core.errors import UndefinedVariableError
from ..core.feature import Feature

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\$\{([a-zA-Z0-9.\-_]+)\}")


def replace_variables(value: str, overrides: Optional[Mapping[str, str]], feature: Feature) -> str:
    """
    Substitute the `${name}` placeholders of one value.

    Raises:
        UndefinedVariableError: If a name is neither overridden nor a
            variable of the feature.
    """
    def substitute(match: re.Match) -> str:
        name = match.group(1)
        replacement = overrides.get(name) if overrides else None
        if replacement is None:
            replacement = feature.variables.get(name)
        if replacement is None:
            raise UndefinedVariableError(name)
        return replacement

    return VARIABLE_PATTERN.sub(substitute, value)


def resolve_variables(feature: Feature, overrides: Optional[Mapping[str, str]] = None) -> None:
    """
    Substitute variables in place in all configuration properties (string
    and string list values) and all framework properties of a feature.
    """
    for configuration in feature.configurations:
        for key, value in list(configuration.properties.items()):
            if isinstance(value, str):
                configuration.properties[key] = replace_variables(value, overrides, feature)
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                configuration.properties[key] = [replace_variables(v, overrides, feature) for v in value]

    for key, value in list(feature.framework_properties.items()):
        if value is not None:
            feature.framework_properties[key] = replace_variables(value, overrides, feature)
    logger.debug(f"Resolved variables of {feature.id}")

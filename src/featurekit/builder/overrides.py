"""
Override rule matching.

Artifact override rules are ArtifactIds whose group, artifact, type and
classifier may be the wildcard `*` and whose version is a policy keyword
(see ArtifactPolicy) or a literal version. A rule applies to a coordinate
when all four non-version fields match.

Configuration override patterns are PIDs where `*` alone matches every
configuration and a trailing `*` matches by prefix. Factory PIDs
(`factory~name`) are matched half by half and only against factory
patterns.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from ..config import COORDINATE_MATCH_ALL
from ..core.artifact_id import ArtifactId
from ..core.configuration import is_factory_pid, split_factory_pid
from .context import ConfigPolicy

logger = logging.getLogger(__name__)


def _field_matches(value: Optional[str], pattern: Optional[str]) -> bool:
    return pattern == COORDINATE_MATCH_ALL or value == pattern


def matches_rule(artifact_id: ArtifactId, rule: ArtifactId) -> bool:
    """True if the rule's group, artifact, type and classifier all match."""
    return (
        _field_matches(artifact_id.group_id, rule.group_id)
        and _field_matches(artifact_id.artifact_id, rule.artifact_id)
        and _field_matches(artifact_id.type, rule.type)
        and _field_matches(artifact_id.classifier, rule.classifier)
    )


class OverrideMatcher:
    """
    Finds the override rule that applies to a conflict.

    Rules are tried in registration order; for each candidate coordinate
    the first matching rule wins.

    Example:
        ```python
        matcher = OverrideMatcher(context.artifact_overrides)
        if hit := matcher.find([ArtifactId.parse("g:a:1")]):
            coordinate, rule = hit
        ```
    """

    def __init__(self, rules: List[ArtifactId]):
        self.rules = rules

    def find(self, coordinates: Iterable[ArtifactId]) -> Optional[Tuple[ArtifactId, ArtifactId]]:
        """
        Args:
            coordinates: Candidate coordinates, tried in order.

        Returns:
            (coordinate, rule) for the first match, None if no rule applies.
        """
        for coordinate in coordinates:
            for rule in self.rules:
                if matches_rule(coordinate, rule):
                    logger.debug(f"Override rule {rule} applies to {coordinate}")
                    return coordinate, rule
        return None

    @staticmethod
    def resolve_literal(coordinate: ArtifactId, rule: ArtifactId) -> ArtifactId:
        """Concrete id for a literal-version rule; wildcards take the coordinate's value."""
        def pick(value: Optional[str], pattern: Optional[str]) -> Optional[str]:
            return value if pattern == COORDINATE_MATCH_ALL else pattern

        return ArtifactId(
            pick(coordinate.group_id, rule.group_id),
            pick(coordinate.artifact_id, rule.artifact_id),
            rule.version,
            pick(coordinate.classifier, rule.classifier),
            pick(coordinate.type, rule.type),
        )


def _matches_pattern(value: str, pattern: str) -> bool:
    if pattern.endswith(COORDINATE_MATCH_ALL):
        return value.startswith(pattern[:-1])
    return value == pattern


def matches_pid(pid: str, pattern: str) -> bool:
    """True if a configuration PID matches an override pattern."""
    if pattern == COORDINATE_MATCH_ALL:
        return True
    if is_factory_pid(pid):
        if not is_factory_pid(pattern):
            return False
        factory_pid, name = split_factory_pid(pid)
        factory_pattern, name_pattern = split_factory_pid(pattern)
        return _matches_pattern(factory_pid, factory_pattern) and _matches_pattern(name, name_pattern)
    return _matches_pattern(pid, pattern)


def find_config_policy(pid: str, overrides: Mapping[str, ConfigPolicy]) -> Optional[ConfigPolicy]:
    """First policy, in insertion order, whose pattern matches the PID."""
    for pattern, policy in overrides.items():
        if matches_pid(pid, pattern):
            return policy
    return None


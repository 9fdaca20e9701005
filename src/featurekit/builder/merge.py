"""
Merge engine.

Merges the content of a source feature into a target feature, one
collection at a time:

    variables             fatal on differing values unless overridden
    bundles               alias-aware conflict detection + override rules
    configurations        per-PID policies
    framework properties  like variables
    requirements          appended when not present
    capabilities          appended when not present
    extensions            handlers first, then text/JSON/artifacts merge

Conflicts that no rule or policy resolves raise MergeConflictError; the
engine never picks a side on its own.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from ..core.artifact import Artifact, ArtifactCollection, unique_ids
from ..core.artifact_id import ArtifactId
from ..core.configuration import Configuration, ConfigurationCollection
from ..core.errors import MergeConflictError
from ..core.extension import ArtifactsExtension, Extension, JsonExtension, TextExtension, new_extension
from ..core.feature import Feature, PropertyMap, Requirement
from ..core.version import compare_versions
from .context import ArtifactPolicy, BuilderContext, ConfigPolicy
from .overrides import OverrideMatcher, find_config_policy

logger = logging.getLogger(__name__)


# --- Artifacts ---

def select_start_order(first: Artifact, second: Artifact, chosen: Artifact) -> Artifact:
    """
    Give the chosen artifact the lower non-zero start order of both sides.

    Returns the chosen artifact itself when its start order already is
    that value, otherwise an adjusted copy.
    """
    a, b = first.start_order, second.start_order
    if a == 0:
        order = b
    elif b == 0:
        order = a
    else:
        order = min(a, b)
    if order == chosen.start_order:
        return chosen
    result = chosen.copy()
    result.start_order = order
    return result


def _with_origins(artifact: Artifact, origins: List[ArtifactId]) -> Artifact:
    if origins == artifact.feature_origins:
        return artifact
    result = artifact.copy()
    result.set_feature_origins(origins)
    return result


def add_feature_origin(
    result: Artifact,
    source_feature_id: Optional[ArtifactId],
    source: Artifact,
    target: Optional[Artifact] = None,
) -> Artifact:
    """
    Record where `result` comes from.

    Origins are the target's origins (if any) followed by the source's
    own origins, or the source feature id when the source has none.
    """
    origins: List[ArtifactId] = list(target.feature_origins) if target is not None else []
    if source.feature_origins:
        origins.extend(source.feature_origins)
    elif source_feature_id is not None:
        origins.append(source_feature_id)
    return _with_origins(result, unique_ids(origins))


def common_prefixes(first: Artifact, second: Artifact) -> List[ArtifactId]:
    """Ids (with aliases) of `first` that name the same artifact as one of `second`."""
    result: List[ArtifactId] = []
    for candidate in first.aliases(include_main=True):
        if any(candidate.is_same(other) for other in second.aliases(include_main=True)):
            result.append(candidate)
    return unique_ids(result)


def _version_for(artifact: Artifact, prefix: ArtifactId) -> str:
    return next(a for a in artifact.aliases(include_main=True) if prefix.is_same(a)).version


def select_artifact_override(
    target: Artifact,
    source: Artifact,
    overrides: List[ArtifactId],
    source_feature_id: Optional[ArtifactId] = None,
    added: Optional[Set[ArtifactId]] = None,
) -> List[Artifact]:
    """
    Decide which of two clashing artifacts survive.

    Args:
        target: The artifact already in the target collection.
        source: The incoming artifact.
        overrides: Override rules, tried in order.
        source_feature_id: Feature the source artifact comes from.
        added: Ids inserted into the target during the current merge;
            with no rules, a clash with one of those keeps both sides.

    Returns:
        One or two artifacts; with two, the target side comes first.

    Raises:
        MergeConflictError: If no rule applies.
    """
    if target.id == source.id:
        return [add_feature_origin(select_start_order(target, source, source), source_feature_id, source, target)]

    prefixes = common_prefixes(target, source)
    if not prefixes:
        raise MergeConflictError(
            f"Internal error selecting override. No common prefix between {target} and {source}",
            [target.id, source.id],
        )

    if not overrides and added is not None and target.id in added:
        return [target, add_feature_origin(source, source_feature_id, source)]

    hit = OverrideMatcher(overrides).find(prefixes)
    if hit is None:
        raise MergeConflictError(
            f"Artifact override rule required to select between these two artifacts {target} and "
            f"{source}. The rule must be specified for {[p.to_mvn_id() for p in prefixes]}",
            [target.id, source.id],
        )

    prefix, rule = hit
    policy = ArtifactPolicy.parse(rule.version)
    if policy == ArtifactPolicy.ALL:
        return [target, source]
    if policy == ArtifactPolicy.HIGHEST:
        higher = compare_versions(_version_for(target, prefix), _version_for(source, prefix)) > 0
        chosen = target if higher else source
    elif policy == ArtifactPolicy.FIRST:
        chosen = target
    elif policy == ArtifactPolicy.LATEST:
        chosen = source
    elif target.id.version == rule.version:
        chosen = target
    elif source.id.version == rule.version:
        chosen = source
    else:
        chosen = Artifact(OverrideMatcher.resolve_literal(prefix, rule))
    logger.debug(f"Rule {rule} selects {chosen.id} from {target.id} and {source.id}")
    return [add_feature_origin(select_start_order(target, source, chosen), source_feature_id, source, target)]


def _same_in_target(artifact: Artifact, target: ArtifactCollection) -> List[Artifact]:
    found: List[Artifact] = []
    for alias in artifact.aliases(include_main=True):
        for candidate in target:
            if alias.is_same(candidate.id) or any(a.is_same(alias) for a in candidate.aliases()):
                if not any(candidate is f for f in found):
                    found.append(candidate)
    return found


def merge_artifacts(
    target: ArtifactCollection,
    source: ArtifactCollection,
    source_feature: Feature,
    overrides: List[ArtifactId],
    track_origin: bool = False,
) -> None:
    """
    Merge the source artifacts into the target collection.

    With no override rules, an incoming artifact that clashes with one
    added earlier in the same call is kept beside it. The outcome then
    depends on source order: with target `{g:a:1}`, source
    `[g:a:1, g:a:2]` yields both versions while `[g:a:2, g:a:1]` raises.

    Args:
        target: Collection to merge into, modified in place.
        source: Incoming artifacts, not modified.
        source_feature: Feature the incoming artifacts belong to.
        overrides: Override rules for version clashes.
        track_origin: Stamp inserted artifacts with `merge_origin` so that
            the same feature contributing twice is not a clash.

    Raises:
        MergeConflictError: On a clash no rule resolves.
    """
    added: Set[ArtifactId] = set()
    for incoming in list(source):
        existing_same = _same_in_target(incoming, target)

        selected: List[Artifact] = [] if existing_same else [incoming]
        insert_pos = len(target)
        count = 0
        for existing in existing_same:
            if track_origin and existing.merge_origin == source_feature.id:
                # same feature contributes both, keep them side by side
                selected.insert(count, existing)
                count += 1
                selected.append(incoming)
                continue

            survivors = select_artifact_override(existing, incoming, overrides, source_feature.id, added)
            if len(survivors) > 1:
                selected.insert(count, survivors.pop(0))
                count += 1
            selected.extend(survivors)

            while (same := target.get_same(existing.id)) is not None:
                position = target.index(same)
                insert_pos = min(insert_pos, position)
                target.pop(position)

        seen: Set[ArtifactId] = set()
        for artifact in selected:
            if artifact.id in seen:
                continue
            seen.add(artifact.id)

            result = add_feature_origin(artifact.copy(), source_feature.id, artifact)
            if track_origin and artifact.merge_origin is None and source.contains_exact(artifact.id):
                result.merge_origin = source_feature.id
            added.add(result.id)

            if insert_pos == len(target):
                target.add(result)
                insert_pos = len(target)
            else:
                target.insert(insert_pos, result)
                insert_pos += 1


# --- Configurations ---

def _stamp_property_origins(configuration: Configuration, source_feature_id: ArtifactId) -> None:
    for key in configuration.configuration_properties():
        configuration.set_property_origins(key, configuration.get_property_origins(key, source_feature_id))


def merge_configurations(
    target: ConfigurationCollection,
    source: ConfigurationCollection,
    overrides: Mapping[str, ConfigPolicy],
    source_feature_id: ArtifactId,
) -> None:
    """
    Merge source configurations into the target by PID.

    Raises:
        MergeConflictError: On a PID clash without an applicable policy,
            with FAIL_ON_CLASH, or on a differing property with
            FAIL_ON_PROPERTY_CLASH.
    """
    for configuration in source:
        source_origins = configuration.get_feature_origins(source_feature_id)
        found = target.get_configuration(configuration.pid)

        if found is None:
            found = configuration.copy()
            target.add(found)
            _stamp_property_origins(found, source_feature_id)
            if not found.feature_origins:
                found.set_feature_origins(source_origins)
            continue

        policy = find_config_policy(configuration.pid, overrides)
        if policy is None or policy == ConfigPolicy.FAIL_ON_CLASH:
            raise MergeConflictError(
                f"Configuration override rule required to select between configurations for "
                f"{configuration.pid}",
                [configuration.pid],
            )
        logger.debug(f"Merging configuration {configuration.pid} with {policy.name}")

        if policy == ConfigPolicy.USE_FIRST:
            continue

        if policy == ConfigPolicy.USE_LATEST:
            replacement = configuration.copy()
            target[target.index(found)] = replacement
            found = replacement
            _stamp_property_origins(found, source_feature_id)
        else:
            for key, value in configuration.properties.items():
                incoming_origins = configuration.get_property_origins(key, source_feature_id)
                if key not in found.properties:
                    found.properties[key] = value
                    found.set_property_origins(key, incoming_origins)
                elif policy == ConfigPolicy.MERGE_LATEST:
                    found.properties[key] = value
                    found.set_property_origins(key, found.get_property_origins(key) + incoming_origins)
                elif policy == ConfigPolicy.FAIL_ON_PROPERTY_CLASH:
                    if found.properties[key] != value:
                        raise MergeConflictError(
                            f"Configuration {configuration.pid} has a clash for property {key}: "
                            f"{found.properties[key]!r} v.s. {value!r}",
                            [configuration.pid, key],
                        )
                    found.set_property_origins(key, found.get_property_origins(key) + incoming_origins)

        found.set_feature_origins(found.feature_origins + source_origins)


# --- Variables and framework properties ---

def _merge_property_map(
    target: PropertyMap,
    source: PropertyMap,
    overrides: Mapping[str, str],
    source_feature_id: ArtifactId,
    kind: str,
) -> None:
    values: Dict[str, str] = {k: overrides.get(k, v) for k, v in target.items()}
    metadata: Dict[str, Dict[str, Any]] = {k: dict(target.get_metadata(k) or {}) for k in target}
    origins: Dict[str, List[ArtifactId]] = {k: target.get_origins(k) for k in target}

    for key, value in source.items():
        key_origins = origins.get(key, []) + [source_feature_id]
        if key in overrides:
            values[key] = overrides[key]
        elif key in target:
            if value != target[key]:
                raise MergeConflictError(
                    f"Can't merge {kind} '{key}' defined twice (as '{value}' v.s. '{target[key]}') "
                    "and not overridden.",
                    [key],
                )
        else:
            values[key] = value
        metadata[key] = dict(source.get_metadata(key) or {})
        origins[key] = key_origins

    target.clear()
    for key, value in values.items():
        target[key] = value
        target.get_metadata(key).update(metadata.get(key, {}))
        target.set_origins(key, origins.get(key, []))


def merge_variables(target: Feature, source: Feature, overrides: Mapping[str, str]) -> None:
    """
    Raises:
        MergeConflictError: If a variable differs on both sides and is not overridden.
    """
    _merge_property_map(target.variables, source.variables, overrides, source.id, "variable")


def merge_framework_properties(target: Feature, source: Feature, overrides: Mapping[str, str]) -> None:
    """
    Raises:
        MergeConflictError: If a property differs on both sides and is not overridden.
    """
    _merge_property_map(
        target.framework_properties, source.framework_properties, overrides, source.id, "framework property"
    )


def merge_requirements(target: List[Requirement], source: Iterable[Requirement]) -> None:
    for requirement in source:
        if requirement not in target:
            target.append(requirement)


merge_capabilities = merge_requirements


# --- Extensions ---

def _merge_json_objects(first: Dict[str, Any], second: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(first)
    for key, value in second.items():
        old = first.get(key)
        if isinstance(old, dict) and isinstance(value, dict):
            result[key] = _merge_json_objects(old, value)
        elif isinstance(old, list) and isinstance(value, list):
            result[key] = old + value
        else:
            result[key] = value
    return result


def merge_json(target: Any, source: Any, name: str) -> Any:
    """
    Merge two JSON structures of an extension.

    Arrays concatenate, objects merge key by key (nested arrays
    concatenate, nested objects recurse, anything else takes the source
    value).

    Raises:
        MergeConflictError: If one side is an array and the other an object.
    """
    if isinstance(target, list) != isinstance(source, list):
        raise MergeConflictError(
            f"Found different JSON types for extension {name} : "
            f"{type(target).__name__} and {type(source).__name__}",
            [name],
        )
    if isinstance(target, list):
        return target + source
    return _merge_json_objects(target, source)


def merge_extension(
    target: Extension,
    source: Extension,
    source_feature: Feature,
    overrides: List[ArtifactId],
    track_origin: bool = False,
) -> None:
    """Merge one extension into another of the same name and type."""
    if isinstance(target, TextExtension):
        prefix = target.text + "\n" if target.text and target.text.strip() else ""
        target.text = prefix + (source.text or "")
    elif isinstance(target, JsonExtension):
        if target.value is None:
            target.value = copy.deepcopy(source.value)
        elif source.value is not None:
            target.value = merge_json(target.value, copy.deepcopy(source.value), target.name)
    elif isinstance(target, ArtifactsExtension):
        merge_artifacts(target.artifacts, source.artifacts, source_feature, overrides, track_origin)


def merge_extensions(
    target: Feature,
    source: Feature,
    context: BuilderContext,
    overrides: List[ArtifactId],
    track_origin: bool = False,
    prototype_merge: bool = False,
    initial_merge: bool = False,
) -> None:
    """
    Merge all extensions of the source into the target.

    Registered merge handlers get the first refusal for every extension;
    the first one whose `can_merge` accepts owns the merge. Afterwards all
    post-process handlers run once per target extension.

    Raises:
        MergeConflictError: If both sides have an extension of the same
            name but of different types.
    """
    for extension in source.extensions:
        current = target.extensions.get_by_name(extension.name)
        if current is not None and current.type != extension.type:
            raise MergeConflictError(
                f"Found different types for extension {current.name} : {current.type} and {extension.type}",
                [current.name],
            )

        offered = current if current is not None else extension
        handler = next((h for h in context.merge_handlers if h.handler.can_merge(offered)), None)
        if handler is not None:
            logger.debug(f"Extension {extension.name} merged by handler {handler.handler_id}")
            handler.handler.merge(
                context.handler_context(handler.handler_id, prototype_merge, initial_merge),
                target,
                source,
                current,
                extension,
            )
            continue

        if current is None:
            current = new_extension(extension.type, extension.name, extension.state)
            target.extensions.add(current)
        merge_extension(current, extension, source, overrides, track_origin)

    for extension in list(target.extensions):
        for handler in context.post_process_handlers:
            handler.handler.post_process(
                context.handler_context(handler.handler_id, prototype_merge, initial_merge),
                target,
                extension,
            )


# --- Features ---

def merge_features(
    target: Feature,
    source: Feature,
    context: BuilderContext,
    artifact_overrides: List[ArtifactId],
    config_overrides: Mapping[str, ConfigPolicy],
    track_origin: bool = False,
    prototype_merge: bool = False,
    initial_merge: bool = False,
) -> None:
    """Merge the whole content of `source` into `target`."""
    logger.debug(f"Merging {source.id} into {target.id}")
    merge_variables(target, source, context.variables)
    merge_artifacts(target.bundles, source.bundles, source, artifact_overrides, track_origin)
    merge_configurations(target.configurations, source.configurations, config_overrides, source.id)
    merge_framework_properties(target, source, context.framework_properties)
    merge_requirements(target.requirements, source.requirements)
    merge_capabilities(target.capabilities, source.capabilities)
    merge_extensions(
        target, source, context, artifact_overrides, track_origin, prototype_merge, initial_merge
    )

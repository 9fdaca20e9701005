"""
Feature assembler.

Two entry points:

    assemble(feature, context)
        Flatten the prototype chain of a single feature. The prototype is
        fetched through the context's feature provider, assembled first,
        stripped of the prototype's removals and merged into an empty
        result; the feature's own content is then merged on top.

    assemble_features(feature_id, context, *features)
        Aggregate independent features into a new feature. Duplicates are
        reduced to the highest version, features included by another one
        are dropped, and the ids of the contributing features are
        recorded in the transient `assembled-features` extension.

Both return features flagged `assembled`; assembling an assembled feature
returns it unchanged.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Union

from ..config import COORDINATE_MATCH_ALL, EXTENSION_NAME_ASSEMBLED_FEATURES
from ..core.artifact import Artifact, ArtifactCollection
from ..core.artifact_id import ArtifactId
from ..core.configuration import ConfigurationCollection
from ..core.errors import CycleError, InvalidInputError, RemovalError, ResolutionError
from ..core.extension import ArtifactsExtension, ExtensionCollection, ExtensionState
from ..core.feature import Feature, PropertyMap, Prototype
from ..core.version import OsgiVersion, compare_versions, try_osgi_version
from .context import ArtifactPolicy, BuilderContext, ConfigPolicy
from .handlers import FeatureProvider
from .merge import merge_features

logger = logging.getLogger(__name__)

# Keeps both sides of every clash between a feature and its prototype
CATCH_ALL_OVERRIDE = ArtifactId(
    COORDINATE_MATCH_ALL,
    COORDINATE_MATCH_ALL,
    ArtifactPolicy.ALL.value,
    COORDINATE_MATCH_ALL,
    COORDINATE_MATCH_ALL,
)


class InclusionTracker:
    """
    Feature provider that records every id it is asked for.

    Candidate features are served first; other ids go to the delegate.
    Used by deduplicate() to find features included by another one.

    Attributes:
        included: Ids requested so far.
    """

    def __init__(self, delegate: FeatureProvider, candidates: Iterable[Feature]):
        self.delegate = delegate
        self.candidates = list(candidates)
        self.included: Set[ArtifactId] = set()

    def provide(self, feature_id: ArtifactId) -> Optional[Feature]:
        self.included.add(feature_id)
        for candidate in self.candidates:
            if candidate.id == feature_id:
                return candidate
        return self.delegate.provide(feature_id)


def assemble(feature: Feature, context: BuilderContext) -> Feature:
    """
    Assemble a feature by resolving its prototype chain.

    Args:
        feature: The feature to assemble; it is not modified.
        context: Providers, overrides and handlers.

    Returns:
        A new assembled feature, or `feature` itself if already assembled.

    Raises:
        ResolutionError: If a prototype is missing or final.
        CycleError: If the prototype chain loops.
        RemovalError: If a prototype removal names a missing element.
        MergeConflictError: If merging the chain hits an unresolved clash.
    """
    if feature is None or context is None:
        raise InvalidInputError("Feature and/or context must not be null")
    logger.info(f"Assembling feature {feature.id}")
    result = _assemble(feature, context, [])
    logger.info(f"Assembled feature {feature.id}: {len(result.bundles)} bundles")
    return result


def _assemble(feature: Feature, context: BuilderContext, path: List[ArtifactId]) -> Feature:
    if feature.assembled:
        return feature
    if feature.id in path:
        raise CycleError(path + [feature.id])
    path.append(feature.id)

    result = feature.copy()
    prototype = feature.prototype
    if prototype is not None:
        result.variables = PropertyMap()
        result.bundles = ArtifactCollection()
        result.framework_properties = PropertyMap()
        result.configurations = ConfigurationCollection()
        result.requirements = []
        result.capabilities = []
        result.extensions = ExtensionCollection()
        result.prototype = None

        base = context.feature_provider.provide(prototype.id)
        if base is None:
            raise ResolutionError(prototype.id, f"Unable to find prototype feature {prototype.id}")
        if base.final:
            raise ResolutionError(
                prototype.id,
                f"Prototype feature {prototype.id} is marked as final and can't be used in a prototype.",
            )
        logger.debug(f"Resolving prototype {prototype.id} of {feature.id}")

        assembled_base = _assemble(base, context, path)
        working = assembled_base.copy()
        apply_removals(working, prototype)

        merge_features(
            result, working, context, [], {},
            track_origin=True, prototype_merge=True, initial_merge=True,
        )
        merge_features(
            result, feature, context,
            [CATCH_ALL_OVERRIDE], {COORDINATE_MATCH_ALL: ConfigPolicy.MERGE_LATEST},
            track_origin=True, prototype_merge=True, initial_merge=False,
        )

        for bundle in result.bundles:
            bundle.merge_origin = None
            bundle.set_feature_origins(
                [o for o in bundle.feature_origins if o != assembled_base.id] + [feature.id]
            )
        for extension in result.extensions:
            if isinstance(extension, ArtifactsExtension):
                for artifact in extension.artifacts:
                    artifact.merge_origin = None

    result.assembled = True
    path.pop()
    return result


def _ignores_version(artifact_id: ArtifactId) -> bool:
    return try_osgi_version(artifact_id.version) == OsgiVersion.EMPTY


def apply_removals(feature: Feature, prototype: Prototype) -> None:
    """
    Remove what the prototype lists from an assembled prototype feature.

    A bundle or artifact removal with version 0.0.0 removes every version.
    Removing a bundle also removes configurations bound to it. Framework
    property and extension removals tolerate absent entries; every other
    removal of an absent element raises RemovalError.
    """
    for bundle_id in prototype.bundle_removals:
        ignore_version = _ignores_version(bundle_id)
        if ignore_version:
            removed = False
            while feature.bundles.remove_same(bundle_id):
                removed = True
        else:
            removed = feature.bundles.remove_exact(bundle_id)
        if not removed:
            raise RemovalError(bundle_id, feature.id, "Bundle")

        for configuration in list(feature.configurations):
            owner = configuration.artifact_id
            if owner is None:
                continue
            if (owner.is_same(bundle_id) if ignore_version else owner == bundle_id):
                feature.configurations.remove(configuration)

    for removal in prototype.configuration_removals:
        pid, _, attribute = removal.partition("@")
        found = feature.configurations.get_configuration(pid)
        if found is None:
            raise RemovalError(removal, feature.id, "Configuration")
        if not attribute:
            feature.configurations.remove(found)
        elif attribute in found.properties:
            del found.properties[attribute]
            found.property_origins.pop(attribute, None)
        else:
            raise RemovalError(removal, feature.id, "Configuration property")

    for key in prototype.framework_properties_removals:
        feature.framework_properties.pop(key, None)

    for name in prototype.extension_removals:
        feature.extensions.remove(name)

    for name, artifact_ids in prototype.artifact_extension_removals.items():
        extension = feature.extensions.get_by_name(name)
        if not isinstance(extension, ArtifactsExtension):
            raise RemovalError(name, feature.id, "Artifact extension")
        for artifact_id in artifact_ids:
            if _ignores_version(artifact_id):
                removed = False
                while extension.artifacts.remove_same(artifact_id):
                    removed = True
            else:
                removed = extension.artifacts.remove_exact(artifact_id)
            if not removed:
                raise RemovalError(artifact_id, feature.id, "Artifact")

    for requirement in prototype.requirement_removals:
        if requirement not in feature.requirements:
            raise RemovalError(requirement, feature.id, "Requirement")
        feature.requirements.remove(requirement)

    for capability in prototype.capability_removals:
        if capability not in feature.capabilities:
            raise RemovalError(capability, feature.id, "Capability")
        feature.capabilities.remove(capability)


def resolve(context: BuilderContext, *feature_ids: Union[str, ArtifactId]) -> List[Feature]:
    """
    Fetch features by id through the context's provider.

    Raises:
        ResolutionError: If any id is unknown to the provider.
    """
    if context is None:
        raise InvalidInputError("Features and/or context must not be null")
    features: List[Feature] = []
    for feature_id in feature_ids:
        artifact_id = ArtifactId.parse(feature_id) if isinstance(feature_id, str) else feature_id
        feature = context.feature_provider.provide(artifact_id)
        if feature is None:
            raise ResolutionError(artifact_id, f"Unable to find feature {artifact_id}")
        features.append(feature)
    return features


def deduplicate(context: BuilderContext, *features: Feature) -> List[Feature]:
    """
    Reduce independent features to the ones that need to be merged.

    Per artifact identity (ignoring the version) only the highest version
    is kept; on equal versions the first one wins. Each survivor is then
    assembled, and a survivor that another survivor pulled in as its
    prototype is dropped.
    """
    if context is None:
        raise InvalidInputError("Features and/or context must not be null")

    survivors: List[Feature] = []
    for feature in features:
        found = next((s for s in survivors if s.id.is_same(feature.id)), None)
        if found is not None:
            if compare_versions(feature.id.version, found.id.version) <= 0:
                logger.debug(f"Dropping {feature.id} in favour of {found.id}")
                continue
            logger.debug(f"Dropping {found.id} in favour of {feature.id}")
            survivors.remove(found)
        survivors.append(feature)

    tracker = InclusionTracker(context.feature_provider, features)
    tracked = context.clone(tracker)
    assembled = [assemble(feature, tracked) for feature in survivors]
    return [feature for feature in assembled if feature.id not in tracker.included]


def assemble_features(feature_id: ArtifactId, context: BuilderContext, *features: Feature) -> Feature:
    """
    Aggregate independent features into a new assembled feature.

    The result is `complete` only if every contributing feature is.

    Raises:
        MergeConflictError: If the features clash in a way the context's
            overrides do not resolve.
    """
    if feature_id is None or context is None:
        raise InvalidInputError("Features and/or context must not be null")
    logger.info(f"Assembling {feature_id} from {len(features)} features")

    target = Feature(feature_id)
    assembled = deduplicate(context, *features)

    contributors = ArtifactsExtension(EXTENSION_NAME_ASSEMBLED_FEATURES, ExtensionState.TRANSIENT)
    for feature in assembled:
        contributors.artifacts.add(Artifact(feature.id))
    target.extensions.add(contributors)

    for index, feature in enumerate(assembled):
        merge_features(
            target, feature, context,
            context.artifact_overrides, context.config_overrides,
            track_origin=False, prototype_merge=False, initial_merge=index == 0,
        )

    target.complete = all(feature.complete for feature in assembled)
    target.assembled = True
    logger.info(f"Assembled {feature_id}: {[str(f.id) for f in assembled]}")
    return target

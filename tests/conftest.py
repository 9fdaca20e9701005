"""
Shared fixtures: an in-memory feature provider and builder context.
"""

from typing import Dict, List, Optional

import pytest

from featurekit.builder import BuilderContext
from featurekit.core import Artifact, ArtifactId, Feature


class DictFeatureProvider:
    """Feature provider backed by a dict; records every requested id."""

    def __init__(self, *features: Feature):
        self.features: Dict[ArtifactId, Feature] = {}
        self.requests: List[ArtifactId] = []
        self.add(*features)

    def add(self, *features: Feature) -> None:
        for feature in features:
            self.features[feature.id] = feature

    def provide(self, feature_id: ArtifactId) -> Optional[Feature]:
        self.requests.append(feature_id)
        return self.features.get(feature_id)


def aid(text: str) -> ArtifactId:
    return ArtifactId.parse(text)


def bundle(text: str, **metadata: str) -> Artifact:
    return Artifact(ArtifactId.parse(text), metadata={k.replace("_", "-"): v for k, v in metadata.items()})


def feature(text: str, *bundles: str) -> Feature:
    result = Feature(ArtifactId.parse(text))
    for b in bundles:
        result.bundles.add(bundle(b))
    return result


@pytest.fixture
def provider():
    return DictFeatureProvider()


@pytest.fixture
def context(provider):
    return BuilderContext(provider)

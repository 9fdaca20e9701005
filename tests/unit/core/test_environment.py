"""
Unit tests for reading the execution environment extension.
"""

import pytest

from featurekit.core import (
    ArtifactId,
    ExecutionEnvironment,
    Feature,
    InvalidInputError,
    JsonExtension,
    OsgiVersion,
    TextExtension,
)


def with_extension(extension):
    feature = Feature(ArtifactId.parse("g:f:1"))
    feature.extensions.add(extension)
    return feature


def test_absent():
    assert ExecutionEnvironment.from_feature(Feature(ArtifactId.parse("g:f:1"))) is None
    assert ExecutionEnvironment.from_feature(None) is None


def test_full():
    feature = with_extension(JsonExtension("execution-environment", value={
        "framework": "org.apache.felix:org.apache.felix.framework:7.0.0",
        "javaVersion": "17",
        "javaOptions": "-Xmx1g",
    }))
    env = ExecutionEnvironment.from_feature(feature)
    assert env.framework.id == ArtifactId.parse("org.apache.felix:org.apache.felix.framework:7.0.0")
    assert env.java_version == OsgiVersion(17)
    assert env.java_options == "-Xmx1g"


def test_framework_as_object():
    feature = with_extension(JsonExtension("execution-environment", value={
        "framework": {"id": "g:fw:1", "start-order": "1"},
    }))
    env = ExecutionEnvironment.from_feature(feature)
    assert env.framework.start_order == 1
    assert env.java_version is None


@pytest.mark.parametrize("extension", [
    TextExtension("execution-environment", text="x"),
    JsonExtension("execution-environment", value=[1]),
    JsonExtension("execution-environment", value={"javaVersion": 17}),
    JsonExtension("execution-environment", value={"javaOptions": ["-X"]}),
    JsonExtension("execution-environment", value={"javaVersion": "seventeen"}),
])
def test_invalid(extension):
    with pytest.raises(InvalidInputError):
        ExecutionEnvironment.from_feature(with_extension(extension))

"""
Unit tests for variable substitution.
"""

import pytest

from featurekit.builder import replace_variables, resolve_variables
from featurekit.core import ArtifactId, Configuration, Feature, UndefinedVariableError


@pytest.fixture
def feature():
    result = Feature(ArtifactId.parse("g:f:1"))
    result.variables["host"] = "localhost"
    result.variables["port"] = "8080"
    return result


class TestReplaceVariables:

    def test_feature_variables(self, feature):
        assert replace_variables("http://${host}:${port}/", None, feature) == "http://localhost:8080/"

    def test_override_wins(self, feature):
        assert replace_variables("${port}", {"port": "9090"}, feature) == "9090"

    def test_no_placeholders(self, feature):
        assert replace_variables("plain $text {x}", None, feature) == "plain $text {x}"

    def test_replacement_not_rescanned(self, feature):
        feature.variables["nested"] = "${host}"
        assert replace_variables("${nested}", None, feature) == "${host}"

    def test_undefined_is_fatal(self, feature):
        with pytest.raises(UndefinedVariableError) as exc_info:
            replace_variables("${missing}", None, feature)
        assert exc_info.value.name == "missing"
        assert "Undefined variable: missing" in str(exc_info.value)


class TestResolveVariables:

    def test_configurations_and_framework_properties(self, feature):
        feature.configurations.add(Configuration("pid", {
            "url": "http://${host}",
            "ports": ["${port}", "443"],
            "count": 3,
        }))
        feature.framework_properties["org.osgi.service.http.port"] = "${port}"

        resolve_variables(feature, {"host": "example.org"})

        properties = feature.configurations.get_configuration("pid").properties
        assert properties == {"url": "http://example.org", "ports": ["8080", "443"], "count": 3}
        assert feature.framework_properties["org.osgi.service.http.port"] == "8080"

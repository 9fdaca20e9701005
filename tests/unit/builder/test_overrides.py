"""
Unit tests for artifact override rules and configuration PID patterns.
"""

import pytest

from featurekit.builder import ConfigPolicy, OverrideMatcher, find_config_policy, matches_pid, matches_rule
from featurekit.core import ArtifactId


def rule(text):
    return ArtifactId.from_mvn_id(text)


class TestArtifactRules:

    @pytest.mark.parametrize("text,expected", [
        ("g:a:*:*:HIGHEST", True),
        ("*:*:*:*:ALL", True),
        ("g:*:jar:*:LATEST", True),
        ("g:b:*:*:HIGHEST", False),
        ("g:a:zip:*:HIGHEST", False),
        ("g:a:jar:cls:HIGHEST", False),
    ])
    def test_matches_rule(self, text, expected):
        assert matches_rule(ArtifactId.parse("g:a:1"), rule(text)) is expected

    def test_version_is_ignored(self):
        assert matches_rule(ArtifactId.parse("g:a:1"), rule("g:a:jar:5.0"))

    def test_first_coordinate_then_first_rule(self):
        matcher = OverrideMatcher([rule("g:b:*:*:FIRST"), rule("g:*:*:*:HIGHEST")])
        coordinate, found = matcher.find([ArtifactId.parse("g:a:1"), ArtifactId.parse("g:b:1")])
        assert coordinate == ArtifactId.parse("g:a:1")
        assert found.version == "HIGHEST"

    def test_no_match(self):
        assert OverrideMatcher([rule("x:y:*:*:ALL")]).find([ArtifactId.parse("g:a:1")]) is None
        assert OverrideMatcher([]).find([ArtifactId.parse("g:a:1")]) is None

    def test_resolve_literal_fills_wildcards(self):
        resolved = OverrideMatcher.resolve_literal(ArtifactId.parse("g:a:zip:cls:1"), rule("g:a:*:*:2.5"))
        assert resolved == ArtifactId("g", "a", "2.5", "cls", "zip")


class TestPidPatterns:

    @pytest.mark.parametrize("pid,pattern,expected", [
        ("org.apache.Foo", "*", True),
        ("org.apache.Foo", "org.apache.Foo", True),
        ("org.apache.Foo", "org.apache.*", True),
        ("org.apache.Foo", "org.other.*", False),
        ("org.apache.Foo~one", "*", True),
        ("org.apache.Foo~one", "org.apache.*", False),
        ("org.apache.Foo~one", "org.apache.Foo~*", True),
        ("org.apache.Foo~one", "org.apache.*~o*", True),
        ("org.apache.Foo~one", "org.apache.Foo~two", False),
        ("org.apache.Foo", "org.apache.Foo~*", False),
    ])
    def test_matches_pid(self, pid, pattern, expected):
        assert matches_pid(pid, pattern) is expected

    def test_first_pattern_wins(self):
        overrides = {
            "org.apache.*": ConfigPolicy.USE_FIRST,
            "*": ConfigPolicy.MERGE_LATEST,
        }
        assert find_config_policy("org.apache.Foo", overrides) == ConfigPolicy.USE_FIRST
        assert find_config_policy("com.other", overrides) == ConfigPolicy.MERGE_LATEST
        assert find_config_policy("x", {}) is None

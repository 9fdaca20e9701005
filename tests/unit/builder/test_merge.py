"""
Unit tests for the merge engine.

Covers artifact conflict resolution, configuration policies, variable and
framework property clashes, requirements and extension merging including
registered handlers.
"""

from unittest.mock import MagicMock

import pytest

from conftest import aid, bundle, feature
from featurekit.builder import (
    ConfigPolicy,
    HandlerContext,
    MergeHandler,
    PostProcessHandler,
    merge_artifacts,
    merge_configurations,
    merge_extensions,
    merge_features,
    merge_json,
    select_artifact_override,
)
from featurekit.builder.merge import merge_framework_properties, merge_requirements, merge_variables
from featurekit.config import EXTENSION_NAME_CONTENT_PACKAGES
from featurekit.core import (
    ArtifactCollection,
    ArtifactsExtension,
    Configuration,
    ConfigurationCollection,
    JsonExtension,
    MergeConflictError,
    Requirement,
    TextExtension,
)

SOURCE_FEATURE = feature("g:source:1")


def ids(collection):
    return [a.id.to_mvn_id() for a in collection]


def merge(target, source, *rules, track_origin=False):
    merge_artifacts(target, source, SOURCE_FEATURE, [aid(r) for r in rules], track_origin)


class TestArtifactOverrides:

    @pytest.mark.parametrize("rule,target_version,source_version,expected", [
        ("g:a:*:*:HIGHEST", "1", "2", "g:a:2"),
        ("g:a:*:*:HIGHEST", "2", "1", "g:a:2"),
        ("g:a:*:*:HIGHEST", "1.10", "1.9", "g:a:1.10"),
        ("g:a:*:*:LATEST", "2", "1", "g:a:1"),
        ("g:a:*:*:FIRST", "1", "2", "g:a:1"),
        ("g:a:*:*:2", "1", "2", "g:a:2"),
        ("g:a:*:*:1", "1", "2", "g:a:1"),
        ("g:a:*:*:1.5", "1", "2", "g:a:1.5"),
        ("*:*:*:*:highest", "1", "2", "g:a:2"),
    ])
    def test_single_survivor(self, rule, target_version, source_version, expected):
        target = ArtifactCollection([bundle(f"g:a:{target_version}")])
        merge(target, ArtifactCollection([bundle(f"g:a:{source_version}")]), rule)
        assert ids(target) == [expected]

    def test_all_keeps_both_in_place(self):
        target = ArtifactCollection([bundle("g:a:1"), bundle("g:c:1")])
        merge(target, ArtifactCollection([bundle("g:a:2")]), "g:a:*:*:ALL")
        assert ids(target) == ["g:a:1", "g:a:2", "g:c:1"]

    def test_no_rule_is_fatal(self):
        target = ArtifactCollection([bundle("g:a:1")])
        with pytest.raises(MergeConflictError) as exc_info:
            merge(target, ArtifactCollection([bundle("g:a:2")]))
        message = str(exc_info.value)
        assert "Artifact override rule required" in message
        assert "g:a:1" in message and "g:a:2" in message

    def test_non_matching_rule_is_fatal(self):
        target = ArtifactCollection([bundle("g:a:1")])
        with pytest.raises(MergeConflictError):
            merge(target, ArtifactCollection([bundle("g:a:2")]), "other:*:*:*:HIGHEST")

    def test_alias_conflict(self):
        """An alias makes two differently named artifacts clash."""
        target = ArtifactCollection([bundle("g:a:1", alias="g:old")])
        with pytest.raises(MergeConflictError, match="g:old"):
            merge(target, ArtifactCollection([bundle("g:old:2")]))

    def test_alias_resolved_by_rule(self):
        target = ArtifactCollection([bundle("g:a:1", alias="g:old")])
        merge(target, ArtifactCollection([bundle("g:old:2")]), "g:old:*:*:FIRST")
        assert ids(target) == ["g:a:1"]

    def test_start_order_takes_lowest_non_zero(self):
        target = ArtifactCollection([bundle("g:a:1", start_order="5")])
        merge(target, ArtifactCollection([bundle("g:a:2", start_order="3")]), "g:a:*:*:HIGHEST")
        assert target[0].start_order == 3

        target = ArtifactCollection([bundle("g:a:1", start_order="5")])
        merge(target, ArtifactCollection([bundle("g:a:2")]), "g:a:*:*:HIGHEST")
        assert target[0].start_order == 5

    def test_select_returns_target_first(self):
        survivors = select_artifact_override(bundle("g:a:1"), bundle("g:a:2"), [aid("g:a:*:*:ALL")])
        assert [a.id.version for a in survivors] == ["1", "2"]


class TestMergeArtifacts:

    def test_appends_new_artifacts(self):
        target = ArtifactCollection([bundle("g:a:1")])
        merge(target, ArtifactCollection([bundle("g:b:1"), bundle("g:c:1")]))
        assert ids(target) == ["g:a:1", "g:b:1", "g:c:1"]
        assert target[1].feature_origins == [SOURCE_FEATURE.id]

    def test_same_id_merges_origins(self):
        existing = bundle("g:a:1")
        existing.set_feature_origins([aid("g:first:1")])
        target = ArtifactCollection([existing])
        merge(target, ArtifactCollection([bundle("g:a:1", start_order="2")]))

        assert ids(target) == ["g:a:1"]
        assert target[0].start_order == 2
        assert target[0].feature_origins == [aid("g:first:1"), SOURCE_FEATURE.id]

    def test_source_origins_are_kept(self):
        incoming = bundle("g:a:1")
        incoming.set_feature_origins([aid("g:elsewhere:1")])
        target = ArtifactCollection()
        merge(target, ArtifactCollection([incoming]))
        assert target[0].feature_origins == [aid("g:elsewhere:1")]

    def test_source_not_modified(self):
        source = ArtifactCollection([bundle("g:a:1")])
        target = ArtifactCollection()
        merge(target, source)
        target[0].metadata["x"] = "y"
        assert source[0].metadata == {}
        assert source[0].feature_origins == []

    def test_two_versions_from_one_feature(self):
        """Versions contributed by the same merge call never clash with each other."""
        target = ArtifactCollection()
        merge(target, ArtifactCollection([bundle("g:a:1"), bundle("g:a:2")]))
        assert ids(target) == ["g:a:1", "g:a:2"]

    def test_earlier_addition_depends_on_source_order(self):
        target = ArtifactCollection([bundle("g:a:1")])
        merge(target, ArtifactCollection([bundle("g:a:1"), bundle("g:a:2")]))
        assert ids(target) == ["g:a:1", "g:a:2"]

        target = ArtifactCollection([bundle("g:a:1")])
        with pytest.raises(MergeConflictError):
            merge(target, ArtifactCollection([bundle("g:a:2"), bundle("g:a:1")]))

    def test_tracked_origin_keeps_both(self):
        target = ArtifactCollection()
        merge(target, ArtifactCollection([bundle("g:a:1")]), track_origin=True)
        assert target[0].merge_origin == SOURCE_FEATURE.id

        merge(target, ArtifactCollection([bundle("g:a:2")]), track_origin=True)
        assert ids(target) == ["g:a:1", "g:a:2"]


class TestMergeConfigurations:

    @pytest.fixture
    def target(self):
        return ConfigurationCollection([Configuration("pid", {"a": 1, "b": 1}, [aid("g:first:1")])])

    @pytest.fixture
    def source(self):
        return ConfigurationCollection([Configuration("pid", {"b": 2, "c": 3})])

    def test_new_configuration_is_copied(self):
        source = ConfigurationCollection([Configuration("other", {"x": "1"})])
        target = ConfigurationCollection()
        merge_configurations(target, source, {}, SOURCE_FEATURE.id)

        found = target.get_configuration("other")
        assert found is not source[0]
        assert found.feature_origins == [SOURCE_FEATURE.id]
        assert found.get_property_origins("x") == [SOURCE_FEATURE.id]

    @pytest.mark.parametrize("overrides", [{}, {"*": ConfigPolicy.FAIL_ON_CLASH}, {"other": ConfigPolicy.USE_FIRST}])
    def test_clash_without_policy(self, target, source, overrides):
        with pytest.raises(MergeConflictError, match="Configuration override rule required"):
            merge_configurations(target, source, overrides, SOURCE_FEATURE.id)

    @pytest.mark.parametrize("policy,expected", [
        (ConfigPolicy.USE_FIRST, {"a": 1, "b": 1}),
        (ConfigPolicy.USE_LATEST, {"b": 2, "c": 3}),
        (ConfigPolicy.MERGE_LATEST, {"a": 1, "b": 2, "c": 3}),
        (ConfigPolicy.MERGE_FIRST, {"a": 1, "b": 1, "c": 3}),
    ])
    def test_policies(self, target, source, policy, expected):
        merge_configurations(target, source, {"pid": policy}, SOURCE_FEATURE.id)
        assert len(target) == 1
        assert target.get_configuration("pid").properties == expected

    def test_merge_tracks_origins(self, target, source):
        merge_configurations(target, source, {"*": ConfigPolicy.MERGE_LATEST}, SOURCE_FEATURE.id)
        found = target.get_configuration("pid")
        assert found.feature_origins == [aid("g:first:1"), SOURCE_FEATURE.id]
        assert found.get_property_origins("c") == [SOURCE_FEATURE.id]

    def test_property_clash_only_on_differing_value(self, target):
        same = ConfigurationCollection([Configuration("pid", {"a": 1, "d": 4})])
        merge_configurations(target, same, {"*": ConfigPolicy.FAIL_ON_PROPERTY_CLASH}, SOURCE_FEATURE.id)
        assert target.get_configuration("pid").properties == {"a": 1, "b": 1, "d": 4}

        differing = ConfigurationCollection([Configuration("pid", {"a": 1, "b": 9})])
        with pytest.raises(MergeConflictError, match="clash for property b"):
            merge_configurations(target, differing, {"*": ConfigPolicy.FAIL_ON_PROPERTY_CLASH}, SOURCE_FEATURE.id)


class TestPropertyMaps:

    def test_variables_clash(self):
        target, source = feature("g:t:1"), feature("g:s:1")
        target.variables["x"] = "1"
        source.variables["x"] = "2"
        with pytest.raises(MergeConflictError, match="Can't merge variable 'x'"):
            merge_variables(target, source, {})

    def test_variables_override_and_equal_values(self):
        target, source = feature("g:t:1"), feature("g:s:1")
        target.variables.update({"x": "1", "y": "same"})
        source.variables.update({"x": "2", "y": "same", "z": "new"})
        merge_variables(target, source, {"x": "3"})
        assert dict(target.variables) == {"x": "3", "y": "same", "z": "new"}
        assert target.variables.get_origins("z") == [source.id]

    def test_framework_property_clash(self):
        target, source = feature("g:t:1"), feature("g:s:1")
        target.framework_properties["p"] = "1"
        source.framework_properties["p"] = "2"
        with pytest.raises(MergeConflictError, match="framework property 'p'"):
            merge_framework_properties(target, source, {})
        merge_framework_properties(target, source, {"p": "3"})
        assert target.framework_properties["p"] == "3"

    def test_requirements_deduplicated(self):
        target = [Requirement("osgi.ee", {"v": "1"})]
        merge_requirements(target, [Requirement("osgi.ee", {"v": "1"}), Requirement("osgi.wiring")])
        assert [r.namespace for r in target] == ["osgi.ee", "osgi.wiring"]


class TestMergeJson:

    def test_arrays_concatenate(self):
        assert merge_json([1, 2], [3, 4], "ext") == [1, 2, 3, 4]

    def test_nested_object(self):
        merged = merge_json({"a": 1, "b": {"x": 1}}, {"b": {"y": 2}, "c": 3}, "ext")
        assert merged == {"a": 1, "b": {"x": 1, "y": 2}, "c": 3}

    def test_objects_merge_deeply(self):
        target = {"a": [1], "b": {"x": 1}, "c": 1}
        source = {"a": [2], "b": {"y": 2}, "c": 2, "d": None}
        assert merge_json(target, source, "ext") == {"a": [1, 2], "b": {"x": 1, "y": 2}, "c": 2, "d": None}

    def test_type_mismatch(self):
        with pytest.raises(MergeConflictError, match="different JSON types"):
            merge_json([1], {"a": 1}, "ext")


class TestMergeExtensions:

    @staticmethod
    def with_packages(text, *packages):
        result = feature(text)
        content = ArtifactsExtension(EXTENSION_NAME_CONTENT_PACKAGES)
        for package in packages:
            content.artifacts.add(bundle(package))
        result.extensions.add(content)
        return result

    def test_artifacts_extension_delegates_to_artifact_merge(self, context):
        source = self.with_packages("g:s:1", "g:p:zip:2", "g:q:zip:1")

        target = self.with_packages("g:t:1", "g:p:zip:1")
        with pytest.raises(MergeConflictError, match="Artifact override rule required"):
            merge_extensions(target, source, context, [])

        target = self.with_packages("g:t:1", "g:p:zip:1")
        merge_extensions(target, source, context, [aid("g:p:*:*:HIGHEST")])

        merged = target.extensions.get_by_name(EXTENSION_NAME_CONTENT_PACKAGES).artifacts
        assert ids(merged) == ["g:p:zip:2", "g:q:zip:1"]
        assert merged[0].feature_origins == [source.id]
        assert ids(source.extensions.get_by_name(EXTENSION_NAME_CONTENT_PACKAGES).artifacts) == [
            "g:p:zip:2", "g:q:zip:1"
        ]

    def test_text_joined_with_newline(self, context):
        target, source = feature("g:t:1"), feature("g:s:1")
        target.extensions.add(TextExtension("repoinit", text="create path /a"))
        source.extensions.add(TextExtension("repoinit", text="create path /b"))
        merge_extensions(target, source, context, [])
        assert target.extensions.get_by_name("repoinit").text == "create path /a\ncreate path /b"

    def test_new_extension_is_copied(self, context):
        target, source = feature("g:t:1"), feature("g:s:1")
        source.extensions.add(JsonExtension("api", value={"a": [1]}))
        merge_extensions(target, source, context, [])

        merged = target.extensions.get_by_name("api")
        merged.value["a"].append(2)
        assert source.extensions.get_by_name("api").value == {"a": [1]}

    def test_different_types(self, context):
        target, source = feature("g:t:1"), feature("g:s:1")
        target.extensions.add(TextExtension("ext"))
        source.extensions.add(JsonExtension("ext", value={}))
        with pytest.raises(MergeConflictError, match="different types for extension ext"):
            merge_extensions(target, source, context, [])

    def test_merge_handler_owns_extension(self, context):
        handler = MagicMock(spec=MergeHandler)
        handler.can_merge.return_value = True
        context.add_merge_handler(handler, "custom").set_handler_configuration("custom", {"k": "v"})

        target, source = feature("g:t:1"), feature("g:s:1")
        extension = TextExtension("ext", text="x")
        source.extensions.add(extension)
        merge_extensions(target, source, context, [], prototype_merge=True)

        handler.can_merge.assert_called_once_with(extension)
        handler_context, merged_target, merged_source, current, incoming = handler.merge.call_args.args
        assert isinstance(handler_context, HandlerContext)
        assert handler_context.configuration == {"k": "v"}
        assert handler_context.prototype_merge is True
        assert merged_target is target and merged_source is source
        assert current is None and incoming is extension
        assert "ext" not in target.extensions

    def test_declined_by_handler(self, context):
        handler = MagicMock(spec=MergeHandler)
        handler.can_merge.return_value = False
        context.add_merge_handler(handler, "custom")

        target, source = feature("g:t:1"), feature("g:s:1")
        source.extensions.add(TextExtension("ext", text="x"))
        merge_extensions(target, source, context, [])

        handler.merge.assert_not_called()
        assert target.extensions.get_by_name("ext").text == "x"

    def test_post_process_runs_per_extension(self, context):
        handler = MagicMock(spec=PostProcessHandler)
        context.add_post_process_handler(handler, "post")

        target, source = feature("g:t:1"), feature("g:s:1")
        target.extensions.add(TextExtension("one"))
        source.extensions.add(TextExtension("two"))
        merge_extensions(target, source, context, [])

        assert [c.args[2].name for c in handler.post_process.call_args_list] == ["one", "two"]


class TestMergeFeatures:

    def test_full_merge(self, context):
        target = feature("g:t:1", "g:a:1")
        source = feature("g:s:1", "g:b:1")
        source.configurations.add(Configuration("pid", {"x": "1"}))
        source.framework_properties["p"] = "v"
        source.requirements.append(Requirement("osgi.ee"))
        source.capabilities.append(Requirement("osgi.service"))
        source.extensions.add(TextExtension("repoinit", text="x"))

        merge_features(target, source, context, [], {})

        assert ids(target.bundles) == ["g:a:1", "g:b:1"]
        assert "pid" in target.configurations
        assert target.framework_properties["p"] == "v"
        assert len(target.requirements) == 1
        assert len(target.capabilities) == 1
        assert "repoinit" in target.extensions

    def test_context_overrides_applied(self, context):
        context.add_variables_overrides({"v": "override"})
        target, source = feature("g:t:1"), feature("g:s:1")
        source.variables["v"] = "own"
        merge_features(target, source, context, [], {})
        assert target.variables["v"] == "override"

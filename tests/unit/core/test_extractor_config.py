"""
Tests for tag rules, extractor configuration and configuration files.
"""

import json

import pytest
import yaml

from xml_node_stream.core.base import DEFAULT_TAG_RULES, ConfigurationError, TagRule
from xml_node_stream.core.config import ExtractorConfig, FileConfig, load_config_file, resolve_config


class TestTagRule:
    """Test TagRule validation."""

    def test_from_sequence(self):
        rule = TagRule.from_value(["</", ">", -1])
        assert rule == TagRule("</", ">", -1)
        assert rule.to_list() == ["</", ">", -1]

    @pytest.mark.parametrize("value", [
        ("", ">", 1),
        ("<", "", 1),
        ("<", ">", 2),
        ("<", ">", True),
        (1, ">", 0),
        ("<", ">"),
        "<>1",
    ])
    def test_invalid_rules(self, value):
        with pytest.raises(ConfigurationError):
            TagRule.from_value(value)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            TagRule("<", ">", 5)


class TestExtractorConfig:
    """Test ExtractorConfig defaults and validation."""

    def test_defaults(self):
        config = ExtractorConfig()
        assert config.tag_rules == DEFAULT_TAG_RULES
        assert config.capture_depth == 1
        assert config.expect_gt is False
        assert config.encoding == "utf-8"

    def test_default_rule_order(self):
        assert [rule.to_list() for rule in DEFAULT_TAG_RULES] == [
            ["<?", "?>", 0],
            ["</", ">", -1],
            ["<", ">", 1],
        ]

    def test_from_options_with_aliases(self):
        config = ExtractorConfig.from_options({
            "tags": [["{/", "}", -1], ["{", "}", 1]],
            "captureDepth": 3,
            "expectGT": True,
        })
        assert config.tag_rules == (TagRule("{/", "}", -1), TagRule("{", "}", 1))
        assert config.capture_depth == 3
        assert config.expect_gt is True

    def test_none_selects_default(self):
        config = ExtractorConfig.from_options({"tag_rules": None, "capture_depth": None})
        assert config == ExtractorConfig()

    def test_from_options_passthrough(self):
        config = ExtractorConfig(capture_depth=4)
        assert ExtractorConfig.from_options(config) is config
        assert ExtractorConfig.from_options(None) == ExtractorConfig()

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="captureDepht"):
            ExtractorConfig.from_options({"captureDepht": 2})

    def test_option_given_twice(self):
        with pytest.raises(ConfigurationError):
            ExtractorConfig.from_options({"capture_depth": 1, "captureDepth": 2})

    @pytest.mark.parametrize("options", [
        {"capture_depth": -1},
        {"capture_depth": 1.5},
        {"capture_depth": "2"},
        {"capture_depth": True},
        {"expect_gt": "yes"},
        {"expect_gt": 1},
        {"tag_rules": []},
        {"tag_rules": "<>"},
        {"encoding": "no-such-codec"},
    ])
    def test_invalid_values(self, options):
        with pytest.raises(ConfigurationError):
            ExtractorConfig.from_options(options)

    def test_to_dict_round_trip(self):
        config = ExtractorConfig(capture_depth=2, expect_gt=True, encoding="latin-1")
        data = config.to_dict()

        assert data["tag_rules"] == [["<?", "?>", 0], ["</", ">", -1], ["<", ">", 1]]
        assert ExtractorConfig.from_options(data) == config

    def test_frozen(self):
        config = ExtractorConfig()
        with pytest.raises(AttributeError):
            config.capture_depth = 5


class TestResolveConfig:
    """Test combining a base configuration with keyword overrides."""

    def test_override_replaces_alias_key(self):
        config = resolve_config({"captureDepth": 2, "expectGT": True}, capture_depth=1)
        assert config.capture_depth == 1
        assert config.expect_gt is True

    def test_alias_override_replaces_snake_case_key(self):
        config = resolve_config({"capture_depth": 2}, captureDepth=3)
        assert config.capture_depth == 3

    def test_override_of_config_object(self):
        base = ExtractorConfig(capture_depth=2, expect_gt=True)
        config = resolve_config(base, expect_gt=False)
        assert config == ExtractorConfig(capture_depth=2, expect_gt=False)

    def test_none_override_keeps_base(self):
        base = ExtractorConfig(capture_depth=2, encoding="latin-1")
        assert resolve_config(base, capture_depth=None, encoding=None) == base

    def test_no_overrides(self):
        base = ExtractorConfig(capture_depth=4)
        assert resolve_config(base) is base
        assert resolve_config() == ExtractorConfig()

    def test_duplicate_within_one_mapping(self):
        with pytest.raises(ConfigurationError, match="given twice"):
            resolve_config({"capture_depth": 1, "captureDepth": 2}, expect_gt=True)

    def test_unknown_override(self):
        with pytest.raises(ConfigurationError, match="capture_dept"):
            resolve_config({"capture_depth": 1}, capture_dept=2)


class TestLoadConfigFile:
    """Test loading YAML and JSON configuration files."""

    def test_yaml_with_extractor_section(self, tmp_path):
        path = tmp_path / "orphanet.yaml"
        path.write_text(yaml.safe_dump({
            "extractor": {"captureDepth": 2, "expectGT": True},
            "chunk_size": 1000,
        }))

        file_config = load_config_file(path)

        assert isinstance(file_config, FileConfig)
        assert file_config.extractor.capture_depth == 2
        assert file_config.extractor.expect_gt is True
        assert file_config.settings == {"chunk_size": 1000}

    def test_yaml_top_level_options(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("capture_depth: 0\nchunk_size: 4096\n")

        file_config = load_config_file(path)

        assert file_config.extractor.capture_depth == 0
        assert file_config.settings == {"chunk_size": 4096}

    def test_multi_document_yaml_uses_first(self, tmp_path):
        path = tmp_path / "multi.yaml"
        path.write_text("capture_depth: 2\n---\ncapture_depth: 3\n")

        assert load_config_file(path).extractor.capture_depth == 2

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"extractor": {"tags": [["<", ">", 1], ["</", ">", -1]]}}))

        rules = load_config_file(path).extractor.tag_rules
        assert rules == (TagRule("<", ">", 1), TagRule("</", ">", -1))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config_file(path).extractor == ExtractorConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("capture_depth = 1\n")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_misspelled_top_level_option(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("capture_dept: 2\nexpect_gt: true\n")
        with pytest.raises(ConfigurationError, match="capture_dept"):
            load_config_file(path)

    def test_unknown_key_beside_extractor_section(self, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("extractor:\n  capture_depth: 2\nchunk_sise: 1000\n")
        with pytest.raises(ConfigurationError, match="chunk_sise"):
            load_config_file(path)

    def test_extractor_option_beside_extractor_section(self, tmp_path):
        path = tmp_path / "split.yaml"
        path.write_text("extractor:\n  capture_depth: 2\nexpect_gt: true\n")
        with pytest.raises(ConfigurationError, match="expect_gt"):
            load_config_file(path)

    def test_extractor_section_not_a_mapping(self, tmp_path):
        path = tmp_path / "section.yaml"
        path.write_text("extractor:\n  - capture_depth\n")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_invalid_option_in_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("extractor:\n  capture_depth: -3\n")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_shipped_examples_load(self, test_data_dir):
        examples_dir = test_data_dir.parent / "config_examples"
        paths = sorted(examples_dir.glob("*.yaml"))

        assert paths
        for path in paths:
            assert isinstance(load_config_file(path).extractor, ExtractorConfig)

"""
Extraction session configuration.

Options are validated once, when a session is constructed, so that a typo or
an out-of-range value fails fast instead of surfacing mid-stream.
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from xml_node_stream.core.base import DEFAULT_TAG_RULES, ConfigurationError, TagRule

logger = logging.getLogger(__name__)

# Option names used by configuration files written for the camelCase API
OPTION_ALIASES = {
    "tags": "tag_rules",
    "tagRules": "tag_rules",
    "captureDepth": "capture_depth",
    "expectGT": "expect_gt",
}

# Top-level configuration file keys that are not extractor options
FILE_SETTINGS = frozenset({"chunk_size"})


@dataclass(frozen=True)
class ExtractorConfig:
    """
    Validated options for one extraction session.

    Attributes:
        tag_rules: Ordered rules; the first start delimiter matching at the
            scan position wins
        capture_depth: Nesting level at which complete nodes are emitted
        expect_gt: Treat a ``+1`` tag ending in ``/`` before its end delimiter
            as self-closing
        encoding: Codec used for delimiters and emitted node text
    """

    tag_rules: Tuple[TagRule, ...] = DEFAULT_TAG_RULES
    capture_depth: int = 1
    expect_gt: bool = False
    encoding: str = "utf-8"

    def __post_init__(self):
        rules = tuple(TagRule.from_value(rule) for rule in self.tag_rules)
        if not rules:
            raise ConfigurationError("tag_rules must contain at least one rule")
        object.__setattr__(self, "tag_rules", rules)

        if isinstance(self.capture_depth, bool) or not isinstance(self.capture_depth, int):
            raise ConfigurationError(
                f"capture_depth must be an integer, got {self.capture_depth!r}"
            )
        if self.capture_depth < 0:
            raise ConfigurationError("capture_depth cannot be negative")

        if not isinstance(self.expect_gt, bool):
            raise ConfigurationError(f"expect_gt must be a boolean, got {self.expect_gt!r}")

        try:
            codecs.lookup(self.encoding)
        except (LookupError, TypeError):
            raise ConfigurationError(f"Unknown encoding: {self.encoding!r}")

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "ExtractorConfig":
        """
        Build a configuration from a mapping of option names.

        Unknown keys are rejected to catch caller typos. camelCase aliases
        (``tags``, ``captureDepth``, ``expectGT``) are accepted.

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid
        """
        if options is None:
            return cls()
        if isinstance(options, ExtractorConfig):
            return options

        normalized = normalize_options(options)
        if "tag_rules" in normalized:
            value = normalized["tag_rules"]
            if isinstance(value, (str, bytes)):
                raise ConfigurationError("tag_rules must be a sequence of rules")
            normalized["tag_rules"] = tuple(value)

        return cls(**normalized)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for serialization."""
        return {
            "tag_rules": [rule.to_list() for rule in self.tag_rules],
            "capture_depth": self.capture_depth,
            "expect_gt": self.expect_gt,
            "encoding": self.encoding,
        }


def normalize_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map option names to their snake_case form, dropping ``None`` values.

    Raises:
        ConfigurationError: If a key is unknown or names an option twice
    """
    normalized: Dict[str, Any] = {}
    for key, value in options.items():
        name = OPTION_ALIASES.get(key, key)
        if name not in ExtractorConfig.__dataclass_fields__:
            raise ConfigurationError(f"Unknown extractor option: {key!r}")
        if name in normalized:
            raise ConfigurationError(f"Option given twice: {name!r}")
        # None selects the default
        if value is not None:
            normalized[name] = value
    return normalized


def resolve_config(
    config: Optional[Union[ExtractorConfig, Mapping[str, Any]]] = None,
    **options
) -> ExtractorConfig:
    """
    Combine a base configuration with keyword overrides.

    ``config`` and ``options`` are normalized separately, so an override
    replaces a camelCase key of the base mapping. ``None`` overrides are
    ignored.

    Raises:
        ConfigurationError: If an option is unknown or invalid
    """
    if not options:
        return ExtractorConfig.from_options(config)
    if isinstance(config, ExtractorConfig):
        merged = config.to_dict()
    else:
        merged = normalize_options(config or {})
    merged.update(normalize_options(options))
    return ExtractorConfig.from_options(merged)


@dataclass
class FileConfig:
    """Contents of a configuration file: extractor options plus the rest."""

    extractor: ExtractorConfig
    settings: Dict[str, Any] = field(default_factory=dict)


def load_config_file(config_path: Union[str, Path]) -> FileConfig:
    """
    Load extractor options from a YAML or JSON file.

    Options may sit at the top level or under an ``extractor`` section.
    ``chunk_size`` is returned in ``settings``; any other key is rejected.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the format is unsupported or options are invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    suffix = config_path.suffix.lower()
    with open(config_path, "r", encoding="utf-8") as f:
        if suffix in [".yaml", ".yml"]:
            try:
                raw_config = yaml.safe_load(f)
            except yaml.composer.ComposerError:
                # Multi-document YAML, load the first document
                f.seek(0)
                raw_config = next(yaml.safe_load_all(f))
        elif suffix == ".json":
            raw_config = json.load(f)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {config_path.suffix}")

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

    settings = {k: v for k, v in raw_config.items() if k in FILE_SETTINGS}
    if "extractor" in raw_config:
        options = raw_config["extractor"] or {}
        if not isinstance(options, dict):
            raise ConfigurationError(f"'extractor' section must be a mapping: {config_path}")
        unknown = set(raw_config) - FILE_SETTINGS - {"extractor"}
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys beside 'extractor': {', '.join(sorted(unknown))}"
            )
    else:
        # Anything other than a file setting must be an extractor option
        options = {k: v for k, v in raw_config.items() if k not in FILE_SETTINGS}

    extractor = ExtractorConfig.from_options(options)
    logger.debug(f"Loaded configuration from {config_path}: {extractor.to_dict()}")
    return FileConfig(extractor=extractor, settings=settings)

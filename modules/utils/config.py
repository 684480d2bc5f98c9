"""
Centralized configuration manager.
Loads the YAML config and provides dotted-path access with defaults.

Every known field has a type and a default in ``_CONFIG_SCHEMA``. Values of
the wrong type are logged and replaced by the default instead of raising:
a typo in an optional display setting should not keep the predictor from
starting, and a string frame rate should not reach the performance monitor.
"""

import copy
import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULT_CONFIG_PATH = os.path.join(_CONFIG_DIR, "config.yaml")

# section -> field -> (expected type, default)
_CONFIG_SCHEMA = {
    "model": {
        "artifact_path": (str, "models/weights/asl_model.json"),
    },
    "display": {
        "hold_last_on_hand_lost": (bool, False),
    },
    "performance": {
        "target_fps": (int, 30),
        "window_size": (int, 100),
    },
    "logging": {
        "level": (str, "INFO"),
        "file": (str, None),
        "max_size_mb": (float, 10),
        "backup_count": (int, 3),
    },
}

_MISSING = object()


def _schema_defaults() -> dict:
    return {
        section: {name: default for name, (_, default) in fields.items()}
        for section, fields in _CONFIG_SCHEMA.items()
    }


def _type_matches(value, expected_type) -> bool:
    # bool is an int subclass; only accept it where a bool is expected
    if isinstance(value, bool):
        return expected_type is bool
    if expected_type is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected_type)


def _lookup(data, keys):
    for key in keys:
        if not isinstance(data, dict) or key not in data:
            return _MISSING
        data = data[key]
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager.

    Until :meth:`load` is called every lookup falls back to the schema
    defaults, so library code can read config without a YAML file.
    """

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file; a missing file means defaults."""
        config_path = config_path or DEFAULT_CONFIG_PATH

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            data = {}

        if not isinstance(data, dict):
            logger.warning("Config root in %s is %s, expected a mapping; ignoring it",
                           config_path, type(data).__name__)
            data = {}

        self._data = data
        self._validate()
        return self

    def update(self, overrides: dict):
        """Merge overrides (e.g. from CLI flags) into the loaded config."""
        self._data = _deep_merge(self._data, overrides)
        self._validate()
        return self

    def _validate(self):
        """Check known fields, replacing bad values with their defaults.

        Returns:
            list of warning strings (also logged)
        """
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                continue
            if not isinstance(section, dict):
                warnings.append("Section '%s' should be a mapping, got %s; using defaults"
                                % (section_name, type(section).__name__))
                self._data[section_name] = {}
                continue
            for field_name, (expected_type, default) in fields.items():
                value = section.get(field_name)
                if value is None or _type_matches(value, expected_type):
                    continue
                warnings.append("%s.%s: expected %s, got %s (%r); using %r"
                                % (section_name, field_name, expected_type.__name__,
                                   type(value).__name__, value, default))
                section[field_name] = default

        for w in warnings:
            logger.warning("Config validation: %s", w)
        if not warnings:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get a value by dotted path: 'model.artifact_path'.

        Lookup order: loaded config, schema default, ``default``.
        """
        keys = key_path.split(".")
        for source in (self._data, _schema_defaults()):
            value = _lookup(source, keys)
            if value is not _MISSING and value is not None:
                return value
        return default

    def get_section(self, section: str) -> dict:
        """A section with schema defaults filled in for missing fields."""
        loaded = self._data.get(section)
        merged = copy.deepcopy(_schema_defaults().get(section, {}))
        if isinstance(loaded, dict):
            merged.update(loaded)
        return merged

    @property
    def model(self) -> dict:
        return self.get_section("model")

    @property
    def display(self) -> dict:
        return self.get_section("display")

    @property
    def performance(self) -> dict:
        return self.get_section("performance")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    def resolve_path(self, path):
        """Resolve a config-relative path against the project root."""
        if path is None or os.path.isabs(path):
            return path
        return os.path.join(_BASE_DIR, path)

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}

"""Configuration loader and validator for devwatch.

Provides ``load_config(path)`` which reads a JSON config (with
comment and trailing-comma tolerant sanitizer) and merges user
overrides from ``~/.config/devwatch/config.json``.

Also provides ``validate_config(conf)`` which normalizes and
validates config keys, raising ``ConfigurationError`` on invalid values.
"""

from __future__ import annotations

import json
import logging
import os
import re

from devwatch.errors import ConfigurationError
from devwatch.input.capabilities import INPUT_KINDS

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = '~/.config/devwatch/config.json'

# Single source of truth for default configuration
DEFAULT_CONFIG: dict = {
    'subsystem': '',
    'device_type': '',
    'attributes': {},
    'properties': {},
    'tags': [],
    'input_kinds': [],
    'debug': False,
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _sanitize_json_text(s: str) -> str:
    """Remove ``#``/``//`` comments and trailing commas from JSON-like text."""
    # Hash-style line comments
    s = re.sub(r"^[ \t]*#.*$", "", s, flags=re.MULTILINE)
    # C++-style line comments
    s = re.sub(r"^[ \t]*//.*$", "", s, flags=re.MULTILINE)
    # Trailing commas before } or ]
    s = re.sub(r",\s*(\}|\])", r"\1", s)
    return s


def _string_map(name: str, value) -> dict:
    if not isinstance(value, dict):
        raise ConfigurationError(f"Invalid '{name}': must be an object of name to string")
    for key, item in value.items():
        if not key:
            raise ConfigurationError(f"Invalid '{name}': empty name")
        if not isinstance(item, str):
            raise ConfigurationError(f"Invalid '{name}' value for '{key}': must be a string")
    return dict(value)


def _string_list(name: str, value) -> list:
    if not isinstance(value, list):
        raise ConfigurationError(f"Invalid '{name}': must be a list of strings")
    for item in value:
        if not isinstance(item, str) or not item:
            raise ConfigurationError(f"Invalid '{name}' entry: {item!r}")
    return list(value)


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_config(conf: dict | None) -> dict:
    """Validate and normalize configuration dictionary.

    Returns a normalized dict with all expected keys.
    Raises ``ConfigurationError`` on invalid values.
    """
    if conf is None:
        conf = {}
    if not isinstance(conf, dict):
        raise ConfigurationError("Configuration must be a JSON object")

    defaults = dict(DEFAULT_CONFIG)
    out = dict(defaults)

    # subsystem / device_type — strings, empty means any
    for key in ('subsystem', 'device_type'):
        val = conf.get(key, defaults[key])
        if val is None:
            val = ''
        if not isinstance(val, str):
            raise ConfigurationError(f"Invalid '{key}': must be a string")
        out[key] = val

    out['attributes'] = _string_map('attributes', conf.get('attributes', {}))
    out['properties'] = _string_map('properties', conf.get('properties', {}))
    out['tags'] = _string_list('tags', conf.get('tags', []))

    kinds = _string_list('input_kinds', conf.get('input_kinds', []))
    for kind in kinds:
        if kind not in INPUT_KINDS:
            raise ConfigurationError(
                f"Invalid 'input_kinds' entry: {kind!r} (expected one of {', '.join(INPUT_KINDS)})"
            )
    out['input_kinds'] = kinds

    # debug — boolean
    dbg = conf.get('debug', defaults['debug'])
    if not isinstance(dbg, bool):
        raise ConfigurationError("Invalid 'debug' flag: must be boolean")
    out['debug'] = dbg

    return out


def _read_and_merge(path: str, target_config: dict, debug: bool = False) -> None:
    """Read a JSON file, validate, and merge into *target_config*.

    Raises ``ConfigurationError`` if the file cannot be read, parsed or
    validated; *target_config* is left untouched in that case.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc

    try:
        cfg = json.loads(raw)
    except json.JSONDecodeError:
        try:
            cfg = json.loads(_sanitize_json_text(raw))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"JSON parse error in {path}: {exc}") from exc

    try:
        validated = validate_config(cfg)
    except ConfigurationError as verr:
        raise ConfigurationError(f"Invalid config {path}: {verr}") from verr

    if debug:
        logger.debug("Config %s sets: %s", path, ', '.join(sorted(cfg)) or '-')

    # Only override keys explicitly present in source
    for k in cfg:
        if k in validated:
            target_config[k] = validated[k]


# ------------------------------------------------------------------
# Top-level loader
# ------------------------------------------------------------------

def load_config(config_path: str | None = None, debug: bool = False) -> dict:
    """Load and merge configuration.

    If *config_path* is given, uses only that file (returns defaults if
    the file does not exist).  Otherwise falls back to
    ``~/.config/devwatch/config.json``.

    Returns the effective configuration dict (always has all default keys).
    Raises ``ConfigurationError`` if an existing file is unreadable, is not
    valid JSON or fails validation.
    """
    default_config = validate_config(None)

    if config_path is not None:
        # Explicit path — use only it, no fallback
        if os.path.exists(config_path):
            _read_and_merge(config_path, default_config, debug=debug)
        return default_config

    user_cfg = os.path.expanduser(USER_CONFIG_PATH)
    if os.path.exists(user_cfg):
        _read_and_merge(user_cfg, default_config, debug=debug)

    return default_config

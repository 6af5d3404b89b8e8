#  Copyright (c) 2025 Tom Villani, Ph.D.

"""Configuration file discovery and loading for richmark.

Settings can live in ``.richmark.toml``, ``.richmark.yaml``/``.yml``,
``.richmark.json`` or the ``[tool.richmark]`` table of a ``pyproject.toml``.
Top-level keys map onto :class:`~richmark.options.EditorOptions` fields and
the ``markdown_import``/``markdown_export`` tables onto the Markdown options:

.. code-block:: toml

    projection_debounce_seconds = 0.25
    heading_shortcuts = true

    [markdown_export]
    bullet_symbol = "*"
    horizontal_rule = "---"
"""

import json
import logging
import os
import sys
from dataclasses import fields
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]
from typing import Any, Dict, Optional

import yaml

from richmark.constants import CONFIG_ENV_VAR, CONFIG_FILENAMES
from richmark.exceptions import ConfigError
from richmark.options import EditorOptions, MarkdownExportOptions, MarkdownImportOptions

logger = logging.getLogger(__name__)

_NESTED_OPTIONS = {
    "markdown_import": MarkdownImportOptions,
    "markdown_export": MarkdownExportOptions,
}


def _load_pyproject_section(pyproject_path: Path) -> Dict[str, Any]:
    """Load the ``[tool.richmark]`` table of a pyproject.toml file.

    Returns an empty dict when the table is missing.

    Raises
    ------
    ConfigError
        If the file is not valid TOML or the section is not a table

    """
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in pyproject.toml {pyproject_path}: {e}", str(pyproject_path), e) from e
    except OSError as e:
        raise ConfigError(f"Error reading pyproject.toml {pyproject_path}: {e}", str(pyproject_path), e) from e

    config = data.get("tool", {}).get("richmark")
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(
            f"[tool.richmark] section in {pyproject_path} must be a table, got {type(config).__name__}",
            str(pyproject_path),
        )
    return config


def find_config_in_parents(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find a configuration file by searching parent directories.

    Each directory from ``start_dir`` up to the filesystem root is checked
    for the dedicated config files in :data:`CONFIG_FILENAMES` order, then
    for a ``pyproject.toml`` holding a ``[tool.richmark]`` table.

    Parameters
    ----------
    start_dir : Path, optional
        Starting directory, defaults to the current working directory

    Returns
    -------
    Path or None
        First configuration file found

    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        pyproject_path = current / "pyproject.toml"
        if pyproject_path.is_file():
            try:
                if _load_pyproject_section(pyproject_path):
                    return pyproject_path
            except ConfigError:
                logger.debug(f"Skipping unreadable {pyproject_path}")

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def discover_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Locate the configuration file to use.

    Search order:

    1. The path in the ``RICHMARK_CONFIG`` environment variable
    2. Parent directories of ``start_dir`` (see :func:`find_config_in_parents`)
    3. The dedicated config files in the user's home directory

    Returns
    -------
    Path or None
        Path of the configuration file, or None when there is none

    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    found = find_config_in_parents(start_dir)
    if found:
        return found

    home = Path.home()
    for filename in CONFIG_FILENAMES:
        config_path = home / filename
        if config_path.is_file():
            return config_path
    return None


def load_config_file(config_path: Path | str) -> Dict[str, Any]:
    """Load configuration from a JSON, TOML, YAML or pyproject.toml file.

    The format is chosen from the file name: ``pyproject.toml`` yields its
    ``[tool.richmark]`` table, other ``.toml``, ``.yaml``/``.yml`` and
    ``.json`` files are read whole.

    Parameters
    ----------
    config_path : Path or str
        Path to the configuration file

    Returns
    -------
    dict
        Configuration dictionary

    Raises
    ------
    ConfigError
        If the file is missing, unreadable, malformed or of an unknown format

    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file does not exist: {config_path}", str(config_path))
    if not config_path.is_file():
        raise ConfigError(f"Configuration path is not a file: {config_path}", str(config_path))

    filename = config_path.name.lower()
    ext = config_path.suffix.lower()

    if filename == "pyproject.toml":
        config = _load_pyproject_section(config_path)
    elif ext == ".toml":
        config = _load_toml_config(config_path)
    elif ext in (".yaml", ".yml"):
        config = _load_yaml_config(config_path)
    elif ext == ".json":
        config = _load_json_config(config_path)
    else:
        raise ConfigError(f"Unsupported config file format: {ext}. Use .json, .toml, or .yaml", str(config_path))

    logger.debug(f"Loaded configuration from {config_path}")
    return config


def _load_toml_config(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {config_path}: {e}", str(config_path), e) from e
    except OSError as e:
        raise ConfigError(f"Error reading TOML config {config_path}: {e}", str(config_path), e) from e


def _load_json_config(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}", str(config_path), e) from e
    except OSError as e:
        raise ConfigError(f"Error reading JSON config {config_path}: {e}", str(config_path), e) from e

    if not isinstance(config, dict):
        raise ConfigError(f"JSON config file must contain an object, got {type(config).__name__}", str(config_path))
    return config


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {config_path}: {e}", str(config_path), e) from e
    except OSError as e:
        raise ConfigError(f"Error reading YAML config {config_path}: {e}", str(config_path), e) from e

    # An empty YAML document loads as None
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(
            f"YAML config file must contain a mapping at root level, got {type(config).__name__}", str(config_path)
        )
    return config


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge two configuration dictionaries, ``override`` winning.

    Examples
    --------
    >>> merge_configs({"markdown_export": {"bullet_symbol": "-"}}, {"markdown_export": {"horizontal_rule": "---"}})
    {'markdown_export': {'bullet_symbol': '-', 'horizontal_rule': '---'}}

    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def _build_options(options_class: type, values: Dict[str, Any], section: str) -> Any:
    known = {f.name for f in fields(options_class)}
    unknown = sorted(set(values) - known)
    if unknown:
        where = f" in [{section}]" if section else ""
        raise ConfigError(f"Unknown configuration keys{where}: {', '.join(unknown)}")
    try:
        return options_class(**values)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}", original_error=e) from e


def options_from_config(config: Dict[str, Any], base: Optional[EditorOptions] = None) -> EditorOptions:
    """Build :class:`EditorOptions` from a configuration dictionary.

    Parameters
    ----------
    config : dict
        Loaded configuration; ``markdown_import`` and ``markdown_export``
        hold nested tables
    base : EditorOptions, optional
        Options whose values are kept for keys the configuration omits

    Returns
    -------
    EditorOptions
        Resulting options

    Raises
    ------
    ConfigError
        If a key is unknown or a value is rejected by the options

    """
    base = base or EditorOptions()
    values = dict(config)

    for name, options_class in _NESTED_OPTIONS.items():
        section = values.pop(name, None)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"[{name}] must be a table, got {type(section).__name__}")
        current = getattr(base, name)
        merged = {f.name: getattr(current, f.name) for f in fields(current)}
        merged.update(section)
        values[name] = _build_options(options_class, merged, name)

    merged = {f.name: getattr(base, f.name) for f in fields(base)}
    merged.update(values)
    return _build_options(EditorOptions, merged, "")


def load_options(config_path: Optional[Path | str] = None) -> EditorOptions:
    """Load :class:`EditorOptions` from ``config_path`` or the discovered configuration file.

    Defaults are returned when no configuration file exists.
    """
    path = Path(config_path) if config_path is not None else discover_config_file()
    if path is None:
        return EditorOptions()
    return options_from_config(load_config_file(path))


__all__ = [
    "discover_config_file",
    "find_config_in_parents",
    "load_config_file",
    "load_options",
    "merge_configs",
    "options_from_config",
]

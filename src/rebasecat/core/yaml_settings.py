"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

CONFIG_FILENAME = "rebasecat.yaml"
DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"

# Used while the configuration itself is loading, before the real
# logger can be configured from it
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from rebasecat.core.log import Logger
        _bootstrap_logger = Logger()
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Close the bootstrap logger once Config owns logging."""
    global _bootstrap_logger
    if _bootstrap_logger:
        _bootstrap_logger.close()
        _bootstrap_logger = None


def cli_includes(argv: list[str] | None = None) -> list[str]:
    """Collect ``--include FILE`` values from the command line.

    These must be known before pydantic-settings parses the CLI,
    because the included files feed the same parse.
    """
    argv = sys.argv[1:] if argv is None else argv
    includes = []
    args = iter(argv)
    for arg in args:
        if arg == "--include":
            value = next(args, None)
            if value is not None:
                includes.append(value)
        elif arg.startswith("--include="):
            includes.append(arg.split("=", 1)[1])
    return includes


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with ``include:`` and ``--include``.

    Deep merges, lowest priority first:
        package defaults < user config < project config < CLI includes

    Any file may name further files under ``include:``; those are
    loaded first and then overridden by the including file.
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        includes = cli_includes()
        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base and includes:
            base = [base] if isinstance(base, (str, os.PathLike)) else list(base)
            yaml_file = base + includes
        elif includes:
            yaml_file = includes
        else:
            yaml_file = base

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, *args, **kwargs):  # noqa: ARG002
        """Load and deep merge every configuration file that exists.

        Merging is always deep here, whatever pydantic-settings asks
        for in its extra arguments.

        Args:
            files: Explicit file path(s) given to the source or via
                --include

        Returns:
            Merged configuration dictionary
        """
        candidates = [
            DEFAULTS_FILE,
            Path(user_config_dir("rebasecat", appauthor=False))
            / CONFIG_FILENAME,
            Path(CONFIG_FILENAME),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            for f in files:
                path = Path(f).expanduser()
                if path not in candidates:
                    candidates.append(path)

        result = {}
        for file_path in candidates:
            if not file_path.is_file():
                _get_bootstrap_logger().debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
                continue
            with _get_bootstrap_logger().span(
                "Configuration loading", file=str(file_path)
            ):
                data = self._load_file_recursive(file_path, set())
                result = deep_merge(result, data)

        return result

    def _load_file_recursive(
        self, filepath: Path, visited: set[Path]
    ) -> dict:
        """Load one file, resolving its include: directives.

        Raises:
            ValueError: If an include cycle is found
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        merged = {}
        for inc in includes:
            inc_path = Path(inc).expanduser()
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            with _get_bootstrap_logger().span(
                f"Including {inc_path.name}",
                included_from=str(filepath),
            ):
                merged = deep_merge(
                    merged, self._load_file_recursive(inc_path, visited.copy())
                )

        return deep_merge(merged, data)


def deep_merge(base: dict, override: dict) -> dict:
    """Return a new dict with override merged into base.

    Nested dicts merge key by key; anything else in override
    replaces the base value.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result

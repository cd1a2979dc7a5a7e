import json
import logging
from pathlib import Path
from typing import Any

import toml
import yaml

import caascontext._globals as _globals

logger = logging.getLogger(__name__)


class Config:
    """
    Settings-file loader for the caasbase CLI.

    Loads configuration from TOML, JSON, or YAML files and exposes the `[deploy]`
    table as a click `default_map`, so file values sit below environment variables
    and command-line options in precedence.

    File format is auto-detected based on file extension.
    """

    @staticmethod
    def resolve_extension(path: Path) -> str:
        return Path(path).suffix.lower().lstrip(".")

    @staticmethod
    def dump(path: Path) -> dict:
        """
        Parse the settings file at `path` and return its contents.

        Raises:
            FileNotFoundError: If the file does not exist.
            TypeError: If the extension is unsupported or the document is not a mapping.
            RuntimeError: If parsing fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"[Config.dump] No settings file at {path}")

        file_ext = Config.resolve_extension(path)

        def parse_toml(path: Path) -> dict:
            return toml.load(path)

        def parse_json(path: Path) -> dict:
            return json.loads(path.read_text(encoding="utf-8"))

        def parse_yaml(path: Path) -> dict:
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}

        parsers = {
            "toml": parse_toml,
            "json": parse_json,
            "yaml": parse_yaml,
            "yml": parse_yaml,
        }

        if file_ext not in parsers:
            raise TypeError(f"[Config.dump] Unsupported config format: {file_ext}")
        try:
            parsed_data = parsers[file_ext](path)
        except Exception as e:
            raise RuntimeError(f"[Config.dump] Failed to parse config at {path}: {e}") from e
        if not isinstance(parsed_data, dict):
            raise TypeError(f"[Config.dump] Parsed config is not a dict: {type(parsed_data)}")
        return parsed_data

    @staticmethod
    def fetch(path: Path | None = None, required: bool = False) -> dict:
        """
        Load the settings file, or return {} when the default file is absent.

        Args:
            path (Path | None): Explicit settings file. Defaults to caasbase.toml in the cwd.
            required (bool): If True, a missing file raises instead of returning {}.

        Returns:
            dict: Parsed contents.
        """
        path = Path(path) if path else _globals.DEFAULT_CFG_FILE
        if not path.exists():
            if required:
                raise FileNotFoundError(f"[Config.fetch] Settings file not found: {path}")
            logger.debug(f"[Config] No settings file at {path}; using built-in defaults.")
            return {}

        data = Config.dump(path)
        logger.info(f"[Config] Loaded settings from {path}")
        return data

    @staticmethod
    def section(data: dict, name: str = _globals.CFG_SECTION) -> dict[str, Any]:
        """
        Return the `name` table with keys normalised to click parameter names
        (lowercase, dashes to underscores).
        """
        table = data.get(name, {}) or {}
        if not isinstance(table, dict):
            raise TypeError(f"[Config.section] '{name}' must be a table, got {type(table).__name__}")
        return {str(k).lower().replace("-", "_"): v for k, v in table.items()}

    @staticmethod
    def default_map(path: Path | None = None, required: bool = False) -> dict[str, dict[str, Any]]:
        """
        Build a click default_map: {"deploy": {...}} from the settings file.
        """
        data = Config.fetch(path, required=required)
        return {_globals.CFG_SECTION: Config.section(data)}

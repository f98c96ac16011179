from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from group_inspector.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/group_inspector.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML configuration file.

    Caches the parsed mapping and exposes the inspector section. A missing or
    unreadable file yields an empty mapping, which builds an inspector with
    every filter switched off.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[CONFIG] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[CONFIG] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("[CONFIG] Config %s must contain a mapping, got %s", self.config_path, type(data).__name__)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    @property
    def inspector_section(self) -> Dict[str, Any]:
        """The ``group_inspector`` section, or the whole file when that key is absent."""
        section = self._data.get("group_inspector", self._data)
        return section if isinstance(section, dict) else {}

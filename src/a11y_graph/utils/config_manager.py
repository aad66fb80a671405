# src/a11y_graph/utils/config_manager.py
import json
import logging
from typing import Any, Optional

from .path_utils import PathUtils

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Read-only access to the package settings (confidence thresholds, worker
    count, label-exempt tags, log levels). There is one shared instance;
    ``reset()`` re-reads settings.json from disk.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._settings = {}
            cls._instance.reset()
        return cls._instance

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Looks up a dotted path such as ``confidence.high_threshold``."""
        node: Any = self._settings
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return default if node is None else node

    def reset(self) -> None:
        settings_file = PathUtils.get_settings_file()
        if not settings_file.exists():
            logger.warning("No settings file at %s, every lookup falls back to its default.", settings_file)
            self._settings = {}
            return
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read %s: %s", settings_file, e, exc_info=True)
            self._settings = {}
            return
        if not isinstance(loaded, dict):
            logger.error("Ignoring %s: top level is %s, not an object.", settings_file, type(loaded).__name__)
            loaded = {}
        self._settings = loaded
        logger.debug("Settings loaded from %s.", settings_file)


config_manager = ConfigManager()

# src/a11y_graph/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving the package's own paths.
    Works both from a source checkout and from an installed wheel.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the ``a11y_graph`` package."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

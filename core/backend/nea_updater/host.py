"""
Host Integration

What the updater needs from the plugin framework that runs it, plus a
standalone implementation that reads the same data from disk.
"""

import logging
import zipfile
from pathlib import Path
from typing import Dict, Optional, Protocol

import yaml

from .config import JAR_NAME, JAR_FILENAME, CONFIG_FILENAME
from .config_loader import load_config, save_default_config

logger = logging.getLogger(__name__)


class PluginHost(Protocol):
    """Surface supplied by the plugin framework"""

    plugins_dir: Path
    logger: logging.Logger

    def get_version(self) -> Optional[str]:
        """Version string from the loaded plugin's descriptor"""
        ...

    def get_config(self) -> Dict:
        """Parsed plugin configuration"""
        ...


class StandaloneHost:
    """
    Host backed by the files a server keeps on disk

    The version comes from plugin.yml inside the installed jar and the
    configuration from plugins/NotEnoughAddons/config.yml.
    """

    def __init__(self, plugins_dir: Path, config_path: Optional[Path] = None,
                 log: Optional[logging.Logger] = None):
        """
        Args:
            plugins_dir: Server plugins directory
            config_path: Override for the plugin config file
            log: Logger sink (defaults to this module's logger)
        """
        self.plugins_dir = Path(plugins_dir)
        self.config_path = config_path or self.plugins_dir / JAR_NAME / CONFIG_FILENAME
        self.logger = log or logger

    @property
    def jar_path(self) -> Path:
        return self.plugins_dir / JAR_FILENAME

    def get_version(self) -> Optional[str]:
        return read_jar_version(self.jar_path)

    def get_config(self) -> Dict:
        return load_config(self.config_path)

    def save_default_config(self) -> bool:
        """Write the default config.yml the first time the plugin runs"""
        return save_default_config(self.config_path)


def read_jar_version(jar_path: Path) -> Optional[str]:
    """
    Read the 'version' field of plugin.yml inside a plugin jar

    Args:
        jar_path: Path to the jar

    Returns:
        Version string, or None if the jar or descriptor can't be read
    """
    if not jar_path.exists():
        return None

    try:
        with zipfile.ZipFile(jar_path) as jar:
            with jar.open("plugin.yml") as f:
                descriptor = yaml.safe_load(f)
    except (zipfile.BadZipFile, KeyError, OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read plugin.yml from {jar_path}: {e}")
        return None

    if not isinstance(descriptor, dict) or descriptor.get("version") is None:
        return None

    return str(descriptor["version"])

"""
NotEnoughAddons Auto-Updater

Keeps the NotEnoughAddons plugin jar current: checks GitHub releases on
startup and stages newer builds for the next server restart.

Version: 1.0.0
"""

__version__ = "1.0.0"
__description__ = "Self-update service for the NotEnoughAddons plugin"

from .updater import UpdateService, UpdateTarget, ProcessUpdateState, UpdateOutcome
from .api_clients import ReleaseIndexClient, ArtifactDownloader, VersionLookup
from .host import PluginHost, StandaloneHost

__all__ = [
    "UpdateService",
    "UpdateTarget",
    "ProcessUpdateState",
    "UpdateOutcome",
    "ReleaseIndexClient",
    "ArtifactDownloader",
    "VersionLookup",
    "PluginHost",
    "StandaloneHost",
]

"""
Main Update Orchestrator

Decides whether the installed jar needs replacing and places new builds
where the host picks them up on its next start.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import JAR_NAME, JAR_FILENAME, UPDATE_FOLDER
from .config_loader import get_option
from .api_clients import ReleaseIndexClient, ArtifactDownloader, create_session
from .host import PluginHost

logger = logging.getLogger(__name__)

# Build numbers only; semantic versions ("1.2.0") are not comparable here
VALID_VERSION = re.compile(r'[0-9]+')

AUTO_UPDATE_OPTION = "options.auto-update"
VERIFY_CHECKSUM_OPTION = "options.verify-checksum"


def is_valid_version(version: Optional[str]) -> bool:
    return version is not None and VALID_VERSION.fullmatch(version) is not None


class UpdateOutcome(Enum):
    """Which branch an update phase ended in"""

    IDLE = "idle"
    SKIPPED = "skipped"
    UP_TO_DATE = "up_to_date"
    INSTALLED = "installed"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateTarget:
    """The managed jar and where a replacement goes while it is in use"""

    name: str
    path: Path
    staging_path: Path

    @classmethod
    def in_plugins_dir(cls, plugins_dir: Path) -> "UpdateTarget":
        plugins_dir = Path(plugins_dir)
        return cls(
            name=JAR_NAME,
            path=plugins_dir / JAR_FILENAME,
            staging_path=plugins_dir / UPDATE_FOLDER / JAR_FILENAME,
        )

    def is_installed(self) -> bool:
        return self.path.exists()

    def destination(self) -> Path:
        """Primary path on first install, the update folder otherwise"""
        return self.staging_path if self.is_installed() else self.path


@dataclass
class ProcessUpdateState:
    """Per-process memory of what this run already did; never persisted"""

    current_version: Optional[str] = None
    has_downloaded_this_run: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_download(self, version: int):
        self.current_version = str(version)
        self.has_downloaded_this_run = True


class UpdateService:
    """
    Keeps the NotEnoughAddons jar current

    Typical flow, driven by ``start()``:
    1. ``ensure_installed()`` - download the latest build if no jar exists
    2. ``maybe_update()`` - compare the running build with the latest release
       and stage a newer one in the update folder
    """

    def __init__(self, host: PluginHost, state: Optional[ProcessUpdateState] = None,
                 index_client: Optional[ReleaseIndexClient] = None,
                 downloader: Optional[ArtifactDownloader] = None,
                 target: Optional[UpdateTarget] = None):
        """
        Args:
            host: Plugin framework surface (version, config, logger, plugins dir)
            state: Process-wide update state (fresh one if omitted)
            index_client: Release index client
            downloader: Artifact downloader
            target: Managed jar location (derived from host.plugins_dir if omitted)
        """
        self.host = host
        self.log = getattr(host, "logger", None) or logger
        self.state = state or ProcessUpdateState()
        self.target = target or UpdateTarget.in_plugins_dir(host.plugins_dir)

        session = None
        if index_client is None or downloader is None:
            session = create_session()
        self._session = session

        self.index_client = index_client or ReleaseIndexClient(session=session)
        self.downloader = downloader or ArtifactDownloader(
            session=session,
            verify_checksum=bool(get_option(host.get_config(), VERIFY_CHECKSUM_OPTION, False)),
            log=self.log,
        )

    def close(self):
        """Release the HTTP session this service created, if any"""
        if self._session is not None:
            self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # Host entry point
    # ------------------------------------------------------------------

    def start(self):
        """
        Run one update cycle

        Never raises; failures leave the installed jar in place and are logged.
        """
        try:
            with self.state.lock:
                if self.ensure_installed() is UpdateOutcome.FAILED:
                    return
                self.maybe_update()
        except Exception as e:
            self.log.warning(f"Failed to load {JAR_NAME}. Maybe the jar is corrupt? ({e})", exc_info=True)

    def ensure_installed(self) -> UpdateOutcome:
        """
        Download the latest build if the jar is missing

        Returns:
            INSTALLED, FAILED, or IDLE when a jar is already present
        """
        if self.target.is_installed():
            return UpdateOutcome.IDLE

        self.log.info(f"{JAR_NAME} does not exist, downloading...")

        lookup = self.index_client.fetch_latest_version()
        if not lookup.ok:
            self.log.warning(
                f"Failed to download {JAR_NAME} as the latest build could not be resolved "
                f"({lookup.error}). The addon could not be installed."
            )
            return UpdateOutcome.FAILED

        if not self.download(lookup.version):
            self.log.warning(
                f"Failed to download {JAR_NAME} as the file could not be downloaded. "
                f"The addon could not be installed."
            )
            return UpdateOutcome.FAILED

        return UpdateOutcome.INSTALLED

    def maybe_update(self) -> UpdateOutcome:
        """
        Stage a newer build if one is published and auto-updates allow it

        Returns:
            UPDATED, UP_TO_DATE, SKIPPED (no check made) or FAILED
        """
        current = self.host.get_version()

        if not self.state.has_downloaded_this_run:
            self.state.current_version = current

        if not is_valid_version(current):
            self.log.debug(f"Version {current!r} is not a build number, skipping update check")
            return UpdateOutcome.SKIPPED

        if not self.has_auto_updates():
            self.log.debug("Auto-updates are disabled")
            return UpdateOutcome.SKIPPED

        if self.state.has_downloaded_this_run:
            self.log.debug(f"Already downloaded build #{self.state.current_version} this run")
            return UpdateOutcome.SKIPPED

        return self._update_from(int(current))

    def check_for_update(self, current_version: Optional[str]) -> bool:
        """
        Compare against the latest release and download it if newer

        Args:
            current_version: The build currently in use

        Returns:
            True if a newer build was downloaded
        """
        if not is_valid_version(current_version):
            return False

        return self._update_from(int(current_version)) is UpdateOutcome.UPDATED

    def _update_from(self, current: int) -> UpdateOutcome:
        lookup = self.index_client.fetch_latest_version()
        if not lookup.ok or lookup.version <= current:
            return UpdateOutcome.UP_TO_DATE

        self.log.info(f"New {JAR_NAME} build available: #{current} → #{lookup.version}")

        if not self.download(lookup.version):
            return UpdateOutcome.FAILED

        return UpdateOutcome.UPDATED

    def download(self, version: int) -> bool:
        """
        Download a build to the primary path or, if a jar is installed, the update folder

        Args:
            version: Build number to download

        Returns:
            True if successful
        """
        destination = self.target.destination()

        if not self.downloader.download(version, destination):
            return False

        self.state.record_download(version)
        self.log.warning("The addon will be updated when the server is restarted!")
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_version(self) -> Optional[str]:
        """
        Best-known version of the addon

        This can change! It may be None, or a build that was downloaded
        but only becomes active after a restart.
        """
        return self.state.current_version

    def has_auto_updates(self) -> bool:
        return bool(get_option(self.host.get_config(), AUTO_UPDATE_OPTION, False))

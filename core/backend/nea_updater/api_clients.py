"""
API Clients for Release Sources

Handles communication with the GitHub release index and artifact downloads.
"""

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from http.cookiejar import DefaultCookiePolicy
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from .config import (
    RELEASES_URL,
    DOWNLOAD_URL,
    JAR_NAME,
    JAR_FILENAME,
    CHECKSUM_SUFFIX,
    DEFAULT_HEADERS,
    POOL_CONNECTIONS,
    POOL_MAXSIZE,
    API_TIMEOUT,
    DOWNLOAD_TIMEOUT,
    CHUNK_SIZE,
    PROGRESS_STEP,
)

logger = logging.getLogger(__name__)

BUILD_NUMBER = re.compile(r'[0-9]+')
SHA256_HEX = re.compile(r'[0-9a-fA-F]{64}')


class _RejectCookies(DefaultCookiePolicy):
    def set_ok(self, cookie, request):
        return False


def create_session() -> requests.Session:
    """
    Build the shared HTTP session

    Two pooled connections with the identifying headers set; cookies are ignored.
    """
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)

    adapter = HTTPAdapter(pool_connections=POOL_CONNECTIONS, pool_maxsize=POOL_MAXSIZE)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    # Drop every cookie the release host tries to set
    session.cookies.set_policy(_RejectCookies())
    return session


def parse_build_number(value) -> Optional[int]:
    """
    Parse a build number from a JSON tag value

    Accepts non-negative integers and all-digit strings.

    Returns:
        The build number, or None if the value is not one
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and BUILD_NUMBER.fullmatch(value.strip()):
        return int(value.strip())
    return None


@dataclass(frozen=True)
class VersionLookup:
    """Outcome of a release index query: a build number or the reason it failed"""

    version: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.version is not None

    @classmethod
    def found(cls, version: int) -> "VersionLookup":
        return cls(version=version)

    @classmethod
    def failed(cls, reason: str) -> "VersionLookup":
        return cls(error=reason)


class ReleaseIndexClient:
    """Client for the GitHub latest-release endpoint"""

    def __init__(self, session: Optional[requests.Session] = None,
                 releases_url: str = RELEASES_URL, timeout: float = API_TIMEOUT):
        """
        Args:
            session: Shared HTTP session (a new one is created if omitted)
            releases_url: Release index endpoint
            timeout: Request timeout in seconds
        """
        self.session = session or create_session()
        self.releases_url = releases_url
        self.timeout = timeout

    def fetch_latest_version(self) -> VersionLookup:
        """
        Query the release index for the latest published build

        Never raises: every failure is logged and returned as a failed lookup.

        Returns:
            VersionLookup with the build number, or the failure reason
        """
        try:
            response = self.session.get(self.releases_url, timeout=self.timeout)
        except requests.RequestException as e:
            return self._fail(f"request error: {e}")

        if not response.ok:
            return self._fail(f"HTTP {response.status_code}")

        if not response.content:
            return self._fail("empty response body")

        try:
            data = response.json()
        except ValueError as e:
            return self._fail(f"invalid JSON: {e}")

        if not isinstance(data, dict) or "tag_name" not in data:
            return self._fail("tag_name missing from release")

        version = parse_build_number(data["tag_name"])
        if version is None:
            return self._fail(f"tag_name {data['tag_name']!r} is not a build number")

        logger.debug(f"Latest {JAR_NAME} build: #{version}")
        return VersionLookup.found(version)

    @staticmethod
    def _fail(reason: str) -> VersionLookup:
        logger.warning(f"Failed to fetch latest builds for {JAR_NAME}: {reason}")
        return VersionLookup.failed(reason)


class DownloadError(Exception):
    """Download failed; 'kind' is 'network', 'filesystem' or 'integrity'"""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind


def content_length(headers) -> int:
    """
    Declared body size, or 0 when the header is absent or not a number
    """
    try:
        return max(int(headers.get("Content-Length") or 0), 0)
    except (TypeError, ValueError):
        return 0


class ProgressLogger:
    """Logs download progress at coarse percentage steps"""

    def __init__(self, total_bytes: int, step: int = PROGRESS_STEP, log: Optional[logging.Logger] = None):
        self.total_bytes = total_bytes
        self.step = step
        self.last_percent = 0
        self.log = log or logger

    def update(self, bytes_written: int):
        if self.total_bytes <= 0:
            return

        exact = bytes_written / self.total_bytes * 100
        # Decoded (decompressed) bodies can run past the declared length
        percent = min(self.step * int(exact / self.step + 0.5), 100)

        if percent != 0 and percent != self.last_percent:
            self.log.info(f"# Downloading... {percent}% ({bytes_written}/{self.total_bytes} bytes)")
            self.last_percent = percent


class ArtifactDownloader:
    """Handles artifact download, verification and placement"""

    def __init__(self, session: Optional[requests.Session] = None,
                 download_url: str = DOWNLOAD_URL, verify_checksum: bool = False,
                 log: Optional[logging.Logger] = None):
        """
        Args:
            session: Shared HTTP session (a new one is created if omitted)
            download_url: Base URL of release downloads
            verify_checksum: Require and check a published .sha256 file
            log: Logger to report through (host logger when embedded)
        """
        self.session = session or create_session()
        self.download_url = download_url.rstrip('/')
        self.verify_checksum = verify_checksum
        self.log = log or logger

    def artifact_url(self, version: int) -> str:
        return f"{self.download_url}/{version}/{JAR_FILENAME}"

    def download(self, version: int, destination: Path) -> bool:
        """
        Download a build to destination

        Bytes are streamed into a sibling '.part' file that is moved over the
        destination only once complete, so the destination never holds a
        partial jar.

        Args:
            version: Build number to download
            destination: Final path of the jar

        Returns:
            True if the jar is in place
        """
        self.log.info(f"# Starting download of {JAR_NAME} build: #{version}")
        part_path = destination.with_name(destination.name + ".part")

        try:
            self._fetch_to(version, destination, part_path)
        except DownloadError as e:
            if e.kind == "network":
                self.log.warning(
                    f"Failed to fetch the latest jar file from the builds page. "
                    f"Perhaps GitHub is down? Response: {e}"
                )
            elif e.kind == "integrity":
                self.log.warning(f"Downloaded {JAR_NAME} build #{version} failed verification: {e}")
            else:
                self.log.warning(
                    f"Failed to replace the old {JAR_NAME} file with the new one. "
                    f"Please do this manually! Error: {e}"
                )
            self._discard(part_path)
            return False

        self.log.info(f"Successfully downloaded {JAR_NAME} build: #{version}")
        return True

    def _fetch_to(self, version: int, destination: Path, part_path: Path):
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            # Clear leftovers from an earlier interrupted run
            for stale in (destination, part_path):
                if stale.exists():
                    stale.unlink()
        except OSError as e:
            raise DownloadError("filesystem", str(e)) from e

        expected_hash = self.fetch_expected_hash(version) if self.verify_checksum else None

        url = self.artifact_url(version)
        try:
            with self.session.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as response:
                if not response.ok:
                    raise DownloadError("network", f"HTTP {response.status_code} for {url}")

                total = content_length(response.headers)
                progress = ProgressLogger(total, log=self.log)
                written = 0

                with open(part_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        written += len(chunk)
                        progress.update(written)
        except requests.RequestException as e:
            raise DownloadError("network", str(e)) from e
        except OSError as e:
            raise DownloadError("filesystem", str(e)) from e

        if expected_hash:
            calculated_hash = self.calculate_hash(part_path)
            if calculated_hash != expected_hash:
                raise DownloadError(
                    "integrity",
                    f"SHA256 mismatch (expected {expected_hash}, got {calculated_hash})"
                )
            self.log.info(f"  ✓ SHA256 verified: {calculated_hash[:16]}...")

        try:
            os.replace(part_path, destination)
        except OSError as e:
            raise DownloadError("filesystem", str(e)) from e

    def fetch_expected_hash(self, version: int) -> str:
        """
        Fetch the published SHA-256 for a build

        Raises:
            DownloadError: if the checksum file is unavailable or malformed
        """
        url = self.artifact_url(version) + CHECKSUM_SUFFIX
        try:
            response = self.session.get(url, timeout=API_TIMEOUT)
        except requests.RequestException as e:
            raise DownloadError("network", f"checksum request failed: {e}") from e

        if not response.ok:
            raise DownloadError("integrity", f"no published checksum (HTTP {response.status_code})")

        # sha256sum format: "<hex>  <filename>"
        token = response.text.strip().split()[0] if response.text.strip() else ""
        if not SHA256_HEX.fullmatch(token):
            raise DownloadError("integrity", f"malformed checksum file at {url}")
        return token.lower()

    @staticmethod
    def calculate_hash(filepath: Path) -> str:
        """
        Calculate SHA-256 of a file

        Returns:
            Hexadecimal hash string
        """
        hash_obj = hashlib.sha256()
        with open(filepath, "rb") as f:
            for byte_block in iter(lambda: f.read(65536), b""):
                hash_obj.update(byte_block)
        return hash_obj.hexdigest()

    def _discard(self, part_path: Path):
        try:
            part_path.unlink(missing_ok=True)
        except OSError as e:
            self.log.debug(f"Could not remove partial download {part_path}: {e}")

"""
Configuration for NotEnoughAddons Auto-Updater

Defines release endpoints, artifact naming, HTTP settings and option defaults.
"""

from pathlib import Path

# Plugins directory of the host server, relative to its working directory
PLUGINS_DIR = Path.cwd() / "plugins"

# Host update folder: jars placed here are swapped in on the next restart
UPDATE_FOLDER = "update"

# Release identity
REPO_OWNER = "Fhoz"
REPO_NAME = "NotEnoughAddons"
JAR_NAME = "NotEnoughAddons"
JAR_FILENAME = f"{JAR_NAME}.jar"

# API Endpoints
GITHUB_API = "https://api.github.com"
RELEASES_URL = f"{GITHUB_API}/repos/{REPO_OWNER}/{REPO_NAME}/releases/latest"
DOWNLOAD_URL = f"https://github.com/{REPO_OWNER}/{REPO_NAME}/releases/download"
CHECKSUM_SUFFIX = ".sha256"

# HTTP settings
DEFAULT_HEADERS = {
    "User-Agent": f"{JAR_NAME} Auto-Updater",
    "Accept": "application/vnd.github.v3+json",
}
POOL_CONNECTIONS = 1
POOL_MAXSIZE = 2
API_TIMEOUT = 10
# (connect, read) - read applies per chunk while streaming
DOWNLOAD_TIMEOUT = (10, 30)
CHUNK_SIZE = 8192

# Progress is logged each time the rounded percentage crosses a step
PROGRESS_STEP = 20

# Plugin config.yml defaults (mirrors the resource shipped inside the jar)
CONFIG_FILENAME = "config.yml"
DEFAULT_OPTIONS = {
    "options": {
        "auto-update": True,
        "verify-checksum": False,
    }
}
DEFAULT_CONFIG_TEXT = """\
options:
  # Download new builds on startup; they take effect after a restart
  auto-update: ${NEA_AUTO_UPDATE:-true}
  # Require a published .sha256 file and verify downloads against it
  verify-checksum: false
"""

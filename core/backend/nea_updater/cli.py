"""
Command-Line Interface

Entry point for running the NotEnoughAddons updater outside a game server.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .api_clients import ReleaseIndexClient
from .config import JAR_NAME, PLUGINS_DIR
from .config_loader import validate_config
from .host import StandaloneHost
from .updater import UpdateService, is_valid_version

logger = logging.getLogger(__name__)


# Logging setup
def setup_logging(log_file: Optional[Path] = None, verbose: bool = False):
    """Configure logging for CLI"""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def run_check(host: StandaloneHost, index_client: ReleaseIndexClient) -> int:
    """
    Report whether a newer build is published, without downloading

    Returns:
        Exit code (0 = success)
    """
    current = host.get_version()
    logger.info(f"Installed version: {current or 'not installed'}")

    lookup = index_client.fetch_latest_version()
    if not lookup.ok:
        logger.error(f"✗ Could not determine the latest build: {lookup.error}")
        return 1

    logger.info(f"Latest build: #{lookup.version}")

    if current is None:
        logger.info(f"→ {JAR_NAME} is not installed; build #{lookup.version} would be downloaded")
    elif not is_valid_version(current):
        logger.info(f"Version {current} is not a build number; auto-update would be skipped")
    elif lookup.version > int(current):
        logger.info(f"→ Update available: #{current} → #{lookup.version}")
    else:
        logger.info("✓ Already up to date")
    return 0


def show_status(service: UpdateService) -> int:
    """Display installed jar, staged update and options"""
    target = service.target
    logger.info(f"{JAR_NAME} status")
    logger.info("=" * 70)
    logger.info(f"  Jar: {target.path} ({'present' if target.is_installed() else 'missing'})")
    logger.info(f"  Version: {service.host.get_version() or 'unknown'}")

    if target.staging_path.exists():
        logger.info(f"  Staged update: {target.staging_path} (applied on restart)")
    else:
        logger.info("  Staged update: none")

    logger.info(f"  Auto-update: {'enabled' if service.has_auto_updates() else 'disabled'}")
    return 0


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description=f"{JAR_NAME} Auto-Updater v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Install or update the plugin in ./plugins
  %(prog)s

  # Check for a newer build without downloading
  %(prog)s --check

  # Show installed and staged versions
  %(prog)s --status --plugins-dir /srv/minecraft/plugins
        """
    )

    parser.add_argument("--check", action="store_true", help="Check for a newer build without downloading")
    parser.add_argument("--status", action="store_true", help="Show installed version and staged update")
    parser.add_argument("--plugins-dir", type=Path, default=PLUGINS_DIR, help="Server plugins directory")
    parser.add_argument("--config", type=Path, help="Path to plugin config.yml")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        host = StandaloneHost(args.plugins_dir, config_path=args.config, log=logger)
        if not (args.status or args.check):
            host.save_default_config()

        is_valid, errors = validate_config(host.get_config())
        if not is_valid:
            logger.error("✗ Configuration validation failed:")
            for error in errors:
                logger.error(f"  - {error}")
            return 1

        service = UpdateService(host)
        try:
            if args.status:
                return show_status(service)

            if args.check:
                return run_check(host, service.index_client)

            service.start()
            return 0 if service.target.is_installed() else 1
        finally:
            service.close()

    except KeyboardInterrupt:
        logger.info("\n\nInterrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

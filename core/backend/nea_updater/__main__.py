"""Entry point for ``python -m nea_updater``."""

import sys

from nea_updater.cli import main

if __name__ == "__main__":
    sys.exit(main())

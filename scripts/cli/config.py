"""CLI configuration: database URL and paths."""

import os
from pathlib import Path

# Project root (parent of scripts/)
ROOT = Path(__file__).resolve().parent.parent.parent

# Override with CONSTRUCTION_DB_URL or --database-url.
DB_URL = os.environ.get("CONSTRUCTION_DB_URL", f"sqlite:///{ROOT / 'construction.db'}")

# Override with CONSTRUCTION_CONFIG or --config.  None = packaged default.
CONFIG_PATH = os.environ.get("CONSTRUCTION_CONFIG") or None

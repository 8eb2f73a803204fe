#!/usr/bin/env python3
"""
Deploy a local directory to Google Cloud Storage.

Script wrapper around ``gcs_deploy.cli`` for running from a checkout:
    python scripts/deploy.py --path dist --versionNumber 1.4.2
"""

import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_deploy.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())

"""Pytest configuration."""

import sys
from pathlib import Path

# Make the gcs_deploy package importable without installing it
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

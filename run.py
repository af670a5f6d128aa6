#!/usr/bin/env python
"""
Launcher script for the Bakery Control command line.

This script ensures the package is importable before the package is installed.
"""

import sys
from pathlib import Path

# Add the src directory to the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from bakery_control.main import main

if __name__ == "__main__":
    sys.exit(main())

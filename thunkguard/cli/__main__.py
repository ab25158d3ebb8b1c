"""
thunkguard CLI entry point.

Usage:
    python -m thunkguard.cli check myapp.state:STATE
    python -m thunkguard.cli catalogue
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())

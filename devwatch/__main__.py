#!/usr/bin/env python3
"""
devwatch main entry point for running as a module: python3 -m devwatch
"""

import sys
from devwatch.cli import main

if __name__ == '__main__':
    sys.exit(main())

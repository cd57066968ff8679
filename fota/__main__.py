# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors

"""Entry point for running the CLI as a module.

Usage:
    python -m fota check -m SM-S9280 -r CHC --test
"""

import sys

from fota.cli import main

if __name__ == "__main__":
    sys.exit(main())

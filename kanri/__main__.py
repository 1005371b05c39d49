#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main entry point for running Kanri as a module.
Example: python -m kanri
"""

import sys
from kanri.cli import main

if __name__ == "__main__":
    sys.exit(main())

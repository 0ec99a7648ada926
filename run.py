#!/usr/bin/env python3
"""Convenience runner for the GPX Workbench command line.

Usage:
    python run.py info track.gpx
"""
import logging
import sys

from gpx_workbench.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())

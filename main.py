"""
HydroSync: Entry Point.

Single entry point: `python main.py <command>` runs the command line.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from hydrosync.cli import run

if __name__ == "__main__":
    run()

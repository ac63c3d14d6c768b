#!/usr/bin/env python3
"""researchAgent entrypoint: ``python main.py`` (console) or ``python main.py -s`` (server)."""
import sys

from researchAgent.__main__ import main

if __name__ == "__main__":
    sys.exit(main())

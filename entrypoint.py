#!/usr/bin/env python3
"""
slotaudit Entrypoint
Wrapper script for Docker container
"""

import sys

from slotaudit.run_audit import main

if __name__ == "__main__":
    sys.exit(main())

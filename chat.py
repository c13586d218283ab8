#!/usr/bin/env python3
"""
Interactive Chat Script - Checkout Wrapper.

This script wraps the msteams_agent.inference.agent module so the agent can
be started from a source checkout without installing the package.

Usage:
    python chat.py [options]

For the installed package, use:
    msteams-agent [options]
"""

import sys
import os

# Add src to path for development installs
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from msteams_agent.inference.agent import main

if __name__ == "__main__":
    sys.exit(main())

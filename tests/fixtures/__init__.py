"""
Test fixtures for live objects

This package contains fixtures used for testing:
- Sample sources (greeter.py, shapes.py)
"""

import os

# Path to fixtures directory
FIXTURES_DIR = os.path.dirname(__file__)
SOURCES_DIR = os.path.join(FIXTURES_DIR, 'sources')

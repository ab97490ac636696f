"""
Pytest configuration for Forge E2E tests.

Makes the forge_e2e package importable from a source checkout and
registers the markers used by the test suite.
"""

import sys
from pathlib import Path

_current_dir = Path(__file__).resolve().parent
if str(_current_dir) not in sys.path:
    sys.path.insert(0, str(_current_dir))


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring anvil and forge on PATH"
    )

"""
Pytest configuration for the bfexe tests.
"""

import sys
from pathlib import Path

import pytest

# Make the repository root importable without installing the package
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


@pytest.fixture(autouse=True)
def clean_bf_env(monkeypatch):
    """Keep BF_* variables from the outer environment out of the tests."""
    from bfexe.config import ENV_VARS
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

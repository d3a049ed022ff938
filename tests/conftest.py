"""
Pytest configuration and fixtures.
"""
import os
import sys
import tempfile

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tubefeed.db.preferences import PreferenceStore


@pytest.fixture
def temp_db_path():
    """Path to a throwaway SQLite file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    os.unlink(db_path)


@pytest.fixture
def store(temp_db_path):
    """Connected PreferenceStore on a temporary database."""
    s = PreferenceStore(temp_db_path)
    s.connect()
    yield s
    s.close()

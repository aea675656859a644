"""
Shared pytest fixtures
"""
import shutil
import tempfile
from pathlib import Path

import pytest

from tests.helpers import build_pdf


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test"""
    directory = tempfile.mkdtemp()
    yield Path(directory)
    shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def hello_pdf() -> bytes:
    return build_pdf(["Hello world"])

import pytest

from fakes import RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()

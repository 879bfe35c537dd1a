import logging

import pytest

from salesvoice.config.settings import Settings
from fakes import FakeTelephonySocket, SessionRecorder


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def settings():
    """Settings with a fake API key and short timeouts."""
    return Settings(gemini_api_key="test-api-key", open_timeout=0.5)


@pytest.fixture
def telephony_socket():
    return FakeTelephonySocket()


@pytest.fixture
def session_factory():
    return SessionRecorder()

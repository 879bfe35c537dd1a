import pytest
from unittest.mock import MagicMock

from salesvoice.config.settings import MalformedMessagePolicy, Settings
from salesvoice.websocket_manager import MediaStreamManager
from fakes import EchoSession, FakeTelephonySocket, SessionRecorder, twilio_media, twilio_start, twilio_stop


@pytest.fixture
def manager(settings, session_factory):
    return MediaStreamManager(settings, session_factory=session_factory)


def test_manager_initialization(manager, settings):
    """Test that MediaStreamManager starts with no active calls"""
    assert manager.settings is settings
    assert manager.active_calls == 0


def test_default_session_factory_uses_settings(settings):
    manager = MediaStreamManager(settings)

    session = manager.session_factory("call-1")

    assert session.api_key == "test-api-key"
    assert session.call_tag == "call-1"


@pytest.mark.asyncio
async def test_handle_websocket_full_call(settings):
    factory = SessionRecorder(EchoSession)
    manager = MediaStreamManager(settings, session_factory=factory)
    socket = FakeTelephonySocket([twilio_start("S1"), twilio_media("AAAA"), twilio_stop()])

    await manager.handle_websocket(socket)

    assert socket.accepted
    session = factory.last
    assert session.call_tag == "call-1"
    assert session.sent == [b"\x00\x00\x00"]
    assert socket.sent_json() == [{"event": "media", "streamSid": "S1", "media": {"payload": "AAAA"}}]
    assert session.close_count == 1
    assert socket.close_codes == [1000]
    assert manager.active_calls == 0


@pytest.mark.asyncio
async def test_each_connection_gets_its_own_session(manager, session_factory):
    await manager.handle_websocket(FakeTelephonySocket([twilio_start("S1")]))
    await manager.handle_websocket(FakeTelephonySocket([twilio_start("S2")]))

    assert [s.call_tag for s in session_factory.sessions] == ["call-1", "call-2"]
    assert all(s.close_count == 1 for s in session_factory.sessions)


@pytest.mark.asyncio
async def test_channel_uses_malformed_policy_from_settings(session_factory):
    settings = Settings(gemini_api_key="test-api-key", malformed_policy=MalformedMessagePolicy.CLOSE)
    manager = MediaStreamManager(settings, session_factory=session_factory)
    socket = FakeTelephonySocket(["{broken", twilio_start("S1")])

    await manager.handle_websocket(socket)

    assert socket.close_codes == [1002]
    assert len(socket.incoming) == 1
    assert session_factory.last.close_count == 1


@pytest.mark.asyncio
async def test_handle_websocket_contains_errors(settings):
    factory = MagicMock(side_effect=RuntimeError("factory exploded"))
    manager = MediaStreamManager(settings, session_factory=factory)
    socket = FakeTelephonySocket([twilio_start("S1")])

    await manager.handle_websocket(socket)

    assert socket.close_codes == [1000]
    assert manager.active_calls == 0

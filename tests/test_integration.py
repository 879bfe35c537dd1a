"""
End-to-end test of the media stream endpoint.

A Twilio-style client connects to /media-stream through the ASGI app; the AI side is
replaced by a session that echoes caller audio back, so the test sees the full path:
inbound media -> bridge -> session -> bridge -> outbound media tagged with the stream id.
"""

import pytest
from fastapi.testclient import TestClient

from salesvoice.main import app, media_stream_manager
from fakes import EchoSession, SessionRecorder


@pytest.fixture
def echo_sessions(monkeypatch):
    factory = SessionRecorder(EchoSession)
    monkeypatch.setattr(media_stream_manager, "session_factory", factory)
    return factory


def test_media_stream_round_trip(echo_sessions):
    client = TestClient(app)

    with client.websocket_connect("/media-stream") as websocket:
        websocket.send_json({"event": "connected", "protocol": "Call", "version": "1.0.0"})
        websocket.send_json({"event": "start", "start": {"streamSid": "MZ1", "callSid": "CA1"}})
        websocket.send_json({"event": "media", "media": {"payload": "AAAA"}})

        reply = websocket.receive_json()

    assert reply == {"event": "media", "streamSid": "MZ1", "media": {"payload": "AAAA"}}
    assert len(echo_sessions.sessions) == 1
    assert echo_sessions.last.sent == [b"\x00\x00\x00"]


def test_media_stream_ignores_malformed_frames(echo_sessions):
    client = TestClient(app)

    with client.websocket_connect("/media-stream") as websocket:
        websocket.send_json({"event": "start", "start": {"streamSid": "MZ2"}})
        websocket.send_text("not json at all")
        websocket.send_json({"event": "media", "media": {"payload": "////"}})

        reply = websocket.receive_json()

    assert reply["streamSid"] == "MZ2"
    assert reply["media"]["payload"] == "////"


def test_media_stream_survives_binary_frame(echo_sessions):
    client = TestClient(app)

    with client.websocket_connect("/media-stream") as websocket:
        websocket.send_json({"event": "start", "start": {"streamSid": "MZ3"}})
        websocket.send_bytes(b"\x00\x01garbage")
        websocket.send_json({"event": "media", "media": {"payload": "AAAA"}})

        reply = websocket.receive_json()

    assert reply == {"event": "media", "streamSid": "MZ3", "media": {"payload": "AAAA"}}
    assert echo_sessions.last.sent == [b"\x00\x00\x00"]

"""
Unit tests for the Twilio media stream schemas.

These tests validate that the Pydantic models accept the messages Twilio sends,
reject the ones the relay cannot use, and frame outbound audio correctly.
"""

import base64
import pytest
from pydantic import ValidationError

from salesvoice.models.twilio_schemas import (
    INCOMING_MESSAGE_MODELS,
    BaseEvent,
    ConnectedMessage,
    MarkMessage,
    MediaMessage,
    OutgoingMediaMessage,
    StartMessage,
    StopMessage,
)


class TestBaseEvent:
    """Tests for the BaseEvent class."""

    def test_valid_base_event(self):
        event = BaseEvent(event="connected")
        assert event.event == "connected"
        assert event.streamSid is None

    def test_missing_event(self):
        """Test that a message without an event raises a validation error."""
        with pytest.raises(ValidationError):
            BaseEvent()


class TestControlMessages:
    """Tests for connected, start, stop and mark messages."""

    def test_connected_message(self):
        message = ConnectedMessage(event="connected", protocol="Call", version="1.0.0")
        assert message.protocol == "Call"

    def test_start_message_with_metadata(self):
        message = StartMessage(
            event="start",
            sequenceNumber="1",
            start={
                "streamSid": "MZ123",
                "accountSid": "AC1",
                "callSid": "CA1",
                "tracks": ["inbound"],
                "customParameters": {"lead": "42"},
                "mediaFormat": {"encoding": "audio/x-mulaw", "sampleRate": 8000, "channels": 1},
            },
        )
        assert message.start.streamSid == "MZ123"
        assert message.start.mediaFormat.sampleRate == 8000
        assert message.start.customParameters == {"lead": "42"}

    def test_start_message_requires_stream_sid(self):
        with pytest.raises(ValidationError):
            StartMessage(event="start", start={"callSid": "CA1"})

    def test_start_message_rejects_blank_stream_sid(self):
        with pytest.raises(ValidationError):
            StartMessage(event="start", start={"streamSid": "   "})

    def test_stop_message_without_metadata(self):
        message = StopMessage(event="stop")
        assert message.stop is None

    def test_mark_message(self):
        message = MarkMessage(event="mark", streamSid="MZ1", mark={"name": "greeting"})
        assert message.mark.name == "greeting"

    def test_event_literal_enforced(self):
        with pytest.raises(ValidationError):
            StopMessage(event="start")


class TestMediaMessages:
    """Tests for inbound and outbound media messages."""

    def test_valid_media_message(self):
        audio = b"\x7f\xff\x00\x01"
        message = MediaMessage(
            event="media",
            streamSid="MZ1",
            media={
                "track": "inbound",
                "chunk": "2",
                "timestamp": "5",
                "payload": base64.b64encode(audio).decode("utf-8"),
            },
        )
        assert message.media.decode() == audio

    def test_empty_payload_rejected(self):
        with pytest.raises(ValidationError):
            MediaMessage(event="media", media={"payload": ""})

    def test_invalid_base64_rejected(self):
        with pytest.raises(ValidationError):
            MediaMessage(event="media", media={"payload": "not-base64!"})

    def test_outgoing_media_from_audio(self):
        message = OutgoingMediaMessage.from_audio("MZ1", b"\x00\x00\x00")
        assert message.model_dump() == {
            "event": "media",
            "streamSid": "MZ1",
            "media": {"payload": "AAAA"},
        }


def test_incoming_models_cover_all_events():
    assert set(INCOMING_MESSAGE_MODELS) == {"connected", "start", "media", "stop", "mark"}

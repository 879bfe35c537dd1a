"""
Pydantic models for Twilio Media Streams message schemas.

This module defines structured data models for the incoming and outgoing messages
of the Twilio bidirectional media stream WebSocket, providing type validation and
documentation. Only the fields the relay relies on are required; everything else
Twilio sends is accepted and ignored.
"""

import base64
import binascii
from typing import Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, Field, field_validator

from salesvoice.config.constants import (
    EVENT_CONNECTED,
    EVENT_MARK,
    EVENT_MEDIA,
    EVENT_START,
    EVENT_STOP,
)


def _validate_base64(v: str) -> str:
    """Check that a payload is non-empty, strictly valid base64."""
    if not v:
        raise ValueError("Audio payload cannot be empty")
    try:
        base64.b64decode(v, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 encoded audio data")
    return v


# Base Model
class BaseEvent(BaseModel):
    """Base model for all media stream messages."""

    event: str = Field(..., description="Event type identifier")
    streamSid: Optional[str] = Field(None, description="Stream identifier, when known")


# Control Messages
class ConnectedMessage(BaseEvent):
    """Model for the connected message sent once the socket opens."""

    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class MediaFormat(BaseModel):
    encoding: Optional[str] = None
    sampleRate: Optional[int] = None
    channels: Optional[int] = None


class StartMetadata(BaseModel):
    """Metadata carried by the start message."""

    streamSid: str = Field(..., description="Identifier of the media stream")
    accountSid: Optional[str] = None
    callSid: Optional[str] = None
    tracks: Optional[list] = None
    customParameters: Optional[Dict[str, str]] = None
    mediaFormat: Optional[MediaFormat] = None

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Validate that the stream identifier is not blank."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class StartMessage(BaseEvent):
    """Model for the start message; establishes the stream identifier."""

    event: Literal["start"]
    start: StartMetadata


class StopMetadata(BaseModel):
    accountSid: Optional[str] = None
    callSid: Optional[str] = None


class StopMessage(BaseEvent):
    """Model for the stop message; the stream has ended."""

    event: Literal["stop"]
    stop: Optional[StopMetadata] = None


class MarkPayload(BaseModel):
    name: str


class MarkMessage(BaseEvent):
    """Model for the mark message echoed back after playback."""

    event: Literal["mark"]
    mark: MarkPayload


# Media Messages
class MediaPayload(BaseModel):
    """Audio payload of an inbound media message."""

    payload: str = Field(..., description="Base64-encoded audio data")
    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        return _validate_base64(v)

    def decode(self) -> bytes:
        """Return the raw audio bytes."""
        return base64.b64decode(self.payload)


class MediaMessage(BaseEvent):
    """Model for an inbound media message carrying one audio frame."""

    event: Literal["media"]
    media: MediaPayload


class OutgoingMediaPayload(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio data")

    @field_validator("payload")
    def validate_payload(cls, v):
        return _validate_base64(v)


class OutgoingMediaMessage(BaseModel):
    """Model for a media message sent to Twilio for playback."""

    event: Literal["media"] = "media"
    streamSid: str = Field(..., description="Stream the audio is addressed to")
    media: OutgoingMediaPayload

    @classmethod
    def from_audio(cls, stream_sid: str, audio: bytes) -> "OutgoingMediaMessage":
        return cls(
            streamSid=stream_sid,
            media=OutgoingMediaPayload(payload=base64.b64encode(audio).decode("utf-8")),
        )


# Lookup of incoming message models by event name
INCOMING_MESSAGE_MODELS: Dict[str, Type[BaseEvent]] = {
    EVENT_CONNECTED: ConnectedMessage,
    EVENT_START: StartMessage,
    EVENT_MEDIA: MediaMessage,
    EVENT_STOP: StopMessage,
    EVENT_MARK: MarkMessage,
}

# Union type for all possible incoming messages
IncomingMessage = Union[
    ConnectedMessage,
    StartMessage,
    MediaMessage,
    StopMessage,
    MarkMessage,
]

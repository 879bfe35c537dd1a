"""
Adapter over the Twilio media stream WebSocket.

The channel turns each inbound text message into one typed event and hands it to a
listener (``on_start``, ``on_audio_frame``, ``on_stop``, ``on_close``). In the other
direction it frames synthesized audio as Twilio ``media`` messages. Writes are
guarded: a closed transport makes ``send_audio_frame`` a no-op.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from salesvoice.config.constants import (
    DEFAULT_MAX_CONSECUTIVE_MALFORMED,
    EVENT_CONNECTED,
    EVENT_MARK,
    EVENT_MEDIA,
    EVENT_START,
    EVENT_STOP,
    LOGGER_NAME,
)
from salesvoice.config.settings import MalformedMessagePolicy
from salesvoice.errors import TelephonyProtocolError
from salesvoice.models.twilio_schemas import (
    INCOMING_MESSAGE_MODELS,
    IncomingMessage,
    MarkMessage,
    MediaMessage,
    OutgoingMediaMessage,
    StartMessage,
)

logger = logging.getLogger(LOGGER_NAME)

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_PROTOCOL_ERROR = 1002
CLOSE_INTERNAL_ERROR = 1011


class TelephonyListener(Protocol):
    """Receiver of the events parsed from the media stream."""

    async def on_start(self, stream_sid: str) -> None: ...

    async def on_audio_frame(self, frame: bytes) -> None: ...

    async def on_stop(self) -> None: ...

    async def on_close(self) -> None: ...


class TelephonyChannel:
    """
    One Twilio media stream connection.

    The channel does not own the transport's lifecycle beyond closing it on request;
    the WebSocket is accepted and ultimately released by the media stream manager.
    """

    def __init__(
        self,
        websocket: WebSocket,
        malformed_policy: MalformedMessagePolicy = MalformedMessagePolicy.DROP,
        max_consecutive_malformed: int = DEFAULT_MAX_CONSECUTIVE_MALFORMED,
        call_tag: str = "-",
    ):
        self.websocket = websocket
        self.malformed_policy = malformed_policy
        self.max_consecutive_malformed = max_consecutive_malformed
        self.call_tag = call_tag

        self._closed = False
        self.consecutive_malformed = 0
        self.malformed_total = 0
        self.frames_received = 0
        self.frames_sent = 0

        self.handlers: Dict[str, Callable[[IncomingMessage, TelephonyListener], Awaitable[bool]]] = {
            EVENT_CONNECTED: self._handle_connected,
            EVENT_START: self._handle_start,
            EVENT_MEDIA: self._handle_media,
            EVENT_STOP: self._handle_stop,
            EVENT_MARK: self._handle_mark,
        }

    @property
    def is_open(self) -> bool:
        """Whether a write right now could reach the caller."""
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def parse(self, raw: str) -> Optional[IncomingMessage]:
        """
        Parse one inbound message.

        Returns:
            The typed message, or None for an event type the relay does not use

        Raises:
            TelephonyProtocolError: If the message is not valid JSON or does not match
                the schema for its event type
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise TelephonyProtocolError(f"Invalid JSON: {e}", raw=raw)

        if not isinstance(data, dict) or not isinstance(data.get("event"), str):
            raise TelephonyProtocolError("Message has no event field", raw=raw)

        model = INCOMING_MESSAGE_MODELS.get(data["event"])
        if model is None:
            logger.debug(f"[{self.call_tag}] Ignoring unknown event type: {data['event']}")
            return None

        try:
            return model(**data)
        except ValidationError as e:
            raise TelephonyProtocolError(f"Invalid {data['event']} message: {e}", raw=raw)

    async def run(self, listener: TelephonyListener) -> None:
        """
        Receive and dispatch messages until the stream stops or the transport closes.

        ``listener.on_close`` is always called exactly once when this returns.
        """
        try:
            while not self._closed:
                frame = await self.websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    logger.info(
                        f"[{self.call_tag}] Telephony socket disconnected (code={frame.get('code')})"
                    )
                    break
                if not await self.handle_frame(frame, listener):
                    break
        except RuntimeError as e:
            # Starlette raises this when receiving on a socket we already closed
            logger.info(f"[{self.call_tag}] Telephony socket no longer readable: {e}")
        finally:
            self._closed = True
            await listener.on_close()

    async def handle_frame(self, frame: Dict[str, Any], listener: TelephonyListener) -> bool:
        """
        Handle one ASGI ``websocket.receive`` frame. Twilio only sends text frames,
        so a binary frame counts as a malformed message.

        Returns:
            bool: False when the receive loop should stop
        """
        raw = frame.get("text")
        if raw is None:
            size = len(frame.get("bytes") or b"")
            return await self._handle_malformed(
                TelephonyProtocolError(f"Unexpected binary frame ({size} bytes)")
            )
        return await self.handle_message(raw, listener)

    async def handle_message(self, raw: str, listener: TelephonyListener) -> bool:
        """
        Handle one raw message.

        Returns:
            bool: False when the receive loop should stop
        """
        try:
            message = self.parse(raw)
        except TelephonyProtocolError as e:
            return await self._handle_malformed(e)

        self.consecutive_malformed = 0
        if message is None:
            return True
        return await self.handlers[message.event](message, listener)

    async def _handle_malformed(self, error: TelephonyProtocolError) -> bool:
        self.consecutive_malformed += 1
        self.malformed_total += 1
        logger.warning(f"[{self.call_tag}] Dropping malformed telephony message: {error}")

        if self.malformed_policy is MalformedMessagePolicy.CLOSE:
            logger.error(f"[{self.call_tag}] Closing channel on malformed message")
        elif self.consecutive_malformed >= self.max_consecutive_malformed:
            logger.error(
                f"[{self.call_tag}] {self.consecutive_malformed} consecutive malformed "
                "messages, treating stream as desynchronized"
            )
        else:
            return True

        await self.close(CLOSE_PROTOCOL_ERROR, "protocol error")
        return False

    async def _handle_connected(self, message: IncomingMessage, listener: TelephonyListener) -> bool:
        logger.info(f"[{self.call_tag}] Media stream connected")
        return True

    async def _handle_start(self, message: StartMessage, listener: TelephonyListener) -> bool:
        metadata = message.start
        logger.info(
            f"[{self.call_tag}] Media stream started "
            f"(streamSid={metadata.streamSid}, callSid={metadata.callSid})"
        )
        await listener.on_start(metadata.streamSid)
        return True

    async def _handle_media(self, message: MediaMessage, listener: TelephonyListener) -> bool:
        self.frames_received += 1
        await listener.on_audio_frame(message.media.decode())
        return True

    async def _handle_stop(self, message: IncomingMessage, listener: TelephonyListener) -> bool:
        logger.info(f"[{self.call_tag}] Media stream stopped by provider")
        await listener.on_stop()
        return False

    async def _handle_mark(self, message: MarkMessage, listener: TelephonyListener) -> bool:
        logger.debug(f"[{self.call_tag}] Mark received: {message.mark.name}")
        return True

    async def send_audio_frame(self, stream_sid: str, frame: bytes) -> bool:
        """
        Send one audio frame for playback on ``stream_sid``.

        Returns:
            bool: True if written, False if the channel was closed or the write failed
        """
        if not self.is_open:
            logger.debug(f"[{self.call_tag}] Channel closed, skipping outbound frame")
            return False
        if not frame:
            return False

        message = OutgoingMediaMessage.from_audio(stream_sid, frame)
        try:
            await self.websocket.send_text(message.model_dump_json())
        except Exception as e:
            logger.warning(f"[{self.call_tag}] Failed to write to telephony socket: {e}")
            self._closed = True
            return False
        self.frames_sent += 1
        return True

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the transport. Idempotent."""
        self._closed = True
        if self.websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await self.websocket.close(code=code, reason=reason)
            logger.info(f"[{self.call_tag}] Telephony socket closed (code={code})")
        except Exception as e:
            logger.debug(f"[{self.call_tag}] Error closing telephony socket: {e}")

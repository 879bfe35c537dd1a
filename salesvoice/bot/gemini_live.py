"""
Gemini Live session for one call.

A ``GeminiLiveSession`` owns exactly one bidirectional WebSocket to the Gemini Live
API and moves through ``CONNECTING -> OPEN -> CLOSED`` (or straight from
``CONNECTING`` to ``CLOSED``). Caller audio handed to ``send`` while the session is
still connecting is held in a bounded FIFO and flushed, in arrival order, before the
session reports itself open. Synthesized audio is delivered to the registered
``on_audio_chunk`` callback as the backend produces it.
"""

import asyncio
import base64
import binascii
import json
import logging
import traceback
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Dict, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from salesvoice.config.constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GEMINI_VOICE,
    DEFAULT_GEMINI_WS_URL,
    DEFAULT_OPEN_TIMEOUT_SECONDS,
    DEFAULT_PENDING_FRAME_LIMIT,
    DEFAULT_SYSTEM_INSTRUCTION,
    LOGGER_NAME,
)
from salesvoice.config.settings import Settings
from salesvoice.errors import SessionOpenError, SessionTerminatedError
from salesvoice.models.gemini_schemas import RealtimeInputMessage, ServerMessage, SetupMessage

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5
WS_PING_TIMEOUT = 10

# Log one line per this many dropped frames
DROP_LOG_INTERVAL = 50

AudioChunkHandler = Callable[[bytes], Awaitable[None]]
TerminatedHandler = Callable[[SessionTerminatedError], Awaitable[None]]


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class GeminiLiveSession:
    """
    One streaming session to Gemini Live, exclusively owned by one bridge.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_GEMINI_MODEL,
        voice: str = DEFAULT_GEMINI_VOICE,
        instruction: str = DEFAULT_SYSTEM_INSTRUCTION,
        ws_url: str = DEFAULT_GEMINI_WS_URL,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT_SECONDS,
        pending_limit: int = DEFAULT_PENDING_FRAME_LIMIT,
        call_tag: str = "-",
    ):
        self.api_key = api_key
        self.model = model
        self.voice = voice
        self.instruction = instruction
        self.ws_url = ws_url
        self.open_timeout = open_timeout
        self.pending_limit = pending_limit
        self.call_tag = call_tag

        self.state = SessionState.CONNECTING
        self.ws = None
        self._pending: Deque[bytes] = deque()
        self._recv_task: Optional[asyncio.Task] = None
        self._closed = False
        self._audio_handler: Optional[AudioChunkHandler] = None
        self._terminated_handler: Optional[TerminatedHandler] = None

        self.frames_sent = 0
        self.frames_buffered = 0
        self.frames_dropped = 0
        self.frames_rejected = 0
        self.chunks_received = 0
        self.chunks_invalid = 0

    @classmethod
    def from_settings(cls, settings: Settings, call_tag: str = "-") -> "GeminiLiveSession":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            voice=settings.gemini_voice,
            instruction=settings.system_instruction,
            ws_url=settings.gemini_ws_url,
            open_timeout=settings.open_timeout,
            pending_limit=settings.pending_frame_limit,
            call_tag=call_tag,
        )

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def on_audio_chunk(self, callback: AudioChunkHandler) -> None:
        """Register the async callback receiving each synthesized audio chunk."""
        self._audio_handler = callback

    def on_terminated(self, callback: TerminatedHandler) -> None:
        """Register the async callback fired once if an open session drops."""
        self._terminated_handler = callback

    async def open(self) -> None:
        """
        Establish the session, flush buffered frames and enter ``OPEN``.

        Raises:
            SessionOpenError: If the session cannot be established in time, or is
                closed while opening. The session is ``CLOSED`` afterwards.
        """
        if self.state is not SessionState.CONNECTING:
            raise SessionOpenError(f"Cannot open a session in state {self.state.value}")
        if not self.api_key:
            await self.close()
            raise SessionOpenError("GEMINI_API_KEY is not configured")

        try:
            await asyncio.wait_for(self._establish(), timeout=self.open_timeout)
        except asyncio.TimeoutError:
            await self.close()
            raise SessionOpenError(
                f"Timed out opening Gemini Live session after {self.open_timeout}s"
            )
        except asyncio.CancelledError:
            await self.close()
            raise
        except Exception as e:
            logger.debug(f"[{self.call_tag}] Open error details: {traceback.format_exc()}")
            await self.close()
            raise SessionOpenError(f"Failed to open Gemini Live session: {e}") from e

        if self.state is SessionState.CLOSED:
            # close() ran while connect was in flight; the socket it produced is ours to drop
            ws, self.ws = self.ws, None
            if ws is not None:
                await ws.close()
            raise SessionOpenError("Session closed while opening")

        self._recv_task = asyncio.create_task(
            self._recv_loop(), name=f"gemini-recv-{self.call_tag}"
        )

        flushed = await self._flush_pending()
        if self.state is SessionState.CLOSED:
            raise SessionOpenError("Session dropped while flushing buffered audio")

        # Nothing can interleave between the drained buffer and this transition
        self.state = SessionState.OPEN
        logger.info(
            f"[{self.call_tag}] Gemini Live session open "
            f"(model={self.model}, voice={self.voice}, flushed={flushed})"
        )

    async def _establish(self) -> None:
        """Connect, send setup and wait for setupComplete."""
        url = f"{self.ws_url}?key={self.api_key}"
        logger.info(f"[{self.call_tag}] Connecting to Gemini Live with model: {self.model}")

        self.ws = await websockets.connect(
            url,
            max_size=WS_MAX_SIZE,
            ping_interval=WS_PING_INTERVAL,
            ping_timeout=WS_PING_TIMEOUT,
            compression=None,
        )

        setup = SetupMessage.build(self.model, self.voice, self.instruction)
        await self.ws.send(setup.model_dump_json())
        logger.debug(
            f"[{self.call_tag}] Sent setup (instruction length={len(self.instruction)})"
        )

        while True:
            message = self._parse(await self.ws.recv())
            if message is not None and message.setupComplete is not None:
                logger.info(f"[{self.call_tag}] Gemini setup complete")
                return

    async def _flush_pending(self) -> int:
        """Send buffered frames in arrival order; frames queued meanwhile are included."""
        flushed = 0
        while self._pending and self.state is SessionState.CONNECTING:
            frame = self._pending.popleft()
            if not await self._transmit(frame):
                break
            flushed += 1
        return flushed

    async def send(self, frame: bytes) -> bool:
        """
        Forward one inbound audio frame. Never raises.

        Returns:
            bool: True if the frame was sent or buffered, False if dropped
        """
        if self.state is SessionState.CLOSED:
            self.frames_rejected += 1
            if self.frames_rejected == 1:
                logger.warning(f"[{self.call_tag}] Session closed, dropping inbound audio")
            else:
                logger.debug(f"[{self.call_tag}] Session closed, dropped frame #{self.frames_rejected}")
            return False

        if self.state is SessionState.CONNECTING:
            if len(self._pending) >= self.pending_limit:
                self.frames_dropped += 1
                if self.frames_dropped % DROP_LOG_INTERVAL == 1:
                    logger.warning(
                        f"[{self.call_tag}] Pending buffer full ({self.pending_limit} frames), "
                        f"dropped {self.frames_dropped} frame(s) so far"
                    )
                return False
            self._pending.append(frame)
            self.frames_buffered += 1
            return True

        return await self._transmit(frame)

    async def _transmit(self, frame: bytes) -> bool:
        if self.ws is None:
            return False
        message = RealtimeInputMessage.from_audio(frame)
        try:
            await self.ws.send(message.model_dump_json())
        except ConnectionClosed as e:
            logger.warning(f"[{self.call_tag}] Connection closed while sending audio: {e}")
            await self._connection_lost(f"connection closed while sending: {e}")
            return False
        except Exception as e:
            logger.error(f"[{self.call_tag}] Error sending audio frame: {e}")
            await self._connection_lost(f"send failed: {e}")
            return False
        self.frames_sent += 1
        return True

    def _parse(self, raw: Union[str, bytes]) -> Optional[ServerMessage]:
        try:
            return ServerMessage.model_validate(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"[{self.call_tag}] Received invalid JSON from Gemini: {e}")
        except ValidationError as e:
            logger.warning(f"[{self.call_tag}] Unexpected Gemini message shape: {e}")
        return None

    async def _recv_loop(self) -> None:
        """Receive server messages until the connection ends or the session closes."""
        reason = "connection ended"
        try:
            while self.state is not SessionState.CLOSED:
                raw = await self.ws.recv()
                message = self._parse(raw)
                if message is not None:
                    await self._process_message(message)
        except ConnectionClosedOK:
            logger.info(f"[{self.call_tag}] Gemini connection closed normally")
            reason = "connection closed by backend"
        except ConnectionClosed as e:
            logger.warning(f"[{self.call_tag}] Gemini connection closed unexpectedly: {e}")
            reason = f"connection closed unexpectedly: {e}"
        except Exception as e:
            logger.error(f"[{self.call_tag}] Error in Gemini receive loop: {e}")
            logger.debug(f"[{self.call_tag}] Receive loop error details: {traceback.format_exc()}")
            reason = f"receive loop failed: {e}"

        if self.state is not SessionState.CLOSED:
            await self._connection_lost(reason)

    async def _process_message(self, message: ServerMessage) -> None:
        for payload in message.audio_payloads():
            if self.state is SessionState.CLOSED:
                return
            try:
                chunk = base64.b64decode(payload)
            except (binascii.Error, ValueError) as e:
                self.chunks_invalid += 1
                logger.warning(f"[{self.call_tag}] Skipping undecodable audio part: {e}")
                continue
            self.chunks_received += 1
            if self._audio_handler is None:
                continue
            try:
                await self._audio_handler(chunk)
            except Exception as e:
                logger.error(f"[{self.call_tag}] Audio chunk handler failed: {e}", exc_info=True)

        content = message.serverContent
        if content is not None:
            if content.inputTranscription and content.inputTranscription.text:
                logger.debug(f"[{self.call_tag}] Caller: {content.inputTranscription.text}")
            if content.outputTranscription and content.outputTranscription.text:
                logger.debug(f"[{self.call_tag}] Agent: {content.outputTranscription.text}")
            if content.interrupted:
                logger.info(f"[{self.call_tag}] Model response interrupted (barge-in)")
            if content.turnComplete:
                logger.debug(f"[{self.call_tag}] Model turn complete")

        if message.goAway is not None:
            logger.warning(
                f"[{self.call_tag}] Gemini sent goAway (time left: {message.goAway.timeLeft})"
            )
        if message.toolCall is not None:
            logger.info(f"[{self.call_tag}] Ignoring tool call: {message.toolCall}")

    async def _connection_lost(self, reason: str) -> None:
        if self.state is SessionState.CLOSED:
            return
        was_open = self.state is SessionState.OPEN
        self.state = SessionState.CLOSED
        self._pending.clear()
        logger.warning(f"[{self.call_tag}] Gemini Live session lost: {reason}")

        if was_open and self._terminated_handler is not None:
            try:
                await self._terminated_handler(SessionTerminatedError(reason))
            except Exception as e:
                logger.error(f"[{self.call_tag}] Error in session terminated handler: {e}")

    def stats(self) -> Dict[str, int]:
        return {
            "frames_sent": self.frames_sent,
            "frames_buffered": self.frames_buffered,
            "frames_dropped": self.frames_dropped,
            "frames_rejected": self.frames_rejected,
            "chunks_received": self.chunks_received,
            "chunks_invalid": self.chunks_invalid,
        }

    async def close(self) -> None:
        """
        Release the session. Idempotent, and safe before or during ``open``.
        """
        if self._closed:
            return
        self._closed = True
        self.state = SessionState.CLOSED
        self._pending.clear()

        task, self._recv_task = self._recv_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug(f"[{self.call_tag}] Receive task cancelled")

        ws, self.ws = self.ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"[{self.call_tag}] Error closing Gemini WebSocket: {e}")

        logger.info(f"[{self.call_tag}] Gemini Live session closed {self.stats()}")

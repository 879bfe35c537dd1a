"""
Bridge between one Twilio media stream and one Gemini Live session.

This module wires a ``TelephonyChannel`` to a ``GeminiLiveSession`` for a single
call: caller audio flows into the session, synthesized audio flows back to the
caller tagged with the stream identifier, and whichever side ends first takes the
other down with it.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from salesvoice.bot.gemini_live import GeminiLiveSession
from salesvoice.bot.telephony_channel import CLOSE_INTERNAL_ERROR, TelephonyChannel
from salesvoice.config.constants import LOGGER_NAME
from salesvoice.errors import SessionOpenError, SessionTerminatedError

logger = logging.getLogger(LOGGER_NAME)

# Builds a fresh, unopened session for the given call tag
SessionFactory = Callable[[str], GeminiLiveSession]


class MediaStreamBridge:
    """
    Per-call relay between the telephony channel and the AI session.

    This class handles:
    - Opening the AI session without holding up inbound telephony frames
    - Forwarding caller audio to the session in arrival order
    - Forwarding synthesized audio to the caller once the stream id is known
    - Tearing the call down exactly once, whichever side fails or closes first
    """

    def __init__(
        self,
        channel: TelephonyChannel,
        session_factory: SessionFactory,
        reconnect_attempts: int = 0,
        call_tag: str = "-",
    ):
        self.channel = channel
        self.session_factory = session_factory
        self.reconnect_attempts = reconnect_attempts
        self.call_tag = call_tag

        self.stream_sid: Optional[str] = None
        self.session: Optional[GeminiLiveSession] = None
        self._open_task: Optional[asyncio.Task] = None
        self._torn_down = False
        self.reconnects_used = 0

        self.frames_forwarded = 0
        self.chunks_forwarded = 0
        self.chunks_dropped = 0

    @property
    def is_active(self) -> bool:
        return not self._torn_down

    async def start(self) -> None:
        """Create the AI session and begin opening it in the background."""
        self._start_session()

    def _start_session(self) -> None:
        session = self.session_factory(self.call_tag)
        session.on_audio_chunk(self._handle_audio_chunk)
        session.on_terminated(self._handle_session_terminated)
        self.session = session
        self._open_task = asyncio.create_task(
            self._open_session(session), name=f"gemini-open-{self.call_tag}"
        )

    async def _open_session(self, session: GeminiLiveSession) -> None:
        try:
            await session.open()
        except SessionOpenError as e:
            if self._torn_down or session is not self.session:
                return
            logger.error(f"[{self.call_tag}] AI session failed to open: {e}")
            await self._fail_call(f"AI session open failed: {e}")

    # Telephony listener interface

    async def on_start(self, stream_sid: str) -> None:
        if self.stream_sid and self.stream_sid != stream_sid:
            logger.warning(
                f"[{self.call_tag}] Stream id changed from {self.stream_sid} to {stream_sid}"
            )
        self.stream_sid = stream_sid

    async def on_audio_frame(self, frame: bytes) -> None:
        if self._torn_down or self.session is None:
            return
        if await self.session.send(frame):
            self.frames_forwarded += 1

    async def on_stop(self) -> None:
        await self.teardown("media stream stopped")

    async def on_close(self) -> None:
        await self.teardown("telephony channel closed")

    # AI session callbacks

    async def _handle_audio_chunk(self, chunk: bytes) -> None:
        if self._torn_down:
            return
        if self.stream_sid is None:
            self.chunks_dropped += 1
            logger.warning(f"[{self.call_tag}] Dropping AI audio: no stream id yet")
            return
        if not self.channel.is_open:
            self.chunks_dropped += 1
            logger.debug(f"[{self.call_tag}] Dropping AI audio: telephony channel closed")
            return
        if await self.channel.send_audio_frame(self.stream_sid, chunk):
            self.chunks_forwarded += 1
        else:
            self.chunks_dropped += 1

    async def _handle_session_terminated(self, error: SessionTerminatedError) -> None:
        if self._torn_down:
            return
        logger.error(f"[{self.call_tag}] AI session terminated mid-call: {error}")

        if self.reconnects_used < self.reconnect_attempts:
            self.reconnects_used += 1
            logger.info(
                f"[{self.call_tag}] Reopening AI session "
                f"(attempt {self.reconnects_used}/{self.reconnect_attempts})"
            )
            previous = self.session
            self._start_session()
            if previous is not None:
                await previous.close()
            return

        await self._fail_call(f"AI session terminated: {error}")

    async def _fail_call(self, reason: str) -> None:
        """End the call so the caller is not left on a silent line."""
        await self.teardown(reason)
        await self.channel.close(CLOSE_INTERNAL_ERROR, "AI session unavailable")

    def stats(self) -> Dict[str, int]:
        return {
            "frames_forwarded": self.frames_forwarded,
            "chunks_forwarded": self.chunks_forwarded,
            "chunks_dropped": self.chunks_dropped,
            "reconnects": self.reconnects_used,
        }

    async def teardown(self, reason: str) -> None:
        """
        Close the AI session and release bridge state. Idempotent.

        Args:
            reason: Why the call is ending, for the log
        """
        if self._torn_down:
            return
        self._torn_down = True

        task, self._open_task = self._open_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug(f"[{self.call_tag}] Session open task cancelled")

        session, self.session = self.session, None
        if session is not None:
            await session.close()

        logger.info(
            f"[{self.call_tag}] Bridge torn down ({reason}), "
            f"streamSid={self.stream_sid}, stats={self.stats()}"
        )
        self.stream_sid = None

"""
WebSocket connection manager for Twilio media streams.

This module implements the server side of the media stream endpoint, providing the
infrastructure to:
- Accept each media stream WebSocket
- Build one telephony channel and one audio bridge per connection
- Run the channel's receive loop until either side ends the call
- Guarantee teardown and socket release, isolating each call's failures

The MediaStreamManager holds no per-call state beyond a count of active bridges;
every bridge owns its own AI session.
"""

import itertools
import logging
from typing import Optional, Set

from fastapi import WebSocket

from salesvoice.bot.gemini_live import GeminiLiveSession
from salesvoice.bot.media_stream_bridge import MediaStreamBridge, SessionFactory
from salesvoice.bot.telephony_channel import TelephonyChannel
from salesvoice.config.constants import LOGGER_NAME
from salesvoice.config.settings import Settings, get_settings

logger = logging.getLogger(LOGGER_NAME)


class MediaStreamManager:
    """Accepts media stream connections and runs one bridge per call."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory or self._default_session_factory
        self.active_bridges: Set[MediaStreamBridge] = set()
        self._call_counter = itertools.count(1)

    def _default_session_factory(self, call_tag: str) -> GeminiLiveSession:
        return GeminiLiveSession.from_settings(self.settings, call_tag=call_tag)

    @property
    def active_calls(self) -> int:
        return len(self.active_bridges)

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a media stream WebSocket throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Creates the channel and bridge and starts opening the AI session
        3. Relays messages until the stream stops or either side closes
        4. Tears the bridge down and closes the socket, whatever happened

        Errors are logged and contained so one broken call never affects another.
        """
        await websocket.accept()

        call_tag = f"call-{next(self._call_counter)}"
        logger.info(f"[{call_tag}] Media stream connection accepted")

        channel = TelephonyChannel(
            websocket,
            malformed_policy=self.settings.malformed_policy,
            max_consecutive_malformed=self.settings.max_consecutive_malformed,
            call_tag=call_tag,
        )
        bridge = MediaStreamBridge(
            channel,
            self.session_factory,
            reconnect_attempts=self.settings.reconnect_attempts,
            call_tag=call_tag,
        )
        self.active_bridges.add(bridge)

        try:
            await bridge.start()
            await channel.run(bridge)
        except Exception as e:
            logger.error(f"[{call_tag}] Error in media stream connection: {e}", exc_info=True)
        finally:
            await bridge.teardown("connection handler exiting")
            await channel.close()
            self.active_bridges.discard(bridge)
            logger.info(f"[{call_tag}] Media stream connection closed")

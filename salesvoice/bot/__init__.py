"""
Bot module: the per-call audio bridge between Twilio and Gemini Live.

Key components:
- TelephonyChannel: Adapter over the Twilio media stream WebSocket. Parses inbound
  events (start, media, stop) and frames outbound audio, refusing writes once the
  transport is closed.
- GeminiLiveSession: One streaming session to Gemini Live with an explicit
  CONNECTING -> OPEN -> CLOSED state machine and a bounded buffer for caller audio
  that arrives before the session is ready.
- MediaStreamBridge: Wires one channel to one session, tags outbound audio with the
  stream id and tears the call down exactly once.

Usage examples:
```python
from salesvoice.bot import GeminiLiveSession, MediaStreamBridge, TelephonyChannel

channel = TelephonyChannel(websocket, call_tag="call-1")
bridge = MediaStreamBridge(
    channel,
    lambda tag: GeminiLiveSession(api_key, call_tag=tag),
    call_tag="call-1",
)
await bridge.start()
await channel.run(bridge)
```
"""

from salesvoice.bot.gemini_live import GeminiLiveSession, SessionState
from salesvoice.bot.media_stream_bridge import MediaStreamBridge
from salesvoice.bot.telephony_channel import TelephonyChannel

__all__ = ["GeminiLiveSession", "SessionState", "MediaStreamBridge", "TelephonyChannel"]

"""
Models module for the wire formats spoken by the SalesVoice bridge.

Key components:
- twilio_schemas: Pydantic models for Twilio Media Streams events (connected, start,
  media, stop, mark) and the outbound media message.
- gemini_schemas: Pydantic models for the Gemini Live setup message, realtime audio
  input and the server messages carrying synthesized audio.
- call_schemas: Request and error bodies of the call-control HTTP endpoints.

Usage examples:
```python
from salesvoice.models.twilio_schemas import OutgoingMediaMessage, StartMessage

start = StartMessage(**{"event": "start", "start": {"streamSid": "MZ123"}})
reply = OutgoingMediaMessage.from_audio(start.start.streamSid, b"\\x00\\x01")
print(reply.model_dump_json())
```
"""

"""
Handlers module for the call-control side of the SalesVoice bridge.

Key components:
- call_handlers: Places outbound calls through the Twilio REST API and builds the
  TwiML answer that connects a call to the ``/media-stream`` endpoint.

The audio itself never passes through these handlers; once Twilio opens the media
stream, ``salesvoice.websocket_manager`` and ``salesvoice.bot`` take over.
"""

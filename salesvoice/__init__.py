"""
SalesVoice - Twilio Media Streams to Gemini Live Bridge

This application lets an AI sales agent hold phone calls. Twilio carries the call
audio over a bidirectional media stream WebSocket; the service relays the caller's
audio to a Gemini Live session and streams the synthesized replies back.

Architecture Overview:
- FastAPI server exposing call-control endpoints and the media stream WebSocket
- One audio bridge per call, owning one Gemini Live session
- Explicit session state machine with bounded buffering of early caller audio
- Deterministic teardown: a failed AI session ends the call instead of leaving it silent

Key Components:
- bot: Telephony channel adapter, Gemini Live session and the per-call bridge
- config: Constants, logging setup and environment-driven settings
- handlers: Outbound call and call-setup webhook handlers
- models: Pydantic models for the Twilio, Gemini and HTTP wire formats
- services: Twilio REST client
- websocket_manager: Accepts media streams and runs one bridge per connection

Getting Started:
1. Set up environment variables (or a .env file):
   - GEMINI_API_KEY: Your Gemini API key
   - PORT: Port to run the server on (default 8080)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point a Twilio number's voice webhook at https://your-host/incoming-call, or
   POST to /outbound-call to have the agent dial out.
"""

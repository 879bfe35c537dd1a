"""
FastAPI server for the SalesVoice Twilio to Gemini Live voice agent.

This module initializes and configures the FastAPI application. It exposes the
call-control endpoints Twilio and the sales frontend talk to, and the media stream
WebSocket on which each call's audio bridge runs:

- POST /outbound-call: place a call through the Twilio REST API
- GET|POST /incoming-call: TwiML connecting the answered call to /media-stream
- WS /media-stream: bidirectional audio relay between Twilio and Gemini Live
- GET /health and GET /: status endpoints
"""

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from salesvoice.config.constants import (
    APP_NAME,
    APP_VERSION,
    ROUTE_INCOMING_CALL,
    ROUTE_MEDIA_STREAM,
    ROUTE_OUTBOUND_CALL,
)
from salesvoice.config.logging_config import configure_logging
from salesvoice.config.settings import get_settings
from salesvoice.handlers.call_handlers import (
    build_stream_twiml,
    handle_outbound_call,
    resolve_host,
)
from salesvoice.models.call_schemas import OutboundCallRequest
from salesvoice.services.twilio_client import TwilioCallClient
from salesvoice.websocket_manager import MediaStreamManager

# Load settings (and the .env file, if present) before anything reads them
settings = get_settings()

# Configure logging
logger = configure_logging(settings.log_level)

# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    description="Bridges Twilio Media Streams to the Gemini Live API for an AI sales agent",
    version=APP_VERSION,
)

# Reflect any origin; the frontend calls /outbound-call from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Create media stream manager and provider client
media_stream_manager = MediaStreamManager(settings)
twilio_client = TwilioCallClient(
    api_base=settings.twilio_api_base,
    timeout=settings.outbound_call_timeout,
)


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Service status and the available endpoints.
    """
    return {
        "status": "SalesVoice AI Server Running",
        "name": APP_NAME,
        "version": APP_VERSION,
        "endpoints": {
            ROUTE_OUTBOUND_CALL: "Place an outbound call",
            ROUTE_INCOMING_CALL: "Twilio call-setup webhook",
            ROUTE_MEDIA_STREAM: "Twilio media stream WebSocket",
            "/health": "Health check endpoint",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information, whether Gemini is configured and the number of calls
        currently bridged.
    """
    return {
        "status": "healthy",
        "gemini_api_key_configured": bool(settings.gemini_api_key),
        "active_calls": media_stream_manager.active_calls,
    }


@app.post(ROUTE_OUTBOUND_CALL)
async def outbound_call(call: OutboundCallRequest, request: Request):
    """Place an outbound call that Twilio will connect back to this service."""
    host = resolve_host(request, settings)
    return await handle_outbound_call(call, host, twilio_client)


@app.api_route(ROUTE_INCOMING_CALL, methods=["GET", "POST"])
async def incoming_call(request: Request):
    """Answer Twilio's call-setup request with TwiML opening a media stream."""
    twiml = build_stream_twiml(resolve_host(request, settings), settings.call_greeting)
    return Response(content=twiml, media_type="text/xml")


@app.websocket(ROUTE_MEDIA_STREAM)
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint for Twilio Media Streams.

    Each connection is one call: its audio is relayed to a dedicated Gemini Live
    session and the synthesized replies are streamed back to the caller.
    """
    await media_stream_manager.handle_websocket(websocket)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB - large enough for audio chunks
        websocket_ping_timeout=20,
        http="h11",
    )

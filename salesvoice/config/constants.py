"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, defaults and audio profile values
shared by the telephony side and the Gemini Live side of the bridge.
"""

# Logger name used throughout the application
LOGGER_NAME = "salesvoice"

APP_NAME = "SalesVoice AI"
APP_VERSION = "1.0.0"

# Gemini Live defaults
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-native-audio-preview-12-2025"
DEFAULT_GEMINI_VOICE = "Puck"
DEFAULT_GEMINI_WS_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)
DEFAULT_SYSTEM_INSTRUCTION = (
    "You are Alex, a sales agent selling websites for $800. "
    "Be concise and professional."
)
RESPONSE_MODALITY_AUDIO = "AUDIO"

# Audio profile: Twilio narrowband rate, passed through untouched
TELEPHONY_SAMPLE_RATE = 8000
INPUT_AUDIO_MIME_TYPE = f"audio/pcm;rate={TELEPHONY_SAMPLE_RATE}"

# Relay policy defaults
DEFAULT_OPEN_TIMEOUT_SECONDS = 10.0
DEFAULT_PENDING_FRAME_LIMIT = 50  # ~1s of 20ms frames
DEFAULT_RECONNECT_ATTEMPTS = 0
DEFAULT_MAX_CONSECUTIVE_MALFORMED = 10

# Twilio
DEFAULT_TWILIO_API_BASE = "https://api.twilio.com"
TWILIO_CALLS_PATH = "/2010-04-01/Accounts/{account_sid}/Calls.json"
DEFAULT_OUTBOUND_CALL_TIMEOUT_SECONDS = 15.0
DEFAULT_CALL_GREETING = "Connecting to Sales Voice AI."

# Routes
ROUTE_INCOMING_CALL = "/incoming-call"
ROUTE_OUTBOUND_CALL = "/outbound-call"
ROUTE_MEDIA_STREAM = "/media-stream"

# Twilio media stream event names
EVENT_CONNECTED = "connected"
EVENT_START = "start"
EVENT_MEDIA = "media"
EVENT_STOP = "stop"
EVENT_MARK = "mark"

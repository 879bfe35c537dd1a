"""
Error taxonomy for the SalesVoice bridge.

Each failure the relay can meet belongs to one kind, and each kind has one
handling policy:

- TRANSPORT_PARSE: malformed telephony message. Logged, frame dropped, channel kept
  open unless the desync policy says otherwise.
- CALL_INITIATION: the provider rejected an outbound call. Surfaced to the HTTP
  caller with the upstream text, never retried.
- SESSION_OPEN: the AI session could not be established. The telephony channel is
  closed so the call ends instead of sitting silent.
- SESSION_TERMINATED: the AI session dropped mid-call. The bridge is torn down and
  the telephony channel closed, unless a configured reconnect succeeds.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    TRANSPORT_PARSE = "transport_parse"
    CALL_INITIATION = "call_initiation"
    SESSION_OPEN = "session_open"
    SESSION_TERMINATED = "session_terminated"


class SalesVoiceError(Exception):
    """Base class for every error raised by the bridge."""

    kind: ErrorKind


class TelephonyProtocolError(SalesVoiceError):
    """An inbound telephony message could not be parsed."""

    kind = ErrorKind.TRANSPORT_PARSE

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class OutboundCallError(SalesVoiceError):
    """The provider API refused or failed to create a call."""

    kind = ErrorKind.CALL_INITIATION

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class SessionOpenError(SalesVoiceError):
    """The AI session failed to open or timed out while opening."""

    kind = ErrorKind.SESSION_OPEN


class SessionTerminatedError(SalesVoiceError):
    """The AI session closed unexpectedly after it was open."""

    kind = ErrorKind.SESSION_TERMINATED

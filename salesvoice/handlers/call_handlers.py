"""
Handles call-control requests: placing outbound calls and answering the provider's
call-setup webhook.

The webhook answer is a static TwiML document that greets the caller and connects
the call to this service's media stream endpoint, where the audio bridge takes over.
"""

import logging
from typing import Any, Dict, Union
from xml.sax.saxutils import escape, quoteattr

from fastapi import Request
from fastapi.responses import JSONResponse

from salesvoice.config.constants import LOGGER_NAME, ROUTE_INCOMING_CALL, ROUTE_MEDIA_STREAM
from salesvoice.config.settings import Settings
from salesvoice.errors import OutboundCallError
from salesvoice.models.call_schemas import ErrorResponse, OutboundCallRequest
from salesvoice.services.twilio_client import TwilioCallClient

logger = logging.getLogger(LOGGER_NAME)


def resolve_host(request: Request, settings: Settings) -> str:
    """Public host name the provider should call back, without scheme."""
    if settings.public_host:
        return settings.public_host.replace("https://", "").replace("http://", "").rstrip("/")
    return request.headers.get("host", "localhost")


def build_stream_twiml(host: str, greeting: str) -> str:
    """
    Build the TwiML that connects a call to the media stream endpoint.

    Args:
        host: Public host of this service
        greeting: Sentence spoken to the caller before the stream connects
    """
    stream_url = f"wss://{host}{ROUTE_MEDIA_STREAM}"
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<Response>"
        f"<Say>{escape(greeting)}</Say>"
        "<Connect>"
        f"<Stream url={quoteattr(stream_url)} />"
        "</Connect>"
        "</Response>"
    )


async def handle_outbound_call(
    call: OutboundCallRequest,
    host: str,
    client: TwilioCallClient,
) -> Union[Dict[str, Any], JSONResponse]:
    """
    Place an outbound call whose audio will be bridged through this service.

    Args:
        call: Destination, caller ID and provider credentials
        host: Public host of this service, used for the callback URL
        client: Twilio REST client

    Returns:
        The provider's JSON on success, or a 500 response carrying the upstream error
    """
    callback_url = f"https://{host}{ROUTE_INCOMING_CALL}"
    try:
        return await client.create_call(
            account_sid=call.accountSid,
            auth_token=call.authToken,
            to=call.to,
            from_=call.from_,
            callback_url=callback_url,
        )
    except OutboundCallError as e:
        logger.error(f"Outbound call to {call.to} failed: {e.detail}")
        error = ErrorResponse(error=e.detail, status=e.status_code)
        return JSONResponse(status_code=500, content=error.model_dump(exclude_none=True))

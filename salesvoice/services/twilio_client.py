"""
Twilio REST client used to place outbound calls.

The client issues a single ``Calls.json`` request per call. Credentials come from the
caller of the outbound-call endpoint and are never stored.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from salesvoice.config.constants import (
    DEFAULT_OUTBOUND_CALL_TIMEOUT_SECONDS,
    DEFAULT_TWILIO_API_BASE,
    LOGGER_NAME,
    TWILIO_CALLS_PATH,
)
from salesvoice.errors import OutboundCallError

logger = logging.getLogger(LOGGER_NAME)


class TwilioCallClient:
    """
    Client for the Twilio Calls API.
    """

    def __init__(
        self,
        api_base: str = DEFAULT_TWILIO_API_BASE,
        timeout: float = DEFAULT_OUTBOUND_CALL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_base: Scheme and host of the Twilio API
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def create_call(
        self,
        account_sid: str,
        auth_token: str,
        to: str,
        from_: str,
        callback_url: str,
    ) -> Dict[str, Any]:
        """
        Ask Twilio to dial ``to`` and fetch call instructions from ``callback_url``.

        Returns:
            The provider's JSON response

        Raises:
            OutboundCallError: On any non-2xx response (redirects included) or a transport failure
        """
        url = self.api_base + TWILIO_CALLS_PATH.format(account_sid=account_sid)
        form = {"Url": callback_url, "To": to, "From": from_}

        logger.info(f"Initiating call to {to}...")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, data=form, auth=(account_sid, auth_token))
        except httpx.HTTPError as e:
            logger.error(f"Call request to Twilio failed: {e}")
            raise OutboundCallError(f"Twilio request failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Twilio rejected call | status={response.status_code} | body={response.text}"
            )
            raise OutboundCallError(response.text, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise OutboundCallError(
                f"Twilio returned a non-JSON response: {response.text}",
                status_code=response.status_code,
            ) from e

        logger.info(f"Call created (sid={data.get('sid')}, status={data.get('status')})")
        return data

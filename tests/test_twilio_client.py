import base64
from urllib.parse import parse_qs

import httpx
import pytest

from salesvoice.errors import ErrorKind, OutboundCallError
from salesvoice.services.twilio_client import TwilioCallClient

CALL_ARGS = {
    "account_sid": "AC123",
    "auth_token": "secret",
    "to": "+15551230000",
    "from_": "+15559870000",
    "callback_url": "https://bridge.example.com/incoming-call",
}


def make_client(handler):
    return TwilioCallClient(api_base="https://api.twilio.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_create_call_posts_form_with_basic_auth():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"sid": "CA999", "status": "queued"})

    result = await make_client(handler).create_call(**CALL_ARGS)

    assert result == {"sid": "CA999", "status": "queued"}
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.twilio.test/2010-04-01/Accounts/AC123/Calls.json"

    expected_auth = base64.b64encode(b"AC123:secret").decode()
    assert request.headers["authorization"] == f"Basic {expected_auth}"

    form = parse_qs(request.content.decode())
    assert form == {
        "Url": ["https://bridge.example.com/incoming-call"],
        "To": ["+15551230000"],
        "From": ["+15559870000"],
    }


@pytest.mark.asyncio
async def test_create_call_rejected_carries_upstream_text():
    def handler(request):
        return httpx.Response(400, text='{"code": 21211, "message": "Invalid To number"}')

    with pytest.raises(OutboundCallError) as exc_info:
        await make_client(handler).create_call(**CALL_ARGS)

    error = exc_info.value
    assert error.kind is ErrorKind.CALL_INITIATION
    assert error.status_code == 400
    assert "Invalid To number" in error.detail


@pytest.mark.asyncio
async def test_create_call_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(OutboundCallError) as exc_info:
        await make_client(handler).create_call(**CALL_ARGS)

    assert exc_info.value.status_code is None
    assert "connection refused" in exc_info.value.detail


@pytest.mark.asyncio
async def test_create_call_non_json_response():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(OutboundCallError):
        await make_client(handler).create_call(**CALL_ARGS)


@pytest.mark.asyncio
async def test_create_call_redirect_is_not_success():
    def handler(request):
        return httpx.Response(
            302, headers={"Location": "https://api.twilio.test/moved"}, text="Moved"
        )

    with pytest.raises(OutboundCallError) as exc_info:
        await make_client(handler).create_call(**CALL_ARGS)

    assert exc_info.value.status_code == 302
    assert exc_info.value.kind is ErrorKind.CALL_INITIATION

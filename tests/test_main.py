import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch

from salesvoice.errors import OutboundCallError
from salesvoice.main import app, media_stream_manager, twilio_client

client = TestClient(app)

OUTBOUND_BODY = {
    "to": "+15551230000",
    "from": "+15559870000",
    "accountSid": "AC123",
    "authToken": "secret",
}


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["gemini_api_key_configured"], bool)
    assert response_json["active_calls"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "SalesVoice AI Server Running"
    assert response_json["version"] == "1.0.0"
    assert "/media-stream" in response_json["endpoints"]
    assert "/outbound-call" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


@pytest.mark.parametrize("method", ["get", "post"])
def test_incoming_call_returns_stream_twiml(method):
    response = getattr(client, method)("/incoming-call", headers={"host": "bridge.example.com"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    body = response.text
    assert "<Connect>" in body
    assert '<Stream url="wss://bridge.example.com/media-stream" />' in body
    assert "<Say>" in body


def test_outbound_call_success():
    provider_response = {"sid": "CA999", "status": "queued"}
    with patch.object(
        twilio_client, "create_call", new=AsyncMock(return_value=provider_response)
    ) as mock_create:
        response = client.post(
            "/outbound-call", json=OUTBOUND_BODY, headers={"host": "bridge.example.com"}
        )

    assert response.status_code == 200
    assert response.json() == provider_response
    mock_create.assert_awaited_once_with(
        account_sid="AC123",
        auth_token="secret",
        to="+15551230000",
        from_="+15559870000",
        callback_url="https://bridge.example.com/incoming-call",
    )


def test_outbound_call_provider_error_returns_500():
    error = OutboundCallError('{"message": "Invalid To number"}', status_code=400)
    with patch.object(twilio_client, "create_call", new=AsyncMock(side_effect=error)):
        response = client.post("/outbound-call", json=OUTBOUND_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": '{"message": "Invalid To number"}', "status": 400}


def test_outbound_call_missing_fields_rejected():
    with patch.object(twilio_client, "create_call", new=AsyncMock()) as mock_create:
        response = client.post("/outbound-call", json={"to": "+15551230000"})

    assert response.status_code == 422
    mock_create.assert_not_awaited()


def test_cors_preflight_reflects_origin():
    response = client.options(
        "/outbound-call",
        headers={
            "Origin": "https://sales.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://sales.example.com"
    assert response.headers["access-control-allow-credentials"] == "true"


@pytest.mark.asyncio
async def test_media_stream_endpoint():
    """Test that the media stream endpoint hands the socket to the manager"""
    with patch.object(media_stream_manager, "handle_websocket", new=AsyncMock()) as mock_handle:
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_awaited_once_with(mock_websocket)

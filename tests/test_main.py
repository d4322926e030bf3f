from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from voice_relay.gateway import SessionGateway
from voice_relay.main import app, bridge, gateway

client = TestClient(app)


def test_gateway_initialization():
    """Test that the gateway is wired to the shared bridge and context manager"""
    assert isinstance(gateway, SessionGateway)
    assert gateway.bridge is bridge
    assert gateway.context_manager is bridge.context_manager
    assert "start_conversation" in gateway.handlers


def test_voice_route_registered():
    assert any(route.path == "/voice" for route in app.routes)


@pytest.mark.asyncio
async def test_voice_endpoint():
    """Test that the websocket endpoint delegates to the gateway"""
    with patch("voice_relay.gateway.SessionGateway.handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/voice")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_start_conversation_without_api_key():
    """Without an API key the client learns the voice service is unavailable"""
    with patch.object(bridge, "api_key", None):
        with client.websocket_connect("/voice") as websocket:
            websocket.send_json({"type": "start_conversation", "language": "en"})
            started = websocket.receive_json()
            error = websocket.receive_json()
            closed = websocket.receive_json()

    assert started["type"] == "conversation_started"
    assert started["language"] == "en"
    assert started["agentName"]
    assert error["type"] == "error"
    assert closed == {"type": "session_closed"}

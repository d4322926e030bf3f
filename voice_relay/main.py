"""
FastAPI server for the patient-intake voice relay.

This module initializes and configures the FastAPI application that browser
clients connect to. It wires the profile store, the conversation context
manager, the OpenAI realtime bridge and the session gateway together and
exposes the gateway on the /voice WebSocket endpoint.

On shutdown every live conversation is ended and persisted before the process
exits.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket

from voice_relay.bot.realtime_bridge import RealtimeBridge
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import get_settings
from voice_relay.gateway import SessionGateway
from voice_relay.services.context_manager import ConversationContextManager
from voice_relay.services.profile_store import create_profile_store
from voice_relay.services.summarizer import ConversationSummarizer

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

settings = get_settings()

# Configure logging
logger = configure_logging(settings.log_level)

context_manager = ConversationContextManager(
    profile_store=create_profile_store(settings),
    summarizer=ConversationSummarizer(settings.openai_api_key, model=settings.summary_model),
)
bridge = RealtimeBridge(context_manager)
gateway = SessionGateway(context_manager, bridge)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set, conversations will fail to connect")
    logger.info(f"Voice relay started (env: {settings.app_env})")
    yield
    await gateway.shutdown()
    logger.info("Voice relay stopped")


# Create FastAPI application
app = FastAPI(
    title="Voice Relay",
    description="Realtime voice relay between browser clients and the OpenAI Realtime API",
    version="1.0.0",
    lifespan=lifespan,
)


@app.websocket("/voice")
async def voice_endpoint(websocket: WebSocket):
    """WebSocket endpoint for realtime voice conversations.

    This endpoint handles the complete WebSocket lifecycle for a client:
    - Conversation lifecycle (start, end, language change)
    - Microphone audio streaming and barge-in
    - Delivery of assistant audio, transcripts and status events

    All frames are JSON objects with a "type" field.
    """
    await gateway.handle_websocket(websocket)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        websocket_ping_interval=5,  # More frequent pings to keep connections alive
        websocket_max_size=16777216,  # 16MB - large enough for audio chunks
        websocket_ping_timeout=20,  # Timeout for pings to detect dead connections
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
    )

"""
Client-facing WebSocket gateway for the voice relay.

This module implements the server side of the /voice WebSocket protocol,
providing the infrastructure to:
- Accept and track client connections
- Validate incoming commands and route them to handler functions
- Deliver events to each client in order through a single sender task
- End the bound conversation when the client disconnects or the server stops

The SessionGateway class is the central component that ties browser clients to
the conversation context manager and the OpenAI realtime bridge.
"""

import asyncio
import json
import logging
import uuid
from typing import Awaitable, Callable, Dict, Optional, Type

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from voice_relay.bot.realtime_bridge import RealtimeBridge
from voice_relay.config.constants import (
    COMMAND_AUDIO_COMMIT,
    COMMAND_AUDIO_DATA,
    COMMAND_END_CONVERSATION,
    COMMAND_INTERRUPT,
    COMMAND_START_CONVERSATION,
    COMMAND_UPDATE_LANGUAGE,
    LOGGER_NAME,
)
from voice_relay.handlers.audio_handlers import (
    handle_audio_commit,
    handle_audio_data,
    handle_interrupt,
)
from voice_relay.handlers.conversation_handlers import (
    handle_end_conversation,
    handle_start_conversation,
    handle_update_language,
)
from voice_relay.models.message_schemas import (
    AudioCommitCommand,
    AudioDataCommand,
    BaseCommand,
    BaseEvent,
    EndConversationCommand,
    InterruptCommand,
    StartConversationCommand,
    UpdateLanguageCommand,
)
from voice_relay.services.context_manager import ConversationContextManager

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[[BaseCommand, "ClientConnection", "SessionGateway"], Awaitable[None]]

COMMAND_MODELS: Dict[str, Type[BaseCommand]] = {
    COMMAND_START_CONVERSATION: StartConversationCommand,
    COMMAND_AUDIO_DATA: AudioDataCommand,
    COMMAND_AUDIO_COMMIT: AudioCommitCommand,
    COMMAND_INTERRUPT: InterruptCommand,
    COMMAND_END_CONVERSATION: EndConversationCommand,
    COMMAND_UPDATE_LANGUAGE: UpdateLanguageCommand,
}


class ClientConnection:
    """
    One client WebSocket and its outbound event channel.

    Events are queued by whoever produces them (command handlers, the realtime
    receive loop) and written to the socket by a single sender task, so the
    client sees them in the order they were queued.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.connection_id = str(uuid.uuid4())
        self.session_id: Optional[str] = None
        self.outbound: asyncio.Queue = asyncio.Queue()
        self.client_gone = False
        self._sender_task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._sender_task is None:
            self._sender_task = asyncio.create_task(self._send_loop())

    async def send_event(self, event: BaseEvent) -> None:
        await self.outbound.put(event)

    async def _send_loop(self) -> None:
        while True:
            event = await self.outbound.get()
            if event is None:
                break
            if self.client_gone:
                continue
            try:
                await self.websocket.send_text(event.to_json())
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info(f"Client {self.connection_id} is gone, dropping outbound events: {e}")
                self.client_gone = True
            except Exception as e:
                logger.error(f"Error sending {event.type} to {self.connection_id}: {e}", exc_info=True)
                self.client_gone = True

    async def close(self) -> None:
        """Flush queued events and stop the sender task."""
        if self._sender_task is None:
            return
        await self.outbound.put(None)
        await self._sender_task
        self._sender_task = None


class SessionGateway:
    """Accepts client connections and routes their commands to handlers.

    This class handles:
    - Connection lifecycle (accept, receive loop, disconnect cleanup)
    - Command validation against the pydantic command models
    - Binding at most one conversation to each connection
    - Ending every bound conversation on server shutdown

    Each command is routed to a specific handler function based on its "type" field.
    """

    def __init__(self, context_manager: ConversationContextManager, bridge: RealtimeBridge):
        self.context_manager = context_manager
        self.bridge = bridge
        self.connections: Dict[str, ClientConnection] = {}

        # Define handlers dictionary
        self.handlers: Dict[str, HandlerFunc] = {
            COMMAND_START_CONVERSATION: handle_start_conversation,
            COMMAND_AUDIO_DATA: handle_audio_data,
            COMMAND_AUDIO_COMMIT: handle_audio_commit,
            COMMAND_INTERRUPT: handle_interrupt,
            COMMAND_END_CONVERSATION: handle_end_conversation,
            COMMAND_UPDATE_LANGUAGE: handle_update_language,
        }

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a client WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Processes incoming commands in a loop
        3. Ends the bound conversation when the client goes away
        4. Flushes and stops the outbound sender
        """
        await websocket.accept()
        connection = ClientConnection(websocket)
        connection.start()
        self.connections[connection.connection_id] = connection
        logger.info(f"Client connected: {connection.connection_id}")

        try:
            while True:
                data = await websocket.receive_text()
                await self.handle_message(connection, data)
        except WebSocketDisconnect:
            logger.info(f"Client disconnected: {connection.connection_id}")
        except Exception as e:
            logger.error(f"Error in WebSocket connection: {e}", exc_info=True)
        finally:
            await self.on_disconnect(connection)
            await connection.close()
            self.connections.pop(connection.connection_id, None)
            try:
                await websocket.close()
            except RuntimeError as e:
                logger.debug(f"WebSocket already closed by the client: {e}")
            logger.info(f"WebSocket connection closed: {connection.connection_id}")

    async def handle_message(self, connection: ClientConnection, data: str) -> None:
        """
        Validate one text frame and run its handler.

        Malformed frames are logged and skipped; the connection stays open.
        """
        try:
            message_dict = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from {connection.connection_id}: {data[:100]}")
            return
        if not isinstance(message_dict, dict):
            logger.warning(f"Ignoring non-object frame from {connection.connection_id}")
            return

        message_type = message_dict.get("type")
        model = COMMAND_MODELS.get(message_type)
        if model is None:
            logger.warning(f"Unknown message type received: {message_type}")
            return

        try:
            command = model.model_validate(message_dict)
        except ValidationError as e:
            logger.error(f"Message validation error for {message_type}: {e}")
            return

        # Audio frames arrive continuously, keep their path free of logging
        if message_type != COMMAND_AUDIO_DATA:
            logger.info(
                f"Received message type: {message_type}"
                + (f" for conversation: {connection.session_id}" if connection.session_id else "")
            )

        try:
            await self.handlers[message_type](command, connection, self)
        except Exception as e:
            logger.error(f"Error handling {message_type}: {e}", exc_info=True)

    async def end_bound_session(self, connection: ClientConnection, summary: Optional[str] = None) -> None:
        """
        Unbind the connection's conversation, close its provider connection and end it.

        Args:
            connection: The connection whose conversation should end
            summary: Explicit summary to persist instead of a generated one
        """
        session_id = connection.session_id
        if session_id is None:
            return
        connection.session_id = None
        await self.bridge.close(session_id)
        await self.context_manager.end_session(session_id, explicit_summary=summary)
        logger.info(f"Conversation ended: {session_id}")

    async def on_disconnect(self, connection: ClientConnection) -> None:
        if connection.session_id is None:
            return
        logger.info(f"Cleaning up conversation {connection.session_id} after disconnect")
        try:
            await self.end_bound_session(connection)
        except Exception as e:
            logger.error(f"Error ending conversation on disconnect: {e}", exc_info=True)

    async def shutdown(self) -> None:
        """End every bound conversation and close all provider connections."""
        logger.info(f"Shutting down, ending {len(self.connections)} connection(s)")
        for connection in list(self.connections.values()):
            try:
                await self.end_bound_session(connection, summary="Server shutdown")
            except Exception as e:
                logger.error(f"Error ending conversation on shutdown: {e}", exc_info=True)
        await self.bridge.close_all()

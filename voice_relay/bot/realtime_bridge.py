"""
Bridge between conversation sessions and the OpenAI Realtime API.

The bridge owns at most one RealtimeClient per conversation. It configures the
provider session from the conversation state, greets the patient once the
configuration is acknowledged, records finished transcripts, answers tool calls
and forwards translated events to the client through the emitter registered for
the conversation.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from voice_relay.bot.event_translator import translate_event
from voice_relay.bot.prompts import greeting_prompt
from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.session_config import build_session_config, build_session_update
from voice_relay.bot.tool_handler import ToolHandler
from voice_relay.config.constants import (
    EVENT_CONVERSATION_ITEM_CREATE,
    EVENT_ERROR,
    EVENT_FUNCTION_CALL_ARGUMENTS_DONE,
    EVENT_INPUT_AUDIO_APPEND,
    EVENT_INPUT_AUDIO_COMMIT,
    EVENT_INPUT_TRANSCRIPTION_COMPLETED,
    EVENT_RESPONSE_CANCEL,
    EVENT_RESPONSE_CREATE,
    EVENT_RESPONSE_TRANSCRIPT_DONE,
    EVENT_SESSION_UPDATED,
    LOGGER_NAME,
    MODALITIES,
)
from voice_relay.config.settings import get_settings
from voice_relay.models.conversation import ConversationSession, Role, UpstreamState
from voice_relay.models.message_schemas import BaseEvent, ErrorEvent, SessionClosedEvent
from voice_relay.services.context_manager import ConversationContextManager

logger = logging.getLogger(LOGGER_NAME)

EventEmitter = Callable[[BaseEvent], Awaitable[None]]
ClientFactory = Callable[[str, str, str], RealtimeClient]


class RealtimeBridge:
    """
    Per-conversation registry of OpenAI Realtime connections.

    This class handles:
    - Opening and configuring one provider connection per conversation
    - Translating provider events and forwarding them to the client
    - Capturing transcripts and answering tool calls
    - Reconfiguring the provider session after a language change
    """

    def __init__(
        self,
        context_manager: ConversationContextManager,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        production: Optional[bool] = None,
        greeting_delay: Optional[float] = None,
        client_factory: ClientFactory = RealtimeClient,
    ):
        settings = get_settings()
        self.context_manager = context_manager
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.realtime_model
        self.production = settings.is_production if production is None else production
        self.greeting_delay = settings.greeting_delay if greeting_delay is None else greeting_delay
        self.client_factory = client_factory
        self.clients: Dict[str, RealtimeClient] = {}
        self.emitters: Dict[str, EventEmitter] = {}
        self.greeting_tasks: Dict[str, asyncio.Task] = {}
        self.tool_handler = ToolHandler(context_manager, self.reconfigure)

    async def open(self, session_id: str, session: ConversationSession, emit: EventEmitter) -> bool:
        """
        Open and configure the provider connection for a conversation.

        Args:
            session_id: The conversation id
            session: The conversation state used to build the configuration
            emit: Async callback receiving client events for this conversation

        Returns:
            bool: True if the connection is open and configured
        """
        if session_id in self.clients:
            logger.warning(f"Realtime connection already exists for conversation: {session_id}")
            return False

        if not self.api_key:
            logger.error("OPENAI_API_KEY environment variable not set")
            session.upstream_state = UpstreamState.CLOSED
            await emit(ErrorEvent(message="Voice service is not configured"))
            await emit(SessionClosedEvent())
            return False

        client = self.client_factory(session_id, self.api_key, self.model)
        self.clients[session_id] = client
        self.emitters[session_id] = emit
        session.upstream_state = UpstreamState.CONNECTING
        client.set_handlers(
            message_handler=lambda event: self._handle_provider_event(session_id, event),
            error_handler=lambda message: self._handle_connection_error(session_id, message),
            closed_handler=lambda: self._handle_connection_closed(session_id),
        )

        if not await client.connect():
            if self.clients.get(session_id) is client:
                self.clients.pop(session_id, None)
                self.emitters.pop(session_id, None)
            session.upstream_state = UpstreamState.CLOSED
            await emit(ErrorEvent(message="Failed to connect to voice service"))
            await emit(SessionClosedEvent())
            return False

        session.upstream_state = UpstreamState.OPEN
        config = build_session_config(session)
        logger.info(
            f"Session config - Language: {session.language}, "
            f"Whisper: {config['session']['input_audio_transcription']['language']}, "
            f"Voice: {config['session']['voice']}, Agent: {session.agent_name} ({session.agent_gender})"
        )
        await client.send_event(config)
        client.start_receiving()
        logger.info(f"Created OpenAI Realtime client for conversation: {session_id}")
        return True

    def is_connected(self, session_id: str) -> bool:
        client = self.clients.get(session_id)
        return client is not None and client.is_open

    async def send_event(self, session_id: str, event: Dict) -> bool:
        client = self.clients.get(session_id)
        if not client:
            logger.warning(f"No realtime client for conversation: {session_id}")
            return False
        return await client.send_event(event)

    async def send_audio(self, session_id: str, audio: str) -> bool:
        """Append a base64 PCM16 frame to the provider input buffer."""
        return await self.send_event(session_id, {"type": EVENT_INPUT_AUDIO_APPEND, "audio": audio})

    async def commit_audio(self, session_id: str) -> bool:
        return await self.send_event(session_id, {"type": EVENT_INPUT_AUDIO_COMMIT})

    async def cancel_response(self, session_id: str) -> bool:
        """Stop the response being generated. Audio already in flight is still forwarded."""
        return await self.send_event(session_id, {"type": EVENT_RESPONSE_CANCEL})

    async def reconfigure(self, session_id: str, session: Optional[ConversationSession] = None) -> bool:
        """
        Re-send instructions, voice and transcription language after a persona change.
        """
        session = session or self.context_manager.get_session(session_id)
        if session is None:
            logger.warning(f"Cannot reconfigure unknown conversation: {session_id}")
            return False
        update = build_session_update(session)
        logger.info(
            f"Updating session - Language: {session.language}, "
            f"Voice: {update['session']['voice']}, Agent: {session.agent_name}"
        )
        return await self.send_event(session_id, update)

    async def _emit(self, session_id: str, event: BaseEvent) -> None:
        emit = self.emitters.get(session_id)
        if emit:
            await emit(event)

    async def _handle_provider_event(self, session_id: str, event: Dict) -> None:
        event_type = event.get("type")

        if event_type == EVENT_SESSION_UPDATED:
            self._schedule_greeting(session_id)
        elif event_type == EVENT_FUNCTION_CALL_ARGUMENTS_DONE:
            await self._handle_function_call(session_id, event)
        elif event_type == EVENT_INPUT_TRANSCRIPTION_COMPLETED:
            transcript = event.get("transcript")
            if transcript:
                logger.info(f"[User said] {transcript}")
                await self.context_manager.append_message(session_id, Role.USER, transcript)
        elif event_type == EVENT_RESPONSE_TRANSCRIPT_DONE:
            transcript = event.get("transcript")
            if transcript:
                logger.info(f"[AI said] {transcript}")
                await self.context_manager.append_message(session_id, Role.ASSISTANT, transcript)
        elif event_type == EVENT_ERROR:
            logger.error(f"[OpenAI Error] {event}")

        client_event = translate_event(event, production=self.production)
        if client_event is not None:
            await self._emit(session_id, client_event)

    def _schedule_greeting(self, session_id: str) -> None:
        client = self.clients.get(session_id)
        if client is None or client.greeting_sent:
            return
        client.greeting_sent = True
        logger.info(f"Session updated, will trigger greeting in {self.greeting_delay}s for {session_id}")
        self.greeting_tasks[session_id] = asyncio.create_task(self._send_greeting(session_id))

    async def _send_greeting(self, session_id: str) -> None:
        await asyncio.sleep(self.greeting_delay)
        self.greeting_tasks.pop(session_id, None)
        session = self.context_manager.get_session(session_id)
        if session is None or not self.is_connected(session_id):
            logger.info(f"Cannot trigger greeting - connection closed for {session_id}")
            return
        logger.info(f"Triggering initial greeting for {session_id} in {session.language}")
        await self.send_event(
            session_id,
            {
                "type": EVENT_RESPONSE_CREATE,
                "response": {
                    "modalities": list(MODALITIES),
                    "instructions": greeting_prompt(session.language, session.agent_name),
                },
            },
        )

    async def _handle_function_call(self, session_id: str, event: Dict) -> None:
        name = event.get("name")
        call_id = event.get("call_id")
        result = await self.tool_handler.handle(session_id, name, event.get("arguments"))
        logger.info(f"Function {name} ({call_id}) for {session_id} -> success={result.success}")

        await self.send_event(
            session_id,
            {
                "type": EVENT_CONVERSATION_ITEM_CREATE,
                "item": {
                    "type": "function_call_output",
                    "call_id": call_id,
                    "output": result.to_output(),
                },
            },
        )
        await self.send_event(session_id, {"type": EVENT_RESPONSE_CREATE})

    async def _handle_connection_error(self, session_id: str, message: str) -> None:
        logger.error(f"OpenAI WebSocket error for {session_id}: {message}")
        await self._emit(session_id, ErrorEvent(message=message))

    async def _handle_connection_closed(self, session_id: str) -> None:
        """The provider dropped the connection. The session stays until the client ends it."""
        logger.warning(f"OpenAI connection lost for conversation: {session_id}")
        await self._emit(session_id, SessionClosedEvent())
        self.clients.pop(session_id, None)
        self.emitters.pop(session_id, None)
        self._cancel_greeting(session_id)
        session = self.context_manager.get_session(session_id)
        if session is not None:
            session.upstream_state = UpstreamState.CLOSED

    def _cancel_greeting(self, session_id: str) -> None:
        task = self.greeting_tasks.pop(session_id, None)
        if task and not task.done():
            task.cancel()

    async def close(self, session_id: str) -> None:
        """
        Close the provider connection for a conversation. Idempotent.
        """
        client = self.clients.pop(session_id, None)
        self.emitters.pop(session_id, None)
        self._cancel_greeting(session_id)

        session = self.context_manager.get_session(session_id)
        if session is not None:
            session.upstream_state = UpstreamState.CLOSED

        if client:
            await client.close()
            logger.info(f"Closed OpenAI Realtime client for conversation: {session_id}")

    async def close_all(self) -> None:
        for session_id in list(self.clients):
            await self.close(session_id)

    def active_count(self) -> int:
        return len(self.clients)

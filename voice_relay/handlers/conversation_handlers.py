"""
Handles the conversation lifecycle commands from the client.

This module creates conversations on start_conversation, ends them on
end_conversation and switches language on update_language. Upstream
configuration and persistence are delegated to the realtime bridge and the
conversation context manager held by the gateway.
"""

import logging

from voice_relay.config.constants import DEFAULT_LANGUAGE, LOGGER_NAME
from voice_relay.models.message_schemas import (
    ConversationEndedEvent,
    ConversationStartedEvent,
    EndConversationCommand,
    ErrorEvent,
    LanguageUpdatedEvent,
    StartConversationCommand,
    UpdateLanguageCommand,
)
from voice_relay.services.profile_store import PersistenceError

logger = logging.getLogger(LOGGER_NAME)


async def handle_start_conversation(command: StartConversationCommand, connection, gateway) -> None:
    """
    Handle start_conversation from the client.

    A connection carries at most one conversation, so a conversation that is
    still bound is ended before the new one is created. The client receives
    conversation_started as soon as the session exists; the provider connection
    is opened afterwards and reports its own failures.

    Args:
        command: The validated start_conversation command
        connection: The ClientConnection the command arrived on
        gateway: The SessionGateway owning the connection
    """
    if connection.session_id is not None:
        logger.info(
            f"Connection {connection.connection_id} started a new conversation, "
            f"ending {connection.session_id}"
        )
        await gateway.end_bound_session(connection)

    language = command.language or DEFAULT_LANGUAGE
    try:
        session = await gateway.context_manager.create_session(
            language, client_connection_id=connection.connection_id
        )
    except PersistenceError as e:
        logger.error(f"Error starting conversation: {e}", exc_info=True)
        await connection.send_event(ErrorEvent(message="Failed to start conversation"))
        return

    connection.session_id = session.id
    await connection.send_event(
        ConversationStartedEvent(
            conversationId=session.id,
            agentName=session.agent_name,
            language=session.language,
        )
    )
    await gateway.bridge.open(session.id, session, connection.send_event)


async def handle_end_conversation(command: EndConversationCommand, connection, gateway) -> None:
    session_id = connection.session_id
    if session_id is None:
        return
    await gateway.end_bound_session(connection)
    await connection.send_event(ConversationEndedEvent(conversationId=session_id))


async def handle_update_language(command: UpdateLanguageCommand, connection, gateway) -> None:
    """
    Handle update_language from the client.

    The provider session is reconfigured only when the language actually
    changed, but the client always gets language_updated with the current persona.
    """
    session_id = connection.session_id
    if session_id is None:
        return

    changed = await gateway.context_manager.update_language(session_id, command.language)
    session = gateway.context_manager.get_session(session_id)
    if session is None:
        return
    if changed:
        await gateway.bridge.reconfigure(session_id, session)

    await connection.send_event(
        LanguageUpdatedEvent(language=session.language, agentName=session.agent_name)
    )

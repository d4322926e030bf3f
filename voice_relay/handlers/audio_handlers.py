"""
Handles microphone audio and barge-in commands from the client.

These commands only make sense while a conversation is bound to the connection;
without one they are silently ignored.
"""

import logging

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.message_schemas import (
    AudioCommitCommand,
    AudioDataCommand,
    InterruptCommand,
)

logger = logging.getLogger(LOGGER_NAME)


async def handle_audio_data(command: AudioDataCommand, connection, gateway) -> None:
    """
    Forward one base64 PCM16 frame to the realtime provider.

    Called for every microphone frame, so nothing is logged on the happy path.
    """
    if connection.session_id is None:
        return
    await gateway.bridge.send_audio(connection.session_id, command.audio)


async def handle_audio_commit(command: AudioCommitCommand, connection, gateway) -> None:
    if connection.session_id is None:
        return
    logger.debug(f"Committing input audio for {connection.session_id}")
    await gateway.bridge.commit_audio(connection.session_id)


async def handle_interrupt(command: InterruptCommand, connection, gateway) -> None:
    """
    Cancel the response currently being generated.

    Audio deltas the provider already emitted still reach the client; the client
    is responsible for stopping its own playback.
    """
    if connection.session_id is None:
        return
    logger.info(f"Interrupt requested for conversation: {connection.session_id}")
    await gateway.bridge.cancel_response(connection.session_id)

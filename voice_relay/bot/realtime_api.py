import asyncio
import json
import logging
import time
import traceback
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from voice_relay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    LOGGER_NAME,
    OPENAI_REALTIME_URL,
)
from voice_relay.models.conversation import UpstreamState

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 20
WS_PING_TIMEOUT = 20

MessageHandler = Callable[[Dict[str, Any]], Awaitable[None]]
ErrorHandler = Callable[[str], Awaitable[None]]
ClosedHandler = Callable[[], Awaitable[None]]


class RealtimeClient:
    """
    One WebSocket connection to the OpenAI Realtime API for one conversation.

    The connection moves connecting -> open -> closed and never reopens. Provider
    messages are read by a single receive task and handed to the message handler
    one at a time, in arrival order.
    """

    def __init__(
        self,
        session_id: str,
        api_key: str,
        model: str = DEFAULT_REALTIME_MODEL,
        url: str = OPENAI_REALTIME_URL,
    ):
        self.session_id = session_id
        self.api_key = api_key
        self.model = model
        self.url = url
        self.ws = None
        self.state = UpstreamState.CONNECTING
        self.greeting_sent = False
        self._recv_task: Optional[asyncio.Task] = None
        self._is_closing = False
        self._message_handler: Optional[MessageHandler] = None
        self._error_handler: Optional[ErrorHandler] = None
        self._closed_handler: Optional[ClosedHandler] = None
        logger.debug(f"RealtimeClient initialized for {session_id} with model: {model}")

    @property
    def is_open(self) -> bool:
        return self.state == UpstreamState.OPEN

    def set_handlers(
        self,
        message_handler: MessageHandler,
        error_handler: Optional[ErrorHandler] = None,
        closed_handler: Optional[ClosedHandler] = None,
    ) -> None:
        """
        Set the callbacks for provider events and connection loss.

        Args:
            message_handler: Async function called with every decoded provider event
            error_handler: Async function called with a message when the connection fails
            closed_handler: Async function called when the provider closes the connection
        """
        self._message_handler = message_handler
        self._error_handler = error_handler
        self._closed_handler = closed_handler

    async def connect(self) -> bool:
        """
        Connect to the OpenAI Realtime WebSocket endpoint.

        Returns:
            bool: True if connection was successful, False otherwise
        """
        if self.state != UpstreamState.CONNECTING:
            logger.warning(f"Cannot connect {self.session_id} - connection is {self.state.value}")
            return False

        url = f"{self.url}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        try:
            logger.info(f"Connecting to OpenAI Realtime API for conversation {self.session_id}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=WS_PING_TIMEOUT,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
            logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to OpenAI Realtime API (after {CONNECTION_TIMEOUT}s)")
            self.state = UpstreamState.CLOSED
            return False
        except Exception as e:
            logger.error(f"Failed to connect to OpenAI Realtime API: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            self.state = UpstreamState.CLOSED
            return False

        if self._is_closing:
            # close() was called while the handshake was in flight
            await self.ws.close()
            self.state = UpstreamState.CLOSED
            return False

        self.state = UpstreamState.OPEN
        logger.info(f"OpenAI Realtime session opened for conversation: {self.session_id}")
        return True

    def start_receiving(self) -> None:
        """Start the receive loop. Call once, after the initial configuration is sent."""
        if self._recv_task is None and self.is_open:
            self._recv_task = asyncio.create_task(self._recv_loop())

    async def send_event(self, event: Dict[str, Any]) -> bool:
        """
        Send one JSON event to the provider.

        Returns:
            bool: True if the event was sent, False if the connection is not open
        """
        if not self.is_open or self.ws is None:
            logger.warning(
                f"WebSocket not ready for {self.session_id} ({self.state.value}), "
                f"dropping {event.get('type')}"
            )
            return False
        try:
            await self.ws.send(json.dumps(event))
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending {event.get('type')}: {e}")
            return False
        if event.get("type") != "input_audio_buffer.append":
            logger.debug(f"[Sending] {event.get('type')} for {self.session_id}")
        return True

    async def _dispatch(self, message) -> None:
        if isinstance(message, bytes):
            logger.debug(f"Ignoring binary frame of {len(message)} bytes")
            return
        try:
            event = json.loads(message)
        except json.JSONDecodeError:
            logger.warning(f"Received invalid JSON from OpenAI: {message[:100]}...")
            return
        if not isinstance(event, dict):
            logger.warning(f"Received non-object event from OpenAI: {message[:100]}...")
            return

        logger.debug(f"[OpenAI Event] {event.get('type')}")
        if self._message_handler is None:
            return
        try:
            await self._message_handler(event)
        except Exception as e:
            logger.error(f"Error handling OpenAI event {event.get('type')}: {e}", exc_info=True)

    async def _recv_loop(self) -> None:
        """
        Read provider messages until the connection closes.

        Each message is fully handled before the next one is read.
        """
        failure = None
        try:
            async for message in self.ws:
                await self._dispatch(message)
        except ConnectionClosedOK:
            logger.info("WebSocket connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"OpenAI connection closed unexpectedly: {e}")
            failure = "Connection to voice service was lost"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
            failure = str(e)

        self.state = UpstreamState.CLOSED
        if self._is_closing:
            return

        logger.info(f"OpenAI Realtime session closed for conversation: {self.session_id}")
        if failure and self._error_handler:
            await self._error_handler(failure)
        if self._closed_handler:
            await self._closed_handler()

    async def close(self) -> None:
        """
        Close the WebSocket connection and cancel the receive loop. Idempotent.
        """
        if self._is_closing:
            return
        self._is_closing = True
        self.state = UpstreamState.CLOSED

        task = self._recv_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Receive task cancelled")

        if self.ws:
            try:
                await self.ws.close()
            except ConnectionClosed as e:
                logger.debug(f"WebSocket already closed: {e}")
        logger.info(f"OpenAI Realtime client closed for conversation: {self.session_id}")

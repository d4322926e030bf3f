"""
Handlers module for client commands on the /voice WebSocket.

Each handler has the signature ``handler(command, connection, gateway)`` where
``command`` is the validated pydantic command, ``connection`` is the
ClientConnection the command arrived on and ``gateway`` is the SessionGateway
owning the connection.

Key components:
- conversation_handlers: Conversation lifecycle (start, end) and language
  changes requested by the client.
- audio_handlers: Microphone audio forwarding, manual commits and barge-in
  interrupts, all thin pass-throughs to the realtime bridge.

Usage examples:
```python
from voice_relay.handlers.audio_handlers import handle_audio_data

gateway.handlers = {"audio_data": handle_audio_data}
await gateway.handlers[command.type](command, connection, gateway)
```
"""

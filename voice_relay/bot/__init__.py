"""
Bot module for relaying conversations to the OpenAI Realtime API.

This module provides the components that sit between a conversation session and
its provider connection.

Key components:
- realtime_api: RealtimeClient, one WebSocket connection to the OpenAI Realtime
  API with a single receive loop and a connecting -> open -> closed lifecycle.
- realtime_bridge: RealtimeBridge, the per-conversation registry of clients that
  configures sessions, greets the patient, captures transcripts and answers
  tool calls.
- event_translator: Table-driven mapping from provider events to client events.
- tool_handler: Execution of update_patient_info and detect_language calls.
- session_config: session.update payloads and tool declarations.
- prompts: Localized greetings and the system instructions template.

Usage examples:
```python
from voice_relay.bot import RealtimeBridge

bridge = RealtimeBridge(context_manager)

# Open the provider connection, events are delivered through the emitter
await bridge.open(session.id, session, connection.send_event)

# Forward microphone audio and barge-in
await bridge.send_audio(session.id, base64_audio)
await bridge.cancel_response(session.id)

# Clean up when the conversation ends
await bridge.close(session.id)
```
"""

from voice_relay.bot.event_translator import translate_event
from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.realtime_bridge import RealtimeBridge
from voice_relay.bot.tool_handler import ToolHandler, ToolResult

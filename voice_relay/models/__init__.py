"""
Models module for session state and wire schemas.

Key components:
- conversation: In-memory conversation session state (persona, language,
  patient details, transcript, upstream state) and the SessionStore registry.
- message_schemas: Pydantic models for the client command and event vocabulary.

Usage examples:
```python
from voice_relay.models import SessionStore, ConversationSession

store = SessionStore()
store.add(ConversationSession(id="conv-1", agent_name="Emma", agent_gender="female", language="en"))

from voice_relay.models import ConversationStartedEvent

event = ConversationStartedEvent(conversationId="conv-1", agentName="Emma", language="en")
await websocket.send_text(event.to_json())
```
"""

from voice_relay.models.conversation import (
    DEFAULT_PERSONA,
    ConversationMessage,
    ConversationSession,
    PatientInfo,
    Persona,
    Role,
    SessionStore,
    UpstreamState,
)
from voice_relay.models.message_schemas import (
    AudioCommitCommand,
    AudioDataCommand,
    AudioDeltaEvent,
    AudioDoneEvent,
    BaseCommand,
    BaseEvent,
    ClientEvent,
    ConversationEndedEvent,
    ConversationStartedEvent,
    DebugEvent,
    EndConversationCommand,
    ErrorEvent,
    IncomingCommand,
    InterruptCommand,
    LanguageUpdatedEvent,
    ResponseDoneEvent,
    SessionClosedEvent,
    SpeechStartedEvent,
    SpeechStoppedEvent,
    StartConversationCommand,
    TranscriptDeltaEvent,
    TranscriptDoneEvent,
    UpdateLanguageCommand,
    UserTranscriptEvent,
)

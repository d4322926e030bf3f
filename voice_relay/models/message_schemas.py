"""
Pydantic models for the client-facing WebSocket protocol.

Every frame is a JSON object with a "type" discriminator. Commands flow from the
client to the relay, events flow from the relay to the client. Event field
names are camelCase because browser clients consume them as-is.
"""

import base64
import binascii
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# Base Models
class BaseCommand(BaseModel):
    """Base model for all client commands."""

    type: str = Field(..., description="Command type identifier")


class BaseEvent(BaseModel):
    """Base model for all events sent to the client."""

    type: str = Field(..., description="Event type identifier")

    def to_json(self) -> str:
        return self.model_dump_json()


# Commands
class StartConversationCommand(BaseCommand):
    """Model for start_conversation from the client."""

    type: Literal["start_conversation"]
    language: Optional[str] = Field(None, description="Initial spoken language code")

    @field_validator("language")
    def normalize_language(cls, v):
        """Normalize the language code, treating blank as unset."""
        if v is None:
            return v
        v = v.strip().lower()
        return v or None


class AudioDataCommand(BaseCommand):
    """Model for audio_data from the client."""

    type: Literal["audio_data"]
    audio: str = Field(..., description="Base64-encoded PCM16 frame")

    @field_validator("audio")
    def validate_audio(cls, v):
        """Validate that the frame is non-empty base64."""
        if not v:
            raise ValueError("Audio frame cannot be empty")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid base64 encoded audio data")
        return v


class AudioCommitCommand(BaseCommand):
    """Model for audio_commit from the client."""

    type: Literal["audio_commit"]


class InterruptCommand(BaseCommand):
    """Model for interrupt from the client."""

    type: Literal["interrupt"]


class EndConversationCommand(BaseCommand):
    """Model for end_conversation from the client."""

    type: Literal["end_conversation"]


class UpdateLanguageCommand(BaseCommand):
    """Model for update_language from the client."""

    type: Literal["update_language"]
    language: str = Field(..., description="New spoken language code")

    @field_validator("language")
    def validate_language(cls, v):
        """Validate that the language code is not blank."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Language cannot be empty")
        return v


# Conversation events
class ConversationStartedEvent(BaseEvent):
    type: Literal["conversation_started"] = "conversation_started"
    conversationId: str
    agentName: str
    language: str


class ConversationEndedEvent(BaseEvent):
    type: Literal["conversation_ended"] = "conversation_ended"
    conversationId: str


class LanguageUpdatedEvent(BaseEvent):
    type: Literal["language_updated"] = "language_updated"
    language: str
    agentName: str


# Audio and transcript events
class AudioDeltaEvent(BaseEvent):
    type: Literal["audio_delta"] = "audio_delta"
    audio: str


class AudioDoneEvent(BaseEvent):
    type: Literal["audio_done"] = "audio_done"


class TranscriptDeltaEvent(BaseEvent):
    type: Literal["transcript_delta"] = "transcript_delta"
    role: str = "assistant"
    delta: str


class TranscriptDoneEvent(BaseEvent):
    type: Literal["transcript_done"] = "transcript_done"
    role: str = "assistant"
    transcript: str


class UserTranscriptEvent(BaseEvent):
    type: Literal["user_transcript"] = "user_transcript"
    role: str = "user"
    transcript: str


class SpeechStartedEvent(BaseEvent):
    type: Literal["speech_started"] = "speech_started"


class SpeechStoppedEvent(BaseEvent):
    type: Literal["speech_stopped"] = "speech_stopped"


class ResponseDoneEvent(BaseEvent):
    type: Literal["response_done"] = "response_done"
    response: Optional[Dict[str, Any]] = None


# Connection events
class ErrorEvent(BaseEvent):
    type: Literal["error"] = "error"
    message: str


class SessionClosedEvent(BaseEvent):
    type: Literal["session_closed"] = "session_closed"


class DebugEvent(BaseEvent):
    """Provider event passed through verbatim outside production."""

    type: Literal["debug_event"] = "debug_event"
    event: Dict[str, Any]


# Union type for all possible incoming commands
IncomingCommand = Union[
    StartConversationCommand,
    AudioDataCommand,
    AudioCommitCommand,
    InterruptCommand,
    EndConversationCommand,
    UpdateLanguageCommand,
]

# Union type for all possible outgoing events
ClientEvent = Union[
    ConversationStartedEvent,
    ConversationEndedEvent,
    LanguageUpdatedEvent,
    AudioDeltaEvent,
    AudioDoneEvent,
    TranscriptDeltaEvent,
    TranscriptDoneEvent,
    UserTranscriptEvent,
    SpeechStartedEvent,
    SpeechStoppedEvent,
    ResponseDoneEvent,
    ErrorEvent,
    SessionClosedEvent,
    DebugEvent,
]

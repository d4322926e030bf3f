"""
Translation from OpenAI Realtime events to the client event vocabulary.

The mapping is a table keyed by provider event type. Event types outside the
table are dropped in production and wrapped in a debug_event otherwise.
"""

from typing import Any, Callable, Dict, Optional

from voice_relay.config.constants import (
    EVENT_ERROR,
    EVENT_INPUT_TRANSCRIPTION_COMPLETED,
    EVENT_RATE_LIMITS_UPDATED,
    EVENT_RESPONSE_AUDIO_DELTA,
    EVENT_RESPONSE_AUDIO_DONE,
    EVENT_RESPONSE_DONE,
    EVENT_RESPONSE_TRANSCRIPT_DELTA,
    EVENT_RESPONSE_TRANSCRIPT_DONE,
    EVENT_SPEECH_STARTED,
    EVENT_SPEECH_STOPPED,
)
from voice_relay.models.message_schemas import (
    AudioDeltaEvent,
    AudioDoneEvent,
    BaseEvent,
    DebugEvent,
    ErrorEvent,
    ResponseDoneEvent,
    SpeechStartedEvent,
    SpeechStoppedEvent,
    TranscriptDeltaEvent,
    TranscriptDoneEvent,
    UserTranscriptEvent,
)

ProviderEvent = Dict[str, Any]


def _error_message(event: ProviderEvent) -> str:
    error = event.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "Unknown error"


TRANSLATORS: Dict[str, Callable[[ProviderEvent], BaseEvent]] = {
    EVENT_RESPONSE_AUDIO_DELTA: lambda e: AudioDeltaEvent(audio=e.get("delta") or ""),
    EVENT_RESPONSE_AUDIO_DONE: lambda e: AudioDoneEvent(),
    EVENT_RESPONSE_TRANSCRIPT_DELTA: lambda e: TranscriptDeltaEvent(delta=e.get("delta") or ""),
    EVENT_RESPONSE_TRANSCRIPT_DONE: lambda e: TranscriptDoneEvent(transcript=e.get("transcript") or ""),
    EVENT_INPUT_TRANSCRIPTION_COMPLETED: lambda e: UserTranscriptEvent(transcript=e.get("transcript") or ""),
    EVENT_SPEECH_STARTED: lambda e: SpeechStartedEvent(),
    EVENT_SPEECH_STOPPED: lambda e: SpeechStoppedEvent(),
    EVENT_RESPONSE_DONE: lambda e: ResponseDoneEvent(response=e.get("response")),
    EVENT_ERROR: lambda e: ErrorEvent(message=_error_message(e)),
}

# Recognized but never forwarded
SILENT_EVENTS = frozenset({EVENT_RATE_LIMITS_UPDATED})


def translate_event(event: ProviderEvent, production: bool) -> Optional[BaseEvent]:
    """
    Map one provider event to a client event.

    Args:
        event: Decoded provider event
        production: Whether unknown events must be dropped

    Returns:
        The client event, or None if nothing should be forwarded
    """
    event_type = event.get("type")
    translator = TRANSLATORS.get(event_type)
    if translator is not None:
        return translator(event)
    if event_type in SILENT_EVENTS or production:
        return None
    return DebugEvent(event=event)

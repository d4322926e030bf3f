"""
Constants and configuration values used throughout the application.

Language, voice and transcription mappings are kept here as plain tables so that
adding a language never touches control flow.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# OpenAI Realtime API
OPENAI_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_SUMMARY_MODEL = "gpt-4o-mini"
OPENAI_CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"

# Session configuration
MODALITIES = ["text", "audio"]
AUDIO_FORMAT_PCM16 = "pcm16"
TRANSCRIPTION_MODEL = "whisper-1"
TURN_DETECTION = {
    "type": "server_vad",
    "threshold": 0.5,
    "prefix_padding_ms": 300,
    "silence_duration_ms": 700,
}
HISTORY_WINDOW = 5
GREETING_DELAY_SECONDS = 1.0

# Languages
DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ["tr", "en", "de", "ar", "fr", "ru"]
LANGUAGE_NAMES = {
    "tr": "Turkish",
    "en": "English",
    "de": "German",
    "ar": "Arabic",
    "fr": "French",
    "ru": "Russian",
}
# ISO 639-1 codes understood by the transcription model
TRANSCRIPTION_LANGUAGES = {
    "tr": "tr",
    "en": "en",
    "de": "de",
    "ar": "ar",
    "fr": "fr",
    "ru": "ru",
}

# Persona voices
VOICE_BY_GENDER = {
    "male": "echo",
    "female": "shimmer",
}
DEFAULT_AGENT_NAME = "Assistant"
DEFAULT_AGENT_GENDER = "female"

CLINIC_NAME = "Natural Clinic"

# Client command types (inbound)
COMMAND_START_CONVERSATION = "start_conversation"
COMMAND_AUDIO_DATA = "audio_data"
COMMAND_AUDIO_COMMIT = "audio_commit"
COMMAND_INTERRUPT = "interrupt"
COMMAND_END_CONVERSATION = "end_conversation"
COMMAND_UPDATE_LANGUAGE = "update_language"

# OpenAI Realtime event types (outbound to provider)
EVENT_SESSION_UPDATE = "session.update"
EVENT_INPUT_AUDIO_APPEND = "input_audio_buffer.append"
EVENT_INPUT_AUDIO_COMMIT = "input_audio_buffer.commit"
EVENT_RESPONSE_CREATE = "response.create"
EVENT_RESPONSE_CANCEL = "response.cancel"
EVENT_CONVERSATION_ITEM_CREATE = "conversation.item.create"

# OpenAI Realtime event types (inbound from provider)
EVENT_SESSION_UPDATED = "session.updated"
EVENT_RESPONSE_AUDIO_DELTA = "response.audio.delta"
EVENT_RESPONSE_AUDIO_DONE = "response.audio.done"
EVENT_RESPONSE_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
EVENT_RESPONSE_TRANSCRIPT_DONE = "response.audio_transcript.done"
EVENT_INPUT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
EVENT_RESPONSE_DONE = "response.done"
EVENT_ERROR = "error"
EVENT_RATE_LIMITS_UPDATED = "rate_limits.updated"

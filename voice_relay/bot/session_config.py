"""
session.update payloads for the OpenAI Realtime API.

The full payload is sent once when the provider socket opens; the partial one is
sent whenever the persona or language changes mid-call.
"""

from typing import Any, Dict, List

from voice_relay.bot.prompts import build_instructions
from voice_relay.config.constants import (
    AUDIO_FORMAT_PCM16,
    DEFAULT_AGENT_GENDER,
    DEFAULT_LANGUAGE,
    EVENT_SESSION_UPDATE,
    MODALITIES,
    SUPPORTED_LANGUAGES,
    TRANSCRIPTION_LANGUAGES,
    TRANSCRIPTION_MODEL,
    TURN_DETECTION,
    VOICE_BY_GENDER,
)
from voice_relay.models.conversation import ConversationSession


def voice_for_gender(gender: str) -> str:
    return VOICE_BY_GENDER.get(gender, VOICE_BY_GENDER[DEFAULT_AGENT_GENDER])


def transcription_language(language: str) -> str:
    return TRANSCRIPTION_LANGUAGES.get(language, TRANSCRIPTION_LANGUAGES[DEFAULT_LANGUAGE])


def tool_declarations(current_language: str) -> List[Dict[str, Any]]:
    """Function tools the model may call during the conversation."""
    return [
        {
            "type": "function",
            "name": "update_patient_info",
            "description": (
                "Update patient information when they provide details like name, "
                "phone, email, location, age or treatments of interest."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "fullName": {"type": "string", "description": "Patient full name"},
                    "phone": {"type": "string", "description": "Patient phone number"},
                    "email": {"type": "string", "description": "Patient email address"},
                    "country": {"type": "string", "description": "Patient country"},
                    "city": {"type": "string", "description": "Patient city"},
                    "age": {"type": "number", "description": "Patient age"},
                    "gender": {"type": "string", "description": "Patient gender"},
                    "interestedTreatments": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Treatments the patient is interested in",
                    },
                    "notes": {"type": "string", "description": "Additional notes about the patient"},
                },
            },
        },
        {
            "type": "function",
            "name": "detect_language",
            "description": (
                "Call this immediately, before responding, when the patient speaks a "
                f"different language than the current session language ({current_language}). "
                "It switches your voice, transcription and instructions to the patient's "
                "language. Example: session is 'en' and the patient says 'Merhaba' -> 'tr'."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "language": {
                        "type": "string",
                        "enum": list(SUPPORTED_LANGUAGES),
                        "description": (
                            "Language code detected from the patient's speech: tr=Turkish, "
                            "en=English, de=German, ar=Arabic, fr=French, ru=Russian"
                        ),
                    },
                },
                "required": ["language"],
            },
        },
    ]


def _transcription(session: ConversationSession) -> Dict[str, str]:
    return {
        "model": TRANSCRIPTION_MODEL,
        "language": transcription_language(session.language),
    }


def build_session_config(session: ConversationSession) -> Dict[str, Any]:
    """The initial session.update sent once the provider socket is open."""
    return {
        "type": EVENT_SESSION_UPDATE,
        "session": {
            "modalities": list(MODALITIES),
            "instructions": build_instructions(session),
            "voice": voice_for_gender(session.agent_gender),
            "input_audio_format": AUDIO_FORMAT_PCM16,
            "output_audio_format": AUDIO_FORMAT_PCM16,
            "input_audio_transcription": _transcription(session),
            "turn_detection": dict(TURN_DETECTION),
            "tools": tool_declarations(session.language),
            "tool_choice": "auto",
        },
    }


def build_session_update(session: ConversationSession) -> Dict[str, Any]:
    """Partial session.update after a persona or language change."""
    return {
        "type": EVENT_SESSION_UPDATE,
        "session": {
            "instructions": build_instructions(session),
            "voice": voice_for_gender(session.agent_gender),
            "input_audio_transcription": _transcription(session),
        },
    }

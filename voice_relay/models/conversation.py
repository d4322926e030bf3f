"""
Conversation state for live voice sessions.

This module holds the in-memory representation of a conversation (persona,
language, collected patient details, transcript and upstream connection state)
and the SessionStore registry that maps conversation ids to live sessions.

The registry is only touched from the event loop thread: inserts happen when a
session is created, deletes when it ends. No lock is taken around it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from voice_relay.config.constants import DEFAULT_AGENT_GENDER, DEFAULT_AGENT_NAME


class Role(str, Enum):
    """Role of a participant in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class UpstreamState(str, Enum):
    """Lifecycle of the provider socket for a session. CLOSED is terminal."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Persona(BaseModel):
    """Name and gender presented to the patient."""
    name: str
    gender: Literal["male", "female"] = DEFAULT_AGENT_GENDER


DEFAULT_PERSONA = Persona(name=DEFAULT_AGENT_NAME, gender=DEFAULT_AGENT_GENDER)


class PatientInfo(BaseModel):
    """
    Progressively collected patient details.

    Field aliases follow the camelCase names used in the update_patient_info
    tool schema, so tool arguments validate directly into this model.
    """

    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName")
    phone: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    age: Optional[float] = None
    gender: Optional[str] = None
    interested_treatments: Optional[List[str]] = Field(None, alias="interestedTreatments")
    notes: Optional[str] = None

    @classmethod
    def from_partial(cls, partial: Dict[str, Any]) -> Tuple["PatientInfo", List[str]]:
        """
        Validate tool arguments one field at a time.

        Returns:
            The valid fields as a PatientInfo, and the names of the rejected ones
        """
        valid: Dict[str, Any] = {}
        rejected: List[str] = []
        for key, value in partial.items():
            try:
                cls.model_validate({key: value})
            except ValidationError:
                rejected.append(key)
                continue
            valid[key] = value
        return cls.model_validate(valid), rejected

    def merge(self, updates: "PatientInfo") -> "PatientInfo":
        """Return a copy with every field set in ``updates`` overriding this one."""
        changes = updates.model_dump(exclude_none=True)
        return self.model_copy(update=changes)

    @property
    def has_identity(self) -> bool:
        """True once there is enough to create a patient record."""
        return bool(self.full_name or self.phone)

    def to_record(self) -> Dict[str, object]:
        """Column values for the patient record."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "country": self.country,
            "city": self.city,
            "age": self.age,
            "gender": self.gender,
            "interested_treatments": self.interested_treatments,
            "notes": self.notes,
        }


@dataclass
class ConversationMessage:
    role: Role
    content: str


@dataclass
class ConversationSession:
    """A live conversation between one client and one upstream connection."""

    id: str
    agent_name: str
    agent_gender: str
    language: str
    client_connection_id: Optional[str] = None
    patient_info: PatientInfo = field(default_factory=PatientInfo)
    patient_id: Optional[str] = None
    messages: List[ConversationMessage] = field(default_factory=list)
    upstream_state: UpstreamState = UpstreamState.CONNECTING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def apply_persona(self, persona: Persona) -> None:
        self.agent_name = persona.name
        self.agent_gender = persona.gender

    def add_message(self, role: Role, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def recent_messages(self, limit: int) -> List[ConversationMessage]:
        """The last ``limit`` messages, oldest first."""
        if limit <= 0:
            return []
        return self.messages[-limit:]


class SessionStore:
    """
    Registry of live conversation sessions keyed by conversation id.

    A session is present if and only if it has not been ended.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, ConversationSession] = {}

    def add(self, session: ConversationSession) -> None:
        """
        Register a new session.

        Raises:
            ValueError: If a session with the same id is already registered
        """
        if session.id in self.active_sessions:
            raise ValueError(f"Session already registered: {session.id}")
        self.active_sessions[session.id] = session

    def get(self, session_id: str) -> Optional[ConversationSession]:
        return self.active_sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[ConversationSession]:
        """Remove a session and return it, or None if it was not registered."""
        return self.active_sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self.active_sessions

    def __len__(self) -> int:
        return len(self.active_sessions)

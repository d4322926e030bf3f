"""
Conversation context management.

The ConversationContextManager owns every live ConversationSession. It creates
sessions with a language-appropriate persona, records transcript turns and
patient details as they arrive, switches language mid-call and, when the call
ends, derives a summary and lead score and hands them to the profile store.

Only session creation propagates persistence failures. Every other write is
best effort: the failure is logged and the conversation carries on.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.conversation import (
    DEFAULT_PERSONA,
    ConversationSession,
    PatientInfo,
    Persona,
    Role,
    SessionStore,
)
from voice_relay.services.lead_scoring import LeadScore, calculate_lead_score
from voice_relay.services.profile_store import PersistenceError, ProfileStore
from voice_relay.services.summarizer import ConversationSummarizer

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class PatientUpdate:
    patient_info: PatientInfo
    rejected_fields: List[str] = field(default_factory=list)


@dataclass
class ConversationOutcome:
    """What was derived and persisted when a conversation ended."""
    conversation_id: str
    summary: Optional[str]
    lead_score: LeadScore


class ConversationContextManager:
    """Owns live sessions and keeps the profile store in sync with them."""

    def __init__(
        self,
        profile_store: ProfileStore,
        summarizer: Optional[ConversationSummarizer] = None,
        sessions: Optional[SessionStore] = None,
        rng: Optional[random.Random] = None,
    ):
        self.profile_store = profile_store
        self.summarizer = summarizer
        self.sessions = sessions if sessions is not None else SessionStore()
        self._random = rng or random.Random()

    async def select_persona(self, language: str) -> Persona:
        """
        Pick a persona for a language uniformly at random.

        Falls back to the default persona when the pool is empty or cannot be read.
        """
        try:
            pool = await self.profile_store.list_agents(language)
        except Exception as e:
            logger.warning(f"Could not load agent pool for {language}: {e}")
            pool = []
        if not pool:
            logger.info(f"No agents configured for {language}, using default persona")
            return DEFAULT_PERSONA
        return self._random.choice(pool)

    async def create_session(
        self, language: str, client_connection_id: Optional[str] = None
    ) -> ConversationSession:
        """
        Create and register a new conversation session.

        Raises:
            PersistenceError: If the conversation record cannot be created
        """
        persona = await self.select_persona(language)
        started_at = datetime.now(timezone.utc)
        record = await self.profile_store.create_conversation(
            {
                "agent_name": persona.name,
                "language": language,
                "status": "active",
                "started_at": started_at.isoformat(),
            }
        )
        if not record.get("id"):
            raise PersistenceError("Conversation record was created without an id")

        session = ConversationSession(
            id=str(record["id"]),
            agent_name=persona.name,
            agent_gender=persona.gender,
            language=language,
            client_connection_id=client_connection_id,
            started_at=started_at,
        )
        self.sessions.add(session)
        logger.info(
            f"Conversation {session.id} started in {language} with agent "
            f"{persona.name} ({persona.gender})"
        )
        return session

    def get_session(self, session_id: str) -> Optional[ConversationSession]:
        return self.sessions.get(session_id)

    async def update_language(self, session_id: str, language: str) -> bool:
        """
        Switch a session to a new language and a persona from that language's pool.

        Returns:
            bool: True if the language changed, False for a no-op
        """
        session = self.sessions.get(session_id)
        if session is None:
            logger.warning(f"Language update for unknown conversation: {session_id}")
            return False
        if session.language == language:
            return False

        persona = await self.select_persona(language)
        previous = session.language
        session.language = language
        session.apply_persona(persona)
        logger.info(
            f"Conversation {session_id} switched from {previous} to {language}, "
            f"agent is now {persona.name}"
        )

        try:
            await self.profile_store.update_conversation(
                session_id, {"language": language, "agent_name": persona.name}
            )
        except PersistenceError as e:
            logger.error(f"Failed to persist language change for {session_id}: {e}")
        return True

    async def append_message(self, session_id: str, role: Role, content: str) -> None:
        """Append a transcript turn to the session and persist it."""
        session = self.sessions.get(session_id)
        if session is None:
            logger.debug(f"Dropping {role.value} message for ended conversation {session_id}")
            return

        session.add_message(role, content)
        try:
            await self.profile_store.add_conversation_message(
                {
                    "conversation_id": session_id,
                    "role": role.value,
                    "content": content,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )
        except PersistenceError as e:
            logger.error(f"Failed to persist message for {session_id}: {e}")

    async def update_patient_info(
        self, session_id: str, partial: Dict[str, Any]
    ) -> Optional[PatientUpdate]:
        """
        Merge newly collected patient details into the session.

        Fields are validated one at a time: values of the wrong type are dropped
        and logged, the rest are merged. Once a name or phone number is known the
        patient record is created (first time) or updated, and linked to the
        conversation.

        Returns:
            The merged patient details and the rejected field names, or None for
            an unknown session
        """
        session = self.sessions.get(session_id)
        if session is None:
            logger.warning(f"Patient update for unknown conversation: {session_id}")
            return None

        updates, rejected = PatientInfo.from_partial(partial)
        if rejected:
            logger.warning(
                f"Dropped invalid patient fields for {session_id}: "
                f"{[(key, partial[key]) for key in rejected]}"
            )
        session.patient_info = session.patient_info.merge(updates)
        logger.info(
            f"Patient info updated for {session_id}: "
            f"{sorted(updates.model_dump(exclude_none=True))}"
        )

        if session.patient_info.has_identity:
            await self._save_patient(session)
        return PatientUpdate(patient_info=session.patient_info, rejected_fields=rejected)

    async def _save_patient(self, session: ConversationSession) -> None:
        record = {**session.patient_info.to_record(), "language": session.language}
        try:
            if session.patient_id:
                await self.profile_store.update_patient(session.patient_id, record)
                return
            patient = await self.profile_store.create_patient(record)
            session.patient_id = str(patient["id"])
            await self.profile_store.update_conversation(
                session.id, {"patient_id": session.patient_id}
            )
            logger.info(f"Linked patient {session.patient_id} to conversation {session.id}")
        except PersistenceError as e:
            logger.error(f"Error saving patient info for {session.id}: {e}")

    async def end_session(
        self, session_id: str, explicit_summary: Optional[str] = None
    ) -> Optional[ConversationOutcome]:
        """
        End a session: unregister it, derive summary and lead score, persist them.

        The session is unreachable as soon as this is called.

        Returns:
            ConversationOutcome, or None if the session was not live
        """
        session = self.sessions.remove(session_id)
        if session is None:
            return None

        summary = explicit_summary
        if summary is None and session.messages and self.summarizer is not None:
            try:
                summary = await self.summarizer.summarize(session.messages, session.language)
            except Exception as e:
                logger.warning(f"Could not summarize conversation {session_id}: {e}")

        lead = calculate_lead_score(session.patient_info, session.messages)
        update = {
            "status": "completed",
            "ended_at": datetime.now(timezone.utc).isoformat(),
            "lead_score": lead.score,
            "lead_status": lead.status,
        }
        if summary is not None:
            update["summary"] = summary

        try:
            await self.profile_store.update_conversation(session_id, update)
        except PersistenceError as e:
            logger.error(f"Failed to persist end of conversation {session_id}: {e}")

        logger.info(
            f"Conversation {session_id} ended with lead score {lead.score} ({lead.status})"
        )
        return ConversationOutcome(conversation_id=session_id, summary=summary, lead_score=lead)

    def active_count(self) -> int:
        return len(self.sessions)

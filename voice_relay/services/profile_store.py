"""
Durable storage for conversation and patient records.

The relay only consumes the store through the ProfileStore interface. Two
implementations are provided:
- SupabaseProfileStore: tables in Supabase, accessed with the supabase client.
  The client is synchronous, so every call runs in a worker thread.
- InMemoryProfileStore: dictionaries seeded with persona pools, used for local
  development when Supabase is not configured and in tests.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from voice_relay.config.constants import DEFAULT_AGENT_GENDER, LOGGER_NAME
from voice_relay.config.settings import Settings
from voice_relay.models.conversation import Persona

logger = logging.getLogger(LOGGER_NAME)

Record = Dict[str, Any]

AGENT_GENDERS = ("male", "female")

# Persona pools used when no durable store is configured
DEFAULT_AGENT_POOLS: Dict[str, List[Persona]] = {
    "en": [
        Persona(name="Emma", gender="female"),
        Persona(name="Olivia", gender="female"),
        Persona(name="James", gender="male"),
        Persona(name="Daniel", gender="male"),
    ],
    "tr": [
        Persona(name="Zeynep", gender="female"),
        Persona(name="Elif", gender="female"),
        Persona(name="Emre", gender="male"),
        Persona(name="Burak", gender="male"),
    ],
    "de": [
        Persona(name="Anna", gender="female"),
        Persona(name="Lukas", gender="male"),
    ],
    "ar": [
        Persona(name="Layla", gender="female"),
        Persona(name="Omar", gender="male"),
    ],
    "fr": [
        Persona(name="Camille", gender="female"),
        Persona(name="Louis", gender="male"),
    ],
    "ru": [
        Persona(name="Anastasia", gender="female"),
        Persona(name="Dmitri", gender="male"),
    ],
}


class PersistenceError(Exception):
    """Raised when a record cannot be written to or read from the store."""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileStore(ABC):
    """Async interface to the durable record store."""

    @abstractmethod
    async def create_conversation(self, data: Record) -> Record:
        """Insert a conversation row and return it, including its ``id``."""

    @abstractmethod
    async def update_conversation(self, conversation_id: str, data: Record) -> Record:
        """Update a conversation row."""

    @abstractmethod
    async def add_conversation_message(self, data: Record) -> Record:
        """Insert one transcript message."""

    @abstractmethod
    async def create_patient(self, data: Record) -> Record:
        """Insert a patient row and return it, including its ``id``."""

    @abstractmethod
    async def update_patient(self, patient_id: str, data: Record) -> Record:
        """Update a patient row."""

    @abstractmethod
    async def list_agents(self, language: str) -> List[Persona]:
        """Persona pool configured for a language (may be empty)."""


class InMemoryProfileStore(ProfileStore):
    """Profile store kept in process memory."""

    def __init__(self, agent_pools: Optional[Dict[str, List[Persona]]] = None):
        self.agent_pools = DEFAULT_AGENT_POOLS if agent_pools is None else agent_pools
        self.conversations: Dict[str, Record] = {}
        self.patients: Dict[str, Record] = {}
        self.messages: List[Record] = []

    async def create_conversation(self, data: Record) -> Record:
        record = {"id": str(uuid.uuid4()), **data}
        self.conversations[record["id"]] = record
        return record

    async def update_conversation(self, conversation_id: str, data: Record) -> Record:
        record = self.conversations.get(conversation_id)
        if record is None:
            raise PersistenceError(f"Conversation not found: {conversation_id}")
        record.update(data)
        return record

    async def add_conversation_message(self, data: Record) -> Record:
        record = {"id": str(uuid.uuid4()), **data}
        self.messages.append(record)
        return record

    async def create_patient(self, data: Record) -> Record:
        record = {"id": str(uuid.uuid4()), **data}
        self.patients[record["id"]] = record
        return record

    async def update_patient(self, patient_id: str, data: Record) -> Record:
        record = self.patients.get(patient_id)
        if record is None:
            raise PersistenceError(f"Patient not found: {patient_id}")
        record.update(data, updated_at=utc_now_iso())
        return record

    async def list_agents(self, language: str) -> List[Persona]:
        return list(self.agent_pools.get(language, []))


class SupabaseProfileStore(ProfileStore):
    """Profile store backed by Supabase tables."""

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseProfileStore":
        return cls(create_client(settings.supabase_url, settings.supabase_key))

    async def _execute(self, description: str, query) -> List[Record]:
        """Run a prepared query in a worker thread and return its rows."""
        try:
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            logger.error(f"Supabase error while {description}: {e}")
            raise PersistenceError(f"Failed {description}: {e}") from e
        return response.data or []

    async def _single(self, description: str, query) -> Record:
        rows = await self._execute(description, query)
        if not rows:
            raise PersistenceError(f"Failed {description}: no row returned")
        return rows[0]

    async def create_conversation(self, data: Record) -> Record:
        return await self._single(
            "creating conversation", self.client.table("conversations").insert(data)
        )

    async def update_conversation(self, conversation_id: str, data: Record) -> Record:
        return await self._single(
            f"updating conversation {conversation_id}",
            self.client.table("conversations").update(data).eq("id", conversation_id),
        )

    async def add_conversation_message(self, data: Record) -> Record:
        return await self._single(
            "adding conversation message",
            self.client.table("conversation_messages").insert(data),
        )

    async def create_patient(self, data: Record) -> Record:
        return await self._single("creating patient", self.client.table("patients").insert(data))

    async def update_patient(self, patient_id: str, data: Record) -> Record:
        return await self._single(
            f"updating patient {patient_id}",
            self.client.table("patients")
            .update({**data, "updated_at": utc_now_iso()})
            .eq("id", patient_id),
        )

    async def list_agents(self, language: str) -> List[Persona]:
        rows = await self._execute(
            f"listing agents for {language}",
            self.client.table("agent_names").select("name, gender").eq("language", language),
        )
        pool = []
        for row in rows:
            if not row.get("name"):
                continue
            gender = str(row.get("gender") or "").strip().lower()
            if gender not in AGENT_GENDERS:
                logger.warning(
                    f"Agent {row['name']} ({language}) has gender {row.get('gender')!r}, "
                    f"using {DEFAULT_AGENT_GENDER}"
                )
                gender = DEFAULT_AGENT_GENDER
            pool.append(Persona(name=row["name"], gender=gender))
        return pool


def create_profile_store(settings: Settings) -> ProfileStore:
    """Pick the Supabase store when configured, the in-memory store otherwise."""
    if settings.supabase_configured:
        logger.info("Using Supabase profile store")
        return SupabaseProfileStore.from_settings(settings)
    logger.warning("Supabase is not configured, using in-memory profile store")
    return InMemoryProfileStore()

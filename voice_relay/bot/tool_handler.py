"""
Execution of function calls requested by the realtime model.

Each tool is an entry in a dispatch table keyed by tool name. Whatever happens,
a ToolResult comes back so the model always receives an answer for its call.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from voice_relay.bot.prompts import language_name
from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.conversation import ConversationSession
from voice_relay.services.context_manager import ConversationContextManager

logger = logging.getLogger(LOGGER_NAME)

Reconfigure = Callable[[str, ConversationSession], Awaitable[bool]]


class ToolResult(BaseModel):
    """Result envelope returned to the model: success, optional message, extras."""

    model_config = ConfigDict(extra="allow")

    success: bool
    message: Optional[str] = None

    def to_output(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ToolHandler:
    """Runs update_patient_info and detect_language against the context manager."""

    def __init__(self, context_manager: ConversationContextManager, reconfigure: Reconfigure):
        self.context_manager = context_manager
        self._reconfigure = reconfigure
        self.tools: Dict[str, Callable[[str, Dict[str, Any]], Awaitable[ToolResult]]] = {
            "update_patient_info": self.update_patient_info,
            "detect_language": self.detect_language,
        }

    async def handle(self, session_id: str, name: Optional[str], arguments: Optional[str]) -> ToolResult:
        """
        Execute one tool call.

        Args:
            session_id: Conversation the call belongs to
            name: Tool name chosen by the model
            arguments: JSON-encoded arguments

        Returns:
            ToolResult: Never raises; failures come back with success=False
        """
        tool = self.tools.get(name or "")
        if tool is None:
            logger.warning(f"Model called unknown function: {name}")
            return ToolResult(success=False, message=f"Unknown function: {name}")

        try:
            args = json.loads(arguments) if arguments else {}
        except json.JSONDecodeError as e:
            logger.error(f"Malformed arguments for {name} in {session_id}: {e}")
            return ToolResult(success=False, message="Function arguments are not valid JSON")
        if not isinstance(args, dict):
            logger.error(f"Non-object arguments for {name} in {session_id}: {arguments[:100]}")
            return ToolResult(success=False, message="Function arguments must be a JSON object")

        try:
            return await tool(session_id, args)
        except Exception as e:
            logger.error(f"Error handling function call {name} for {session_id}: {e}", exc_info=True)
            return ToolResult(success=False, message=f"Failed to run {name}")

    async def update_patient_info(self, session_id: str, args: Dict[str, Any]) -> ToolResult:
        update = await self.context_manager.update_patient_info(session_id, args)
        if update is None:
            return ToolResult(success=False, message="Conversation not found")
        if update.rejected_fields:
            return ToolResult(
                success=True,
                message=(
                    "Patient information updated. Ignored invalid values for: "
                    f"{', '.join(update.rejected_fields)}"
                ),
                rejectedFields=update.rejected_fields,
            )
        return ToolResult(success=True, message="Patient information updated")

    async def detect_language(self, session_id: str, args: Dict[str, Any]) -> ToolResult:
        session = self.context_manager.get_session(session_id)
        if session is None:
            return ToolResult(success=False, message="Conversation not found")

        requested = str(args.get("language") or "").strip().lower()
        if not requested:
            return ToolResult(success=False, message="Missing language")

        previous = session.language
        logger.info(f"Language detected: {requested} (was: {previous}) for {session_id}")
        if requested == previous:
            return ToolResult(
                success=True,
                message=f"Language is already set to {requested}. Continue in {language_name(requested)}.",
            )

        await self.context_manager.update_language(session_id, requested)
        await self._reconfigure(session_id, session)
        spoken = language_name(requested)
        return ToolResult(
            success=True,
            message=(
                f"Language switched from {previous} to {requested}. You MUST now speak ONLY in "
                f"{spoken}. Your new name is {session.agent_name}. Acknowledge this change by "
                f"greeting the patient again in {spoken}."
            ),
            newAgentName=session.agent_name,
            newLanguage=requested,
        )

import json
from unittest.mock import AsyncMock

import pytest

from voice_relay.bot.tool_handler import ToolHandler, ToolResult


@pytest.fixture
def reconfigure():
    return AsyncMock(return_value=True)


@pytest.fixture
def tool_handler(context_manager, reconfigure):
    return ToolHandler(context_manager, reconfigure)


def test_tool_result_output_omits_nulls():
    assert json.loads(ToolResult(success=True).to_output()) == {"success": True}
    output = ToolResult(success=True, message="ok", newLanguage="de").to_output()
    assert json.loads(output) == {"success": True, "message": "ok", "newLanguage": "de"}


@pytest.mark.asyncio
async def test_update_patient_info(tool_handler, context_manager):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(
        session.id, "update_patient_info", json.dumps({"phone": "+905551112233"})
    )

    assert result.success is True
    assert result.message == "Patient information updated"
    assert session.patient_info.phone == "+905551112233"


@pytest.mark.asyncio
async def test_update_patient_info_keeps_valid_fields(tool_handler, context_manager, profile_store):
    session = await context_manager.create_session("tr")

    result = await tool_handler.handle(
        session.id,
        "update_patient_info",
        json.dumps({"fullName": "Ali Veli", "phone": "+905551112233", "age": 35.5}),
    )

    assert result.success is True
    assert result.message == "Patient information updated"
    assert session.patient_info.full_name == "Ali Veli"
    assert session.patient_info.age == 35.5
    assert profile_store.patients[session.patient_id]["phone"] == "+905551112233"


@pytest.mark.asyncio
async def test_update_patient_info_names_rejected_fields(tool_handler, context_manager):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(
        session.id,
        "update_patient_info",
        json.dumps({"fullName": "Ali Veli", "age": "old", "interestedTreatments": "FUE"}),
    )

    assert result.success is True
    assert result.message == (
        "Patient information updated. Ignored invalid values for: age, interestedTreatments"
    )
    output = json.loads(result.to_output())
    assert output["rejectedFields"] == ["age", "interestedTreatments"]
    assert "validation error" not in result.message
    assert session.patient_info.full_name == "Ali Veli"


@pytest.mark.asyncio
async def test_tool_failure_returns_short_message(context_manager, reconfigure):
    context_manager.update_patient_info = AsyncMock(side_effect=RuntimeError("database exploded"))
    handler = ToolHandler(context_manager, reconfigure)

    result = await handler.handle("conv-1", "update_patient_info", json.dumps({"phone": "1"}))

    assert result.success is False
    assert result.message == "Failed to run update_patient_info"


@pytest.mark.asyncio
async def test_malformed_json(tool_handler, context_manager):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(session.id, "update_patient_info", "{not json")

    assert result.success is False
    assert result.message == "Function arguments are not valid JSON"


@pytest.mark.asyncio
async def test_non_object_arguments(tool_handler, context_manager):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(session.id, "update_patient_info", "[1, 2]")

    assert result.success is False
    assert "JSON object" in result.message


@pytest.mark.asyncio
async def test_unknown_tool(tool_handler):
    result = await tool_handler.handle("conv-1", "transfer_call", "{}")
    assert result.success is False
    assert result.message == "Unknown function: transfer_call"


@pytest.mark.asyncio
async def test_unknown_session(tool_handler, reconfigure):
    result = await tool_handler.handle("missing", "update_patient_info", json.dumps({"phone": "1"}))
    assert result.success is False

    result = await tool_handler.handle("missing", "detect_language", json.dumps({"language": "tr"}))
    assert result.success is False
    reconfigure.assert_not_awaited()


@pytest.mark.asyncio
async def test_detect_language_switch(tool_handler, context_manager, reconfigure):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(session.id, "detect_language", json.dumps({"language": "TR"}))

    assert result.success is True
    assert session.language == "tr"
    assert session.agent_name in ("Zeynep", "Elif", "Emre", "Burak")
    reconfigure.assert_awaited_once_with(session.id, session)
    output = json.loads(result.to_output())
    assert output["newLanguage"] == "tr"
    assert output["newAgentName"] == session.agent_name
    assert session.agent_name in output["message"]
    assert "Turkish" in output["message"]


@pytest.mark.asyncio
async def test_detect_language_unchanged(tool_handler, context_manager, reconfigure):
    session = await context_manager.create_session("de")
    agent_name = session.agent_name

    result = await tool_handler.handle(session.id, "detect_language", json.dumps({"language": "de"}))

    assert result.success is True
    assert result.message == "Language is already set to de. Continue in German."
    assert session.agent_name == agent_name
    reconfigure.assert_not_awaited()


@pytest.mark.asyncio
async def test_detect_language_missing_argument(tool_handler, context_manager, reconfigure):
    session = await context_manager.create_session("en")

    result = await tool_handler.handle(session.id, "detect_language", "{}")

    assert result.success is False
    reconfigure.assert_not_awaited()

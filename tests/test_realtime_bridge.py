"""
Unit tests for the RealtimeBridge.

These tests drive the bridge with FakeRealtimeClient instances (see conftest)
and check what is sent to the provider and what is emitted to the client.
"""

import asyncio
import json

import pytest

from voice_relay.models.conversation import Role, UpstreamState
from voice_relay.models.message_schemas import (
    AudioDeltaEvent,
    ErrorEvent,
    SessionClosedEvent,
)


async def open_session(context_manager, bridge, recorder, language="en"):
    session = await context_manager.create_session(language)
    opened = await bridge.open(session.id, session, recorder)
    return session, opened


@pytest.mark.asyncio
async def test_open_sends_full_session_config(context_manager, bridge, recorder, fake_clients):
    """The first provider event is the full session.update, then receiving starts."""
    session, opened = await open_session(context_manager, bridge, recorder)

    assert opened is True
    assert len(fake_clients) == 1
    client = fake_clients[0]
    assert client.receiving is True
    assert client.api_key == "test-api-key"
    assert session.upstream_state == UpstreamState.OPEN

    config = client.sent[0]
    assert config["type"] == "session.update"
    assert config["session"]["modalities"] == ["text", "audio"]
    assert config["session"]["input_audio_format"] == "pcm16"
    assert config["session"]["output_audio_format"] == "pcm16"
    assert config["session"]["turn_detection"]["type"] == "server_vad"
    assert config["session"]["tool_choice"] == "auto"
    assert session.agent_name in ("Emma", "Olivia", "James", "Daniel")
    assert config["session"]["voice"] == ("echo" if session.agent_gender == "male" else "shimmer")
    assert session.agent_name in config["session"]["instructions"]
    assert recorder.events == []


@pytest.mark.asyncio
async def test_open_refuses_second_connection(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)

    assert await bridge.open(session.id, session, recorder) is False
    assert len(fake_clients) == 1
    assert bridge.active_count() == 1


@pytest.mark.asyncio
async def test_open_without_api_key(context_manager, bridge, recorder, fake_clients):
    bridge.api_key = None
    session, opened = await open_session(context_manager, bridge, recorder)

    assert opened is False
    assert fake_clients == []
    assert recorder.types() == ["error", "session_closed"]
    assert session.upstream_state == UpstreamState.CLOSED


@pytest.mark.asyncio
async def test_open_connect_failure(
    context_manager, bridge, recorder, fake_clients, fake_client_class, monkeypatch
):
    """A failed connect emits error then session_closed and leaves nothing registered."""
    monkeypatch.setattr(fake_client_class, "connect_result", False)
    session, opened = await open_session(context_manager, bridge, recorder)

    assert opened is False
    assert recorder.types() == ["error", "session_closed"]
    assert recorder.events[0] == ErrorEvent(message="Failed to connect to voice service")
    assert bridge.active_count() == 0
    assert fake_clients[0].sent == []
    assert session.upstream_state == UpstreamState.CLOSED


@pytest.mark.asyncio
async def test_greeting_sent_once(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver({"type": "session.updated", "session": {}})
    task = bridge.greeting_tasks[session.id]
    await client.deliver({"type": "session.updated", "session": {}})
    await task

    greetings = [event for event in client.sent if event["type"] == "response.create"]
    assert len(greetings) == 1
    assert greetings[0]["response"]["modalities"] == ["text", "audio"]
    assert session.agent_name in greetings[0]["response"]["instructions"]
    # The greeting never becomes part of the transcript
    assert session.messages == []


@pytest.mark.asyncio
async def test_greeting_skipped_after_close(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]
    bridge.greeting_delay = 10

    await client.deliver({"type": "session.updated"})
    task = bridge.greeting_tasks[session.id]
    await bridge.close(session.id)

    with pytest.raises(asyncio.CancelledError):
        await task
    assert "response.create" not in client.sent_types()


@pytest.mark.asyncio
async def test_function_call_answers_model(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver(
        {
            "type": "response.function_call_arguments.done",
            "name": "update_patient_info",
            "call_id": "call_1",
            "arguments": json.dumps({"fullName": "Jane Doe", "city": "London"}),
        }
    )

    assert client.sent_types()[-2:] == ["conversation.item.create", "response.create"]
    item = client.sent[-2]["item"]
    assert item["type"] == "function_call_output"
    assert item["call_id"] == "call_1"
    assert json.loads(item["output"]) == {"success": True, "message": "Patient information updated"}
    assert session.patient_info.full_name == "Jane Doe"
    assert session.patient_info.city == "London"


@pytest.mark.asyncio
async def test_unknown_function_still_answered(context_manager, bridge, recorder, fake_clients):
    await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver(
        {
            "type": "response.function_call_arguments.done",
            "name": "book_flight",
            "call_id": "call_2",
            "arguments": "{}",
        }
    )

    output = json.loads(client.sent[-2]["item"]["output"])
    assert output["success"] is False
    assert "book_flight" in output["message"]
    assert client.sent_types()[-1] == "response.create"


@pytest.mark.asyncio
async def test_detect_language_reconfigures_once(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver(
        {
            "type": "response.function_call_arguments.done",
            "name": "detect_language",
            "call_id": "call_3",
            "arguments": json.dumps({"language": "tr"}),
        }
    )

    assert client.sent_types() == [
        "session.update",
        "session.update",
        "conversation.item.create",
        "response.create",
    ]
    update = client.sent[1]["session"]
    assert update["input_audio_transcription"]["language"] == "tr"
    assert "tools" not in update
    output = json.loads(client.sent[2]["item"]["output"])
    assert output["newLanguage"] == "tr"
    assert output["newAgentName"] == session.agent_name
    assert session.language == "tr"


@pytest.mark.asyncio
async def test_detect_language_same_language_no_reconfigure(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]
    agent_name = session.agent_name

    await client.deliver(
        {
            "type": "response.function_call_arguments.done",
            "name": "detect_language",
            "call_id": "call_4",
            "arguments": json.dumps({"language": "en"}),
        }
    )

    assert client.sent_types().count("session.update") == 1
    assert session.agent_name == agent_name
    output = json.loads(client.sent[-2]["item"]["output"])
    assert output["success"] is True
    assert "already" in output["message"]


@pytest.mark.asyncio
async def test_transcripts_are_recorded(context_manager, bridge, recorder, fake_clients, profile_store):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver(
        {
            "type": "conversation.item.input_audio_transcription.completed",
            "transcript": "I am interested in a hair transplant",
        }
    )
    await client.deliver(
        {"type": "response.audio_transcript.done", "transcript": "Great, may I have your name?"}
    )

    assert [(m.role, m.content) for m in session.messages] == [
        (Role.USER, "I am interested in a hair transplant"),
        (Role.ASSISTANT, "Great, may I have your name?"),
    ]
    assert [m["role"] for m in profile_store.messages] == ["user", "assistant"]
    assert recorder.types() == ["user_transcript", "transcript_done"]


@pytest.mark.asyncio
async def test_audio_after_interrupt_still_forwarded(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await client.deliver({"type": "response.audio.delta", "delta": "AAAA"})
    assert await bridge.cancel_response(session.id) is True
    await client.deliver({"type": "response.audio.delta", "delta": "BBBB"})
    await client.deliver({"type": "response.audio.delta", "delta": "CCCC"})

    assert client.sent_types()[-1] == "response.cancel"
    assert recorder.events == [
        AudioDeltaEvent(audio="AAAA"),
        AudioDeltaEvent(audio="BBBB"),
        AudioDeltaEvent(audio="CCCC"),
    ]


@pytest.mark.asyncio
async def test_audio_pass_through(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)
    client = fake_clients[0]

    await bridge.send_audio(session.id, "UklGRg==")
    await bridge.commit_audio(session.id)

    assert client.sent[1:] == [
        {"type": "input_audio_buffer.append", "audio": "UklGRg=="},
        {"type": "input_audio_buffer.commit"},
    ]


@pytest.mark.asyncio
async def test_send_to_unknown_session(bridge):
    assert await bridge.send_audio("missing", "AAAA") is False


@pytest.mark.asyncio
async def test_rate_limits_not_forwarded(context_manager, bridge, recorder, fake_clients):
    await open_session(context_manager, bridge, recorder)

    await fake_clients[0].deliver({"type": "rate_limits.updated", "rate_limits": []})

    assert recorder.events == []


@pytest.mark.asyncio
async def test_unknown_events_in_production(context_manager, bridge, recorder, fake_clients):
    bridge.production = True
    await open_session(context_manager, bridge, recorder)

    await fake_clients[0].deliver({"type": "response.output_item.added"})

    assert recorder.events == []


@pytest.mark.asyncio
async def test_upstream_drop(context_manager, bridge, recorder, fake_clients):
    """An abnormal close emits error then session_closed; the session itself stays live."""
    session, _ = await open_session(context_manager, bridge, recorder)

    await fake_clients[0].drop()

    assert recorder.events == [
        ErrorEvent(message="Connection to voice service was lost"),
        SessionClosedEvent(),
    ]
    assert bridge.active_count() == 0
    assert session.upstream_state == UpstreamState.CLOSED
    assert context_manager.get_session(session.id) is session
    assert await bridge.send_audio(session.id, "AAAA") is False


@pytest.mark.asyncio
async def test_close_is_idempotent(context_manager, bridge, recorder, fake_clients):
    session, _ = await open_session(context_manager, bridge, recorder)

    await bridge.close(session.id)
    await bridge.close(session.id)

    assert fake_clients[0].closed is True
    assert bridge.active_count() == 0
    assert session.upstream_state == UpstreamState.CLOSED
    # An explicit close is not reported to the client
    assert recorder.events == []


@pytest.mark.asyncio
async def test_close_all(context_manager, bridge, recorder, fake_clients):
    await open_session(context_manager, bridge, recorder)
    await open_session(context_manager, bridge, recorder)

    await bridge.close_all()

    assert bridge.active_count() == 0
    assert all(client.closed for client in fake_clients)

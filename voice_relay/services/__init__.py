"""
Services module for conversation state and external integrations.

Key components:
- context_manager: Owns live conversation sessions, records transcript and
  patient details, switches language and closes conversations out.
- profile_store: Async interface to the durable record store with Supabase and
  in-memory implementations.
- lead_scoring: Deterministic 0-100 lead score and hot/warm/cold status.
- summarizer: End-of-conversation summaries via OpenAI Chat Completions.

Usage examples:
```python
from voice_relay.services.context_manager import ConversationContextManager
from voice_relay.services.profile_store import InMemoryProfileStore

manager = ConversationContextManager(InMemoryProfileStore())
session = await manager.create_session("en")
await manager.append_message(session.id, Role.USER, "Hi, I'd like a hair transplant")
outcome = await manager.end_session(session.id)
print(outcome.lead_score.status)
```
"""

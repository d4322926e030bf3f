"""
Voice Relay - Patient intake voice agent on top of the OpenAI Realtime API

This application relays a live voice conversation between a browser (or any
WebSocket client) and OpenAI's Realtime API, while keeping the per-conversation
state needed to steer the model: the persona presented to the patient, the
spoken language, the patient details collected so far and the transcript.

Architecture Overview:
- FastAPI server exposing a WebSocket endpoint for voice clients
- One OpenAI Realtime socket per conversation, configured from the session state
- Translation between the provider event vocabulary and the client vocabulary
- In-band tool calls (update_patient_info, detect_language) executed locally
- End-of-conversation summary and lead scoring handed to the profile store

Key Components:
- bot: OpenAI Realtime client, per-session bridge, event translation and tools
- config: Application-wide constants, settings and logging setup
- handlers: Handlers for the client command vocabulary
- models: Session state and wire message schemas
- services: Context manager, profile store, lead scoring and summarization
- gateway: Client connection lifecycle and command routing

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY: Durable store (optional, an
     in-memory store is used when unset)
   - APP_ENV: "production" to disable debug events (default development)
   - PORT / HOST / LOG_LEVEL

2. Start the server:
   ```bash
   python -m voice_relay.main
   ```

3. Connect a client to ws://your-server:8000/voice and send
   {"type": "start_conversation", "language": "en"}
"""

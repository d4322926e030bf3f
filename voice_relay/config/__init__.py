"""
Configuration module for the voice relay application.

Key components:
- constants: Static tables and names shared across modules (event types,
  voice and transcription tables, turn detection parameters).
- settings: Environment-based settings validated with pydantic.
- logging_config: Console and rotating file logging for the application logger.

Usage examples:
```python
from voice_relay.config.constants import LOGGER_NAME, VOICE_BY_GENDER
from voice_relay.config.settings import get_settings
from voice_relay.config.logging_config import configure_logging

logger = configure_logging()
settings = get_settings()
logger.info(f"Realtime model: {settings.realtime_model}")
```
"""

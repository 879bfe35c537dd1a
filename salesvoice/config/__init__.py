"""
Configuration module for the SalesVoice bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Application-wide constants such as event names, routes, the audio
  profile and relay policy defaults.
- logging_config: Console and rotating file logging for the ``salesvoice`` logger.
- settings: The immutable ``Settings`` model built from environment variables
  (optionally seeded from a ``.env`` file).

Usage examples:
```python
from salesvoice.config.logging_config import configure_logging
from salesvoice.config.settings import get_settings

logger = configure_logging()
settings = get_settings()
logger.info(f"Pending frame limit: {settings.pending_frame_limit}")
```
"""

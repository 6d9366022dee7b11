"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic pieces used by every other app:
- Deferred action payloads (actions) and their dispatch
- The task registry and its backends (TaskRegistry)
- The domain error taxonomy (errors)

The task registry allows switching between:
- Local development (in-process execution)
- Celery + Redis (production)
"""

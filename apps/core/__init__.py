"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic pieces used by the other apps:
- Background work (TaskService) with local, Celery and Lambda backends
- Multipart parsing for PUT requests
- Identifier parsing helpers
"""

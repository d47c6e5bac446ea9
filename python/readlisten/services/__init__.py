"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and Celery tasks and orchestrate
database, storage and speech operations:

- listening_audio: submission, the worker body, download URLs
- rl_items: content items and their audio lock transitions
- tokens: the per-user credit ledger
- speech: the text-to-speech gateway
"""

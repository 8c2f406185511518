"""Wingman backend: LLM generation orchestrator and chat-assistant API."""

__version__ = "0.1.0"

"""
Momentum - AI
=============

Prompt building, OpenAI calls and deterministic fallbacks.
"""

from momentum.core.ai.openai_client import OpenAIClient, OpenAIError, OpenAINotConfiguredError

__all__ = ["OpenAIClient", "OpenAIError", "OpenAINotConfiguredError"]

"""
LLM client wrappers.
"""

from testpilot.models.gemini_client import GeminiClient
from testpilot.models.openai_client import OpenAIClient
from testpilot.models.provider import create_llm_client

__all__ = [
    "GeminiClient",
    "OpenAIClient",
    "create_llm_client",
]

"""LLM client and query interpretation."""

from land_search.llm.client import LLMClient, OpenAICompatibleClient
from land_search.llm.interpreter import QueryInterpreter
from land_search.llm.models import GenerationResult, InterpretedQuery, Message, Role

__all__ = [
    "GenerationResult",
    "InterpretedQuery",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "QueryInterpreter",
    "Role",
]

"""Natural-language query interpretation.

Turns a request such as "large residential plot near the ocean" into a
description for similarity matching plus a structured metadata filter.
"""

import json
import re
from typing import Any

import pydantic

from land_search.exceptions import ErrorCode, LLMError
from land_search.llm.client import LLMClient
from land_search.llm.models import InterpretedQuery
from land_search.logging_config import get_logger
from land_search.plots.models import BuildingType, DistanceCategory, PlotSize, ZoningType

logger = get_logger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def _choices(enum_cls: Any) -> str:
    return ", ".join(member.value for member in enum_cls)


SYSTEM_PROMPT = f"""You are a real estate search assistant for a futuristic city.
Convert the user's request into structured search parameters.

Reply with a single JSON object with two keys:
- "search_text": a natural, descriptive sentence used for similarity matching.
- "filters": an object that may contain only the keys the request asks for:
  - "neighborhoods": list of neighborhood names
  - "zoning_types": list from [{_choices(ZoningType)}]
  - "plot_sizes": list from [{_choices(PlotSize)}]
  - "building_types": list from [{_choices(BuildingType)}]
  - "distances": {{"ocean": {{"max_meters": number, "category": one of [{_choices(DistanceCategory)}]}},
                   "bay": {{"max_meters": number, "category": ...}}}}
  - "building": {{"floors": {{"min": number, "max": number}},
                  "height": {{"min": number, "max": number}}}}
  - "rarity": {{"rank_range": {{"min": integer, "max": integer}}}}

Leave out every filter the request does not mention.

Example:
{{"search_text": "Large plot in Nexus close to the ocean with tall building potential",
  "filters": {{"neighborhoods": ["Nexus"], "plot_sizes": ["Large"],
              "distances": {{"ocean": {{"max_meters": 500}}}},
              "building": {{"floors": {{"min": 50}}}}}}}}"""


def parse_reply(content: str, question: str) -> InterpretedQuery:
    """Validate a model reply into an InterpretedQuery.

    Args:
        content: Raw model output, optionally wrapped in a code fence.
        question: Original request; used as search text if the reply has none.

    Raises:
        LLMError: If the reply is not a valid JSON object of the expected shape.
    """
    text = _FENCE.sub("", content.strip())
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("reply is not a JSON object")
        if not data.get("search_text"):
            data["search_text"] = question
        return InterpretedQuery.model_validate(data)
    except (ValueError, pydantic.ValidationError) as e:
        raise LLMError(
            f"Could not interpret query: {e}",
            code=ErrorCode.LLM_INVALID_REPLY,
            details={"reply": content[:500]},
        ) from e


class QueryInterpreter:
    """Interprets natural-language plot requests with an LLM."""

    def __init__(self, llm_client: LLMClient, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._llm_client = llm_client
        self._system_prompt = system_prompt

    async def interpret(self, question: str) -> InterpretedQuery:
        """Split a request into search text and metadata filters.

        Raises:
            LLMError: If the model call fails or its reply is unusable.
        """
        result = await self._llm_client.generate_text(
            prompt=question,
            system_prompt=self._system_prompt,
            json_mode=True,
        )
        interpreted = parse_reply(result.content, question)

        logger.info(
            "Interpreted plot query",
            extra={
                "question_length": len(question),
                "filter": interpreted.filters.model_dump(mode="json", exclude_none=True),
            },
        )
        return interpreted

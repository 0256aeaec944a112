"""Turn LLM output into validated intention records."""

import json
import logging
from typing import Any, Optional

from attune.config import settings

from .client import OpenAIClient
from .models import ParsedIntention
from .units import normalize_unit

logger = logging.getLogger(__name__)

SCHEMA_NAME = "intentions_parse"

SYSTEM_MESSAGE = """\
You convert a user's spoken intentions into structured JSON for an intentions app. Output JSON only.
Unit normalization rules: minutes/min -> "minutes"; pages/page -> "pages"; times/time -> "times"; \
miles/mi -> "miles"; steps -> "steps"; sessions -> "sessions"; reps -> "reps"; cups -> "cups"; \
glasses -> "glasses". Unknown -> "times".
Category inference: fitness/health -> fitness_health; work/coding/business -> career_work; \
money/budget -> money_finance; learning/reading -> personal_growth; social/friends/date -> \
relationships_social; stress/overwhelm -> stress_load; calm/meditation/sleep -> peace_wellbeing; \
if uncertain -> null.
"""

USER_MESSAGE_TEMPLATE = """\
Transcript:
{transcript}

Output JSON schema:
{{
  "intentions": [
    {{
      "title": "Walk",
      "target": 20,
      "unit": "minutes",
      "category": "fitness_health",
      "notes": null
    }}
  ]
}}
Rules:
- Provide an array of intentions (can be empty when nothing is found).
- title: required string.
- target: number; if missing default to 1.
- unit: normalized string; if missing default to "times".
- category: best-effort from allowed categories; null when uncertain.
- notes: optional; null when none.
Return JSON only.
"""


class InvalidPayload(ValueError):
    """Raised when the model response cannot be read as an intentions payload."""

    INVALID_JSON = "Response was not valid JSON"
    MISSING_INTENTIONS = "No intentions were returned"


def build_schema() -> dict:
    """Strict JSON schema for the structured-output request."""
    return {
        "name": SCHEMA_NAME,
        "schema": {
            "type": "object",
            "properties": {
                "intentions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "target": {"type": ["number", "null"]},
                            "unit": {"type": ["string", "null"]},
                            "category": {"type": ["string", "null"]},
                            "notes": {"type": ["string", "null"]},
                        },
                        "required": ["title", "target", "unit", "category", "notes"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["intentions"],
            "additionalProperties": False,
        },
        "strict": True,
    }


def build_user_message(transcript: str) -> str:
    return USER_MESSAGE_TEMPLATE.format(transcript=transcript)


class IntentionsParser:
    """Parses transcripts into intentions via the LLM, with local normalization."""

    def __init__(self, client: Optional[OpenAIClient] = None, model: Optional[str] = None):
        """
        Initialize parser.

        Args:
            client: Chat-completion client (only needed for parse_transcript)
            model: Model name override
        """
        self.client = client
        self.model = model

    def parse_transcript(self, transcript: str) -> list[ParsedIntention]:
        """
        Send a transcript to the model and parse its response.

        Raises:
            LLMClientError: If the request fails
            InvalidPayload: If the response is not a usable payload
        """
        client = self.client or OpenAIClient()
        content = client.chat_completion(
            model=self.model or settings.openai_model,
            system_message=SYSTEM_MESSAGE,
            user_message=build_user_message(transcript),
            schema=build_schema(),
        )
        return self.parse(content)

    def parse(self, raw: Any) -> list[ParsedIntention]:
        """
        Parse a raw payload into intentions.

        Items without a usable title are dropped; the rest keep input order.

        Args:
            raw: JSON text, bytes, or an already-decoded object

        Returns:
            Parsed intentions (possibly empty)

        Raises:
            InvalidPayload: If the text is not JSON, the root is not an
                object, or there is no "intentions" array
        """
        root = self._load_root(raw)

        items = root.get("intentions")
        if not isinstance(items, list):
            raise InvalidPayload(InvalidPayload.MISSING_INTENTIONS)

        results = []
        for index, item in enumerate(items):
            parsed = self._parse_item(item)
            if parsed is None:
                logger.debug(f"Skipping intention item {index}: no usable title")
                continue
            results.append(parsed)

        logger.info(f"Parsed {len(results)} of {len(items)} intention items")
        return results

    def _load_root(self, raw: Any) -> dict:
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Intentions response is not valid JSON: {e}")
                raise InvalidPayload(InvalidPayload.INVALID_JSON) from e

        if not isinstance(raw, dict):
            raise InvalidPayload(InvalidPayload.INVALID_JSON)
        return raw

    def _parse_item(self, item: Any) -> Optional[ParsedIntention]:
        if not isinstance(item, dict):
            return None

        raw_title = item.get("title")
        if not isinstance(raw_title, str):
            return None
        title = raw_title.strip()
        if not title:
            return None

        target = item.get("target")
        if isinstance(target, bool) or not isinstance(target, (int, float)):
            target = 1

        return ParsedIntention(
            title=title,
            target=float(target),
            unit=normalize_unit(item.get("unit")),
            category=_non_empty_string(item.get("category")),
            notes=_non_empty_string(item.get("notes")),
        )


def _non_empty_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def demo_parse():
    """Demo: Parse a spoken transcript into intentions."""
    import os
    import sys

    from dotenv import load_dotenv

    load_dotenv()

    if not os.getenv("OPENAI_API_KEY"):
        print("Error: OPENAI_API_KEY must be set in .env file")
        return

    transcript = " ".join(sys.argv[1:]) or "I want to walk 20 minutes and read 10 pages every day"
    intentions = IntentionsParser().parse_transcript(transcript)

    print("\n" + "=" * 60)
    print("PARSED INTENTIONS")
    print("=" * 60 + "\n")

    if not intentions:
        print("No intentions found!")
        return

    for intention in intentions:
        print(f"{intention.title}: {intention.target:g} {intention.unit}")
        if intention.category:
            print(f"  Category: {intention.category}")
        if intention.notes:
            print(f"  Notes: {intention.notes}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demo_parse()

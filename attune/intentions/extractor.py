"""Extract progress updates and mood from check-in transcripts."""

import json
import logging
import math
from typing import Any, Collection, Mapping, Optional, Sequence

from attune.config import settings
from attune.progress.models import INCREMENT, TOTAL, Intention

from .client import LLMClientError, OpenAIClient
from .models import CheckInExtraction, CheckInUpdate, LocalTime

logger = logging.getLogger(__name__)

SCHEMA_NAME = "checkin_extraction"

DEFAULT_UPDATE_UNIT = "units"
MOOD_SCORE_MIN = 0
MOOD_SCORE_MAX = 10
TIME_INTERPRETATIONS = {"explicit_time", "just_now", "unspecified"}

SYSTEM_MESSAGE = """\
You extract progress updates and optional mood from daily check-in transcripts.

Given the user's current intentions (with target values and units) and today's progress so far, \
identify any explicit progress mentioned in the transcript.

RULES:
- Only extract updates that clearly reference one of the provided intentions (match by intentionId).
- Titles and aliases are equivalent signals: if transcript mentions a title or any alias, map to that intentionId.
- updateType: "INCREMENT" when the user adds to their total (e.g., "I read 3 more pages").
- updateType: "TOTAL" when the user states an absolute total (e.g., "I've read 10 pages today").
- amount: numeric value only. Never negative.
- unit: must match the intention's unit (pages, minutes, sessions, etc.).
- confidence: 0.0 to 1.0, how certain you are this extraction is correct.
- evidence: short exact quote from transcript that supports this update (optional).

TIME (required fields; use null when no explicit time):
- tookPlaceLocalTime: { "hour24": 0-23, "minute": 0-59 } when user states a clock time \
(e.g. "at 9 AM", "this morning at 9"); else null.
- timeInterpretation: "explicit_time" when tookPlaceLocalTime is set; "just_now" when user says \
"just now"/"just went"; "unspecified" when no time mentioned. Never null, use "unspecified" as default.

MOOD (optional):
- moodLabel: one word or short phrase (e.g., "Calm", "Anxious", "Tired") or null.
- moodScore: integer 0 to 10 (0 = lowest, 10 = highest; 5 = neutral) or null.

Return ONLY valid JSON matching the schema. No markdown, no explanations.
If no progress or mood is clearly stated, return: {"updates": [], "moodLabel": null, "moodScore": null}
"""


def build_schema() -> dict:
    """Strict JSON schema for check-in extraction."""
    return {
        "name": SCHEMA_NAME,
        "schema": {
            "type": "object",
            "properties": {
                "updates": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "intentionId": {"type": "string"},
                            "updateType": {"type": "string"},
                            "amount": {"type": "number"},
                            "unit": {"type": "string"},
                            "confidence": {"type": "number"},
                            "evidence": {"type": ["string", "null"]},
                            "tookPlaceLocalTime": {
                                "type": ["object", "null"],
                                "properties": {
                                    "hour24": {"type": "integer"},
                                    "minute": {"type": "integer"},
                                },
                                "required": ["hour24", "minute"],
                                "additionalProperties": False,
                            },
                            "timeInterpretation": {"type": ["string", "null"]},
                        },
                        "required": [
                            "intentionId",
                            "updateType",
                            "amount",
                            "unit",
                            "confidence",
                            "evidence",
                            "tookPlaceLocalTime",
                            "timeInterpretation",
                        ],
                        "additionalProperties": False,
                    },
                },
                "moodLabel": {"type": ["string", "null"]},
                "moodScore": {"type": ["integer", "null"]},
            },
            "required": ["updates", "moodLabel", "moodScore"],
            "additionalProperties": False,
        },
        "strict": True,
    }


def build_user_message(
    transcript: str,
    intentions: Sequence[Intention],
    todays_totals: Mapping[str, float],
) -> str:
    lines = ["CURRENT INTENTIONS:"]
    for intention in intentions:
        lines.append(
            f"- id: {intention.id} | title: {intention.title} | "
            f"aliases: {','.join(intention.aliases)} | "
            f"target: {intention.target_value:g} {intention.unit} | "
            f"timeframe: {intention.timeframe}"
        )

    lines.append("")
    lines.append("TODAY'S TOTALS SO FAR (do not duplicate; add to or replace as appropriate):")
    for intention_id, total in todays_totals.items():
        lines.append(f"- {intention_id}: {total:g}")

    lines.append("")
    lines.append("TRANSCRIPT:")
    lines.append(transcript)
    return "\n".join(lines)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class CheckInExtractor:
    """Turns a check-in transcript into progress updates and an optional mood."""

    def __init__(self, client: Optional[OpenAIClient] = None, model: Optional[str] = None):
        """
        Initialize extractor.

        Args:
            client: Chat-completion client (only needed for extract)
            model: Model name override
        """
        self.client = client
        self.model = model

    def extract(
        self,
        transcript: str,
        intentions: Sequence[Intention],
        todays_totals: Mapping[str, float],
        check_in_id: str,
    ) -> CheckInExtraction:
        """
        Extract updates and mood from a transcript.

        Never raises: a failed request or unusable response gives an
        empty extraction so the caller can fall back to keyword parsing.

        Args:
            transcript: Transcribed check-in text
            intentions: Intentions of the current set (for context)
            todays_totals: Today's total per intention id
            check_in_id: For logging

        Returns:
            Extraction result (possibly empty)
        """
        logger.info(
            f"checkin_extract id={check_in_id} chars={len(transcript)} "
            f"intentions={len(intentions)}"
        )

        client = self.client or OpenAIClient()
        try:
            content = client.chat_completion(
                model=self.model or settings.openai_model,
                system_message=SYSTEM_MESSAGE,
                user_message=build_user_message(transcript, intentions, todays_totals),
                schema=build_schema(),
            )
        except LLMClientError as e:
            logger.error(f"checkin_extract_failed id={check_in_id} error=\"{e}\"")
            return CheckInExtraction()

        return self.parse(content, [intention.id for intention in intentions], check_in_id)

    def parse(
        self,
        raw: Any,
        intention_ids: Collection[str],
        check_in_id: Optional[str] = None,
    ) -> CheckInExtraction:
        """
        Parse a raw extraction payload.

        Invalid updates are dropped one by one; an unreadable payload
        gives an empty extraction.

        Args:
            raw: JSON text, bytes, or an already-decoded object
            intention_ids: Ids updates are allowed to reference

        Returns:
            Extraction result
        """
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.error(f"checkin_extract_parse id={check_in_id} error=\"{e}\"")
                return CheckInExtraction()

        if not isinstance(raw, dict):
            logger.error(f"checkin_extract_parse id={check_in_id} error=\"Not a JSON object\"")
            return CheckInExtraction()

        known_ids = set(intention_ids)
        updates = []
        items = raw.get("updates")
        if isinstance(items, list):
            for item in items:
                update = self._parse_update(item, known_ids)
                if update is not None:
                    updates.append(update)

        mood_score = raw.get("moodScore")
        if _is_number(mood_score):
            mood_score = min(MOOD_SCORE_MAX, max(MOOD_SCORE_MIN, int(mood_score)))
        else:
            mood_score = None

        mood_label = raw.get("moodLabel")
        if not isinstance(mood_label, str) or not mood_label.strip():
            mood_label = None

        logger.info(
            f"checkin_extract_ok id={check_in_id} updates={len(updates)} "
            f"moodLabel={mood_label} moodScore={mood_score}"
        )
        return CheckInExtraction(updates=updates, mood_label=mood_label, mood_score=mood_score)

    def _parse_update(self, item: Any, known_ids: set) -> Optional[CheckInUpdate]:
        if not isinstance(item, dict):
            return None

        intention_id = item.get("intentionId")
        update_type = item.get("updateType")
        amount = item.get("amount")
        unit = item.get("unit")
        confidence = item.get("confidence")

        if not isinstance(intention_id, str) or intention_id not in known_ids:
            return None
        if update_type not in (INCREMENT, TOTAL):
            return None
        if not _is_number(amount) or not _is_number(confidence) or not isinstance(unit, str):
            return None

        evidence = item.get("evidence")
        time_interpretation = item.get("timeInterpretation")

        return CheckInUpdate(
            intention_id=intention_id,
            update_type=update_type,
            amount=max(0.0, float(amount)),
            unit=unit or DEFAULT_UPDATE_UNIT,
            confidence=min(1.0, max(0.0, float(confidence))),
            evidence=evidence if isinstance(evidence, str) else None,
            took_place_local_time=self._parse_local_time(item.get("tookPlaceLocalTime")),
            time_interpretation=(
                time_interpretation
                if isinstance(time_interpretation, str)
                and time_interpretation in TIME_INTERPRETATIONS
                else None
            ),
        )

    def _parse_local_time(self, raw: Any) -> Optional[LocalTime]:
        if not isinstance(raw, dict):
            return None
        hour = raw.get("hour24")
        minute = raw.get("minute")
        if not isinstance(hour, int) or isinstance(hour, bool) or not 0 <= hour <= 23:
            return None
        if not isinstance(minute, int) or isinstance(minute, bool) or not 0 <= minute <= 59:
            return None
        return LocalTime(hour24=hour, minute=minute)

import json
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from tempo.core.domain import (
    ActionSuggestion,
    DaySlot,
    EnvironmentTip,
    GeneratedAdvice,
    SupplementaryAdvice,
    TryContent,
)
from tempo.core.errors import IncompleteAdvice, MalformedResponse, NotJSON

# Checked in this order; the first missing one is reported.
REQUIRED_ADVICE_FIELDS = (
    "greeting",
    "condition.summary",
    "condition.detail",
    "dailyTry.title",
    "dailyTry.summary",
    "dailyTry.detail",
    "closingMessage",
)

REQUIRED_SUPPLEMENTARY_FIELDS = ("greeting", "message")

MAX_ACTION_SUGGESTIONS = 5
MAX_ENVIRONMENT_TIPS = 3

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def extract_text(raw: Any) -> str:
    """Return the first text block of a provider message.

    Accepts the provider message (object or dict with ``content``), a bare list
    of content blocks, or an already-extracted string.
    """
    if isinstance(raw, str):
        return raw
    content = getattr(raw, "content", None)
    if content is None and isinstance(raw, dict):
        content = raw.get("content")
    if isinstance(content, str):
        return content
    if content is None and isinstance(raw, list):
        content = raw
    if not isinstance(content, list):
        raise MalformedResponse("Provider response has no content blocks")
    for block in content:
        if isinstance(block, dict):
            block_type, text = block.get("type"), block.get("text")
        else:
            block_type, text = getattr(block, "type", None), getattr(block, "text", None)
        if block_type == "text" and isinstance(text, str):
            return text
    raise MalformedResponse("Provider response contains no text content")


def strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    cleaned = strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except (json.JSONDecodeError, RecursionError):
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(cleaned[start : end + 1])
            if isinstance(parsed, dict):
                return parsed
        except (json.JSONDecodeError, RecursionError):
            pass
    raise NotJSON("AI response is not valid JSON")


def _lookup(payload: dict[str, Any], dotted: str) -> Any:
    current: Any = payload
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _text(payload: dict[str, Any], dotted: str) -> str:
    return str(_lookup(payload, dotted)).strip()


def ensure_required(payload: dict[str, Any], fields: tuple[str, ...]) -> None:
    for name in fields:
        value = _lookup(payload, name)
        if not isinstance(value, str) or not value.strip():
            raise IncompleteAdvice(name)


def _try_content(value: Any) -> Optional[TryContent]:
    if not isinstance(value, dict):
        return None
    try:
        item = TryContent(
            title=str(value.get("title") or "").strip(),
            summary=str(value.get("summary") or "").strip(),
            detail=str(value.get("detail") or "").strip(),
        )
    except ValidationError:
        return None
    if not (item.title and item.summary and item.detail):
        return None
    return item


def _action_suggestion(value: Any) -> Optional[ActionSuggestion]:
    if not isinstance(value, dict):
        return None
    title = str(value.get("title") or "").strip()
    detail = str(value.get("detail") or "").strip()
    if not title or not detail:
        return None
    icon = str(value.get("icon") or "rest").strip() or "rest"
    return ActionSuggestion(icon=icon, title=title, detail=detail)


def _environment_tip(value: Any) -> Optional[EnvironmentTip]:
    if not isinstance(value, dict):
        return None
    tip_type = str(value.get("type") or "").strip()
    message = str(value.get("message") or "").strip()
    if not tip_type or not message:
        return None
    return EnvironmentTip(type=tip_type, message=message)


def _list_of(value: Any, convert, limit: int) -> list:
    if not isinstance(value, list):
        return []
    items = [convert(item) for item in value]
    return [item for item in items if item is not None][:limit]


def normalize_advice(
    payload: dict[str, Any], generated_at: datetime, time_slot: Optional[DaySlot] = None
) -> GeneratedAdvice:
    """Map provider field names to the internal schema.

    Unknown fields are ignored; malformed optional sections are dropped.
    """
    ensure_required(payload, REQUIRED_ADVICE_FIELDS)
    return GeneratedAdvice(
        greeting=_text(payload, "greeting"),
        condition_summary=_text(payload, "condition.summary"),
        condition_detail=_text(payload, "condition.detail"),
        daily_try=TryContent(
            title=_text(payload, "dailyTry.title"),
            summary=_text(payload, "dailyTry.summary"),
            detail=_text(payload, "dailyTry.detail"),
        ),
        closing_message=_text(payload, "closingMessage"),
        action_suggestions=_list_of(payload.get("actionSuggestions"), _action_suggestion, MAX_ACTION_SUGGESTIONS),
        weekly_try=_try_content(payload.get("weeklyTry")),
        environment_tips=_list_of(payload.get("environmentAdvice"), _environment_tip, MAX_ENVIRONMENT_TIPS),
        time_slot=time_slot,
        generated_at=generated_at,
    )


def validate_advice(raw: Any, generated_at: datetime, time_slot: Optional[DaySlot] = None) -> GeneratedAdvice:
    text = extract_text(raw)
    payload = parse_json_object(text)
    return normalize_advice(payload, generated_at, time_slot)


def validate_supplementary(raw: Any, generated_at: datetime, time_slot: DaySlot) -> SupplementaryAdvice:
    payload = parse_json_object(extract_text(raw))
    ensure_required(payload, REQUIRED_SUPPLEMENTARY_FIELDS)
    return SupplementaryAdvice(
        greeting=_text(payload, "greeting"),
        message=_text(payload, "message"),
        action_suggestion=_action_suggestion(payload.get("actionSuggestion")),
        time_slot=time_slot,
        generated_at=generated_at,
    )

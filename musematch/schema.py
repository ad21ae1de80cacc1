from datetime import datetime
from typing import Any, Dict, List

from .models import Role

ROLE_VALUES = {r.value for r in Role}


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_timestamp(v: Any) -> bool:
    if isinstance(v, datetime):
        return True
    if not isinstance(v, str):
        return False
    try:
        datetime.fromisoformat(v[:-1] + "+00:00" if v.endswith("Z") else v)
        return True
    except ValueError:
        return False


def _require_str(data: Dict[str, Any], keys: List[str], errors: List[str]) -> None:
    # Each entry may list camelCase aliases as "snake|camel"
    for aliases in keys:
        names = aliases.split("|")
        present = [n for n in names if n in data]
        if not present:
            errors.append(f"Missing required field: {names[0]}")
        elif not _is_non_empty_str(data[present[0]]):
            errors.append(f"Field '{present[0]}' must be a non-empty string")


def _require_timestamp(data: Dict[str, Any], aliases: str, errors: List[str]) -> None:
    names = aliases.split("|")
    present = [n for n in names if n in data]
    if not present:
        errors.append(f"Missing required field: {names[0]}")
    elif not _valid_timestamp(data[present[0]]):
        errors.append(f"Field '{present[0]}' must be an ISO timestamp")


def validate_profile(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []
    _require_str(data, ["id", "display_name|displayName|name"], errors)

    role = str(data.get("role") or "").strip().lower()
    if not role:
        errors.append("Missing required field: role")
    elif role not in ROLE_VALUES and role not in ("a and r", "anr"):
        errors.append(f"Field 'role' must be one of {sorted(ROLE_VALUES)}")

    genres = data.get("genres", [])
    if genres is not None:
        if not isinstance(genres, (list, tuple, set, frozenset)):
            errors.append("Field 'genres' must be a list if provided")
        elif not all(isinstance(g, str) for g in genres):
            errors.append("Field 'genres' must only contain strings")

    for key in ("highlight_count", "highlightCount", "highlights"):
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, list, tuple)):
            errors.append(f"Field '{key}' must be an integer or a list")
        elif isinstance(value, int) and value < 0:
            errors.append(f"Field '{key}' must not be negative")

    for key in ("verified", "onboarded", "isOnboarded"):
        value = data.get(key)
        if value is not None and not isinstance(value, bool):
            errors.append(f"Field '{key}' must be true or false")

    rating = data.get("rating")
    if rating is not None:
        if not isinstance(rating, (int, float)) or isinstance(rating, bool):
            errors.append("Field 'rating' must be a number")
        elif not 0 <= rating <= 5:
            errors.append("Field 'rating' must be between 0 and 5")

    return errors


def validate_match(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    _require_str(data, ["id", "user_a|userId", "user_b|matchedUserId"], errors)
    _require_timestamp(data, "created_at|matchedAt|createdAt", errors)
    return errors


def validate_message(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    _require_str(data, ["id", "match_id|matchId", "sender_id|senderId", "receiver_id|receiverId"], errors)
    _require_timestamp(data, "sent_at|sentAt", errors)
    if not isinstance(data.get("content"), str):
        errors.append("Field 'content' must be a string")
    return errors


def validate_direct_message(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    _require_str(data, ["id", "project_id|projectId", "sender_id|senderId", "receiver_id|receiverId"], errors)
    _require_timestamp(data, "sent_at|sentAt", errors)
    if not isinstance(data.get("content"), str):
        errors.append("Field 'content' must be a string")
    return errors


def validate_project(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    _require_str(data, ["id"], errors)
    return errors

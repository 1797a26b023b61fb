"""Translation between backend JSON payloads and domain models.

The backend speaks snake_case (`created_at`, `location_id`, `user_id`,
`average_rating`, `allowed`, `lat`, `lng`). Incoming keys are matched
case-insensitively against the aliases below, and optional fields may be
missing entirely.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from doggocli.domain.models.common import AuthToken, LocationId, RatingId, UserId
from doggocli.domain.models.location import Location, Rating, RatingSubmission
from doggocli.domain.models.user import LoginRequest, RegisterRequest, Session, User

logger = logging.getLogger(__name__)

# Internal field name -> accepted wire names (compared lowercased)
FIELD_ALIASES: Dict[str, tuple] = {
    "created_at": ("created_at", "createdat"),
    "updated_at": ("updated_at", "updatedat"),
    "location_id": ("location_id", "locationid"),
    "user_id": ("user_id", "userid"),
    "owner_user_id": ("user_id", "userid", "owner_user_id", "owneruserid"),
    "average_rating": ("average_rating", "averagerating"),
    "rating_count": ("rating_count", "ratingcount"),
    "is_allowed": ("allowed", "isallowed", "is_allowed"),
    "latitude": ("lat", "latitude"),
    "longitude": ("lng", "longitude"),
}


class WireFormatError(ValueError):
    """Raised when a payload cannot be mapped onto a domain model."""


def _normalize(payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise WireFormatError(f"Expected a JSON object for {what}, got {type(payload).__name__}")
    return {str(k).lower(): v for k, v in payload.items()}


def _pick(data: Mapping[str, Any], field: str, default: Any = None) -> Any:
    for alias in FIELD_ALIASES.get(field, (field,)):
        if alias in data and data[alias] is not None:
            return data[alias]
    return default


def _require(data: Mapping[str, Any], field: str, what: str) -> Any:
    value = _pick(data, field)
    if value is None:
        raise WireFormatError(f"Missing required field '{field}' in {what}")
    return value


def _as_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise WireFormatError(f"Field '{field}' is not an integer: {value!r}") from e


def _as_optional_int(value: Any, field: str) -> Optional[int]:
    return None if value is None else _as_int(value, field)


def _as_float(value: Any, field: str, default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise WireFormatError(f"Field '{field}' is not a number: {value!r}") from e


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parses an ISO-8601 timestamp; unparseable values become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None


# --- Decoding ---

def decode_user(payload: Any) -> User:
    data = _normalize(payload, "user")
    return User(
        id=UserId(_as_int(_require(data, "id", "user"), "id")),
        username=str(_pick(data, "username", "")),
        email=str(_pick(data, "email", "")),
        created_at=parse_timestamp(_pick(data, "created_at")),
        updated_at=parse_timestamp(_pick(data, "updated_at")),
    )


def decode_session(payload: Any) -> Session:
    """Decodes a login response `{token, user}`."""
    data = _normalize(payload, "login response")
    token = _pick(data, "token")
    if not token:
        raise WireFormatError("Login response did not contain a token")
    return Session(token=AuthToken(str(token)), user=decode_user(_require(data, "user", "login response")))


def decode_location(payload: Any) -> Location:
    data = _normalize(payload, "location")
    return Location(
        id=LocationId(_as_int(_require(data, "id", "location"), "id")),
        name=str(_pick(data, "name", "")),
        latitude=_as_float(_pick(data, "latitude"), "latitude", 0.0),
        longitude=_as_float(_pick(data, "longitude"), "longitude", 0.0),
        description=str(_pick(data, "description", "")),
        average_rating=_as_float(_pick(data, "average_rating"), "average_rating"),
        rating_count=_as_int(_pick(data, "rating_count", 0), "rating_count"),
        is_allowed=_as_bool(_pick(data, "is_allowed"), True),
        owner_user_id=_as_optional_int(_pick(data, "owner_user_id"), "user_id"),
    )


def decode_rating(payload: Any) -> Rating:
    data = _normalize(payload, "rating")
    return Rating(
        id=RatingId(_as_int(_require(data, "id", "rating"), "id")),
        stars=_as_int(_pick(data, "stars", 0), "stars"),
        description=str(_pick(data, "description", "")),
        location_id=LocationId(_as_int(_require(data, "location_id", "rating"), "location_id")),
        user_id=_as_optional_int(_pick(data, "user_id"), "user_id"),
    )


def decode_list(payload: Any, decoder: Callable[[Any], Any], what: str) -> List[Any]:
    """Decodes a JSON array, also accepting a `{"data": [...]}` envelope."""
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        payload = payload["data"]
    if not isinstance(payload, list):
        raise WireFormatError(f"Expected a JSON array of {what}, got {type(payload).__name__}")
    return [decoder(item) for item in payload]


# --- Encoding ---

def encode_login(request: LoginRequest) -> Dict[str, Any]:
    return asdict(request)


def encode_register(request: RegisterRequest) -> Dict[str, Any]:
    # Field names already match the wire format
    return asdict(request)


def encode_rating_submission(submission: RatingSubmission) -> Dict[str, Any]:
    return {
        "location_id": int(submission.location_id),
        "stars": submission.stars,
        "description": submission.description,
    }

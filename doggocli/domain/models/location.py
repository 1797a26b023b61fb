"""Domain models for locations and their ratings.

`Location.average_rating` and `Location.rating_count` are derived values
computed client-side by the aggregation service; the backend's own value is
carried through untouched until a recomputation replaces it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .common import LocationId, RatingId, UserId

MIN_STARS = 1
MAX_STARS = 5


@dataclass(frozen=True)
class Location:
    """A dog-friendly place known to the backend."""
    id: LocationId
    name: str
    latitude: float = 0.0
    longitude: float = 0.0
    description: str = ""
    average_rating: Optional[float] = None
    rating_count: int = 0
    is_allowed: bool = True
    owner_user_id: Optional[UserId] = None
    # Set when the rating fetch failed; average and count were not recomputed
    ratings_unavailable: bool = False


@dataclass(frozen=True)
class Rating:
    """Canonical backend representation of a single rating."""
    id: RatingId
    stars: int
    description: str
    location_id: LocationId
    user_id: Optional[UserId] = None


@dataclass(frozen=True)
class LocationRating:
    """Client-facing projection of a Rating.

    The backend's rating record has no author name or timestamp, so
    `username` and `created_at` stay None when projected from a Rating.
    """
    id: RatingId
    location_id: LocationId
    rating: int
    comment: str
    user_id: Optional[UserId] = None
    username: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_rating(cls, rating: Rating) -> "LocationRating":
        return cls(
            id=rating.id,
            location_id=rating.location_id,
            rating=rating.stars,
            comment=rating.description,
            user_id=rating.user_id,
        )


@dataclass(frozen=True)
class RatingSummary:
    """Mean and count over a set of ratings for one location."""
    average: Optional[float]
    count: int


@dataclass
class RatingSubmission:
    """Body of a new rating sent to the backend."""
    location_id: LocationId
    stars: int
    description: str = ""

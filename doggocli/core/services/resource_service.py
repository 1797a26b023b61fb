"""Typed operations against the locations and ratings endpoints.

Reads attach the bearer token when one is stored but never require it; the
rating submission requires it and fails locally without one. The token is
read through the SessionManager on every call.
"""

import logging
from typing import Any, Callable, List, Optional

from doggocli.core.services.failures import failure_from_exception, failure_from_response
from doggocli.core.services.session_service import SessionManager
from doggocli.domain.models.common import ApiPath, AuthToken, LocationId
from doggocli.domain.models.location import (
    MAX_STARS, MIN_STARS, Location, LocationRating, Rating, RatingSubmission
)
from doggocli.domain.models.result import ApiResult, ErrorKind
from doggocli.infrastructure.http.gateway import ApiRequest, ResilientGateway
from doggocli.infrastructure.http.wire import (
    decode_list, decode_location, decode_rating, encode_rating_submission
)

logger = logging.getLogger(__name__)

LOCATIONS_PATH = ApiPath("api/locations")
BEST_LOCATION_PATH = ApiPath("api/locations/best")
RATINGS_PATH = ApiPath("api/ratings")


def location_path(location_id: LocationId) -> ApiPath:
    return ApiPath(f"{LOCATIONS_PATH}/{int(location_id)}")


class ResourceClient:
    """Client for location and rating resources."""

    def __init__(self, gateway: ResilientGateway, session_manager: SessionManager):
        self.gateway = gateway
        self.session_manager = session_manager

    async def _call(
        self,
        request: ApiRequest,
        decode: Callable[[Any], Any],
        what: str,
    ) -> ApiResult:
        """Executes a request and decodes a 2xx body; every failure becomes a result."""
        try:
            response = await self.gateway.execute(request)
            if response.status_code == 401 and request.token:
                await self.session_manager.invalidate_session()
            if not response.is_success:
                logger.info(f"{what} returned HTTP {response.status_code}")
                return failure_from_response(response, what)
            return ApiResult.success(decode(response.json()))
        except Exception as e:
            logger.error(f"{what} failed: {e}", exc_info=True)
            return failure_from_exception(e, what)

    async def _optional_token(self) -> Optional[AuthToken]:
        return await self.session_manager.current_token()

    # --- Locations ---

    async def list_locations(self) -> ApiResult[List[Location]]:
        token = await self._optional_token()
        return await self._call(
            ApiRequest("GET", LOCATIONS_PATH, token=token),
            lambda payload: decode_list(payload, decode_location, "locations"),
            "List locations",
        )

    async def get_location(self, location_id: LocationId) -> ApiResult[Location]:
        token = await self._optional_token()
        return await self._call(
            ApiRequest("GET", location_path(location_id), token=token),
            decode_location,
            f"Get location {location_id}",
        )

    async def get_best_rated_location(self) -> ApiResult[Location]:
        token = await self._optional_token()
        return await self._call(
            ApiRequest("GET", BEST_LOCATION_PATH, token=token),
            decode_location,
            "Get best-rated location",
        )

    # --- Ratings ---

    async def list_ratings(self) -> ApiResult[List[Rating]]:
        """Fetches every rating known to the backend (no auth required)."""
        return await self._call(
            ApiRequest("GET", RATINGS_PATH),
            lambda payload: decode_list(payload, decode_rating, "ratings"),
            "List ratings",
        )

    async def list_ratings_for_location(self, location_id: LocationId) -> ApiResult[List[LocationRating]]:
        """Ratings of one location.

        The backend offers no per-location filter, so this downloads the full
        ratings collection and filters it client-side: O(total ratings) per call.
        """
        result = await self.list_ratings()
        if not result.ok:
            return ApiResult.from_error(result.error)
        matching = [
            LocationRating.from_rating(rating)
            for rating in result.value
            if rating.location_id == location_id
        ]
        logger.debug(f"Location {location_id}: {len(matching)} of {len(result.value)} ratings")
        return ApiResult.success(matching)

    async def submit_rating(self, location_id: LocationId, stars: int, comment: str = "") -> ApiResult[Rating]:
        """Posts a rating; requires a stored token."""
        token = await self.session_manager.current_token()
        if not token:
            return ApiResult.failure(ErrorKind.UNAUTHENTICATED, "You must be logged in to rate a location")
        if not MIN_STARS <= stars <= MAX_STARS:
            return ApiResult.failure(ErrorKind.VALIDATION, f"Stars must be between {MIN_STARS} and {MAX_STARS}")

        body = encode_rating_submission(RatingSubmission(location_id=location_id, stars=stars, description=comment))
        return await self._call(
            ApiRequest("POST", RATINGS_PATH, body=body, token=token),
            decode_rating,
            f"Submit rating for location {location_id}",
        )

"""Derives per-location rating statistics.

Fetches the location list, then concurrently fetches the ratings of every
location and attaches the mean and count. A failing location is returned
un-enriched; it never aborts the aggregation or delays its siblings beyond
the gateway's own timeout and retry bounds.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from doggocli.core.services.resource_service import ResourceClient
from doggocli.domain.models.common import LocationId
from doggocli.domain.models.location import Location, LocationRating, RatingSummary

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


def summarize(ratings: Sequence[LocationRating]) -> RatingSummary:
    """Arithmetic mean and count of the ratings; no ratings means no average."""
    if not ratings:
        return RatingSummary(average=None, count=0)
    total = sum(r.rating for r in ratings)
    return RatingSummary(average=total / len(ratings), count=len(ratings))


class AggregationService:
    """Builds the "locations with ratings" view."""

    def __init__(self, resource_client: ResourceClient, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        """Initializes the service.

        Args:
            resource_client: Client used for the list and per-location fetches.
            max_concurrency: Upper bound on in-flight rating fetches; 0 means
                one concurrent fetch per location with no cap.
        """
        self.resource_client = resource_client
        self.max_concurrency = max_concurrency

    async def _fetch_summary(
        self,
        location_id: LocationId,
        semaphore: Optional[asyncio.Semaphore],
    ) -> Optional[RatingSummary]:
        if semaphore is None:
            result = await self.resource_client.list_ratings_for_location(location_id)
        else:
            async with semaphore:
                result = await self.resource_client.list_ratings_for_location(location_id)
        if not result.ok:
            logger.warning(f"Ratings for location {location_id} unavailable: {result.error}")
            return None
        return summarize(result.value)

    async def list_locations_with_ratings(self) -> List[Location]:
        """Locations enriched with average rating and rating count.

        Returns:
            Every location from the base list, in its original order. An empty
            list if the base list itself could not be fetched.
        """
        listing = await self.resource_client.list_locations()
        if not listing.ok:
            logger.error(f"Cannot aggregate ratings, location list unavailable: {listing.error}")
            return []
        locations: List[Location] = listing.value
        if not locations:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency > 0 else None
        unique_ids = list(dict.fromkeys(location.id for location in locations))
        outcomes = await asyncio.gather(
            *(self._fetch_summary(location_id, semaphore) for location_id in unique_ids),
            return_exceptions=True,
        )

        summaries: Dict[LocationId, RatingSummary] = {}
        for location_id, outcome in zip(unique_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Rating aggregation for location {location_id} raised: {outcome!r}")
            elif outcome is not None:
                summaries[location_id] = outcome

        enriched = []
        for location in locations:
            summary = summaries.get(location.id)
            if summary is None:
                # Failed fetch: no average, everything else as delivered
                enriched.append(replace(location, average_rating=None, ratings_unavailable=True))
            else:
                enriched.append(replace(location, average_rating=summary.average, rating_count=summary.count))

        logger.info(f"Aggregated ratings for {len(summaries)}/{len(locations)} location(s)")
        return enriched

"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the session, resource and aggregation services. Service results are
turned into user-facing output; nothing raised by a service escapes.
"""

import logging
from typing import Optional

from doggocli.core.services.aggregation_service import AggregationService
from doggocli.core.services.resource_service import ResourceClient
from doggocli.core.services.session_service import SessionManager
from doggocli.domain.interfaces.user_interface import UserInterface
from doggocli.domain.models.common import LocationId
from doggocli.domain.models.result import ApiError, ErrorKind
from doggocli.domain.models.user import User

logger = logging.getLogger(__name__)

def describe_error(error: ApiError) -> str:
    """Human-readable error text, including the backend's message if it sent one."""
    text = str(error)
    payload = error.payload
    if isinstance(payload, dict):
        detail = payload.get("message") or payload.get("error") or payload.get("detail")
        if detail:
            text = f"{text}: {detail}"
    elif isinstance(payload, str) and payload.strip():
        text = f"{text}: {payload.strip()[:200]}"
    return text

class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        session_manager: SessionManager,
        resource_client: ResourceClient,
        aggregation_service: AggregationService,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler and subscribes to session changes."""
        self.session_manager = session_manager
        self.resource_client = resource_client
        self.aggregation_service = aggregation_service
        self.ui = ui
        self._announced_user: Optional[str] = None
        self._unsubscribe = session_manager.subscribe(self._on_session_changed)

    def _on_session_changed(self, user: Optional[User]) -> None:
        if user is None:
            if self._announced_user is not None:
                self.ui.display_info("Signed out.")
            self._announced_user = None
        elif user.username != self._announced_user:
            self._announced_user = user.username
            self.ui.display_info(f"Signed in as {user.username}.")

    def close(self) -> None:
        self._unsubscribe()

    # --- Session commands ---

    async def handle_login(self, username: str, password: str) -> bool:
        logger.info(f"Handling 'login' command for user: {username}")
        result = await self.session_manager.login(username, password)
        if not result.ok:
            self.ui.display_error(f"Login failed: {describe_error(result.error)}")
            return False
        return True

    async def handle_register(self, username: str, email: str, password: str, password_confirmation: str) -> bool:
        logger.info(f"Handling 'register' command for user: {username}")
        if password != password_confirmation:
            self.ui.display_error("Passwords do not match.")
            return False
        if await self.session_manager.register(username, email, password, password_confirmation):
            self.ui.display_info(f"Account '{username}' created. You can now log in.")
            return True
        self.ui.display_error("Registration failed. Check your details and try again.")
        return False

    async def handle_logout(self) -> None:
        logger.info("Handling 'logout' command")
        await self.session_manager.logout()
        self.ui.display_info("Logged out.")

    async def handle_whoami(self) -> Optional[User]:
        logger.info("Handling 'whoami' command")
        user = await self.session_manager.refresh_current_user()
        if user is None and await self.session_manager.current_token():
            self.ui.display_warning("Could not reach the server to refresh your profile.")
            return None
        self.ui.display_user(user)
        return user

    # --- Location commands ---

    async def handle_locations(self, with_ratings: bool = False) -> None:
        logger.info(f"Handling 'locations' command (with_ratings={with_ratings})")
        if with_ratings:
            locations = await self.aggregation_service.list_locations_with_ratings()
            if not locations:
                self.ui.display_warning("No locations available (or the server could not be reached).")
                return
            self.ui.display_locations(locations, title="Locations with ratings")
            return

        result = await self.resource_client.list_locations()
        if not result.ok:
            self.ui.display_error(f"Could not list locations: {describe_error(result.error)}")
            return
        self.ui.display_locations(result.value)

    async def handle_location(self, location_id: int) -> None:
        logger.info(f"Handling 'location' command for id: {location_id}")
        result = await self.resource_client.get_location(LocationId(location_id))
        if not result.ok:
            if result.error.status_code == 404:
                self.ui.display_error(f"Location {location_id} does not exist.")
            else:
                self.ui.display_error(f"Could not load location {location_id}: {describe_error(result.error)}")
            return
        self.ui.display_locations([result.value], title=result.value.name)

    async def handle_best(self) -> None:
        logger.info("Handling 'best' command")
        result = await self.resource_client.get_best_rated_location()
        if not result.ok:
            self.ui.display_error(f"Could not load the best-rated location: {describe_error(result.error)}")
            return
        self.ui.display_locations([result.value], title="Best rated")

    # --- Rating commands ---

    async def handle_ratings(self, location_id: int) -> None:
        logger.info(f"Handling 'ratings' command for location: {location_id}")
        result = await self.resource_client.list_ratings_for_location(LocationId(location_id))
        if not result.ok:
            self.ui.display_error(f"Could not load ratings: {describe_error(result.error)}")
            return
        self.ui.display_ratings(result.value, title=f"Ratings for location {location_id}")

    async def handle_rate(self, location_id: int, stars: int, comment: str = "") -> bool:
        logger.info(f"Handling 'rate' command for location: {location_id} ({stars} stars)")
        result = await self.resource_client.submit_rating(LocationId(location_id), stars, comment)
        if not result.ok:
            if result.error.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.AUTHENTICATION):
                self.ui.display_error("Please log in first: doggocli login")
            else:
                self.ui.display_error(f"Could not submit rating: {describe_error(result.error)}")
            return False
        self.ui.display_info(f"Thanks! Your {stars}-star rating for location {location_id} was saved.")
        return True

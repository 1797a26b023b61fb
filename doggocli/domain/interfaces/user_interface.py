"""Interface for interacting with the user (input/output).

Defines the contract for displaying information, errors, warnings and domain
data, allowing different UI implementations (e.g., console, GUI). Prompting
for input belongs to the CLI layer.
"""

import abc
from typing import Any, List, Optional

from doggocli.domain.models.location import Location, LocationRating
from doggocli.domain.models.user import User

class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_locations(self, locations: List[Location], title: str = "Locations") -> None:
        """Renders a list of locations, including any computed rating stats."""
        pass

    @abc.abstractmethod
    def display_ratings(self, ratings: List[LocationRating], title: Optional[str] = None) -> None:
        """Renders the ratings of one location."""
        pass

    @abc.abstractmethod
    def display_user(self, user: Optional[User]) -> None:
        """Renders the signed-in user's profile, or a signed-out notice."""
        pass

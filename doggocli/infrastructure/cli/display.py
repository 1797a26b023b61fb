import logging
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from doggocli.domain.interfaces.user_interface import UserInterface
from doggocli.domain.models.location import Location, LocationRating
from doggocli.domain.models.user import User

logger = logging.getLogger(__name__)

def format_stars(average: Optional[float]) -> str:
    """Renders an average rating like '4.3 ★★★★☆', or '-' when there is none."""
    if average is None:
        return "-"
    filled = int(round(average))
    return f"{average:.1f} " + "★" * filled + "☆" * (5 - filled)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_locations(self, locations: List[Location], title: str = "Locations") -> None:
        """Displays locations as a table, including computed rating stats."""
        logger.debug(f"Displaying {len(locations)} location(s)")
        if not locations:
            self.display_info("No locations found.")
            return

        table = Table(title=title, show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Name", style="bold")
        table.add_column("Coordinates", style="dim")
        table.add_column("Rating", style="yellow")
        table.add_column("#", justify="right")
        table.add_column("Dogs", justify="center")
        table.add_column("Description", style="white")

        for location in locations:
            description = location.description
            if len(description) > 60:
                description = description[:57] + "..."
            if location.ratings_unavailable:
                rating_cell, count_cell = Text("unavailable", style="red"), Text("?", style="red")
            else:
                rating_cell, count_cell = Text(format_stars(location.average_rating)), Text(str(location.rating_count))
            # Backend text goes in as Text so brackets are never parsed as markup
            table.add_row(
                str(location.id),
                Text(location.name),
                f"{location.latitude:.5f}, {location.longitude:.5f}",
                rating_cell,
                count_cell,
                "[green]yes[/green]" if location.is_allowed else "[red]no[/red]",
                Text(description),
            )
        self.console.print(table)

    def display_ratings(self, ratings: List[LocationRating], title: Optional[str] = None) -> None:
        """Displays the ratings of a location."""
        if not ratings:
            self.display_info("No ratings yet.")
            return

        table = Table(title=title or "Ratings", show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Stars", style="yellow")
        table.add_column("By", style="dim")
        table.add_column("Comment", style="white")

        for rating in ratings:
            author = rating.username or (f"user #{rating.user_id}" if rating.user_id is not None else "unknown")
            table.add_row(
                str(rating.id),
                "★" * rating.rating + "☆" * max(0, 5 - rating.rating),
                Text(author),
                Text(rating.comment),
            )
        self.console.print(table)

    def display_user(self, user: Optional[User]) -> None:
        """Displays the signed-in user's profile."""
        if user is None:
            self.display_info("Not logged in.")
            return

        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("ID", str(user.id))
        table.add_row("Username", Text(user.username))
        table.add_row("Email", Text(user.email))
        if user.created_at:
            table.add_row("Member since", user.created_at.strftime("%Y-%m-%d"))
        self.console.print(table)

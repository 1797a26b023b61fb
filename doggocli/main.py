"""Main entry point for the doggoCLI application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from doggocli.core.command_handler import CommandHandler
from doggocli.core.services.aggregation_service import AggregationService
from doggocli.core.services.resource_service import ResourceClient
from doggocli.core.services.session_service import SessionManager

# --- Domain Layer ---
from doggocli.domain.interfaces.token_store import TokenStore

# --- Infrastructure Layer ---
from doggocli.infrastructure.cli.display import ConsoleDisplay
from doggocli.infrastructure.config.settings import (
    get_aggregation_concurrency, get_api_base_url, get_backoff_policy, get_breaker_policy,
    get_config, get_request_timeout, get_token_store_dir, load_configuration
)
from doggocli.infrastructure.http.gateway import ResilientGateway
from doggocli.infrastructure.monitoring.logger_setup import setup_logging
from doggocli.infrastructure.resilience.api_retry import (
    RETRYABLE_EXCEPTIONS, ApiRetryService, is_transient_response
)
from doggocli.infrastructure.resilience.circuit_breaker import CircuitBreaker
from doggocli.infrastructure.resilience.errors import MaxRetryError
from doggocli.infrastructure.storage.token_store import DiskTokenStore

logger = logging.getLogger(__name__)

# Values given on the command line; they win over every config source
_overrides: Dict[str, Any] = {}

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        load_configuration()
        log_level_name = str(_overrides.get('logging.level') or get_config('logging.level', 'WARNING')).upper()
        setup_logging(
            log_level=getattr(logging, log_level_name, logging.WARNING),
            log_file=get_config('logging.file'),
            log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        )
        logger.info("Configuration and logging initialized.")

        # 2. Infrastructure Adapters
        dependencies['ui'] = ConsoleDisplay()
        dependencies['token_store'] = DiskTokenStore(get_token_store_dir())

        # 3. Resilience Policies
        backoff = get_backoff_policy()
        breaker = get_breaker_policy()
        dependencies['api_retry_service'] = ApiRetryService(
            max_retries=backoff['max_retries'],
            initial_backoff_s=backoff['initial_delay'],
            backoff_factor=backoff['factor'],
        )
        dependencies['circuit_breaker'] = CircuitBreaker(
            failure_threshold=breaker['failure_threshold'],
            break_duration_s=breaker['break_duration'],
            failure_exceptions=(MaxRetryError,) + RETRYABLE_EXCEPTIONS,
            is_failure_result=is_transient_response,
        )
        dependencies['gateway'] = ResilientGateway(
            base_url=_overrides.get('api.base_url') or get_api_base_url(),
            timeout_s=get_request_timeout(),
            retry_service=dependencies['api_retry_service'],
            circuit_breaker=dependencies['circuit_breaker'],
        )

        # 4. Core Services
        dependencies['session_manager'] = SessionManager(
            gateway=dependencies['gateway'],
            token_store=dependencies['token_store'],
        )
        dependencies['resource_client'] = ResourceClient(
            gateway=dependencies['gateway'],
            session_manager=dependencies['session_manager'],
        )
        dependencies['aggregation_service'] = AggregationService(
            resource_client=dependencies['resource_client'],
            max_concurrency=get_aggregation_concurrency(),
        )

        # 5. Command Handler
        dependencies['command_handler'] = CommandHandler(
            session_manager=dependencies['session_manager'],
            resource_client=dependencies['resource_client'],
            aggregation_service=dependencies['aggregation_service'],
            ui=dependencies['ui'],
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        sys.exit(1)

_dependencies: Optional[Dict[str, Any]] = None

def get_dependencies() -> Dict[str, Any]:
    """Returns the wired-up dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies

def get_handler() -> CommandHandler:
    return get_dependencies()['command_handler']

# --- Typer App Definition ---
app = typer.Typer(
    name="doggocli",
    help="doggoCLI: find, browse and rate dog-friendly places from your terminal.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async command to completion, always releasing the HTTP client and token store afterwards."""
    dependencies = get_dependencies()
    gateway: ResilientGateway = dependencies['gateway']
    token_store: TokenStore = dependencies['token_store']

    async def runner() -> Any:
        try:
            return await coro
        finally:
            await gateway.aclose()
            token_store.close()

    try:
        return asyncio.run(runner())
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        dependencies['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)

def exit_on_failure(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)

# --- CLI Commands ---

@app.command()
def login(
    username: Annotated[str, typer.Option("--username", "-u", prompt=True, help="Your username.")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Your password.")],
):
    """Log in and remember the session token."""
    exit_on_failure(run_async(get_handler().handle_login(username, password)))

@app.command()
def register(
    username: Annotated[str, typer.Option("--username", "-u", prompt=True, help="Desired username.")],
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Email address.")],
    password: Annotated[str, typer.Option(
        "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True, help="Password."
    )],
):
    """Create a new account (does not log in)."""
    exit_on_failure(run_async(get_handler().handle_register(username, email, password, password)))

@app.command()
def logout():
    """Log out and forget the stored session token."""
    run_async(get_handler().handle_logout())

@app.command()
def whoami():
    """Show the profile of the logged-in user."""
    run_async(get_handler().handle_whoami())

@app.command()
def locations(
    with_ratings: Annotated[bool, typer.Option(
        "--with-ratings", "-r", help="Compute average rating and rating count for every location."
    )] = False,
):
    """List all locations."""
    run_async(get_handler().handle_locations(with_ratings=with_ratings))

@app.command()
def location(
    location_id: Annotated[int, typer.Argument(help="Location ID.")],
):
    """Show a single location."""
    run_async(get_handler().handle_location(location_id))

@app.command()
def best():
    """Show the best-rated location."""
    run_async(get_handler().handle_best())

@app.command()
def ratings(
    location_id: Annotated[int, typer.Argument(help="Location ID.")],
):
    """List the ratings of a location."""
    run_async(get_handler().handle_ratings(location_id))

@app.command()
def rate(
    location_id: Annotated[int, typer.Argument(help="Location ID.")],
    stars: Annotated[int, typer.Argument(min=1, max=5, help="Stars from 1 to 5.")],
    comment: Annotated[str, typer.Option("--comment", "-c", help="Optional comment.")] = "",
):
    """Rate a location (requires login)."""
    exit_on_failure(run_async(get_handler().handle_rate(location_id, stars, comment)))

@app.callback()
def main_callback(
    base_url: Annotated[Optional[str], typer.Option(
        "--base-url", envvar="DOGGO_API_BASE_URL", help="Backend root URL."
    )] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Global options applied before any command runs."""
    if base_url:
        _overrides['api.base_url'] = base_url
    if verbose:
        _overrides['logging.level'] = 'DEBUG'

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()

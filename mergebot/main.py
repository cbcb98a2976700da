"""Main entry point for the mergebot application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Annotated, Any, Awaitable, Callable, Dict, Optional

import httpx
import typer

# --- Setup Logging Early ---
# Use basic config until setup_logging is called with the configured settings
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Core Layer ---
from mergebot.core.command_handler import CommandHandler
from mergebot.core.services.watch_service import WatchService

# --- Domain Layer ---
from mergebot.domain.errors import ConfigurationError

# --- Infrastructure Layer ---
from mergebot.infrastructure.cli.display import ConsoleDisplay
from mergebot.infrastructure.config.settings import (
    get_auth_token,
    get_config,
    get_gitlab_url,
    get_poll_interval,
    get_retry_policy,
    load_configuration,
)
from mergebot.infrastructure.gitlab.gitlab_client import GitlabClient
from mergebot.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging
from mergebot.infrastructure.resilience.request_executor import RequestExecutor

# --- Dependency Injection Container (Manual) ---

def create_dependencies(client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Args:
        client: Optional httpx client handed to the RequestExecutor instead of
            letting it build its own.

    Raises:
        ConfigurationError: If the GitLab URL or token is missing or invalid.
    """
    logger.info("Initializing application dependencies...")
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First, then configure logging from it
    load_configuration()
    setup_logging(
        log_level=get_config('logging.level', 'INFO'),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    logger.info("Configuration and logging initialized.")

    # 2. Infrastructure adapters
    dependencies['ui'] = ConsoleDisplay()
    dependencies['executor'] = RequestExecutor(
        base_url=get_gitlab_url(),
        auth_token=get_auth_token(),
        policy=get_retry_policy(),
        client=client,
    )
    dependencies['gitlab_api'] = GitlabClient(dependencies['executor'])

    # 3. Core services
    dependencies['watch_service'] = WatchService(
        gitlab_api=dependencies['gitlab_api'],
        ui=dependencies['ui'],
    )
    dependencies['command_handler'] = CommandHandler(
        gitlab_api=dependencies['gitlab_api'],
        watch_service=dependencies['watch_service'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="mergebot",
    help="mergebot: watch and operate GitLab merge requests with a resilient API client.",
    add_completion=False,
)

HandlerCall = Callable[[CommandHandler], Awaitable[bool]]


async def _run_with_dependencies(call: HandlerCall) -> bool:
    dependencies = create_dependencies()
    async with dependencies['executor']:
        return await call(dependencies['command_handler'])


def run_command(call: HandlerCall) -> None:
    """Runs a handler coroutine on a fresh event loop and maps failure to exit code 1."""
    try:
        succeeded = asyncio.run(_run_with_dependencies(call))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        ConsoleDisplay().display_error(str(e))
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return
    if not succeeded:
        raise typer.Exit(code=1)

# --- CLI Commands ---

ProjectArgument = Annotated[int, typer.Argument(help="Numeric ID of the GitLab project.")]
IidArgument = Annotated[int, typer.Argument(help="Merge request IID within the project.")]


@app.command()
def whoami():
    """Show the user owning the configured token."""
    run_command(lambda handler: handler.handle_whoami())


@app.command(name="list")
def list_command():
    """List open merge requests assigned to you."""
    run_command(lambda handler: handler.handle_list())


@app.command()
def status(project_id: ProjectArgument, iid: IidArgument):
    """Show merge status, pipeline and approvals of one merge request."""
    run_command(lambda handler: handler.handle_status(project_id, iid))


@app.command()
def comment(
    project_id: ProjectArgument,
    iid: IidArgument,
    body: Annotated[str, typer.Argument(help="Text of the note to add.")],
):
    """Add a note to a merge request."""
    run_command(lambda handler: handler.handle_comment(project_id, iid, body))


@app.command()
def rebase(project_id: ProjectArgument, iid: IidArgument):
    """Ask GitLab to rebase a merge request."""
    run_command(lambda handler: handler.handle_rebase(project_id, iid))


@app.command()
def watch(
    interval: Annotated[
        Optional[float],
        typer.Option("--interval", "-n", min=0.1, help="Seconds between polls (default: watch.interval_seconds).")
    ] = None,
    once: Annotated[bool, typer.Option("--once", help="Poll a single time and exit.")] = False,
):
    """Poll assigned merge requests and reconcile them one at a time."""
    if interval is None:
        load_configuration()
        try:
            interval = get_poll_interval()
        except ConfigurationError as e:
            ConsoleDisplay().display_error(str(e))
            raise typer.Exit(code=1)
    run_command(lambda handler: handler.handle_watch(interval, once=once))

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    logger.info("Starting mergebot application...")
    app()  # Typer takes over
    logger.info("mergebot application finished.")


if __name__ == "__main__":
    cli_entry_point()

"""Main entry point for the DomainIQ application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from domainiq import __version__
# --- Core Layer ---
from domainiq.core.command_handler import CommandHandler
from domainiq.core.services.scoring_service import DomainScoringService
# --- Domain Layer ---
from domainiq.domain.interfaces.clock import Clock
from domainiq.domain.interfaces.inference import InferenceProvider
# --- Infrastructure Layer ---
from domainiq.infrastructure.ai.groq.groq_client import GroqAnalysisProvider
from domainiq.infrastructure.ai.openai.gpt_client import OpenAICompatibleProvider
from domainiq.infrastructure.cache.caching_service import CachingServiceImpl
from domainiq.infrastructure.cli.display import ConsoleDisplay
from domainiq.infrastructure.config.settings import (
    PROVIDER_GEMINI, PROVIDER_GROQ, PROVIDER_NONE, PROVIDERS, get_api_key,
    get_default_model, get_default_provider, get_log_file, get_log_level,
    get_provider_timeout, get_queue_settings, load_configuration,
)
from domainiq.infrastructure.heuristics.heuristic_analyzer import HeuristicAnalyzer
from domainiq.infrastructure.monitoring.logger_setup import setup_logging
from domainiq.infrastructure.resilience.clock import SystemClock
from domainiq.infrastructure.resilience.inference_queue import RateLimitedInferenceQueue

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_provider(provider_name: str) -> Optional[InferenceProvider]:
    """Builds the configured provider, or None for heuristics only."""
    if provider_name == PROVIDER_NONE:
        logger.info("Provider disabled by configuration; using heuristic analysis only.")
        return None
    api_key = get_api_key(provider_name)
    if not api_key:
        logger.warning(f"No API key configured for '{provider_name}'; using heuristic analysis only.")
        return None

    model = get_default_model(provider_name)
    timeout = get_provider_timeout()
    if provider_name == PROVIDER_GEMINI:
        return OpenAICompatibleProvider.for_gemini(api_key=api_key, model=model, timeout=timeout)
    if provider_name == PROVIDER_GROQ:
        return GroqAnalysisProvider(api_key=api_key, model=model, timeout=timeout)
    return OpenAICompatibleProvider(api_key=api_key, model=model, timeout=timeout)


def create_dependencies(
    provider_name: Optional[str] = None, json_output: bool = False, clock: Optional[Clock] = None
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay(json_output=json_output)
    dependencies['clock'] = clock or SystemClock()

    settings = get_queue_settings()
    dependencies['settings'] = settings
    dependencies['cache_service'] = CachingServiceImpl(dependencies['clock'], default_ttl=settings.cache_ttl)
    dependencies['fallback'] = HeuristicAnalyzer(clock=dependencies['clock'])
    dependencies['provider'] = create_provider(provider_name or get_default_provider())

    dependencies['queue'] = RateLimitedInferenceQueue(
        fallback=dependencies['fallback'],
        provider=dependencies['provider'],
        settings=settings,
        clock=dependencies['clock'],
        cache_service=dependencies['cache_service'],
    )
    dependencies['scoring_service'] = DomainScoringService(dependencies['queue'])
    dependencies['command_handler'] = CommandHandler(
        scoring_service=dependencies['scoring_service'],
        ui=dependencies['ui'],
    )
    dependencies['queue'].event_listener = dependencies['command_handler'].record_event
    logger.debug("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="domainiq",
    help="DomainIQ: domain name scoring with rate-limited AI analysis and heuristic fallback.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(dependencies: Dict[str, Any], coro: Coroutine[Any, Any, bool]) -> bool:
    """Runs a command coroutine, closing the queue inside the same loop."""
    async def guarded() -> bool:
        try:
            return await coro
        finally:
            dependencies['queue'].close()

    return asyncio.run(guarded())


def _dependencies(ctx: typer.Context) -> Dict[str, Any]:
    return ctx.ensure_object(dict)['dependencies']


def _finish(success: bool) -> None:
    if not success:
        raise typer.Exit(code=1)


# --- CLI Commands ---

@app.command()
def analyze(
    ctx: typer.Context,
    domains: Annotated[List[str], typer.Argument(help="One or more domain names, e.g. crypto.io")],
):
    """Score one or more domain names."""
    dependencies = _dependencies(ctx)
    handler: CommandHandler = dependencies['command_handler']
    _finish(run_async(dependencies, handler.handle_analyze(domains)))


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Keyword to expand into candidate domains.")],
):
    """Score the .com/.io/.xyz/.ai/.crypto/.defi variations of a keyword, best first."""
    dependencies = _dependencies(ctx)
    handler: CommandHandler = dependencies['command_handler']
    _finish(run_async(dependencies, handler.handle_search(query)))


@app.command()
def stats(ctx: typer.Context):
    """Show the inference queue's quota usage."""
    dependencies = _dependencies(ctx)
    handler: CommandHandler = dependencies['command_handler']
    _finish(run_async(dependencies, handler.handle_stats()))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"domainiq {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help=f"AI provider ({', '.join(PROVIDERS)}). Uses config if not set.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Print results as JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit.")
    ] = None,
):
    """Configure logging and wire dependencies before any command runs."""
    load_configuration()
    setup_logging(log_level="DEBUG" if verbose else get_log_level(), log_file=get_log_file())

    if provider is not None:
        provider = provider.lower()
        if provider not in PROVIDERS:
            raise typer.BadParameter(f"Choose one of: {', '.join(PROVIDERS)}", param_hint="--provider")

    try:
        dependencies = create_dependencies(provider_name=provider, json_output=json_output)
    except ValueError as e:
        # Invalid queue settings in config
        logger.error(f"Fatal Error during application initialization: {e}")
        ConsoleDisplay(json_output=json_output).display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)
    ctx.ensure_object(dict)['dependencies'] = dependencies


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()

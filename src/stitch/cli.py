"""CLI entry point for stitch."""

from __future__ import annotations

import click
from anthropic import APIError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stitch.errors import StitchError

console = Console()


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Log every round at debug level")
def main(verbose: bool) -> None:
    """Ask Claude for complete answers, continuing truncated responses."""
    from stitch.config import get_settings
    from stitch.logging import configure_logging

    configure_logging("DEBUG" if verbose else get_settings().log_level)


# ---------------------------------------------------------------------------
# ask — one stitched answer
# ---------------------------------------------------------------------------


@main.command()
@click.argument("message")
@click.option("--system", "-s", "system_prompts", multiple=True,
              help="System message to seed the conversation (repeatable)")
@click.option("--max-rounds", "-n", type=click.IntRange(min=1), default=None,
              help="Maximum number of requests (default from settings)")
@click.option("--end-mark", "-e", default=None, help="End mark the model must finish with")
@click.option("--family", "-f", default=None, help="Pick the first model of this family")
def ask(
    message: str,
    system_prompts: tuple[str, ...],
    max_rounds: int | None,
    end_mark: str | None,
    family: str | None,
) -> None:
    """Send MESSAGE and print the complete answer."""
    from stitch.config import get_settings
    from stitch.llm.client import ClaudeClient
    from stitch.llm.models import ChatMessage, ModelCriteria
    from stitch.session import ContinuationChatSession
    from stitch.telemetry import LoggingTelemetry

    settings = get_settings()
    _check_api_key(settings)
    if max_rounds is not None:
        settings.max_rounds = max_rounds
    if end_mark:
        settings.end_mark = end_mark

    mark = settings.end_mark
    seed = [ChatMessage.system(text) for text in system_prompts]
    seed.append(
        ChatMessage.system(
            f'When your answer is complete, end it with "{mark}". '
            "If you run out of space, stop and wait to be asked to continue."
        )
    )
    client = ClaudeClient(settings)
    session = ContinuationChatSession.from_settings(
        settings,
        seed,
        client=client,
        criteria=ModelCriteria(family=family) if family else None,
        telemetry=LoggingTelemetry(),
    )

    try:
        with console.status("[bold green]Waiting for Claude..."):
            answer = session.send(message)
    except (StitchError, APIError) as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise SystemExit(1)

    console.print(answer, markup=False, highlight=False)
    console.print(f"\n[dim]Tokens: {client.usage_summary}[/dim]")


# ---------------------------------------------------------------------------
# models — list configured models
# ---------------------------------------------------------------------------


@main.command()
def models() -> None:
    """List the configured Claude models."""
    from stitch.config import get_settings
    from stitch.llm.claude import AnthropicModelSelector
    from stitch.llm.client import ClaudeClient

    settings = get_settings()
    selector = AnthropicModelSelector(ClaudeClient(settings), settings.model_ids)

    table = Table(title="Models")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Version", style="dim")
    for model in selector.select():
        name = f"{model.name} *" if model.id == settings.model else model.name
        table.add_row(model.id, name, model.version)
    console.print(table)
    console.print("[dim]* default model[/dim]")


def _check_api_key(settings: object) -> None:
    """Exit with a helpful message if the API key is not set."""
    if not getattr(settings, "anthropic_api_key", ""):
        console.print(
            "[bold red]Error:[/bold red] ANTHROPIC_API_KEY not set.\n"
            "Export it or add it to .env."
        )
        raise SystemExit(1)

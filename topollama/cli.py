import asyncio
import sys

import typer
from rich.console import Console
from rich.table import Table

from topollama.config import Settings, settings

console = Console()
cli_app = typer.Typer(name="topollama", help="Live terminal monitor for a local Ollama daemon")


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


@cli_app.callback(invoke_without_command=True)
def dashboard(
    ctx: typer.Context,
    host: str = typer.Option(None, "--host", help="Ollama endpoint (defaults to $OLLAMA_HOST)"),
    log_level: str = typer.Option(None, "--log-level", help="debug, info, warning or error"),
):
    """Show the live dashboard (q quits, r refreshes)."""
    overrides = {}
    if host:
        overrides["ollama_host"] = host
    if log_level:
        overrides["topollama_log_level"] = log_level
    config = settings.model_copy(update=overrides)
    ctx.obj = config

    if ctx.invoked_subcommand is not None:
        return

    from topollama.main import run_dashboard

    try:
        _run_async(run_dashboard(config))
    except KeyboardInterrupt:
        pass


@cli_app.command("models")
def list_models(ctx: typer.Context):
    """Fetch the model list once and print it."""
    config: Settings = ctx.obj or settings

    async def _fetch():
        from topollama.core.logging import configure_logging
        from topollama.main import build_client, build_fetcher

        # stdout carries the table; diagnostics go to stderr
        configure_logging(config.topollama_log_level, file=sys.stderr)
        client = build_client(config)
        try:
            fetcher = build_fetcher(config, client)
            models = await fetcher.fetch()
            return models, fetcher.last_error
        finally:
            await client.close()

    models, error = _run_async(_fetch())

    if error is not None:
        console.print(f"[bold red]Cannot list models from {config.ollama_base_url}.[/bold red]")
        suggestion = getattr(error, "details", {}).get("suggestion")
        if suggestion:
            console.print(f"[dim]{suggestion}[/dim]")
        raise typer.Exit(code=1)

    if not models:
        console.print("[dim]No models installed.[/dim]")
        return

    from topollama.services.refresh import model_rows
    from topollama.ui.base import TABLE_ALIGN, TABLE_HEADERS

    table = Table(title=f"Ollama Models ({config.ollama_base_url})")
    for header, align in zip(TABLE_HEADERS, TABLE_ALIGN):
        table.add_column(header, justify=align, style="cyan" if header == "Model" else None)
    for row in model_rows(models):
        table.add_row(*row.cells, style="red" if row.highlight else None)

    console.print(table)


def main():
    cli_app()


if __name__ == "__main__":
    main()

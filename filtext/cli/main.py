"""
Command Line Interface for filtext.

Usage:
    filtext upload "hello world"
    filtext upload --file notes.txt --json
    filtext balance
    filtext datasets
    filtext fetch <piece-cid>
    filtext serve --port 8090
"""

import asyncio
import logging
from pathlib import Path

import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="filtext",
    help="Store text on Filecoin warm storage",
    add_completion=False,
)

console = Console()

DEFAULT_ACCOUNT = "0x000000000000000000000000000000000000dEaD"


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Load .env and set the log level."""
    load_dotenv()
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


@app.command()
def upload(
    text: str | None = typer.Argument(None, help="Text to store"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read text from a file"),
    account: str = typer.Option(DEFAULT_ACCOUNT, "--account", "-a", envvar="FILTEXT_ACCOUNT"),
    funds: str = typer.Option("10", "--funds", help="Simulated USDFC wallet balance"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    save_to: str | None = typer.Option(None, "--save", help="Save result to file"),
):
    """
    Store text and print its piece CID.

    Example:
        filtext upload "hello"
    """
    if file is not None:
        text = file.read_text(encoding="utf-8")
    if not text:
        console.print("[red]Nothing to upload: pass TEXT or --file[/red]")
        raise typer.Exit(1)

    asyncio.run(_upload_async(text, account, funds, output_json, save_to))


async def _upload_async(text: str, account: str, funds: str, output_json: bool, save_to: str | None):
    """Async upload handler."""
    from filtext.backends.memory import create_simulated_uploader
    from filtext.config import StorageConfig, parse_amount
    from filtext.errors import UploadError

    config = StorageConfig.from_env()
    uploader = create_simulated_uploader(
        account,
        funds=parse_amount(funds, config.token_decimals),
        config=config,
    )

    if not output_json:
        console.print()
        console.print(
            Panel.fit(
                f"[bold blue]Network:[/bold blue] {config.network_name} ({config.chain_id})\n"
                f"[bold blue]Account:[/bold blue] {account}\n"
                f"[bold blue]Size:[/bold blue] {len(text.encode('utf-8'))} bytes",
                title="📁 Filecoin Text Upload",
            )
        )
        console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed:>3.0f}%"),
        console=console,
        disable=output_json,
    ) as progress:
        task = progress.add_task("Initializing...", total=100)
        uploader.add_progress_listener(
            lambda state: progress.update(task, completed=state.percent, description=state.message)
        )

        try:
            outcome = await uploader.upload(text)
        except UploadError as e:
            stage = e.stage.value if e.stage else "unknown"
            console.print(f"[red]❌ Upload failed during {stage}: {e}[/red]")
            raise typer.Exit(1) from None

    json_output = {
        "piece_cid": outcome.piece_cid,
        "transaction_hash": outcome.transaction_hash,
        "confirmed": outcome.confirmed,
        "dataset_id": outcome.dataset_id,
        "size": outcome.size,
    }

    if output_json:
        console.print_json(data=json_output)
    else:
        console.print()
        table = Table(show_header=False, box=None)
        table.add_column("Label", style="bold")
        table.add_column("Value")
        table.add_row("Piece CID", f"[green]{outcome.piece_cid}[/green]")
        if outcome.transaction_hash:
            table.add_row("Transaction", config.explorer_tx_url(outcome.transaction_hash))
        table.add_row("Confirmed", "✅" if outcome.confirmed else "⏳ pending")
        table.add_row("Preview", uploader.uploaded_info.text_preview)
        console.print(table)
        console.print()

    if save_to:
        import json

        with open(save_to, "w") as f:
            json.dump(json_output, f, indent=2)
        if not output_json:
            console.print(f"[green]Saved to {save_to}[/green]")


@app.command()
def balance(
    account: str = typer.Option(DEFAULT_ACCOUNT, "--account", "-a", envvar="FILTEXT_ACCOUNT"),
    funds: str = typer.Option("10", "--funds", help="Simulated USDFC wallet balance"),
):
    """
    Show the reconciled USDFC balance.
    """
    from filtext.backends.memory import create_simulated_uploader
    from filtext.config import StorageConfig, parse_amount
    from filtext.errors import UploadError

    config = StorageConfig.from_env()
    uploader = create_simulated_uploader(
        account,
        funds=parse_amount(funds, config.token_decimals),
        config=config,
    )
    try:
        result = asyncio.run(uploader.balance())
    except UploadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    color = "green" if result.amount > 0 else "yellow"
    console.print(f"[bold]USDFC Balance:[/bold] [{color}]{result.amount:.6f}[/{color}] ({result.source.value})")
    if result.amount == 0:
        console.print(f"[dim]Get test USDFC at {config.faucet_url}[/dim]")


@app.command()
def datasets(
    account: str = typer.Option(DEFAULT_ACCOUNT, "--account", "-a", envvar="FILTEXT_ACCOUNT"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List the account's datasets and the pieces stored in them.
    """
    from filtext.backends.memory import create_simulated_uploader
    from filtext.config import StorageConfig
    from filtext.errors import UploadError

    uploader = create_simulated_uploader(account, config=StorageConfig.from_env())
    try:
        found = asyncio.run(uploader.datasets())
    except UploadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if output_json:
        console.print_json(data=[d.model_dump() for d in found])
        return

    if not found:
        console.print("[yellow]No datasets found[/yellow]")
        return

    table = Table(title=f"Datasets for {account}")
    table.add_column("Dataset", style="bold")
    table.add_column("Provider")
    table.add_column("CDN")
    table.add_column("Piece CID")
    table.add_column("Size", justify="right")

    for dataset in found:
        cdn = "✅" if dataset.with_cdn else "-"
        if not dataset.pieces:
            table.add_row(str(dataset.dataset_id), str(dataset.provider_id), cdn, "[dim]empty[/dim]", "")
        for piece in dataset.pieces:
            table.add_row(str(dataset.dataset_id), str(dataset.provider_id), cdn, piece.piece_cid, str(piece.size))

    console.print(table)


@app.command()
def fetch(
    piece_cid: str = typer.Argument(..., help="Piece CID to download"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write text to a file"),
):
    """
    Download stored text from the retrieval gateway.
    """
    asyncio.run(_fetch_async(piece_cid, output))


async def _fetch_async(piece_cid: str, output: Path | None):
    from filtext.config import StorageConfig
    from filtext.retrieval import PieceRetriever

    retriever = PieceRetriever(config=StorageConfig.from_env())
    try:
        text = await retriever.download_text(piece_cid)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None
    finally:
        await retriever.close()

    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print(text)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8090, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """
    Start the filtext API server.

    Example:
        filtext serve --port 8090
    """
    import uvicorn

    from filtext.api.server import create_app

    console.print()
    console.print(
        Panel.fit(
            f"[bold blue]Host:[/bold blue] {host}\n"
            f"[bold blue]Port:[/bold blue] {port}\n"
            f"[bold blue]Docs:[/bold blue] http://{host}:{port}/docs",
            title="🚀 Starting filtext API Server",
        )
    )
    console.print()

    if reload:
        uvicorn.run(
            "filtext.api.server:create_app",
            host=host,
            port=port,
            reload=True,
            factory=True,
        )
    else:
        uvicorn.run(create_app(), host=host, port=port)


@app.command()
def config():
    """
    Show current configuration.
    """
    from filtext.config import ENV_PREFIX, StorageConfig, format_amount

    current = StorageConfig.from_env()

    table = Table(title="filtext Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_column("Env")

    for name, value in current.model_dump().items():
        if name == "dataset_creation_fee":
            value = f"{format_amount(value, current.token_decimals)} USDFC"
        table.add_row(name, str(value), f"{ENV_PREFIX}{name.upper()}")

    console.print(table)


@app.command()
def version():
    """
    Show version information.
    """
    from filtext import __version__

    console.print(f"[bold]filtext[/bold] v{__version__}")
    console.print("[dim]Text storage on Filecoin warm storage[/dim]")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

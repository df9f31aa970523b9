"""Command-line interface for socialprobe."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from socialprobe import Scraper, ScraperConfig, save_json, __version__
from socialprobe.config import LogFormat, Platform
from socialprobe.core.exporter import append_jsonl, load_batch
from socialprobe.exceptions import ConfigError
from socialprobe.models.query import normalize_handle

app = typer.Typer(
    name="socialprobe",
    help="Public profile metrics and recent posts from Instagram and Facebook",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"socialprobe version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """socialprobe - social profile extraction engine."""
    pass


@app.command()
def scrape(
    platform: Platform = typer.Argument(..., help="Platform: instagram or facebook"),
    handles: list[str] = typer.Argument(..., help="Handles, page ids or profile URLs"),
    posts: Optional[int] = typer.Option(
        None, "--posts", "-n", help="Posts per profile (config default if omitted)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory for JSON files"
    ),
    headless: bool = typer.Option(
        True, "--headless/--no-headless", help="Run browser in headless mode"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress output, only show errors"
    ),
):
    """Scrape one or more profiles on one platform."""
    config = ScraperConfig(
        headless=headless,
        log_format=LogFormat.CONSOLE if not quiet else LogFormat.JSON,
    )

    async def run():
        async with Scraper(config) as scraper:
            queries = [(platform, handle) for handle in handles]
            try:
                results = await scraper.scrape_many(queries, post_limit=posts)
            except ConfigError as e:
                console.print(f"[red]{escape(str(e))}[/red]")
                raise typer.Exit(2)

            for handle, result in zip(handles, results):
                name = normalize_handle(handle)
                if result.success:
                    if not quiet:
                        _print_result(name, result)

                    if output:
                        filepath = output / f"{platform.value}_{_safe_filename(name)}.json"
                        save_json(result, filepath)
                        console.print(f"[dim]Saved to {filepath}[/dim]")
                else:
                    console.print(f"[red]✗[/red] Failed to scrape {name}: {escape(result.error)}")

            # Summary
            success_count = sum(1 for r in results if r.success)
            console.print(f"\n[bold]Scraped {success_count}/{len(results)} profiles[/bold]")

    asyncio.run(run())


@app.command()
def batch(
    input_file: Path = typer.Argument(..., help="Batch JSON: customer_slug, competitors[], posts_per_profile"),
    output: Path = typer.Option(
        Path("results.jsonl"), "--output", "-o", help="JSON Lines file records are appended to"
    ),
    headless: bool = typer.Option(True, "--headless/--no-headless"),
):
    """Run a competitor batch, writing one JobRecord per line."""
    try:
        job = load_batch(input_file)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2)

    config = ScraperConfig(headless=headless)

    async def run():
        ok = failed = 0
        async with Scraper(config) as scraper:
            async for record in scraper.run_batch(job):
                append_jsonl([record], output)
                if record.success:
                    ok += 1
                    console.print(
                        f"[green]✓[/green] {record.name} ({record.platform}): "
                        f"{_fmt(record.followers)} followers, {len(record.posts)} posts"
                    )
                else:
                    failed += 1
                    console.print(f"[red]✗[/red] {record.name} ({record.platform}): {escape(record.error)}")

        console.print(f"\n[bold]Done: {ok} OK, {failed} errors[/bold] [dim]→ {output}[/dim]")

    asyncio.run(run())


def _fmt(value: int | None) -> str:
    return f"{value:,}" if value is not None else "?"


def _safe_filename(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in name)


def _print_result(name, result):
    """Print profile fields and recent posts as a table."""
    table = Table(title=name, show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Followers", _fmt(result.followers))
    table.add_row("Following", _fmt(result.following))
    table.add_row("Posts", _fmt(result.posts_count))
    table.add_row("Bio", result.bio or "-")
    table.add_row("Sources", ", ".join(result.sources) or "-")

    console.print(table)

    if result.posts:
        console.print(f"[bold]Recent Posts ({len(result.posts)})[/bold]")
        for post in result.posts[:5]:
            day = post.posted_at.isoformat() if post.posted_at else "?"
            text = post.caption_snippet[:60] + "..." if len(post.caption_snippet) > 60 else post.caption_snippet
            console.print(f"  [dim]{day}  {_fmt(post.likes):>7}♥[/dim]  {text}")


if __name__ == "__main__":
    app()

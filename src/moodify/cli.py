"""
CLI entrypoint for Moodify.

Commands:
- serve: run the FastAPI service.
- moods: print the supported moods and their audio-feature targets.
"""

import typer
from rich.console import Console
from rich.table import Table
import uvicorn

from .moods import list_moods


app = typer.Typer(help="Moodify – turn a mood into a private Spotify playlist.")


def _bar(value: float, width: int = 8) -> str:
    """Return a simple unstyled bar visualization for a 0–1 value."""
    value = max(0.0, min(1.0, value))
    filled = int(round(value * width))
    empty = width - filled
    return "█" * filled + "·" * empty


def _cell(value) -> str:
    if value is None:
        return "[dim]–[/dim]"
    return f"{value:.2f} [gold1]{_bar(value)}[/gold1]"


@app.command("moods")
def moods() -> None:
    """
    Show the mood catalog used to seed Spotify recommendations.
    """
    console = Console()

    table = Table(title="Moodify Moods", show_lines=False)
    table.add_column("Mood", style="bold cyan", no_wrap=True)
    table.add_column("Seed genres", style="magenta")
    table.add_column("Valence", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("Danceability", justify="right")
    table.add_column("Instrumentalness", justify="right")

    for mood in list_moods():
        table.add_row(
            mood.label,
            ", ".join(mood.seed_genres),
            _cell(mood.target_valence),
            _cell(mood.target_energy),
            _cell(mood.target_danceability),
            _cell(mood.target_instrumentalness),
        )

    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind the Moodify API server to."),
    port: int = typer.Option(5000, help="Port to bind the Moodify API server to."),
    reload: bool = typer.Option(False, help="Enable auto-reload (development only)."),
) -> None:
    """
    Run the Moodify FastAPI service.

    Example:
        moodify serve --host 0.0.0.0 --port 5000
    """
    uvicorn.run(
        "moodify.api:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()

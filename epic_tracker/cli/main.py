"""Main CLI entry point."""

import typer
from dotenv import load_dotenv
from rich.console import Console

from .journey import complete_task, journey, skill
from .status import detect, status
from .sync import land, sync

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="epic-tracker",
    help="Track epics locally and sync them to GitHub issues",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


# All commands including main command support -h shorthand via context_settings


app.command(name="sync", context_settings={"help_option_names": ["-h", "--help"]})(
    sync
)
app.command(name="land", context_settings={"help_option_names": ["-h", "--help"]})(
    land
)
app.command(name="status", context_settings={"help_option_names": ["-h", "--help"]})(
    status
)
app.command(name="journey", context_settings={"help_option_names": ["-h", "--help"]})(
    journey
)
app.command(
    name="complete-task", context_settings={"help_option_names": ["-h", "--help"]}
)(complete_task)
app.command(name="skill", context_settings={"help_option_names": ["-h", "--help"]})(
    skill
)
app.command(name="detect", context_settings={"help_option_names": ["-h", "--help"]})(
    detect
)


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from epic_tracker import __version__

    console.print(f"Epic Tracker v{__version__}")


if __name__ == "__main__":
    app()

"""Command-line interface for booklify.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import get_config
from .db import get_db
from .db.schemas import ChapterCreate
from .progress import ProgressManager, TrackingRequest
from .reading import Outcome, ReadingProgress, ReadingProgressEngine, parse_cfi

# Create the main app
app = typer.Typer(
    name="booklify",
    help="Track EPUB reading progress with CFI positions.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
chapters_app = typer.Typer(help="Manage the chapters of a book.")
app.add_typer(chapters_app, name="chapters")

progress_app = typer.Typer(help="Update and inspect reading progress.")
app.add_typer(progress_app, name="progress")

session_app = typer.Typer(help="Start and stop reading sessions.")
app.add_typer(session_app, name="session")

cfi_app = typer.Typer(help="Inspect CFI strings.")
app.add_typer(cfi_app, name="cfi")

# Rich console for pretty output
console = Console()

USER_OPTION = typer.Option("local", "--user", "-u", help="Reader ID")


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {escape(message)}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{escape(message)}[/dim]")


def get_manager() -> ProgressManager:
    """Build a ProgressManager from the current configuration."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)
    return ProgressManager(
        db=get_db(str(config.db_path)),
        engine=ReadingProgressEngine.from_config(config),
    )


def check_outcome(outcome: Outcome):
    """Print warnings, exit on failure, return the value."""
    for warning in outcome.warnings:
        print_warning(warning.message)
    if not outcome.ok:
        print_error(outcome.error.message)
        raise typer.Exit(1)
    return outcome.value


def format_progress_table(progress: ReadingProgress, title: str = "Reading Progress") -> Table:
    """Create a rich table for a progress record."""
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Overall", f"{progress.overall_progress_percent:.2f}%")
    table.add_row("Position", f"{progress.cfi_progress_percent:.2f}%")
    table.add_row("Chapters", f"{progress.chapter_progress_percent:.2f}%")
    table.add_row("CFI", escape(progress.current_cfi) or "-")
    table.add_row("Chapter", progress.current_chapter_id or "-")
    table.add_row("Reading time", f"{progress.total_reading_time_minutes} minutes")
    table.add_row("Session", "open" if progress.session_started_at else "closed")
    table.add_row("Last read", progress.last_read_at.strftime("%Y-%m-%d %H:%M"))
    return table


@app.callback()
def main_callback() -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=getattr(logging, get_config().log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Show the booklify version."""
    console.print(f"booklify {__version__}")


# ============================================================================
# Chapters
# ============================================================================


@chapters_app.command("add")
def chapters_add(
    book_id: str = typer.Argument(..., help="Book ID"),
    title: str = typer.Option(..., "--title", "-t", help="Chapter title"),
    order: int = typer.Option(..., "--order", "-o", help="Spine position (0-based)"),
    href: str = typer.Option("", "--href", help="Content document path"),
    cfi_start: Optional[str] = typer.Option(None, "--cfi-start", help="CFI of the chapter start"),
    cfi_end: Optional[str] = typer.Option(None, "--cfi-end", help="CFI of the chapter end"),
) -> None:
    """Add a chapter to a book."""
    try:
        data = ChapterCreate(
            title=title, order=order, href=href, cfi_start=cfi_start, cfi_end=cfi_end
        )
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    manager = get_manager()
    chapter = manager.db.add_chapter(book_id, data)
    print_success(f"Added chapter {chapter.order}: {chapter.title}")
    print_info(f"ID: {chapter.id}")


@chapters_app.command("list")
def chapters_list(book_id: str = typer.Argument(..., help="Book ID")) -> None:
    """List the chapters of a book in spine order."""
    chapters = get_manager().db.list_chapters(book_id)
    if not chapters:
        console.print("[dim]No chapters found.[/dim]")
        return

    table = Table(title="Chapters", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Href", style="green")
    table.add_column("ID", style="dim")
    for chapter in chapters:
        table.add_row(str(chapter.order), escape(chapter.title), escape(chapter.href), chapter.id)
    console.print(table)


# ============================================================================
# Progress
# ============================================================================


@progress_app.command("show")
def progress_show(book_id: str = typer.Argument(..., help="Book ID"), user: str = USER_OPTION) -> None:
    """Show the stored progress record."""
    progress = get_manager().get_progress(book_id, user)
    if not progress:
        console.print("[dim]No reading progress for this book yet.[/dim]")
        return
    console.print(format_progress_table(progress))


@progress_app.command("update")
def progress_update(
    book_id: str = typer.Argument(..., help="Book ID"),
    cfi: str = typer.Argument(..., help="New CFI position"),
    chapter: Optional[str] = typer.Option(None, "--chapter", "-c", help="Current chapter ID"),
    minutes: Optional[int] = typer.Option(None, "--minutes", "-m", help="Reading time to add"),
    user: str = USER_OPTION,
) -> None:
    """Move to a new CFI position."""
    outcome = get_manager().update_position(
        book_id, user, cfi, chapter_id=chapter, session_time_minutes=minutes
    )
    progress = check_outcome(outcome)
    print_success(f"Position updated: {progress.overall_progress_percent:.2f}% overall")


@progress_app.command("complete")
def progress_complete(
    book_id: str = typer.Argument(..., help="Book ID"),
    chapter_id: str = typer.Argument(..., help="Completed chapter ID"),
    user: str = USER_OPTION,
) -> None:
    """Mark a chapter as completed."""
    progress = check_outcome(get_manager().complete_chapter(book_id, user, chapter_id))
    print_success(f"Chapter completed: {progress.chapter_progress_percent:.2f}% of chapters done")


@progress_app.command("track")
def progress_track(
    book_id: str = typer.Argument(..., help="Book ID"),
    chapter_id: str = typer.Argument(..., help="Chapter being read"),
    cfi: Optional[str] = typer.Option(None, "--cfi", help="Current CFI in the chapter"),
    completed: bool = typer.Option(False, "--completed", help="Chapter finished"),
    user: str = USER_OPTION,
) -> None:
    """Track chapter access, position and completion."""
    try:
        request = TrackingRequest(
            book_id=book_id, user_id=user, chapter_id=chapter_id, current_cfi=cfi, is_completed=completed
        )
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    response = check_outcome(get_manager().track(request))
    print_success(response.message)
    console.print(
        f"  {response.completed_chapters_count}/{response.total_chapters_count} chapters, "
        f"{response.overall_progress_percent:.2f}% overall"
    )


@progress_app.command("stats")
def progress_stats(book_id: str = typer.Argument(..., help="Book ID"), user: str = USER_OPTION) -> None:
    """Show reading statistics."""
    try:
        outcome = get_manager().get_stats(book_id, user)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)
    stats = check_outcome(outcome)

    table = Table(title="Reading Stats", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Overall", f"{stats.overall_progress:.2f}%")
    table.add_row("Chapters", f"{stats.completed_chapters}/{stats.total_chapters}")
    table.add_row("Current chapter", escape(stats.current_chapter_title) or "-")
    table.add_row("Reading time", f"{stats.total_reading_time_minutes} minutes")
    table.add_row("Time to finish", f"~{stats.estimated_time_to_complete_minutes} minutes")
    if stats.is_completed:
        table.add_row("Status", "Finished")
    console.print(table)


# ============================================================================
# Sessions
# ============================================================================


@session_app.command("start")
def session_start(book_id: str = typer.Argument(..., help="Book ID"), user: str = USER_OPTION) -> None:
    """Start a reading session (keeps an already open one)."""
    progress = check_outcome(get_manager().start_session(book_id, user))
    console.print(
        f"[green]Reading session open since[/green] {progress.session_started_at:%H:%M}"
    )


@session_app.command("stop")
def session_stop(book_id: str = typer.Argument(..., help="Book ID"), user: str = USER_OPTION) -> None:
    """Stop the reading session and add its time."""
    manager = get_manager()
    before = manager.get_progress(book_id, user)
    if not before or before.session_started_at is None:
        print_warning("No active session to stop.")
        return

    progress = check_outcome(manager.end_session(book_id, user))
    added = progress.total_reading_time_minutes - before.total_reading_time_minutes
    console.print("[green]Reading session logged![/green]")
    console.print(f"  Duration: {added} minutes")
    console.print(f"  Total: {progress.total_reading_time_minutes} minutes")


# ============================================================================
# CFI
# ============================================================================


@cfi_app.command("check")
def cfi_check(cfi: str = typer.Argument(..., help="CFI string")) -> None:
    """Validate a CFI and show its parts."""
    address = check_outcome(parse_cfi(cfi, max_length=get_config().max_cfi_length))

    table = Table(title="CFI", show_header=False)
    table.add_column("Part", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Spine step", str(address.spine_step))
    table.add_row("Spine index", str(address.spine_index))
    table.add_row("Path", escape("".join(str(step) for step in address.path)))
    table.add_row("Offset", "-" if address.offset is None else str(address.offset))
    console.print(table)
    print_success("Valid CFI")

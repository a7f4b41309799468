"""
CurioLoop CLI.

Commands:
- curioloop new      - Start a new learning path (diagnostic -> plan)
- curioloop paths    - List learning paths with streak / XP
- curioloop show     - Show a path's dashboard
- curioloop study    - Read a chapter, take its quiz, unlock the next one
- curioloop stats    - Show streak and XP
- curioloop styles   - List chapter content styles
- curioloop reset    - Delete all local data

Usage:
    curioloop new --topic "Rust ownership" --level Beginner --goal "Write a CLI"
    curioloop study <path-id> 1 --style Technical
"""
from __future__ import annotations

import asyncio
import mimetypes
import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.prompt import Confirm, Prompt

from curioloop.cli import views
from curioloop.cli.views import console
from curioloop.config import Settings, get_settings
from curioloop.core.errors import GenerationError, NotFoundError, StorageError
from curioloop.core.models import CHAPTER_STYLES, DEFAULT_STYLE, Level, UserProfile
from curioloop.generation.gateway import GenerationGateway
from curioloop.generation.provider import GeminiProvider, GenerationProvider
from curioloop.progression.engine import ProgressionEngine
from curioloop.progression.progression import grade_answers
from curioloop.storage.store import LearningStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="curioloop",
    help="CurioLoop: adaptive learning paths in your terminal",
    no_args_is_help=True,
)


def configure_logging(settings: Settings) -> None:
    """Send logs to stderr at the configured level, plus an optional file."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            rotation="1 MB",
            retention=3,
        )


def _build_provider(settings: Settings) -> GenerationProvider:
    return GeminiProvider(settings)


def _build_engine(settings: Settings | None = None) -> ProgressionEngine:
    settings = settings or get_settings()
    gateway = GenerationGateway(_build_provider(settings), settings)
    return ProgressionEngine(gateway, LearningStore(settings.data_dir))


def _fail(message: str) -> None:
    views.display_error(message)
    raise typer.Exit(1)


# =============================================================================
# Path Creation
# =============================================================================


async def _create_path(engine: ProgressionEngine, profile: UserProfile) -> None:
    engine.new_path()

    with console.status("Preparing your diagnostic quiz..."):
        quiz = await engine.submit_profile(profile)

    console.print(f"\n[bold cyan]Diagnostic: {quiz.topic}[/bold cyan]")
    console.print("[dim]A few questions to calibrate your plan.[/dim]\n")
    answers = views.ask_questions(quiz.questions)

    reviews, results = engine.review_diagnostic(answers)
    views.display_review(reviews, title="Diagnostic")

    with console.status("Building your learning plan..."):
        path = await engine.confirm_diagnostic(results)

    views.display_dashboard(path)


@app.command("new")
def new_path(
    topic: str = typer.Option(..., "--topic", "-t", help="What you want to learn"),
    level: Level = typer.Option(Level.BEGINNER, "--level", "-l", help="Your current level"),
    goal: str = typer.Option("", "--goal", "-g", help="What you want to be able to do"),
    image: Path | None = typer.Option(
        None, "--image", "-i", exists=True, dir_okay=False, help="Photo of notes or slides to tailor the quiz"
    ),
) -> None:
    """
    Start a new learning path.

    Takes a short diagnostic quiz, then builds a chapter plan from the results.

    Examples:
        curioloop new --topic "Linear algebra"
        curioloop new -t "Kubernetes" -l Intermediate -g "Run my own cluster"
        curioloop new -t "Cell biology" --image notes.jpg
    """
    context_image = None
    mime_type = "image/jpeg"
    if image is not None:
        context_image = image.read_bytes()
        mime_type = mimetypes.guess_type(image.name)[0] or mime_type

    try:
        profile = UserProfile(
            topic=topic,
            level=level,
            goal=goal,
            context_image=context_image,
            context_image_mime=mime_type,
        )
    except ValidationError:
        _fail("Topic must not be empty")

    engine = _build_engine()
    try:
        asyncio.run(_create_path(engine, profile))
    except GenerationError as e:
        _fail(f"Could not create the path: {e}")


# =============================================================================
# Browsing
# =============================================================================


@app.command("paths")
def list_paths() -> None:
    """List your learning paths."""
    engine = _build_engine()
    views.display_stats(engine.stats)
    views.display_paths(engine.paths)


@app.command("show")
def show_path(
    path_id: str = typer.Argument(..., help="Learning path ID (see `curioloop paths`)"),
) -> None:
    """Show a learning path's dashboard."""
    engine = _build_engine()
    try:
        path = engine.select_path(path_id)
    except NotFoundError as e:
        _fail(str(e))
    views.display_dashboard(path)


@app.command("stats")
def show_stats() -> None:
    """Show your streak and XP."""
    engine = _build_engine()
    views.display_stats(engine.stats)


@app.command("styles")
def list_styles() -> None:
    """List the available chapter content styles."""
    for style in CHAPTER_STYLES:
        marker = " [dim](default)[/dim]" if style == DEFAULT_STYLE else ""
        console.print(f"  • {style}{marker}")


# =============================================================================
# Study
# =============================================================================


async def _study(engine: ProgressionEngine, chapter_id: int, style: str) -> None:
    with console.status(f"Writing chapter {chapter_id}..."):
        content = await engine.open_chapter(chapter_id, style)
    if content is None:
        _fail(f"Chapter {chapter_id} is locked or not part of this path")

    views.display_chapter(content, engine.current_style)

    while True:
        action = Prompt.ask(
            "\nWhat next?",
            choices=["quiz", "style", "exit"],
            default="quiz",
        )
        if action == "exit":
            engine.go_home()
            return
        if action == "quiz":
            break

        new_style = Prompt.ask("Style", choices=list(CHAPTER_STYLES), default=engine.current_style)
        try:
            with console.status(f"Rewriting in '{new_style}' style..."):
                content = await engine.change_style(new_style)
        except GenerationError as e:
            views.display_error(f"Could not switch style: {e}")
            continue
        if content is not None:
            views.display_chapter(content, engine.current_style)

    questions = engine.start_chapter_quiz()
    answers = views.ask_questions(questions)
    reviews, results = grade_answers(questions, answers)
    views.display_review(reviews, title="Chapter quiz")

    with console.status("Checking your progress..."):
        await engine.submit_chapter_quiz(results)

    views.display_dashboard(engine.active_path, banner=engine.banner)
    engine.dismiss_banner()


@app.command("study")
def study(
    path_id: str = typer.Argument(..., help="Learning path ID"),
    chapter_id: int = typer.Argument(..., help="Chapter number"),
    style: str = typer.Option(DEFAULT_STYLE, "--style", "-s", help="Content style (see `curioloop styles`)"),
) -> None:
    """
    Study a chapter.

    Reads the chapter, optionally switches its style, then runs the chapter
    quiz. Finishing the quiz completes the chapter and unlocks the next one.

    Examples:
        curioloop study 3f2c... 1
        curioloop study 3f2c... 2 --style "Like I'm 5"
    """
    if style not in CHAPTER_STYLES:
        _fail(f"Unknown style '{style}'. Choose from: {', '.join(CHAPTER_STYLES)}")

    engine = _build_engine()
    try:
        engine.select_path(path_id)
        asyncio.run(_study(engine, chapter_id, style))
    except NotFoundError as e:
        _fail(str(e))
    except GenerationError as e:
        _fail(f"Generation failed: {e}")


# =============================================================================
# Maintenance
# =============================================================================


@app.command("reset")
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all learning paths and stats."""
    settings = get_settings()
    store = LearningStore(settings.data_dir)

    if not yes and not Confirm.ask(f"Delete all CurioLoop data in {store.data_dir}?", default=False):
        raise typer.Exit(0)

    try:
        removed = store.reset()
    except StorageError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Removed {removed} file(s)")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()

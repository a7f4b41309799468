"""
Rich rendering for the CurioLoop CLI.

Pure display helpers: they read models and print, never touch the engine.
"""
from __future__ import annotations

from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from curioloop.core.models import (
    ChapterContent,
    ChapterStatus,
    DailyStats,
    LearningPath,
    Question,
    Resource,
)
from curioloop.progression.progression import QuestionReview

console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "status": {
        ChapterStatus.LOCKED: "dim",
        ChapterStatus.UNLOCKED: "cyan",
        ChapterStatus.COMPLETED: "green",
    },
    "difficulty": {
        "easy": "green",
        "medium": "yellow",
        "hard": "red",
    },
}

STATUS_ICONS = {
    ChapterStatus.LOCKED: "🔒",
    ChapterStatus.UNLOCKED: "▶",
    ChapterStatus.COMPLETED: "✓",
}


def option_letter(index: int) -> str:
    return chr(65 + index)


def style_status(status: ChapterStatus) -> str:
    color = STYLES["status"][status]
    return f"[{color}]{STATUS_ICONS[status]} {status.value}[/{color}]"


def progress_bar(percent: int, width: int = 20) -> str:
    filled = round(width * percent / 100)
    return f"[green]{'█' * filled}[/green][dim]{'░' * (width - filled)}[/dim] {percent}%"


# =============================================================================
# Home
# =============================================================================


def display_stats(stats: DailyStats) -> None:
    """Streak / XP header shown on the home screen."""
    console.print(
        Panel(
            f"🔥 Streak: [bold]{stats.streak_days}[/bold] day(s)\n"
            f"📚 Chapters today: [bold]{stats.chapters_completed_today}[/bold]\n"
            f"⭐ Total XP: [bold]{stats.total_xp}[/bold]",
            title="[bold]Your Progress[/bold]",
            title_align="left",
            border_style="magenta",
            padding=(0, 2),
        )
    )


def display_paths(paths: Sequence[LearningPath]) -> None:
    if not paths:
        console.print("\n[dim]No learning paths yet. Start one with[/dim] [bold]curioloop new --topic ...[/bold]")
        return

    table = Table(title="Learning Paths", show_header=True, box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Topic", style="cyan")
    table.add_column("Level")
    table.add_column("Chapters", justify="right")
    table.add_column("Progress")
    table.add_column("Last opened", style="dim")

    for path in sorted(paths, key=lambda p: p.last_accessed_at, reverse=True):
        table.add_row(
            path.id,
            escape(path.topic),
            path.user_profile.level.value,
            f"{path.completed_count}/{len(path.plan.chapters)}",
            progress_bar(path.progress_percent, width=10),
            path.last_accessed_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


# =============================================================================
# Dashboard
# =============================================================================


def display_dashboard(path: LearningPath, banner: str | None = None) -> None:
    """Plan overview: assessment, progress and the chapter list."""
    plan = path.plan

    if banner:
        console.print(Panel(escape(banner), title="[bold]Chapter Complete[/bold]", border_style="green"))

    summary = f"[bold]{escape(path.topic)}[/bold]  ·  estimated level: [cyan]{escape(plan.estimated_level)}[/cyan]\n"
    summary += progress_bar(path.progress_percent)
    if plan.strengths:
        summary += f"\n\n[green]Strengths:[/green] {escape(', '.join(plan.strengths))}"
    if plan.weaknesses:
        summary += f"\n[yellow]Focus areas:[/yellow] {escape(', '.join(plan.weaknesses))}"

    console.print(Panel(summary, title=f"Path {path.id}", title_align="left", border_style="cyan", padding=(1, 2)))

    table = Table(show_header=True, box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Chapter")
    table.add_column("Difficulty")
    table.add_column("Time", justify="right")
    table.add_column("Status")
    table.add_column("Score", justify="right")

    for chapter in plan.chapters:
        color = STYLES["difficulty"][chapter.difficulty.value]
        table.add_row(
            str(chapter.chapter_id),
            escape(chapter.title) if chapter.status is not ChapterStatus.LOCKED else f"[dim]{escape(chapter.title)}[/dim]",
            f"[{color}]{chapter.difficulty.value}[/{color}]",
            f"{chapter.estimated_minutes} min",
            style_status(chapter.status),
            f"{chapter.score}%" if chapter.score is not None else "-",
        )

    console.print(table)

    if path.is_complete:
        console.print("[bold green]🎓 Path complete![/bold green]")
    elif path.frontier_chapter is not None:
        nxt = path.frontier_chapter
        console.print(f"Next up: [bold]curioloop study {path.id} {nxt.chapter_id}[/bold]")


# =============================================================================
# Chapter
# =============================================================================


def _resource_lines(label: str, resources: Sequence[Resource]) -> list[str]:
    if not resources:
        return []
    lines = [f"[bold]{label}[/bold]"]
    for r in resources:
        line = f"  • [link={r.url}]{escape(r.title)}[/link] [dim]{escape(r.url)}[/dim]"
        if r.description:
            line += f"\n    {escape(r.description)}"
        lines.append(line)
    return lines


def display_chapter(content: ChapterContent, style: str) -> None:
    console.print(
        Panel(
            escape(content.summary),
            title=f"[bold]Chapter {content.chapter_id}: {escape(content.title)}[/bold]  [dim]({style})[/dim]",
            title_align="left",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    if content.key_points:
        console.print("[bold]Key points[/bold]")
        for point in content.key_points:
            console.print(f"  • {escape(point)}")
        console.print()

    if content.analogy:
        console.print(Panel(escape(content.analogy), title="Analogy", border_style="magenta"))
    if content.example:
        console.print(Panel(escape(content.example), title="Example", border_style="blue"))
    if content.diagram_prompt:
        console.print(f"[dim]Diagram idea: {escape(content.diagram_prompt)}[/dim]\n")

    lines = (
        _resource_lines("Videos", content.resources.videos)
        + _resource_lines("Articles", content.resources.blogs)
        + _resource_lines("Docs", content.resources.docs)
    )
    if lines:
        console.print(Panel("\n".join(lines), title="Resources", border_style="dim"))


# =============================================================================
# Quizzes
# =============================================================================


def display_question(question: Question, index: int, total: int) -> None:
    body = escape(question.prompt) + "\n\n"
    body += "\n".join(f"  {option_letter(i)}. {escape(opt)}" for i, opt in enumerate(question.options))
    console.print(Panel(body, title=f"Question {index}/{total}", title_align="left", border_style="cyan"))


def ask_questions(questions: Sequence[Question]) -> dict[str, int]:
    """Prompt for one letter per question. Returns question id -> option index."""
    answers: dict[str, int] = {}
    for i, question in enumerate(questions, 1):
        display_question(question, i, len(questions))
        choices = [option_letter(n) for n in range(len(question.options))]
        letter = Prompt.ask("Your answer", choices=choices, case_sensitive=False)
        answers[question.id] = ord(letter.upper()) - 65
    return answers


def display_review(reviews: Sequence[QuestionReview], title: str = "Review") -> None:
    correct = sum(1 for r in reviews if r.correct)
    table = Table(title=f"{title}: {correct}/{len(reviews)} correct", show_header=True, box=box.ROUNDED)
    table.add_column("", width=2)
    table.add_column("Question")
    table.add_column("Your answer")
    table.add_column("Explanation", style="dim")

    for r in reviews:
        icon = "[green]✓[/green]" if r.correct else "[red]✗[/red]"
        answer = escape(r.selected_option) if r.selected_option else "[dim]-[/dim]"
        if not r.correct:
            answer += f"\n[green]→ {escape(r.correct_option)}[/green]"
        table.add_row(icon, escape(r.question.prompt), answer, escape(r.question.explanation))

    console.print(table)


def display_error(message: str) -> None:
    console.print(f"[{STYLES['incorrect']}]✗ {message}[/{STYLES['incorrect']}]")

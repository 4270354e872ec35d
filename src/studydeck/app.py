"""Interactive CLI application."""
import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from studydeck.db import init_db, DEFAULT_DB_PATH
from studydeck.decks import create_card, create_deck, list_decks
from studydeck.dashboard import (
    get_deck_stats, get_mastery_color, get_mastery_label, get_overall_stats, get_retention_rate,
)
from studydeck.errors import StudyDeckError
from studydeck.importer import import_flashcards
from studydeck.session import ReviewSession
from studydeck.sm2 import MASTERED, NEEDS_WORK
from studydeck.study import get_session_history, start_session

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
RATING_KEYS = {"n": NEEDS_WORK, "m": MASTERED}


class SessionExitRequested(Exception):
    """The user asked to leave the current review session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def parse_rating(answer: str) -> int | None:
    answer = answer.strip().lower()
    if answer in RATING_KEYS:
        return RATING_KEYS[answer]
    if answer.isdigit() and 0 <= int(answer) <= 5:
        return int(answer)
    return None


def ask_rating() -> int:
    while True:
        answer = session_prompt("Rate: [red]n[/red]eeds work / [green]m[/green]astered (or 0-5)")
        quality = parse_rating(answer)
        if quality is not None:
            return quality
        console.print("[red]Enter n, m or a number from 0 to 5.[/red]")


def show_welcome():
    console.print(Panel(
        "[bold]StudyDeck[/bold]\n[dim]Spaced-repetition flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("study", "Review due cards"),
        ("decks", "List decks"),
        ("add", "Create a deck or add a card"),
        ("import", "Import a flashcard file as a deck"),
        ("stats", "Deck statistics"),
        ("history", "Recent review sessions"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<10}[/cyan] {desc}")


def show_summary(session: ReviewSession) -> None:
    summary = session.summary()
    title = "Session Complete!" if summary.status == "complete" else "Session Ended"
    table = Table(title=title)
    table.add_column("Reviewed", justify="right")
    table.add_column("Mastered", justify="right", style="green")
    table.add_column("Needs Work", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="dim")
    table.add_row(
        str(summary.reviewed_count), str(summary.mastered_count),
        str(summary.needs_work_count), str(summary.total - summary.reviewed_count),
    )
    console.print(table)


def run_review_session(session: ReviewSession) -> None:
    if session.is_finished:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return
    console.print(f"\n[bold]Review Session[/bold] — {session.total} cards [dim](q to stop)[/dim]\n")
    try:
        while not session.is_finished:
            card = session.current_card
            console.print(Panel(card.front, title=f"Card {session.position}/{session.total}", border_style="cyan"))
            if card.hint:
                console.print(f"[dim]Hint: {card.hint}[/dim]")
            session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
            console.print(Panel(card.back, border_style="green"))
            updated = session.rate(ask_rating())
            console.print(f"[dim]Next review in {updated.interval_days:g} day(s)[/dim]\n")
    except SessionExitRequested:
        session.abandon()
    show_summary(session)


def cmd_study(db_path: str):
    decks = list_decks(db_path)
    deck_id = None
    if decks:
        choice = Prompt.ask("Deck id (Enter for all decks)", default="", show_default=False).strip()
        if choice:
            deck_id = int(choice)
    run_review_session(start_session(db_path, deck_id=deck_id))


def cmd_decks(db_path: str):
    decks = list_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet. Use 'add' or 'import' to create one.[/yellow]")
        return
    overall = get_overall_stats(db_path)
    table = Table(title="Decks")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Subject")
    table.add_column("Cards", justify="right")
    table.add_column("Due", justify="right")
    for deck in decks:
        due = overall["due_by_deck"].get(deck.id, 0)
        table.add_row(
            str(deck.id), deck.title, deck.subject, str(len(deck.card_ids)),
            f"[bold yellow]{due}[/bold yellow]" if due else "0",
        )
    console.print(table)


def cmd_add(db_path: str):
    mode = Prompt.ask("Add", choices=["deck", "card"], default="card")
    if mode == "deck":
        title = Prompt.ask("Title")
        subject = Prompt.ask("Subject", default="General")
        deck = create_deck(db_path, title, subject)
        console.print(f"[green]Created deck {deck.id}: {deck.title}[/green]")
        return
    deck_id = IntPrompt.ask("Deck id")
    front = Prompt.ask("Front")
    back = Prompt.ask("Back")
    hint = Prompt.ask("Hint (optional)", default="", show_default=False)
    card = create_card(db_path, deck_id, front, back, hint=hint or None)
    console.print(f"[green]Added card {card.id} to deck {deck_id}[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_flashcards(db_path, file_path)
    console.print(
        f"[green]Imported {result['count']} cards → deck {result['deck_id']} "
        f"({result['title']}, {result['subject']})[/green]"
    )


def cmd_stats(db_path: str):
    overall = get_overall_stats(db_path)
    console.print(Panel(
        f"Decks: [bold]{overall['total_decks']}[/bold]  |  "
        f"Cards: [bold]{overall['total_cards']}[/bold]  |  "
        f"Due: [bold]{overall['due_cards']}[/bold]  |  "
        f"Reviews: [bold]{overall['reviews_logged']}[/bold]",
        title="Study Stats", border_style="blue",
    ))
    table = Table(title="Deck Breakdown")
    table.add_column("Deck", style="cyan")
    table.add_column("Due", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Learned", justify="right")
    table.add_column("Retention", justify="right")
    table.add_column("Status")
    for deck in list_decks(db_path):
        stats = get_deck_stats(db_path, deck.id)
        reviewed = stats["total_cards"] - stats["new_cards"]
        rate = get_retention_rate(db_path, deck.id) if reviewed else None
        color = get_mastery_color(rate)
        table.add_row(
            stats["title"], str(stats["due_cards"]), str(stats["new_cards"]),
            str(stats["learned_cards"]), f"{rate}%" if rate is not None else "-",
            f"[{color}]{get_mastery_label(rate)}[/{color}]",
        )
    console.print(table)
    last = overall["last_session"]
    if last:
        console.print(
            f"\n  Last session: [bold]{last['reviewed_count']}[/bold] reviewed, "
            f"[green]{last['mastered_count']} mastered[/green], "
            f"[red]{last['needs_work_count']} need work[/red] ({last['status']})"
        )


def cmd_history(db_path: str):
    history = get_session_history(db_path)
    if not history:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return
    table = Table(title="Recent Sessions")
    table.add_column("Finished")
    table.add_column("Deck", justify="right")
    table.add_column("Status")
    table.add_column("Reviewed", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Needs Work", justify="right")
    for s in history:
        table.add_row(
            s.finished_at.strftime("%Y-%m-%d %H:%M") if s.finished_at else "",
            str(s.deck_id) if s.deck_id is not None else "all",
            s.status, str(s.reviewed_count), str(s.mastered_count), str(s.needs_work_count),
        )
    console.print(table)


def setup_logging() -> None:
    level = os.environ.get("STUDYDECK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    show_welcome()

    commands = {
        "study": cmd_study,
        "decks": cmd_decks,
        "add": cmd_add,
        "import": cmd_import,
        "stats": cmd_stats,
        "history": cmd_history,
    }
    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Happy studying![/dim]")
            break
        command = commands.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except (StudyDeckError, ValueError) as e:
            logger.debug("Command %s failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()

"""Interactive CLI application."""
import asyncio
import logging
import sys
import time
from datetime import date

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt
from rich.table import Table

from cfa_planner.advisor import Advisor, default_study_settings
from cfa_planner.catalog import FILTER_OPTIONS, SORT_OPTIONS, get_topic, list_topics, load_topics
from cfa_planner.config import get_settings
from cfa_planner.dashboard import (
    category_breakdown, chart_series, days_remaining, get_mastery_color, get_mastery_label,
    get_study_stats, overall_mastery, registration_status, weakest_topic,
)
from cfa_planner.db import init_db
from cfa_planner.flashcards import card_at, get_flashcards
from cfa_planner.gateway import GeminiGateway, render_emphasis
from cfa_planner.quiz import check_answer, get_quiz_questions, quiz_score
from cfa_planner.store import StateLoadError, StudyStore
from cfa_planner.study import parse_session_date
from cfa_planner.timer import TopicTimer, format_elapsed

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user types q or menu inside a sub-flow."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None) -> int:
    answer = session_prompt(prompt, choices=choices + list(EXIT_WORDS) if choices else None)
    return int(answer)


def ask_topic(title: str = "Topic") -> str:
    topics = load_topics()
    for i, t in enumerate(topics, 1):
        console.print(f"  [cyan]{i:>2}[/cyan]) {t.name}")
    idx = session_int_prompt(title, choices=[str(i) for i in range(1, len(topics) + 1)])
    return topics[idx - 1].id


def show_welcome():
    console.print(Panel(
        "[bold]CFA Level 1[/bold]\n[dim]Study Strategy Planner[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Mastery, hours and exam countdown"),
        ("topics", "Browse the topic catalog"),
        ("progress", "Set mastery for a topic"),
        ("log", "Log a study session"),
        ("timer", "Time a study session"),
        ("history", "Session history for a topic"),
        ("notes", "Edit review notes"),
        ("hours", "Edit overall study hours"),
        ("profile", "Edit planner profile"),
        ("plan", "Generate or view the AI study plan"),
        ("tasks", "Check off plan tasks"),
        ("ask", "Ask the AI tutor"),
        ("quiz", "Practice quiz"),
        ("flashcards", "Flashcard drill"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def mastery_bar(score: float, width: int = 20) -> str:
    color = get_mastery_color(score)
    filled = int(score / (100 / width))
    return f"[{color}]{'█' * filled}{'░' * (width - filled)}[/{color}]"


def cmd_dashboard(store: StudyStore, profile):
    progress = store.progress_map()
    score = overall_mastery(progress)
    color = get_mastery_color(score)
    days = days_remaining(profile.exam_date)
    reg = registration_status()
    stats = get_study_stats(store)

    console.print(Panel(
        f"[bold]{days}[/bold] days to the exam window ({profile.exam_date.isoformat()})",
        title="CFA Level 1 Dashboard", border_style="blue",
    ))
    console.print(f"\n  Overall Mastery: [bold]{score}%[/bold] {mastery_bar(score)} [{color}]{get_mastery_label(score)}[/{color}]\n")

    table = Table(title="Category Breakdown")
    table.add_column("Category", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Status")
    for row in category_breakdown(progress):
        row_color = get_mastery_color(row["score"])
        table.add_row(row["category"], f"{row['score']}%", f"[{row_color}]{row['label']}[/{row_color}]")
    console.print(table)

    chart = Table(title="Topic Mastery")
    chart.add_column("Topic", style="cyan")
    chart.add_column("Progress")
    chart.add_column("Weight", justify="right")
    for point in chart_series(progress):
        chart.add_row(point["name"], f"{mastery_bar(point['progress'])} {point['progress']}%", f"{point['weight']:g}%")
    console.print(chart)

    console.print(f"\n  Study Volume: [bold]{stats['overall_hours']:.2f}h[/bold]  |  "
                  f"Logged: [bold]{stats['logged_hours']:.2f}h[/bold]  |  "
                  f"Sessions: [bold]{stats['sessions_logged']}[/bold]  |  "
                  f"Topics studied: [bold]{stats['topics_studied']}[/bold]")

    if reg["window"] == "early_bird":
        console.print(f"  [green]Early bird registration closes {reg['closes']:%b %d}[/green]")
    elif reg["window"] == "standard":
        console.print(f"  [yellow]Standard registration closes {reg['closes']:%b %d}[/yellow]")
    else:
        console.print("  [red]Registration for this window has closed[/red]")

    weakest = weakest_topic(progress)
    if weakest and progress.get(weakest.id, 0) < 70:
        console.print(f"\n  [yellow]Recommendation: Focus on {weakest.name}[/yellow]")


def cmd_topics(store: StudyStore):
    sort_by = Prompt.ask("Sort by", choices=list(SORT_OPTIONS), default="name")
    difficulty = Prompt.ask("Difficulty", choices=list(FILTER_OPTIONS), default="All")
    table = Table(title="Topic Catalog")
    table.add_column("Topic", style="cyan")
    table.add_column("Category")
    table.add_column("Difficulty")
    table.add_column("Weight", justify="right")
    table.add_column("Est.", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Logged", justify="right")
    for t in list_topics(sort_by, difficulty):
        table.add_row(
            t.name, t.category, t.difficulty,
            f"{t.weight_min:g}-{t.weight_max:g}%", f"{t.estimated_hours}h",
            f"{store.progress(t.id)}%", f"{store.total_hours(t.id):.2f}h",
        )
    console.print(table)


def cmd_progress(store: StudyStore):
    topic_id = ask_topic()
    value = IntPrompt.ask("Mastery (0-100)", default=store.progress(topic_id))
    if not 0 <= value <= 100:
        console.print("[red]Mastery must be between 0 and 100.[/red]")
        return
    store.set_progress(topic_id, value)
    console.print(f"[green]{get_topic(topic_id).name} set to {value}%[/green]")


def log_session_form(store: StudyStore, topic_id: str, candidate: dict | None = None) -> bool:
    """Prompt for a session, pre-filled from a timer candidate when given."""
    candidate = candidate or {"date": date.today().isoformat(), "hoursSpent": 1.0, "notes": ""}
    raw_date = session_prompt("Date (YYYY-MM-DD)", default=candidate["date"])
    try:
        session_date = parse_session_date(raw_date)
    except ValueError:
        console.print(f"[red]Not a valid date: {raw_date}[/red]")
        return False
    hours = FloatPrompt.ask("Hours", default=candidate["hoursSpent"])
    if hours <= 0:
        console.print("[red]Hours must be greater than zero.[/red]")
        return False
    notes = session_prompt("Notes", default=candidate["notes"])
    store.add_session(topic_id, session_date, hours, notes)
    console.print(f"[green]Logged {hours:.2f}h for {get_topic(topic_id).name}[/green]")
    return True


def cmd_log(store: StudyStore):
    topic_id = ask_topic()
    log_session_form(store, topic_id)


def run_timer(topic_id: str, clock=time.monotonic, tick: float = 1.0) -> dict | None:
    """Run a live stopwatch until Ctrl+C and return the stopped timer's candidate session."""
    name = get_topic(topic_id).name
    with TopicTimer(topic_id, clock=clock) as timer:
        timer.start()
        with Live(console=console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(Panel(format_elapsed(timer.elapsed_seconds), title=name, subtitle="Ctrl+C to stop"))
                    time.sleep(tick)
            except KeyboardInterrupt:
                pass
        return timer.stop()


def cmd_timer(store: StudyStore):
    topic_id = ask_topic()
    candidate = run_timer(topic_id)
    if candidate is None:
        console.print("[yellow]No time recorded.[/yellow]")
        return
    console.print(f"[bold]Timed {candidate['hoursSpent']:.2f}h[/bold]")
    if Confirm.ask("Log this session?", default=True):
        log_session_form(store, topic_id, candidate)


def cmd_history(store: StudyStore):
    topic_id = ask_topic()
    history = store.session_history(topic_id)
    if not history:
        console.print("[dim]No sessions logged yet. Start studying![/dim]")
        return
    table = Table(title=f"{get_topic(topic_id).name} - {store.total_hours(topic_id):.2f}h logged")
    table.add_column("Date")
    table.add_column("Hours", justify="right")
    table.add_column("Notes")
    for s in history:
        table.add_row(s.get("date", ""), f"{s.get('hoursSpent', 0):.2f}h", s.get("notes") or "")
    console.print(table)


def cmd_notes(store: StudyStore):
    topic_id = ask_topic()
    current = store.review_note(topic_id)
    if current:
        console.print(Panel(current, title="Current notes", border_style="cyan"))
    text = session_prompt("New notes", default=current)
    store.set_review_note(topic_id, text)
    console.print("[green]Notes saved.[/green]")


def cmd_hours(store: StudyStore):
    hours = FloatPrompt.ask("Overall study hours", default=store.overall_hours)
    if hours < 0:
        console.print("[red]Hours cannot be negative.[/red]")
        return
    store.set_overall_hours(hours)
    console.print(f"[green]Overall hours set to {store.overall_hours:.2f}[/green]")


def cmd_profile(profile):
    profile.hours_per_week = IntPrompt.ask("Target weekly hours", default=profile.hours_per_week)
    profile.has_background = Confirm.ask("Finance background?", default=profile.has_background)
    raw = Prompt.ask("Exam date (YYYY-MM-DD)", default=profile.exam_date.isoformat())
    try:
        profile.exam_date = date.fromisoformat(raw)
    except ValueError:
        console.print(f"[red]Not a valid date: {raw}[/red]")


def show_plan(advisor: Advisor):
    plan = advisor.store.current_plan()
    if plan is None:
        console.print("[yellow]No plan yet. Generate one first.[/yellow]")
        return
    console.print(Panel(plan.strategy, title="Core Strategy", border_style="blue"))
    for w_idx, week in enumerate(plan.weekly_breakdown):
        table = Table(title=f"Week {week.week}: {week.topic}", caption=week.focus_area)
        table.add_column("Day", justify="right")
        table.add_column("Task")
        for d_idx, task in enumerate(week.daily_tasks):
            done = advisor.checklist.is_done(w_idx, d_idx)
            table.add_row(str(d_idx + 1), f"[green][s]{task}[/s][/green]" if done else task)
        console.print(table)
    if plan.tips:
        console.print("\n[bold]Candidate Survival Tips[/bold]")
        for tip in plan.tips:
            console.print(f"  • {tip}")


def cmd_plan(advisor: Advisor, profile):
    if advisor.store.current_plan() is not None and not Confirm.ask("Generate a new plan?", default=False):
        show_plan(advisor)
        return
    with console.status("Crafting your roadmap..."):
        plan = asyncio.run(advisor.generate_plan(profile))
    if plan is None:
        console.print(f"[red]{advisor.error}[/red]")
        return
    show_plan(advisor)


def cmd_tasks(advisor: Advisor):
    plan = advisor.store.current_plan()
    if plan is None:
        console.print("[yellow]No plan yet. Generate one first.[/yellow]")
        return
    weeks = plan.weekly_breakdown
    week = session_int_prompt("Week", choices=[str(i) for i in range(1, len(weeks) + 1)])
    tasks = weeks[week - 1].daily_tasks
    if not tasks:
        console.print("[yellow]That week has no tasks.[/yellow]")
        return
    day = session_int_prompt("Day", choices=[str(i) for i in range(1, len(tasks) + 1)])
    done = advisor.checklist.toggle(week - 1, day - 1)
    console.print(f"[green]Marked done:[/green] {tasks[day - 1]}" if done else f"[dim]Unchecked:[/dim] {tasks[day - 1]}")


def cmd_ask(advisor: Advisor):
    query = session_prompt("Ask about a concept")
    with console.status("Thinking..."):
        answer = asyncio.run(advisor.explain(query))
    if answer:
        console.print(Panel(render_emphasis(answer), title="AI Tutor", border_style="green"))


def run_quiz_session(questions: list) -> tuple[int, int]:
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return 0, 0
    correct = 0
    answered = 0
    console.print(f"\n[bold]Mock Quiz[/bold] - {len(questions)} questions [dim](q to stop)[/dim]\n")
    for i, q in enumerate(questions, 1):
        console.print(f"[bold]Q{i}.[/bold] [dim]{q.topic_id.upper()} unit[/dim]\n{q.text}\n")
        letters = "abc"[:len(q.options)]
        for letter, option in zip(letters, q.options):
            console.print(f"  [cyan]{letter})[/cyan] {option}")
        try:
            answer = session_prompt("\nYour answer", choices=list(letters) + list(EXIT_WORDS))
        except SessionExitRequested:
            break
        answered += 1
        if check_answer(q, letters.index(answer)):
            console.print("[green]Correct![/green]")
            correct += 1
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{letters[q.correct_index]}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    if answered:
        console.print(f"[bold]Score: {correct}/{answered} ({quiz_score(correct, answered):.0f}%)[/bold]\n")
    return correct, answered


def run_flashcard_session(cards: list) -> int:
    """Cycle through cards until the user quits; returns how many were flipped."""
    if not cards:
        console.print("[yellow]No flashcards available![/yellow]")
        return 0
    flipped = 0
    index = 0
    while True:
        card = card_at(cards, index)
        console.print(Panel(card.front, title=f"Card {index % len(cards) + 1}/{len(cards)}", border_style="cyan"))
        try:
            session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
        except SessionExitRequested:
            return flipped
        console.print(Panel(card.back, border_style="green"))
        flipped += 1
        try:
            session_prompt("[dim]Enter for next card, q to stop[/dim]", default="")
        except SessionExitRequested:
            return flipped
        index += 1


def cmd_quiz():
    count = IntPrompt.ask("Number of questions", default=5)
    run_quiz_session(get_quiz_questions(count=count))


def cmd_flashcards():
    run_flashcard_session(get_flashcards())


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main():
    settings = get_settings()
    configure_logging(settings.planner_log_level)
    init_db(settings.planner_db_path)
    topics = load_topics()
    try:
        store = StudyStore.open(settings.planner_db_path, [t.id for t in topics], settings.planner_state_key)
    except StateLoadError as e:
        console.print(f"[red]{e}[/red]\n[dim]Your saved progress was left untouched.[/dim]")
        sys.exit(1)
    logger.info("Loaded saved state from %s", settings.planner_db_path)

    gateway = GeminiGateway(settings.gemini_api_key, settings.gemini_model)
    if not gateway.configured:
        console.print("[dim]GEMINI_API_KEY not set; AI planner and tutor are unavailable.[/dim]")
    advisor = Advisor(store, gateway, topics)
    profile = default_study_settings()

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(store, profile)
            elif choice == "topics":
                cmd_topics(store)
            elif choice == "progress":
                cmd_progress(store)
            elif choice == "log":
                cmd_log(store)
            elif choice == "timer":
                cmd_timer(store)
            elif choice == "history":
                cmd_history(store)
            elif choice == "notes":
                cmd_notes(store)
            elif choice == "hours":
                cmd_hours(store)
            elif choice == "profile":
                cmd_profile(profile)
            elif choice == "plan":
                cmd_plan(advisor, profile)
            elif choice == "tasks":
                cmd_tasks(advisor)
            elif choice == "ask":
                cmd_ask(advisor)
            elif choice == "quiz":
                cmd_quiz()
            elif choice == "flashcards":
                cmd_flashcards()
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()

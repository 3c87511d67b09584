from __future__ import annotations

import logging
from typing import Any

from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.logging import TextualHandler
from textual.screen import Screen
from textual.timer import Timer
from textual.widgets import Button, Footer, Header, Input, Static
from textual.worker import get_current_worker
from rich.console import Group
from rich.table import Table
from rich.text import Text

import config
from client import ApiClient
from errors import TypingError
from evaluator import CharStatus, Evaluation
from metrics import Summary
from session import Prompt, SessionController, SessionState

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    CharStatus.CORRECT: "bold on #2f4f2f",
    CharStatus.INCORRECT: "bold on #4f2f2f",
    CharStatus.PENDING: "dim",
}


def render_feedback(evaluation: Evaluation | None, answer: str) -> Text:
    """Typed characters coloured by correctness, one underscore per pending one."""
    text = Text()
    if evaluation is None:
        text.append(" ".join("_" for _ in answer), style=STATUS_STYLES[CharStatus.PENDING])
        return text

    typed = evaluation.state.input_so_far
    for i, status in enumerate(evaluation.statuses):
        if status is CharStatus.PENDING:
            text.append("_", style=STATUS_STYLES[status])
        else:
            text.append(typed[i], style=STATUS_STYLES[status])
    return text


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def ranking_table(rows: list[dict[str, Any]], show_rank: bool = True) -> Table:
    table = Table(show_header=True, box=None, show_edge=False, pad_edge=False)
    if show_rank:
        table.add_column("#", justify="right", width=4, no_wrap=True)
        table.add_column("User", width=16, no_wrap=True)
    else:
        table.add_column("When", width=26, no_wrap=True)
    table.add_column("WPM", justify="right", width=6, no_wrap=True)
    table.add_column("Accuracy", justify="right", width=10, no_wrap=True)
    table.add_column("Score", justify="right", width=8, no_wrap=True)

    for index, row in enumerate(rows, start=1):
        lead = [str(index), row.get("owner") or "Unknown"] if show_rank else [row.get("created_at", "")]
        table.add_row(
            *lead,
            f"{_number(row.get('wpm')):.0f}",
            f"{_number(row.get('accuracy')):.2f}%",
            f"{_number(row.get('score')):.0f}",
        )
    return table


class HomeScreen(Screen):
    BINDINGS = [("q", "quit", "Quit")]

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="home"):
            yield Static("Typing Trivia", id="title")
            yield Static("Answer trivia questions by typing them out.", id="subtitle")
            with Horizontal(id="home-buttons"):
                yield Button("Start Game", id="start", variant="success")
                yield Button("Ranking", id="ranking")
                yield Button("My Scores", id="history")
                yield Button("Quit", id="quit", variant="error")
        yield Footer()

    def on_mount(self) -> None:
        self._check_user()

    def on_screen_resume(self) -> None:
        self.query_one("#start", Button).disabled = not self.app.controller.can_start

    @work(thread=True, exclusive=True)
    def _check_user(self) -> None:
        try:
            message = f"Welcome, {self.app.client.check()}!"
        except TypingError as e:
            message = f"Server unavailable: {e.message}"
        if not get_current_worker().is_cancelled:
            self.app.call_from_thread(self._set_subtitle, message)

    def _set_subtitle(self, message: str) -> None:
        if not self.is_attached:
            return
        self.query_one("#subtitle", Static).update(message)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start":
            if not self.app.controller.can_start:
                return
            event.button.disabled = True
            self.app.push_screen(SessionScreen(self.app.controller))
        elif event.button.id == "ranking":
            self.app.push_screen(RankingScreen())
        elif event.button.id == "history":
            self.app.push_screen(HistoryScreen())
        elif event.button.id == "quit":
            self.app.exit()


class SessionScreen(Screen):
    BINDINGS = [("escape", "back", "Back")]

    def __init__(self, controller: SessionController) -> None:
        super().__init__()
        self.controller = controller
        self._clock: Timer | None = None
        self._abandoned = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="session"):
            yield Static("Loading questions...", id="progress")
            yield Static("", id="prompt-text")
            yield Static("", id="feedback")
            yield Input(placeholder="Type the answer", id="answer-input", disabled=True)
            with Horizontal(id="metrics"):
                yield Static("Time: 0s", id="timer")
                yield Static("WPM: 0", id="wpm")
                yield Static("Correct: 0", id="correct-count")
                yield Static("Typed: 0", id="total-count")
                yield Static("Accuracy: 0.00%", id="accuracy")
            with Horizontal(id="session-buttons"):
                yield Button("Skip", id="skip", variant="warning", disabled=True)
                yield Button("Back", id="back")
        yield Footer()

    def on_mount(self) -> None:
        self.controller.start()
        self._load_prompts()

    @work(thread=True, exclusive=True)
    def _load_prompts(self) -> None:
        worker = get_current_worker()
        try:
            prompts = self.app.client.fetch_prompts()
        except TypingError as e:
            if not worker.is_cancelled:
                self.app.call_from_thread(self._prompts_failed, e.message)
            return
        if not worker.is_cancelled:
            self.app.call_from_thread(self._prompts_loaded, prompts)

    def _prompts_failed(self, message: str) -> None:
        if self._abandoned:
            return
        self.controller.prompts_failed(f"Could not start the game: {message}")
        self.notify(self.controller.notice, severity="error")
        self.app.pop_screen()

    def _prompts_loaded(self, prompts: list[Prompt]) -> None:
        if self._abandoned:
            return
        self.controller.prompts_loaded(prompts)
        if self.controller.state is SessionState.IDLE:
            self.notify(self.controller.notice, severity="warning")
            self.app.pop_screen()
            return

        self._clock = self.set_interval(config.TICK_INTERVAL_S, self._tick)
        self.query_one("#skip", Button).disabled = False
        answer_input = self.query_one("#answer-input", Input)
        answer_input.disabled = False
        answer_input.focus()
        self._show_prompt()

    def _show_prompt(self) -> None:
        if self.controller.state is SessionState.ENDED:
            self._finish()
            return

        prompt = self.controller.current_prompt()
        self.query_one("#progress", Static).update(
            f"Question {self.controller.index + 1}/{self.controller.total_prompts}"
        )
        self.query_one("#prompt-text", Static).update(Text(prompt.prompt))
        self.query_one("#feedback", Static).update(render_feedback(None, prompt.expected_answer))
        self.query_one("#answer-input", Input).value = ""
        self._update_stats()

    def on_input_changed(self, event: Input.Changed) -> None:
        result = self.controller.handle_input(event.value)
        if result is None:
            return

        prompt = self.controller.current_prompt()
        self.query_one("#feedback", Static).update(render_feedback(result, prompt.expected_answer))
        self._update_stats()
        if result.solved:
            self.notify("Correct! Next question.", timeout=1)
            self.set_timer(config.ADVANCE_DELAY_S, self._advance)

    def _advance(self) -> None:
        if self._abandoned or not self.controller.awaiting_advance:
            return
        self.controller.advance()
        self._show_prompt()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "back":
            self.action_back()
        elif event.button.id == "skip":
            # a solved prompt is already on its way out
            if self.controller.state is not SessionState.ACTIVE or self.controller.awaiting_advance:
                return
            answer = self.controller.skip()
            self.notify(f"Answer: {answer}", title="Skipped", timeout=4)
            self._show_prompt()

    def action_back(self) -> None:
        if self.controller.state in (SessionState.LOADING, SessionState.ACTIVE):
            # Leaving mid-session abandons it; nothing is submitted.
            self._abandoned = True
            self.app.controller = self.app.new_controller()
        self._stop_clock()
        self.app.pop_screen()

    def _tick(self) -> None:
        self._update_stats()

    def _update_stats(self) -> None:
        live = self.controller.live()
        self.query_one("#timer", Static).update(f"Time: {live.elapsed_seconds}s")
        self.query_one("#wpm", Static).update(f"WPM: {live.wpm:.0f}")
        self.query_one("#correct-count", Static).update(f"Correct: {live.correct_chars}")
        self.query_one("#total-count", Static).update(f"Typed: {live.total_chars}")
        self.query_one("#accuracy", Static).update(f"Accuracy: {live.accuracy:.2f}%")

    def _stop_clock(self) -> None:
        if self._clock is not None:
            self._clock.stop()
            self._clock = None

    def _finish(self) -> None:
        self._stop_clock()
        self.query_one("#answer-input", Input).disabled = True
        self.query_one("#skip", Button).disabled = True
        self._update_stats()
        self.app.switch_screen(SummaryScreen(self.controller))


class SummaryScreen(Screen):
    BINDINGS = [("enter", "home", "Home"), ("escape", "home", "Home")]

    def __init__(self, controller: SessionController) -> None:
        super().__init__()
        self.controller = controller
        self.summary: Summary = controller.summary

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="summary"):
            yield Static("Game Over", id="summary-title")
            yield Static(f"Score: {self.summary.score:.0f}", id="summary-score")
            yield Static(f"WPM: {self.summary.wpm:.0f}", id="summary-wpm")
            yield Static(f"Accuracy: {self.summary.accuracy:.2f}%", id="summary-accuracy")
            yield Static(f"Time: {self.summary.elapsed_seconds}s", id="summary-duration")
            yield Static("Saving score...", id="summary-status")
            yield Static("", id="summary-ranking")
            yield Button("Play Again", id="home", variant="success")
        yield Footer()

    def on_mount(self) -> None:
        self._submit()

    @work(thread=True, exclusive=True)
    def _submit(self) -> None:
        client = self.app.client
        worker = get_current_worker()
        try:
            record = client.submit_score(self.summary)
            status = f"Score saved (#{record['id']})."
        except TypingError as e:
            logger.warning("Score submission failed: %s", e.message)
            status = f"Could not save score: {e.message}"
        if worker.is_cancelled:
            return
        try:
            ranking = ranking_table(client.ranking())
        except TypingError as e:
            ranking = f"Could not load ranking: {e.message}"
        if not worker.is_cancelled:
            self.app.call_from_thread(self._show, status, ranking)

    def _show(self, status: str, ranking: Any) -> None:
        if not self.is_attached:
            return
        self.query_one("#summary-status", Static).update(status)
        self.query_one("#summary-ranking", Static).update(ranking)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "home":
            self.action_home()

    def action_home(self) -> None:
        if self.controller.state is SessionState.ENDED:
            self.controller.acknowledge()
        self.app.pop_screen()


class RankingScreen(Screen):
    BINDINGS = [("escape", "back", "Back")]
    TITLE_TEXT = "Ranking"

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="stats"):
            yield Static(self.TITLE_TEXT, id="stats-title")
            yield Static("Loading...", id="stats-body")
            yield Button("Back", id="back")
        yield Footer()

    def on_mount(self) -> None:
        self._load()

    def fetch(self) -> list[dict[str, Any]]:
        return self.app.client.ranking()

    def render_rows(self, rows: list[dict[str, Any]]) -> Any:
        return ranking_table(rows)

    @work(thread=True, exclusive=True)
    def _load(self) -> None:
        try:
            rows = self.fetch()
            body = self.render_rows(rows) if rows else "No scores yet."
        except TypingError as e:
            body = f"Could not load {self.TITLE_TEXT.lower()}: {e.message}"
        if not get_current_worker().is_cancelled:
            self.app.call_from_thread(self._show, body)

    def _show(self, body: Any) -> None:
        if not self.is_attached:
            return
        self.query_one("#stats-body", Static).update(body)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "back":
            self.app.pop_screen()

    def action_back(self) -> None:
        self.app.pop_screen()


class HistoryScreen(RankingScreen):
    TITLE_TEXT = "My Scores"

    def fetch(self) -> list[dict[str, Any]]:
        return self.app.client.history()

    def render_rows(self, rows: list[dict[str, Any]]) -> Any:
        total = len(rows)
        best = max(_number(r.get("wpm")) for r in rows)
        summary = f"Games played: {total}\nBest WPM: {best:.0f}\n"
        return Group(summary, ranking_table(rows, show_rank=False))


class TypingTriviaApp(App):
    CSS = """
    #home, #session, #summary, #stats {
        padding: 1 2;
    }

    #title {
        content-align: center middle;
        text-style: bold;
    }

    #subtitle {
        content-align: center middle;
        color: $text-muted;
        margin-bottom: 1;
    }

    #home-buttons, #session-buttons {
        height: auto;
        margin-top: 1;
    }

    #prompt-text {
        border: solid $primary;
        padding: 1;
        margin: 1 0;
    }

    #feedback {
        padding: 0 1;
        margin-bottom: 1;
    }

    #metrics {
        height: auto;
        margin: 1 0;
    }

    #metrics Static {
        width: 1fr;
    }

    #summary-title, #stats-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #summary-ranking {
        margin: 1 0;
    }
    """

    TITLE = "Typing Trivia"

    def __init__(self, client: ApiClient | None = None, formula: str = config.SCORE_FORMULA) -> None:
        super().__init__()
        self.client = client or ApiClient()
        self.formula = formula
        self.controller = self.new_controller()

    def new_controller(self) -> SessionController:
        return SessionController(formula=self.formula)

    def on_mount(self) -> None:
        self.push_screen(HomeScreen())


def main() -> None:
    # stderr belongs to the terminal UI while it runs
    config.configure_logging(handlers=[TextualHandler()])
    TypingTriviaApp().run()


if __name__ == "__main__":
    main()

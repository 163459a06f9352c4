import json
from unittest.mock import patch

import pytest

from cfa_planner.app import (
    SessionExitRequested, cmd_hours, cmd_progress, log_session_form, main, run_flashcard_session,
    run_quiz_session, run_timer, session_int_prompt, session_prompt,
)
from cfa_planner.catalog import load_questions
from cfa_planner.config import get_settings
from cfa_planner.db import init_db, read_value, write_value
from cfa_planner.flashcards import get_flashcards


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("cfa_planner.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("cfa_planner.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("cfa_planner.app.Prompt.ask", return_value="hello"):
        assert session_prompt("test prompt") == "hello"


def test_session_int_prompt_returns_normal_input():
    with patch("cfa_planner.app.Prompt.ask", return_value="3"):
        assert session_int_prompt("rate", choices=["1", "2", "3"]) == 3


def test_session_int_prompt_raises_on_q():
    with patch("cfa_planner.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_int_prompt("rate", choices=["1", "2", "3"])


def test_run_quiz_session_scores_answers():
    questions = list(load_questions()[:2])
    letters = "abc"
    answers = [letters[questions[0].correct_index], letters[(questions[1].correct_index + 1) % 3]]
    with patch("cfa_planner.app.Prompt.ask", side_effect=answers):
        assert run_quiz_session(questions) == (1, 2)


def test_run_quiz_session_stops_on_q():
    questions = list(load_questions()[:3])
    first = "abc"[questions[0].correct_index]
    with patch("cfa_planner.app.Prompt.ask", side_effect=[first, "q"]):
        assert run_quiz_session(questions) == (1, 1)


def test_run_quiz_session_empty():
    assert run_quiz_session([]) == (0, 0)


def test_run_flashcard_session_cycles_until_q():
    cards = get_flashcards("econ") + get_flashcards("fra")
    # reveal, next, reveal, next, reveal (wrapped to first card), then quit
    with patch("cfa_planner.app.Prompt.ask", side_effect=["", "", "", "", "", "q"]):
        assert run_flashcard_session(cards) == 3


def test_log_session_form_adds_session(store):
    with patch("cfa_planner.app.Prompt.ask", side_effect=["2026-10-18", "Reviewed ratios"]), \
            patch("cfa_planner.app.FloatPrompt.ask", return_value=1.5):
        assert log_session_form(store, "fra") is True
    sessions = store.sessions("fra")
    assert sessions[0]["date"] == "2026-10-18"
    assert sessions[0]["hoursSpent"] == 1.5
    assert sessions[0]["notes"] == "Reviewed ratios"
    assert store.overall_hours == 1.5


def test_log_session_form_rejects_zero_hours(store):
    with patch("cfa_planner.app.Prompt.ask", side_effect=["2026-10-18"]), \
            patch("cfa_planner.app.FloatPrompt.ask", return_value=0):
        assert log_session_form(store, "fra") is False
    assert store.sessions("fra") == []


def test_log_session_form_rejects_bad_date(store):
    with patch("cfa_planner.app.Prompt.ask", side_effect=["18/10/2026"]):
        assert log_session_form(store, "fra") is False
    assert store.sessions("fra") == []


def test_log_session_form_prefills_from_candidate(store):
    candidate = {"topicId": "quant", "date": "2026-10-19", "hoursSpent": 0.03, "notes": ""}
    with patch("cfa_planner.app.Prompt.ask", side_effect=lambda prompt, **kw: kw.get("default", "")), \
            patch("cfa_planner.app.FloatPrompt.ask", side_effect=lambda prompt, **kw: kw["default"]):
        log_session_form(store, "quant", candidate)
    assert store.sessions("quant")[0]["hoursSpent"] == 0.03
    assert store.sessions("quant")[0]["date"] == "2026-10-19"


def test_run_timer_returns_candidate():
    now = [0.0]

    def fake_sleep(seconds):
        now[0] += 90
        raise KeyboardInterrupt

    with patch("cfa_planner.app.time.sleep", side_effect=fake_sleep):
        candidate = run_timer("quant", clock=lambda: now[0])
    assert candidate["hoursSpent"] == 0.03
    assert candidate["topicId"] == "quant"


def test_run_timer_zero_elapsed():
    with patch("cfa_planner.app.time.sleep", side_effect=KeyboardInterrupt):
        assert run_timer("quant", clock=lambda: 5.0) is None


def test_cmd_progress(store):
    with patch("cfa_planner.app.Prompt.ask", return_value="1"), \
            patch("cfa_planner.app.IntPrompt.ask", return_value=65):
        cmd_progress(store)
    assert store.progress("ethics") == 65


def test_cmd_progress_out_of_range_rejected(store):
    with patch("cfa_planner.app.Prompt.ask", return_value="1"), \
            patch("cfa_planner.app.IntPrompt.ask", return_value=120):
        cmd_progress(store)
    assert store.progress("ethics") == 0


def test_cmd_hours(store):
    with patch("cfa_planner.app.FloatPrompt.ask", return_value=42.5):
        cmd_hours(store)
    assert store.overall_hours == 42.5


@pytest.fixture
def app_env(tmp_db, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PLANNER_DB_PATH", tmp_db)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    get_settings.cache_clear()
    yield tmp_db
    get_settings.cache_clear()


def test_main_quits(app_env):
    with patch("cfa_planner.app.Prompt.ask", return_value="quit"):
        main()
    assert read_value(app_env, "cfa_progress") is None


def test_main_corrupt_state_exits_without_overwrite(app_env):
    init_db(app_env)
    write_value(app_env, "cfa_progress", "{broken")
    with pytest.raises(SystemExit) as exc:
        main()
    assert exc.value.code == 1
    assert read_value(app_env, "cfa_progress") == "{broken"


def test_main_dashboard_then_quit(app_env):
    init_db(app_env)
    write_value(app_env, "cfa_progress", json.dumps({"topicProgress": {"ethics": 80}}))
    with patch("cfa_planner.app.Prompt.ask", side_effect=["dashboard", "quit"]):
        main()

from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog
import yaml
from typer.testing import CliRunner

from evalboard.cli import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # the CLI binds structlog to the runner's captured stream
    structlog.reset_defaults()


def write_config(tmp_path: Path, **overrides: object) -> Path:
    settings = {
        "store": {"backend": "json", "path": str(tmp_path / "records.json")},
        "evaluator": {"token_path": str(tmp_path / "interviewer_id")},
        "auth": {"session_path": str(tmp_path / "session.json")},
    }
    settings.update(overrides)
    path = tmp_path / "evalboard.yaml"
    path.write_text(yaml.safe_dump(settings, allow_unicode=True), encoding="utf-8")
    return path


def invoke(runner: CliRunner, config: Path, *args: str, **kwargs):
    return runner.invoke(app, ["--config", str(config), "--log-level", "ERROR", *args], **kwargs)


def stored(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "records.json").read_text(encoding="utf-8"))


def test_score_new_candidate_and_rank(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)

    result = invoke(
        runner,
        config,
        "score",
        "--new",
        "김민지",
        "--info",
        "major=경영학과",
        "--score",
        "sincerity=9",
        "--score",
        "logic=4",
        "--tag",
        "논리적",
        "--note",
        "차분함",
        "--evaluator",
        "interviewer-a",
    )

    assert result.exit_code == 0, result.output
    assert "Saved 7/46 for 김민지" in result.output
    assert "as interviewer-a." in result.output
    assert "Rank 1 with 7.0." in result.output

    document = stored(tmp_path)
    assert document["candidates"][0]["name"] == "김민지"
    assert document["candidates"][0]["info"]["major"] == "경영학과"
    evaluation = document["evaluations"][0]
    assert evaluation["scores"]["sincerity"] == 3
    assert evaluation["tags"] == [{"text": "논리적", "polarity": "positive"}]

    ranked = invoke(runner, config, "rank", "--output", str(tmp_path / "board.json"))
    assert ranked.exit_code == 0, ranked.output
    assert "1. 김민지  7.0/46 (15.2%)  n=1" in ranked.output
    board = json.loads((tmp_path / "board.json").read_text(encoding="utf-8"))
    assert board["results"][0]["name"] == "김민지"


def test_rescoring_uses_device_identity_and_replaces(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)
    assert invoke(runner, config, "add-candidate", "--name", "Kim").exit_code == 0
    candidate_id = stored(tmp_path)["candidates"][0]["id"]

    first = invoke(runner, config, "score", candidate_id, "--score", "q1=2")
    second = invoke(runner, config, "score", candidate_id, "--score", "q2=5")

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    evaluations = stored(tmp_path)["evaluations"]
    assert len(evaluations) == 1
    assert evaluations[0]["evaluator_id"].startswith("interviewer_")
    assert evaluations[0]["total"] == 7

    shown = invoke(runner, config, "show", candidate_id)
    assert shown.exit_code == 0, shown.output
    assert "Content: 7/25" in shown.output


def test_unknown_candidate_exits_with_not_found(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)

    result = invoke(runner, config, "score", "missing", "--score", "q1=2", "--evaluator", "a")

    assert result.exit_code == 3
    assert "candidate not found" in result.output


def test_blank_name_is_rejected(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)

    result = invoke(runner, config, "score", "--new", "  ", "--evaluator", "a")

    assert result.exit_code == 2
    assert "Candidate name must not be blank" in result.output
    assert not (tmp_path / "records.json").exists()


def test_admin_commands(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)
    invoke(runner, config, "add-candidate", "--name", "Kim")
    candidate_id = stored(tmp_path)["candidates"][0]["id"]
    invoke(runner, config, "score", candidate_id, "--score", "q1=3", "--evaluator", "a")
    evaluation_id = stored(tmp_path)["evaluations"][0]["id"]

    unchanged = invoke(runner, config, "reassign-evaluation", evaluation_id, "a")
    moved = invoke(runner, config, "reassign-evaluation", evaluation_id, "Interviewer Lee")
    updated = invoke(runner, config, "update-candidate", candidate_id, "--info", "phone=010-0000-0000")
    deleted = invoke(runner, config, "delete-candidate", candidate_id)

    assert "Nothing to change." in unchanged.output
    assert "now belongs to Interviewer Lee" in moved.output
    assert updated.exit_code == 0, updated.output
    assert deleted.exit_code == 0, deleted.output
    document = stored(tmp_path)
    assert document["candidates"] == []
    assert document["evaluations"] == []


def test_import_resume(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)
    resume = tmp_path / "resume.pdf"
    resume.write_bytes(b"%PDF-1.4")

    result = invoke(runner, config, "import-resume", str(resume))

    assert result.exit_code == 0, result.output
    assert "(홍길동)" in result.output


def test_rubric_replace_and_invalid(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)
    valid = tmp_path / "rubric.yaml"
    valid.write_text(
        yaml.safe_dump({"categories": [{"label": "Fit", "items": [{"key": "fit", "max_score": 10}]}]}),
        encoding="utf-8",
    )
    invalid = tmp_path / "broken.yaml"
    invalid.write_text(
        yaml.safe_dump({"categories": [{"label": "Fit", "items": [{"key": "fit", "max_score": 0}]}]}),
        encoding="utf-8",
    )

    replaced = invoke(runner, config, "rubric", "replace", str(valid))
    rejected = invoke(runner, config, "rubric", "replace", str(invalid))
    shown = invoke(runner, config, "rubric", "show")

    assert replaced.exit_code == 0, replaced.output
    assert "total maximum is 10" in replaced.output
    assert rejected.exit_code == 2
    assert "Total: 10" in shown.output


def test_login_gate(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(
        tmp_path,
        auth={
            "required": True,
            "username": "admin",
            "password": "s3cret",
            "session_path": str(tmp_path / "session.json"),
        },
    )

    blocked = invoke(runner, config, "add-candidate", "--name", "Kim")
    failed = invoke(runner, config, "login", input="admin\nwrong\n")
    logged_in = invoke(runner, config, "login", input="admin\ns3cret\n")
    allowed = invoke(runner, config, "add-candidate", "--name", "Kim")
    whoami = invoke(runner, config, "whoami")

    assert blocked.exit_code == 2
    assert "login required" in blocked.output
    assert failed.exit_code == 2
    assert "Invalid username or password" in failed.output
    assert logged_in.exit_code == 0, logged_in.output
    assert allowed.exit_code == 0, allowed.output
    assert "Login: admin" in whoami.output


def test_mutating_commands_run_when_login_is_not_required(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(
        tmp_path,
        auth={"required": False, "session_path": str(tmp_path / "session.json")},
    )

    created = invoke(runner, config, "add-candidate", "--name", "Kim")

    assert created.exit_code == 0, created.output
    assert "login required" not in created.output
    assert [c["name"] for c in stored(tmp_path)["candidates"]] == ["Kim"]


def test_non_finite_score_is_a_validation_error(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)

    result = invoke(runner, config, "score", "--new", "Kim", "--score", "logic=nan", "--evaluator", "a")

    assert result.exit_code == 2
    assert "must be a finite number" in result.output
    assert not (tmp_path / "records.json").exists()


def test_console_log_format(tmp_path: Path, runner: CliRunner) -> None:
    config = write_config(tmp_path)

    result = runner.invoke(
        app,
        ["--config", str(config), "--log-format", "console", "add-candidate", "--name", "Kim"],
    )
    rejected = runner.invoke(app, ["--config", str(config), "--log-format", "xml", "rank"])

    assert result.exit_code == 0, result.output
    assert "candidate.created" in result.output
    assert not result.output.lstrip().startswith("{")
    assert rejected.exit_code == 2

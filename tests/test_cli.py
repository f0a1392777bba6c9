"""Tests for the JSON-file command line runner."""

from __future__ import annotations

import json
from datetime import date, timedelta

import pytest

from runner.cli import build_parser, main

AS_OF = date(2026, 3, 1)


@pytest.fixture
def files(tmp_path, plan_request, config_request):
    """History, profile, plan and config files plus a store directory."""
    history = [
        {"date": (AS_OF - timedelta(days=offset)).isoformat(), "duration_seconds": 3600, "training_stress_score": 50}
        for offset in range(120)
    ]
    paths = {}
    for name, payload in (
        ("history", history),
        ("profile", {"dob": "1990-06-15", "gender": "male"}),
        ("plan", plan_request),
        ("config", config_request),
    ):
        paths[name] = tmp_path / f"{name}.json"
        paths[name].write_text(json.dumps(payload))
    paths["store"] = tmp_path / "store"
    return paths


def _global_args(files) -> list[str]:
    return [
        "--history",
        str(files["history"]),
        "--profile",
        str(files["profile"]),
        "--as-of",
        AS_OF.isoformat(),
        "--store-dir",
        str(files["store"]),
    ]


def _plan_args(files) -> list[str]:
    return ["--plan", str(files["plan"]), "--config", str(files["config"])]


class TestParser:
    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_as_of_parsed(self) -> None:
        args = build_parser().parse_args(["--as-of", "2026-03-01", "suggest"])
        assert args.as_of == AS_OF
        assert args.command == "suggest"


class TestCommands:
    def test_preview(self, files, capsys) -> None:
        assert main(_global_args(files) + ["preview"] + _plan_args(files)) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["preview_snapshot"]["token"].startswith("v1:")
        assert out["projection_feasibility"]["state"] == "safe"
        assert out["context_summary"]["history_availability_state"] == "sufficient"

    def test_preview_then_create(self, files, capsys) -> None:
        assert main(_global_args(files) + ["preview"] + _plan_args(files)) == 0
        token = json.loads(capsys.readouterr().out)["preview_snapshot"]["token"]

        assert main(_global_args(files) + ["create"] + _plan_args(files) + ["--token", token]) == 0
        created = json.loads(capsys.readouterr().out)
        assert (files["store"] / "plans" / f"{created['id']}.json").exists()

    def test_token_reuse_rejected(self, files, capsys) -> None:
        main(_global_args(files) + ["preview"] + _plan_args(files))
        token = json.loads(capsys.readouterr().out)["preview_snapshot"]["token"]
        main(_global_args(files) + ["create"] + _plan_args(files) + ["--token", token])
        capsys.readouterr()

        assert main(_global_args(files) + ["create"] + _plan_args(files) + ["--token", token]) == 2
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["code"] == "stale_preview_snapshot"

    def test_invalid_plan(self, files, capsys) -> None:
        files["plan"].write_text(json.dumps({"plan_start_date": "2026-03-02", "goals": []}))
        assert main(_global_args(files) + ["preview", "--plan", str(files["plan"])]) == 2
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["code"] == "invalid_minimal_plan"

    def test_suggest(self, files, capsys) -> None:
        assert main(_global_args(files) + ["suggest"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["suggestions"]["optimization_profile"] == "balanced"
        assert out["sources"]["optimization_profile"] == "history"

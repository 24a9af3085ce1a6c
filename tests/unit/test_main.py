"""
tests/unit/test_main.py — Entry Point Tests

Argument parsing, CLI overrides and bootstrap failure exits.
"""

from __future__ import annotations

import json

import pytest

import main


class TestParseArgs:
    def test_issue_is_required(self):
        with pytest.raises(SystemExit):
            main.parse_args([])

    def test_overrides_parsed(self):
        args = main.parse_args(["fix it", "--repo-root", "/src", "--index", "t.jsonl",
                                "--max-rounds", "2", "--log-level", "DEBUG"])
        assert args.issue == "fix it"
        assert args.repo_root == "/src"
        assert args.index == "t.jsonl"
        assert args.max_rounds == 2
        assert args.log_level == "DEBUG"


class TestOverrides:
    def test_no_overrides_returns_same_settings(self):
        from config.settings import Settings
        settings = Settings()
        assert main._apply_overrides(settings, main.parse_args(["q"])) is settings

    def test_overrides_replace_search_fields(self):
        from config.settings import Settings
        settings = main._apply_overrides(
            Settings(), main.parse_args(["q", "--repo-root", "/src", "--max-rounds", "3"]),
        )
        assert settings.search.repo_root == "/src"
        assert settings.search.max_rounds == 3
        assert settings.search.file_result_cap == 20

    def test_invalid_override_rejected(self):
        from config.settings import Settings
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            main._apply_overrides(Settings(), main.parse_args(["q", "--max-rounds", "0"]))


class TestBootstrap:
    def test_config_problems_exit_with_code_1(self, tmp_path, capsys):
        args = main.parse_args(["q", "--config", str(tmp_path / "absent.yaml"),
                                "--repo-root", str(tmp_path / "missing")])
        with pytest.raises(SystemExit) as exc_info:
            main.bootstrap(args)
        assert exc_info.value.code == 1
        assert "repo_root" in capsys.readouterr().err

    def test_bad_max_rounds_exits(self, tmp_path, capsys):
        args = main.parse_args(["q", "--config", str(tmp_path / "absent.yaml"), "--max-rounds", "0"])
        with pytest.raises(SystemExit):
            main.bootstrap(args)
        assert "Config validation failed" in capsys.readouterr().err

    def test_bootstrap_returns_settings_and_logger(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        index = tmp_path / "tags.jsonl"
        index.write_text(json.dumps({"name": "main", "kind": "function", "fname": "main.py"}) + "\n")
        config = tmp_path / "config.yaml"
        config.write_text(f"logging:\n  log_dir: {tmp_path / 'logs'}\n")
        args = main.parse_args(["q", "--config", str(config), "--repo-root", str(tmp_path),
                                "--index", str(index)])

        settings, log = main.bootstrap(args)

        assert settings.search.index_path == str(index)
        assert (tmp_path / "logs").is_dir()
        log.info("test.bootstrap_ok")


class TestPrintOutcome:
    def _outcome(self, status, files, suggestions=""):
        from agent import SearchContext, SearchOutcome
        from search.types import IdentifiedItem, IdentifyResponse
        ctx = SearchContext("q", session_id="s-1")
        ctx.apply_identification(IdentifyResponse(
            items=[IdentifiedItem(path=p, thinking=f"because {p}") for p in files],
        ))
        return SearchOutcome(status=status, context=ctx, rounds=1, suggestions=suggestions)

    def test_lists_files_and_status(self):
        from rich.console import Console
        from agent import SearchStatus
        console = Console(record=True, width=120)
        main._print_outcome(self._outcome(SearchStatus.COMPLETE, ["reports/build.py"]), console)
        text = console.export_text()
        assert "complete" in text
        assert "reports/build.py" in text
        assert "because reports/build.py" in text

    def test_reports_missing_context(self):
        from rich.console import Console
        from agent import SearchStatus
        console = Console(record=True, width=120)
        main._print_outcome(self._outcome(SearchStatus.ROUND_LIMIT, [], "look at utils"), console)
        text = console.export_text()
        assert "No relevant files found." in text
        assert "look at utils" in text

"""
Unit tests for the command line.

Tests serpnav/cli.py (engines, detect, extract; browse needs a browser).
"""

import pytest

from serpnav import cli

from conftest import FIXTURES_DIR


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)


class TestCli:

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_engines(self, capsys):
        assert cli.main(["engines"]) == 0
        out = capsys.readouterr().out
        assert "google" in out
        assert "startpage" in out
        assert "search box" in out

    def test_engines_json(self, capsys):
        import json

        assert cli.main(["engines", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data) == 11
        assert data[0]["key"] == "google"

    def test_detect(self, capsys):
        assert cli.main(["detect", "https://search.brave.com/search?q=x"]) == 0
        assert "brave" in capsys.readouterr().out

    def test_detect_unknown(self, capsys):
        assert cli.main(["detect", "https://example.org/"]) == 1

    def test_extract_saved_page(self, capsys):
        code = cli.main([
            "extract", str(FIXTURES_DIR / "bing_results.html"),
            "--url", "https://www.bing.com/search?q=python",
            "--rank", "2",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "-> https://second.example.org/" in out

    def test_extract_miss(self, capsys):
        code = cli.main([
            "extract", str(FIXTURES_DIR / "bing_results.html"),
            "--url", "https://www.bing.com/search?q=python",
            "--rank", "5",
        ])
        assert code == 1
        assert "no result #5" in capsys.readouterr().out

    def test_extract_unknown_engine(self, capsys):
        code = cli.main([
            "extract", str(FIXTURES_DIR / "bing_results.html"),
            "--url", "https://example.org/",
            "--engine", "altavista",
        ])
        assert code == 2

    def test_bad_engines_file(self, tmp_path, capsys):
        assert cli.main(["--engines-file", str(tmp_path / "missing.yaml"), "engines"]) == 2
        assert "Error" in capsys.readouterr().err

"""
Tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from neardup import __version__
from neardup.cli import main, read_token_sets


@pytest.fixture
def runner(tmp_path, monkeypatch):
    # keep a developer's .neardup.yml or environment out of the tests
    monkeypatch.chdir(tmp_path)
    for suffix in ("NUM_HASHES", "BANDS", "SEED", "BATCH_SIZE", "MAX_WORKERS", "MIN_SIMILARITY", "LOG_LEVEL"):
        monkeypatch.delenv(f"NEARDUP_{suffix}", raising=False)
    return CliRunner()


@pytest.fixture
def corpus_file(tmp_path):
    base = [f"w{i}" for i in range(30)]
    records = [
        {"id": "a", "tokens": base},
        {"id": "b", "tokens": base[:-2] + ["x1", "x2"]},
        {"id": "c", "tokens": [f"z{i}" for i in range(30)]},
        {"id": "empty", "tokens": []},
    ]
    path = tmp_path / "corpus.jsonl"
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n\n")
    return path


class TestParameterCommands:
    """Test parameter-selection commands."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_threshold(self, runner):
        result = runner.invoke(main, ["threshold", "240", "80"])

        assert result.exit_code == 0
        assert "r=3" in result.output
        assert "threshold=0.2321" in result.output

    def test_threshold_indivisible(self, runner):
        result = runner.invoke(main, ["threshold", "240", "7"])

        assert result.exit_code == 1
        assert "not evenly divisible" in result.output

    def test_curve(self, runner):
        result = runner.invoke(main, ["curve", "240", "80", "--points", "5"])

        assert result.exit_code == 0
        assert "0.25" in result.output
        assert "1.0000" in result.output

    def test_suggest(self, runner):
        result = runner.invoke(main, ["suggest", "240", "--target", "0.5"])

        assert result.exit_code == 0
        assert "nearest" in result.output
        assert "48" in result.output

    def test_suggest_bad_target(self, runner):
        result = runner.invoke(main, ["suggest", "240", "--target", "2"])
        assert result.exit_code == 1


class TestScan:
    """Test the corpus scanner."""

    def test_scan_json(self, runner, corpus_file):
        result = runner.invoke(main, ["scan", str(corpus_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [(p["a"], p["b"]) for p in data["pairs"]] == [("a", "b")]
        assert data["pairs"][0]["score"] == pytest.approx(28 / 32)
        assert data["skipped"] == ["empty"]

    def test_scan_table(self, runner, corpus_file):
        result = runner.invoke(main, ["scan", str(corpus_file)])

        assert result.exit_code == 0
        assert "0.875" in result.output
        assert "Skipped 1" in result.output

    def test_scan_min_similarity(self, runner, corpus_file):
        result = runner.invoke(main, ["scan", str(corpus_file), "--json", "--min-similarity", "0.9"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["pairs"] == []

    def test_scan_bad_banding(self, runner, corpus_file):
        result = runner.invoke(main, ["scan", str(corpus_file), "--bands", "7"])

        assert result.exit_code == 1
        assert "not evenly divisible" in result.output

    def test_scan_with_config(self, runner, corpus_file, tmp_path):
        config_path = tmp_path / "custom.yml"
        config_path.write_text("num_hashes: 64\nbands: 16\n")

        result = runner.invoke(main, ["scan", str(corpus_file), "--config", str(config_path), "--json"])

        assert result.exit_code == 0
        assert len(json.loads(result.stdout)["pairs"]) == 1

    def test_read_token_sets_rejects_bad_lines(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"id": "a"}\n')

        result = CliRunner().invoke(main, ["scan", str(path)])

        assert result.exit_code != 0
        assert "bad.jsonl:1" in result.output

    def test_scan_mixed_id_types(self, runner, tmp_path):
        """Integer and string ids from one file are reported without error."""
        tokens = [f"w{i}" for i in range(20)]
        path = tmp_path / "mixed.jsonl"
        path.write_text(
            json.dumps({"id": 1, "tokens": tokens}) + "\n"
            + json.dumps({"id": "b", "tokens": tokens}) + "\n"
        )

        result = runner.invoke(main, ["scan", str(path), "--json"])

        assert result.exit_code == 0
        pairs = json.loads(result.stdout)["pairs"]
        assert [(p["a"], p["b"], p["score"]) for p in pairs] == [(1, "b", 1.0)]

    def test_read_token_sets_rejects_structured_ids(self, tmp_path):
        path = tmp_path / "ids.jsonl"
        path.write_text('{"id": ["a"], "tokens": ["x"]}\n')

        result = CliRunner().invoke(main, ["scan", str(path)])

        assert result.exit_code != 0
        assert "'id' must be a string or an integer" in result.output

    def test_read_token_sets_rejects_duplicates(self, tmp_path):
        path = tmp_path / "dup.jsonl"
        path.write_text('{"id": "a", "tokens": ["x"]}\n{"id": "a", "tokens": ["y"]}\n')

        result = CliRunner().invoke(main, ["scan", str(path)])

        assert result.exit_code != 0
        assert "duplicate id" in result.output

    def test_read_token_sets(self, corpus_file):
        token_sets = read_token_sets(corpus_file)

        assert list(token_sets) == ["a", "b", "c", "empty"]
        assert token_sets["empty"] == []


class TestConfigCommands:
    """Test config subcommands."""

    def test_init_and_validate(self, runner, tmp_path):
        path = tmp_path / "cfg.yml"

        result = runner.invoke(main, ["config", "init", "--path", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        result = runner.invoke(main, ["config", "validate", "--path", str(path)])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_init_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("seed: 1\n")

        result = runner.invoke(main, ["config", "init", "--path", str(path)], input="n\n")

        assert "Aborted" in result.output
        assert path.read_text() == "seed: 1\n"

    def test_validate_invalid(self, runner, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("num_hashes: 100\nbands: 30\n")

        result = runner.invoke(main, ["config", "validate", "--path", str(path)])

        assert result.exit_code == 1

    def test_validate_missing_default(self, runner):
        result = runner.invoke(main, ["config", "validate"])
        assert result.exit_code == 1

    def test_show(self, runner, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("seed: 17\n")

        result = runner.invoke(main, ["config", "show", "--path", str(path)])

        assert result.exit_code == 0
        assert "seed: 17" in result.output

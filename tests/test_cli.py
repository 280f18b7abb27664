"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from codectx_cli import __version__
from codectx_cli.cli import app


runner = CliRunner()


class TestIndexCommand:
    """Tests for 'ctx index'."""

    def test_index_writes_index_and_snapshot(self, sample_next_copy: Path):
        result = runner.invoke(app, ["index", str(sample_next_copy)])

        assert result.exit_code == 0
        index = json.loads((sample_next_copy / ".claude" / "code-index.json").read_text())
        snapshot = json.loads((sample_next_copy / ".claude" / "snapshot.json").read_text())
        assert index["project_type"] == "nextjs"
        assert "GET /users/:id" in index["entry_points"]
        assert snapshot["generated"] == index["generated"]
        assert set(snapshot["config_hashes"]) == {"package.json", "tsconfig.json"}
        assert "Entry points" in result.stdout

    def test_index_is_stable_across_runs(self, sample_next_copy: Path):
        runner.invoke(app, ["index", str(sample_next_copy)])
        first = json.loads((sample_next_copy / ".claude" / "code-index.json").read_text())
        runner.invoke(app, ["index", str(sample_next_copy)])
        second = json.loads((sample_next_copy / ".claude" / "code-index.json").read_text())

        first.pop("generated")
        second.pop("generated")
        assert first == second

    def test_custom_output_dir(self, sample_next_copy: Path):
        result = runner.invoke(app, ["index", str(sample_next_copy), "-o", "ctx-out"])

        assert result.exit_code == 0
        assert (sample_next_copy / "ctx-out" / "code-index.json").is_file()
        assert not (sample_next_copy / ".claude").exists()

    def test_missing_root(self, temp_dir: Path):
        result = runner.invoke(app, ["index", str(temp_dir / "nope")])
        assert result.exit_code == 2

    def test_no_source_files(self, make_tree):
        root = make_tree({"README.md": "# empty\n"})
        result = runner.invoke(app, ["index", str(root)])

        assert result.exit_code == 3
        assert not (root / ".claude" / "code-index.json").exists()

    def test_vendored_sources_do_not_count(self, make_tree):
        root = make_tree({
            "go.mod": "module example.com/app\n",
            "vendor/github.com/x/auth/auth.go": "package auth\n",
        })
        result = runner.invoke(app, ["index", str(root)])

        assert result.exit_code == 3


class TestDepsCommand:
    """Tests for 'ctx deps'."""

    def test_default_format_is_mermaid(self, sample_next_copy: Path):
        result = runner.invoke(app, ["deps", str(sample_next_copy)])

        assert result.exit_code == 0
        text = (sample_next_copy / ".claude" / "deps.mermaid").read_text()
        assert "graph LR" in text
        assert (sample_next_copy / ".claude" / "snapshot.json").is_file()
        assert "Edges:" in result.stdout

    def test_json_format(self, sample_next_copy: Path):
        result = runner.invoke(app, ["deps", str(sample_next_copy), "--format", "json"])

        assert result.exit_code == 0
        payload = json.loads((sample_next_copy / ".claude" / "deps.json").read_text())
        assert {"from": "src/lib/users.ts", "to": "src/lib/db.ts"} in payload["edges"]

    def test_dot_format(self, sample_next_copy: Path):
        result = runner.invoke(app, ["deps", str(sample_next_copy), "-f", "dot"])

        assert result.exit_code == 0
        assert "digraph deps" in (sample_next_copy / ".claude" / "deps.dot").read_text()

    def test_invalid_format(self, sample_next_copy: Path):
        result = runner.invoke(app, ["deps", str(sample_next_copy), "--format", "svg"])

        assert result.exit_code == 2
        assert not (sample_next_copy / ".claude").exists()


class TestAllCommand:
    def test_writes_every_artifact(self, sample_next_copy: Path):
        result = runner.invoke(app, ["all", str(sample_next_copy), "--workers", "2"])

        assert result.exit_code == 0
        out = sample_next_copy / ".claude"
        assert sorted(p.name for p in out.iterdir()) == [
            "code-index.json", "deps.mermaid", "snapshot.json",
        ]


class TestDetectCommand:
    def test_detect_prints_profile(self, sample_next_path: Path):
        result = runner.invoke(app, ["detect", str(sample_next_path)])

        assert result.exit_code == 0
        assert "nextjs" in result.stdout

    def test_detect_go_module(self, go_project: Path):
        result = runner.invoke(app, ["detect", str(go_project)])

        assert result.exit_code == 0
        assert "example.com/app" in result.stdout


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

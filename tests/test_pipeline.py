"""End-to-end tests for the indexing pipeline."""

import shutil
from pathlib import Path

import pytest

from codectx_cli.config_manager import IndexSettings
from codectx_cli.errors import NoSourceFilesError, ProjectRootError
from codectx_cli.graph_export import (
    index_payload,
    render_adjacency_json,
    render_index_json,
    render_mermaid,
)
from codectx_cli.pipeline import IndexPipeline, build_graph, build_index


def _index(root: Path, **overrides):
    payload = index_payload(build_index(root, IndexSettings(**overrides)))
    payload.pop("generated")
    return payload


class TestSampleNextProject:
    """The static Next.js fixture exercises every extractor."""

    def test_profile(self, sample_next_path: Path):
        payload = _index(sample_next_path)

        assert payload["project_type"] == "nextjs"
        assert payload["profile"] == "node"
        assert payload["framework"] == "nextjs"

    def test_entry_points(self, sample_next_path: Path):
        assert _index(sample_next_path)["entry_points"] == {
            "* /legacy": "src/pages/api/legacy/index.ts:1",
            "DELETE /users/:id": "src/app/api/users/[id]/route.ts:10",
            "GET /users": "src/app/api/users/route.ts:4",
            "GET /users/:id": "src/app/api/users/[id]/route.ts:5",
            "POST /users": "src/app/api/users/route.ts:6",
        }

    def test_exports(self, sample_next_path: Path):
        exports = _index(sample_next_path)["exports"]

        assert exports["src/lib/users.ts"] == ["createUser", "deleteUser", "getUser", "listUsers"]
        assert exports["src/lib/format/index.ts"] == ["formatName", "initials"]
        assert exports["src/auth/session.ts"] == ["SESSION_COOKIE", "readSession"]
        assert exports["src/components/UserCard.tsx"] == ["UserCard"]
        assert "src/lib/users.test.ts" not in exports
        assert list(exports) == sorted(exports)

    def test_types(self, sample_next_path: Path):
        assert _index(sample_next_path)["types"] == {
            "User": "src/types/user.ts:1",
            "UserId": "src/types/user.ts:6",
        }

    def test_concepts(self, sample_next_path: Path):
        concepts = _index(sample_next_path)["concepts"]

        assert concepts == {
            "authentication": ["src/auth/session.ts"],
            "database": ["src/lib/db.ts"],
            "api": ["src/app/api/users/[id]/route.ts", "src/app/api/users/route.ts"],
        }
        assert "payments" not in concepts

    def test_dependency_graph(self, sample_next_path: Path):
        graph = build_graph(sample_next_path)

        assert [(e.source, e.target) for e in graph.edges] == [
            ("src/app/api/users/[id]/route.ts", "src/lib/users.ts"),
            ("src/app/api/users/[id]/route.ts", "src/types/user.ts"),
            ("src/app/api/users/route.ts", "src/lib/users.ts"),
            ("src/components/UserCard.tsx", "src/lib/format/index.ts"),
            ("src/components/UserCard.tsx", "src/types/user.ts"),
            ("src/lib/db.ts", "src/types/user.ts"),
            ("src/lib/users.ts", "src/lib/db.ts"),
            ("src/lib/users.ts", "src/lib/format/index.ts"),
            ("src/lib/users.ts", "src/types/user.ts"),
        ]

    def test_no_dangling_references(self, sample_next_path: Path):
        pipeline = IndexPipeline(sample_next_path)
        result = pipeline.run()
        known = pipeline.known_paths()

        for edge in result.graph.edges:
            assert edge.source in known
            assert edge.target in known
        for loc in list(result.index.entry_points.entries.values()) + list(result.index.types.entries.values()):
            assert loc.file_path in known
        for files in result.index.concepts.entries.values():
            assert set(files) <= known
        assert set(result.index.exports.entries) <= known

    def test_idempotent_apart_from_timestamp(self, sample_next_path: Path):
        first = IndexPipeline(sample_next_path).run()
        second = IndexPipeline(sample_next_path).run()
        second.index.generated = first.index.generated
        second.graph.generated = first.graph.generated

        assert render_index_json(first.index) == render_index_json(second.index)
        assert render_mermaid(first.graph) == render_mermaid(second.graph)
        assert render_adjacency_json(first.graph) == render_adjacency_json(second.graph)

    def test_index_and_graph_share_a_timestamp(self, sample_next_path: Path):
        result = IndexPipeline(sample_next_path).run()
        assert result.index.generated == result.graph.generated


class TestOtherProfiles:
    def test_python_project(self, python_project: Path):
        payload = _index(python_project)

        assert payload["project_type"] == "python"
        assert payload["entry_points"] == {
            "GET /users/{user_id}": "shop/api/routes.py:8",
            "POST /users": "shop/api/routes.py:12",
        }
        assert payload["exports"]["shop/__init__.py"] == ["User", "create_app"]
        assert payload["exports"]["shop/api/helpers.py"] == ["paginate"]
        assert payload["types"] == {"Point": "shop/models.py:9", "User": "shop/models.py:3"}
        assert payload["concepts"]["testing"] == ["tests/test_models.py"]

    def test_go_project_keeps_package_edges(self, go_project: Path):
        graph = build_graph(go_project)
        payload = _index(go_project)

        assert [(e.source, e.target) for e in graph.edges] == [("main.go", "internal/store/")]
        assert payload["entry_points"] == {
            "GET /items/{id}": "main.go:13",
            "* /health": "main.go:14",
        }
        assert payload["exports"]["internal/store/store.go"] == ["Get", "Item", "MaxItems"]
        assert payload["types"] == {
            "Item": "internal/store/store.go:3",
            "cache": "internal/store/store.go:4",
        }

    def test_rust_project(self, rust_project: Path):
        payload = _index(rust_project)

        assert payload["entry_points"] == {}
        assert payload["exports"]["src/lib.rs"] == ["Role", "User", "models"]
        assert payload["types"] == {"Role": "src/models.rs:4", "User": "src/models.rs:3"}

    def test_dependency_caches_never_reach_concepts(self, make_tree):
        root = make_tree({
            "pyproject.toml": "[project]\nname = \"app\"\n",
            "app/main.py": "def main(): ...\n",
            "app/auth/login.py": "def login(): ...\n",
            ".venv/lib/python3.12/site-packages/requests/auth.py": "def get_auth(): ...\n",
            "venv/lib/site-packages/jwt/api.py": "def decode(): ...\n",
            "vendor/github.com/x/auth/auth.go": "package auth\n",
        })
        payload = _index(root)

        assert payload["concepts"] == {"authentication": ["app/auth/login.py"]}
        assert sorted(payload["exports"]) == ["app/auth/login.py", "app/main.py"]

    def test_unknown_profile_still_collects_concepts(self, make_tree):
        root = make_tree({"scripts/auth/login.py": "def login(): ...\n"})
        payload = _index(root)

        assert payload["project_type"] == "unknown"
        assert payload["concepts"] == {"authentication": ["scripts/auth/login.py"]}
        assert payload["exports"] == {}
        assert len(build_graph(root).edges) == 0


class TestSettings:
    def test_concept_limit(self, make_tree):
        root = make_tree({f"src/jobs/job{i}.ts": "" for i in range(5)})
        assert len(_index(root, concept_limit=2)["concepts"]["scheduling"]) == 2

    def test_exclude_patterns(self, sample_next_copy: Path):
        payload = _index(sample_next_copy, exclude=frozenset({"src/pages"}))
        assert "* /legacy" not in payload["entry_points"]

    def test_output_dir_is_not_indexed(self, sample_next_copy: Path):
        artifacts = sample_next_copy / ".claude"
        artifacts.mkdir()
        (artifacts / "stale.ts").write_text("export const stale = 1;\n", encoding="utf-8")

        assert ".claude/stale.ts" not in _index(sample_next_copy)["exports"]

    def test_single_worker(self, sample_next_path: Path):
        assert _index(sample_next_path, workers=1) == _index(sample_next_path, workers=4)


class TestErrors:
    def test_missing_root(self, temp_dir: Path):
        with pytest.raises(ProjectRootError):
            IndexPipeline(temp_dir / "nope")

    def test_no_source_files(self, make_tree):
        root = make_tree({"README.md": "# docs\n", "package.json": "{}"})
        with pytest.raises(NoSourceFilesError):
            IndexPipeline(root).run()

    def test_sources_only_in_excluded_dirs(self, make_tree):
        root = make_tree({"node_modules/x/index.js": ""})
        with pytest.raises(NoSourceFilesError):
            build_index(root)

    def test_sources_only_in_a_virtualenv(self, make_tree):
        root = make_tree({
            "pyproject.toml": "",
            ".venv/lib/site-packages/pkg/mod.py": "def f(): ...\n",
        })
        with pytest.raises(NoSourceFilesError):
            build_index(root)

    def test_deleted_file_does_not_leak(self, sample_next_copy: Path):
        shutil.rmtree(sample_next_copy / "src" / "types")
        graph = build_graph(sample_next_copy)

        assert all(e.target != "src/types/user.ts" for e in graph.edges)

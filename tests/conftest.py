"""Pytest configuration and fixtures for codectx tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) below *root*."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def make_tree(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Return a helper that populates the temporary directory."""

    def _make(files: Dict[str, str]) -> Path:
        return write_tree(temp_dir, files)

    return _make


@pytest.fixture
def sample_next_path() -> Path:
    """Path to the static Next.js sample project."""
    return Path(__file__).parent / "fixtures" / "sample_next"


@pytest.fixture
def sample_next_copy(sample_next_path: Path, temp_dir: Path) -> Path:
    """A writable copy of the Next.js sample project."""
    target = temp_dir / "sample_next"
    shutil.copytree(sample_next_path, target)
    return target


@pytest.fixture
def python_project(make_tree) -> Path:
    return make_tree({
        "pyproject.toml": "[project]\nname = 'shop'\n",
        "shop/__init__.py": "from .models import User\n__all__ = ['User', 'create_app']\n",
        "shop/models.py": (
            "from typing import NamedTuple\n"
            "\n"
            "class User:\n"
            "    pass\n"
            "\n"
            "class _Hidden:\n"
            "    pass\n"
            "\n"
            "Point = NamedTuple('Point', [('x', int)])\n"
        ),
        "shop/api/routes.py": (
            "from fastapi import APIRouter\n"
            "from ..models import User\n"
            "from . import helpers\n"
            "import shop.services.billing\n"
            "\n"
            "router = APIRouter()\n"
            "\n"
            "@router.get(\"/users/{user_id}\")\n"
            "async def get_user(user_id: int):\n"
            "    return User()\n"
            "\n"
            "@router.post('/users')\n"
            "def create_user():\n"
            "    pass\n"
        ),
        "shop/api/__init__.py": "",
        "shop/api/helpers.py": "def paginate():\n    pass\n\ndef _internal():\n    pass\n",
        "shop/services/__init__.py": "",
        "shop/services/billing.py": "import os\nimport requests\n\nasync def charge():\n    pass\n",
        "tests/test_models.py": "from shop.models import User\n",
    })


@pytest.fixture
def go_project(make_tree) -> Path:
    return make_tree({
        "go.mod": "module example.com/app\n\ngo 1.22\n",
        "main.go": (
            "package main\n"
            "\n"
            "import (\n"
            "\t\"fmt\"\n"
            "\t\"net/http\"\n"
            "\n"
            "\t\"example.com/app/internal/store\"\n"
            "\t\"example.com/app/missing\"\n"
            ")\n"
            "\n"
            "func main() {\n"
            "\tmux := http.NewServeMux()\n"
            "\tmux.HandleFunc(\"GET /items/{id}\", store.Get)\n"
            "\tmux.HandleFunc(\"/health\", health)\n"
            "\tfmt.Println(\"ok\")\n"
            "}\n"
        ),
        "internal/store/store.go": (
            "package store\n"
            "\n"
            "type Item struct{}\n"
            "type cache map[string]Item\n"
            "\n"
            "func Get() {}\n"
            "func (i Item) Name() string { return \"\" }\n"
            "func helper() {}\n"
            "\n"
            "const (\n"
            "\tMaxItems = 10\n"
            "\tminItems = 1\n"
            ")\n"
        ),
        "internal/store/store_test.go": "package store\n",
    })


@pytest.fixture
def rust_project(make_tree) -> Path:
    return make_tree({
        "Cargo.toml": "[package]\nname = \"app\"\n",
        "src/lib.rs": "pub mod models;\nmod util;\npub use models::{User, Role as R};\n",
        "src/models.rs": (
            "use crate::util::helpers::slugify;\n"
            "\n"
            "pub struct User {}\n"
            "pub enum Role { Admin }\n"
            "pub(crate) fn internal() {}\n"
        ),
        "src/util/mod.rs": "pub mod helpers;\n",
        "src/util/helpers.rs": "pub fn slugify() {}\n",
    })

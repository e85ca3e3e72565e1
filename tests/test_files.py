"""Tests for project file access."""

from pathlib import Path

import pytest
from livepreview.core.files import ProjectFiles, normalize
from livepreview.core.types import ProjectPath
from livepreview.errors import DecodeError


class TestNormalize:
    """Tests for normalize()."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/index.html", "/index.html"),
            ("index.html", "/index.html"),
            ("/a/./b/../c.html", "/a/c.html"),
            ("//a//b.css", "/a/b.css"),
            ("/assets/", "/assets/"),
            ("/", "/"),
        ],
    )
    def test__inside_root__normalized(self, path: str, expected: str) -> None:
        assert normalize(path) == expected

    @pytest.mark.parametrize("path", ["/../secret.html", "/a/../../b.html", ".."])
    def test__escaping_root__returns_none(self, path: str) -> None:
        assert normalize(path) is None


class TestProjectFiles:
    """Tests for ProjectFiles."""

    def test__resolve__maps_under_root(self, project_dir: Path) -> None:
        files = ProjectFiles(project_dir)

        assert files.resolve("/css/site.css") == project_dir / "css" / "site.css"
        assert files.resolve("/../etc/passwd") is None

    def test__to_project_path__inverse_of_resolve(self, project_dir: Path) -> None:
        files = ProjectFiles(project_dir)

        assert files.to_project_path(project_dir / "css" / "site.css") == "/css/site.css"
        assert files.to_project_path(project_dir.parent / "other.html") is None

    def test__default_document__picks_existing_name(self, project_dir: Path) -> None:
        (project_dir / "docs").mkdir()
        (project_dir / "docs" / "index.htm").write_text("<p>htm</p>")
        files = ProjectFiles(project_dir)

        assert files.default_document(ProjectPath("/docs/")) == "/docs/index.htm"

    def test__default_document__falls_back_to_first_name(self, project_dir: Path) -> None:
        files = ProjectFiles(project_dir, ["home.html", "index.html"])

        assert files.default_document(ProjectPath("/")) == "/home.html"

    @pytest.mark.asyncio
    async def test__read_text__returns_content(self, project_dir: Path) -> None:
        (project_dir / "index.html").write_text("<p>héllo</p>", encoding="utf-8")
        files = ProjectFiles(project_dir)

        assert await files.read_text(ProjectPath("/index.html")) == "<p>héllo</p>"

    @pytest.mark.asyncio
    async def test__read_bytes__returns_content(self, project_dir: Path) -> None:
        (project_dir / "logo.png").write_bytes(b"\x89PNG")
        files = ProjectFiles(project_dir)

        assert await files.read_bytes(ProjectPath("/logo.png")) == b"\x89PNG"

    @pytest.mark.asyncio
    async def test__missing_file__raises_file_not_found(self, project_dir: Path) -> None:
        files = ProjectFiles(project_dir)

        with pytest.raises(FileNotFoundError):
            await files.read_text(ProjectPath("/missing.html"))

    @pytest.mark.asyncio
    async def test__outside_root__raises_file_not_found(self, project_dir: Path) -> None:
        files = ProjectFiles(project_dir)

        with pytest.raises(FileNotFoundError, match="outside the project"):
            await files.read_text(ProjectPath("/../x.html"))

    @pytest.mark.asyncio
    async def test__invalid_utf8__raises_decode_error(self, project_dir: Path) -> None:
        (project_dir / "latin1.html").write_bytes(b"<p>caf\xe9</p>")
        files = ProjectFiles(project_dir)

        with pytest.raises(DecodeError, match="latin1.html") as excinfo:
            await files.read_text(ProjectPath("/latin1.html"))

        assert isinstance(excinfo.value, OSError)
        assert excinfo.value.path == "/latin1.html"

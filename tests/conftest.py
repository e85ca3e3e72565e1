"""Shared test fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
from livepreview.config import (
    Config,
    LiveReloadConfig,
    PreviewConfig,
    ProjectConfig,
    ServerConfig,
)
from livepreview.core.documents import LiveDocumentCache
from livepreview.core.files import ProjectFiles
from livepreview.core.probe import CapabilityCheck, CapabilityProbe, fixed_capability
from livepreview.core.registry import URLRegistry
from livepreview.core.serving import PreviewServer
from livepreview.core.types import ProjectPath


class FakeHTMLRewriter:
    """HTML rewriter that tags its output and counts calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[ProjectPath, str]] = []

    async def rewrite(self, path: ProjectPath, html: str, server: PreviewServer) -> str:
        self.calls.append((path, html))
        return f"<!-- rewritten {path} -->{html}"


class FakeCSSRewriter:
    """CSS rewriter that tags its output and counts calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[ProjectPath, str]] = []

    async def rewrite(self, path: ProjectPath, css: str) -> str:
        self.calls.append((path, css))
        return f"/* rewritten {path} */{css}"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create an empty project root."""
    root = tmp_path / "project"
    root.mkdir(exist_ok=True)
    return root


@pytest.fixture
def test_config(project_dir: Path) -> Config:
    """Create a test configuration rooted at project_dir with live reload off."""
    return Config(
        project=ProjectConfig(root=project_dir),
        server=ServerConfig(),
        preview=PreviewConfig(handle_urls="auto"),
        live_reload=LiveReloadConfig(enabled=False),
    )


@pytest.fixture
def html_rewriter() -> FakeHTMLRewriter:
    return FakeHTMLRewriter()


@pytest.fixture
def css_rewriter() -> FakeCSSRewriter:
    return FakeCSSRewriter()


@pytest.fixture
def make_server(
    project_dir: Path,
    html_rewriter: FakeHTMLRewriter,
    css_rewriter: FakeCSSRewriter,
) -> Callable[..., PreviewServer]:
    """Build a PreviewServer over project_dir with fake rewriters.

    The capability check defaults to "handles supported".
    """

    def factory(check: CapabilityCheck | None = None) -> PreviewServer:
        files = ProjectFiles(project_dir)
        return PreviewServer(
            files,
            URLRegistry(),
            LiveDocumentCache(),
            CapabilityProbe(check or fixed_capability(True)),
            html_rewriter=html_rewriter,
            css_rewriter=css_rewriter,
            transport_script=lambda path: "<script>transport</script>",
        )

    return factory

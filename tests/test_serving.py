"""Tests for the preview server."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest
from livepreview.core.documents import EditorDocument
from livepreview.core.probe import fixed_capability
from livepreview.core.serving import PreviewServer, ServeResult
from livepreview.core.types import ProjectPath
from livepreview.errors import (
    DecodeError,
    ProbeError,
    RewriteError,
    UnexpectedKindError,
    UnknownHandleError,
)

from tests.conftest import FakeCSSRewriter, FakeHTMLRewriter

PAGE = "<html><head><title>t</title></head><body></body></html>"

ServerFactory = Callable[..., PreviewServer]


class TestCanServe:
    """Tests for PreviewServer.can_serve()."""

    @pytest.mark.parametrize("path", ["/index.html", "/docs/page.htm", "/assets/", "/"])
    def test__html_or_directory__servable(self, make_server: ServerFactory, path: str) -> None:
        assert make_server().can_serve(path) is True

    @pytest.mark.parametrize("path", ["/app.js", "/style.css", "/readme.md", "/logo.png"])
    def test__other_kinds__not_servable(self, make_server: ServerFactory, path: str) -> None:
        assert make_server().can_serve(path) is False

    @pytest.mark.parametrize("path", ["/../index.html", "/a/../../b/"])
    def test__outside_root__not_servable(self, make_server: ServerFactory, path: str) -> None:
        assert make_server().can_serve(path) is False

    def test__missing_file__still_servable(self, make_server: ServerFactory) -> None:
        assert make_server().can_serve("/does/not/exist.html") is True


class TestURLMapping:
    """Tests for path_to_url() and url_to_path()."""

    def test__registered_handle__maps_back_to_path(self, make_server: ServerFactory) -> None:
        server = make_server()
        handle = server.registry.get_or_create(ProjectPath("/a.css"), "", "text/css")

        assert server.path_to_url(ProjectPath("/a.css")) == handle
        assert server.url_to_path(handle) == "/a.css"

    def test__relative_url__is_project_path(self, make_server: ServerFactory) -> None:
        assert make_server().url_to_path("docs/../index.html") == "/index.html"

    @pytest.mark.parametrize("url", ["https://example.com/index.html", "data:text/html,hi", ""])
    def test__remote_or_empty_url__not_owned(self, make_server: ServerFactory, url: str) -> None:
        assert make_server().url_to_path(url) is None

    def test__unregistered_path__has_no_handle(self, make_server: ServerFactory) -> None:
        assert make_server().path_to_url(ProjectPath("/a.css")) is None


class TestServeHTMLFromDisk:
    """Tests for serving HTML without a live document."""

    @pytest.mark.asyncio
    async def test__disk_html__transport_injected_once_before_head(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)
        server = make_server(fixed_capability(False))

        result = await server.serve_for_path(ProjectPath("/index.html"))

        assert result.text is not None
        assert result.text.count("<script>transport</script>") == 1
        assert "<script>transport</script></head>" in result.text
        assert html_rewriter.calls[0][0] == "/index.html"

    @pytest.mark.asyncio
    async def test__handle_strategy__returns_registered_handle(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)
        server = make_server(fixed_capability(True))

        result = await server.serve_for_path(ProjectPath("/index.html"))

        assert result.text is None
        assert result.handle is not None
        entry = server.registry.resolve(result.handle)
        assert entry is not None
        assert entry.mime_type == "text/html"
        assert isinstance(entry.payload, str)
        assert entry.payload.startswith("<!-- rewritten /index.html -->")

    @pytest.mark.asyncio
    async def test__served_twice__gets_fresh_handle(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)
        server = make_server(fixed_capability(True))

        first = await server.serve_for_path(ProjectPath("/index.html"))
        second = await server.serve_for_path(ProjectPath("/index.html"))

        assert first.handle != second.handle
        assert server.registry.resolve(first.handle or "") is None

    @pytest.mark.asyncio
    async def test__directory__serves_default_document(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "docs").mkdir()
        (project_dir / "docs" / "index.html").write_text(PAGE)
        server = make_server(fixed_capability(False))

        result = await server.serve_for_path(ProjectPath("/docs/"))

        assert result.text is not None
        assert html_rewriter.calls[0][0] == "/docs/index.html"

    @pytest.mark.asyncio
    async def test__missing_file__raises_and_skips_rewrite(
        self,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        server = make_server()

        with pytest.raises(FileNotFoundError):
            await server.serve_for_path(ProjectPath("/missing.html"))
        assert html_rewriter.calls == []


class TestServeLiveDocuments:
    """Tests for serving documents that have a live version."""

    @pytest.mark.asyncio
    async def test__live_html__overrides_disk(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "index.html").write_text("<p>saved</p>")
        server = make_server(fixed_capability(False))
        server.add(EditorDocument(ProjectPath("/index.html"), "<head></head><p>unsaved</p>"))

        result = await server.serve_for_path(ProjectPath("/index.html"))

        assert result.text is not None
        assert "unsaved" in result.text
        assert "<p>saved</p>" not in result.text
        # Instrumented by the document itself, not by the disk fallback
        assert "<script>transport</script>" not in result.text
        assert "data-livepreview-transport" in html_rewriter.calls[0][1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/./index.html", "/a/../index.html", "//index.html"])
    async def test__non_canonical_path__live_document_used(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        path: str,
    ) -> None:
        (project_dir / "index.html").write_text("<p>DISK</p>")
        server = make_server(fixed_capability(False))
        server.add(EditorDocument(ProjectPath("/index.html"), "<p>LIVE</p>"))

        assert server.can_serve(path)
        result = await server.serve_for_path(ProjectPath(path))

        assert result.text is not None
        assert "<p>LIVE</p>" in result.text
        assert "<p>DISK</p>" not in result.text

    @pytest.mark.asyncio
    async def test__path_above_root__raises_file_not_found(
        self,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        server = make_server()

        with pytest.raises(FileNotFoundError, match="outside the project"):
            await server.serve_for_path(ProjectPath("/../index.html"))
        assert html_rewriter.calls == []

    @pytest.mark.asyncio
    async def test__live_html_without_file__served(self, make_server: ServerFactory) -> None:
        server = make_server(fixed_capability(False))
        server.add(EditorDocument(ProjectPath("/draft.html"), "<p>draft</p>"))

        result = await server.serve_for_path(ProjectPath("/draft.html"))

        assert result.text is not None
        assert "<p>draft</p>" in result.text

    @pytest.mark.asyncio
    async def test__removed_document__falls_back_to_disk(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "index.html").write_text("<p>saved</p>")
        server = make_server(fixed_capability(False))
        server.add(EditorDocument(ProjectPath("/index.html"), "<p>unsaved</p>"))
        server.remove(ProjectPath("/index.html"))

        result = await server.serve_for_path(ProjectPath("/index.html"))

        assert result.text is not None
        assert "<p>saved</p>" in result.text


class TestServeCSS:
    """Tests for serving stylesheets."""

    @pytest.mark.asyncio
    async def test__first_request__rewrites_and_registers(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        (project_dir / "style.css").write_text("body { color: red; }")
        server = make_server()

        result = await server.serve_for_path(ProjectPath("/style.css"))

        assert result.handle is not None
        entry = server.registry.resolve(result.handle)
        assert entry is not None
        assert entry.mime_type == "text/css"
        assert entry.payload == "/* rewritten /style.css */body { color: red; }"
        assert len(css_rewriter.calls) == 1

    @pytest.mark.asyncio
    async def test__second_request__reuses_handle_without_rewrite(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        (project_dir / "style.css").write_text("body {}")
        server = make_server()

        first = await server.serve_for_path(ProjectPath("/style.css"))
        second = await server.serve_for_path(ProjectPath("/style.css"))

        assert first.handle == second.handle
        assert len(css_rewriter.calls) == 1

    @pytest.mark.asyncio
    async def test__registered_then_deleted__handle_reused_without_read(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        (project_dir / "style.css").write_text("body {}")
        server = make_server()

        first = await server.serve_for_path(ProjectPath("/style.css"))
        (project_dir / "style.css").unlink()
        second = await server.serve_for_path(ProjectPath("/./style.css"))

        assert second.handle == first.handle
        assert len(css_rewriter.calls) == 1

    @pytest.mark.asyncio
    async def test__invalidated__rewritten_again(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        (project_dir / "style.css").write_text("body {}")
        server = make_server()

        first = await server.serve_for_path(ProjectPath("/style.css"))
        assert server.invalidate(ProjectPath("/style.css")) is True
        second = await server.serve_for_path(ProjectPath("/style.css"))

        assert first.handle != second.handle
        assert len(css_rewriter.calls) == 2

    @pytest.mark.asyncio
    async def test__live_css__served_from_document(
        self,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        server = make_server()
        server.add(EditorDocument(ProjectPath("/live.css"), "p { margin: 0; }"))

        result = await server.serve_for_path(ProjectPath("/live.css"))

        assert result.handle is not None
        assert css_rewriter.calls == [("/live.css", "p { margin: 0; }")]

    @pytest.mark.asyncio
    async def test__css__does_not_wait_for_probe(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "style.css").write_text("body {}")

        async def never() -> bool:
            await asyncio.Event().wait()
            return True

        server = make_server(never)

        result = await asyncio.wait_for(server.serve_for_path(ProjectPath("/style.css")), 1)

        assert result.handle is not None


class TestServeErrors:
    """Tests for error propagation."""

    @pytest.mark.asyncio
    async def test__unexpected_kind__raises(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "app.js").write_text("let x = 1;")
        server = make_server()

        with pytest.raises(UnexpectedKindError, match="app.js"):
            await server.serve_for_path(ProjectPath("/app.js"))

    @pytest.mark.asyncio
    async def test__binary_other_kind__raises_unexpected_kind(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff")
        server = make_server()

        with pytest.raises(UnexpectedKindError, match="logo.png"):
            await server.serve_for_path(ProjectPath("/logo.png"))

    @pytest.mark.asyncio
    async def test__invalid_utf8_html__raises_read_error(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "index.html").write_bytes(b"<p>caf\xe9</p>")
        server = make_server()

        with pytest.raises(DecodeError, match="index.html") as excinfo:
            await server.serve_for_path(ProjectPath("/index.html"))

        assert isinstance(excinfo.value, OSError)
        assert html_rewriter.calls == []

    @pytest.mark.asyncio
    async def test__rewrite_error__propagates_unchanged(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        css_rewriter: FakeCSSRewriter,
    ) -> None:
        (project_dir / "style.css").write_text("body {}")
        error = RewriteError("/style.css", "bad input")

        async def failing(path: ProjectPath, css: str) -> str:
            raise error

        css_rewriter.rewrite = failing  # type: ignore[method-assign]
        server = make_server()

        with pytest.raises(RewriteError) as exc_info:
            await server.serve_for_path(ProjectPath("/style.css"))
        assert exc_info.value is error
        assert server.path_to_url(ProjectPath("/style.css")) is None

    @pytest.mark.asyncio
    async def test__probe_failure__html_not_served(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)

        async def broken() -> bool:
            raise RuntimeError("no pane")

        server = make_server(broken)

        with pytest.raises(ProbeError):
            await server.serve_for_path(ProjectPath("/index.html"))
        with pytest.raises(ProbeError):
            await server.ready_to_serve()
        assert html_rewriter.calls == []


class TestReadiness:
    """Tests for HTML requests racing the capability probe."""

    @pytest.mark.asyncio
    async def test__request_before_probe_settles__sees_final_strategy(
        self,
        project_dir: Path,
        make_server: ServerFactory,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)
        release = asyncio.Event()

        async def deferred() -> bool:
            await release.wait()
            return False

        server = make_server(deferred)
        requests = [
            asyncio.ensure_future(server.serve_for_path(ProjectPath("/index.html")))
            for _ in range(3)
        ]
        await asyncio.sleep(0.01)

        assert not any(request.done() for request in requests)

        release.set()
        results: list[ServeResult] = await asyncio.gather(*requests)

        assert all(result.text is not None and result.handle is None for result in results)
        assert len(server.registry) == 0


class TestServeForURL:
    """Tests for PreviewServer.serve_for_url()."""

    @pytest.mark.asyncio
    async def test__handle__serves_its_path(
        self,
        project_dir: Path,
        make_server: ServerFactory,
        html_rewriter: FakeHTMLRewriter,
    ) -> None:
        (project_dir / "index.html").write_text(PAGE)
        server = make_server(fixed_capability(True))
        first = await server.serve_for_path(ProjectPath("/index.html"))

        second = await server.serve_for_url(first.handle or "")

        assert second.handle is not None
        assert [call[0] for call in html_rewriter.calls] == ["/index.html", "/index.html"]

    @pytest.mark.asyncio
    async def test__unknown_handle__raises(self, make_server: ServerFactory) -> None:
        with pytest.raises(UnknownHandleError):
            await make_server().serve_for_url("blob:livepreview/unknown")

    @pytest.mark.asyncio
    async def test__remote_url__raises(self, make_server: ServerFactory) -> None:
        with pytest.raises(UnknownHandleError):
            await make_server().serve_for_url("https://example.com/")


class TestServeResult:
    """Tests for ServeResult."""

    def test__both_or_neither__rejected(self) -> None:
        with pytest.raises(ValueError):
            ServeResult()
        with pytest.raises(ValueError):
            ServeResult(text="x", handle="blob:x")  # type: ignore[arg-type]

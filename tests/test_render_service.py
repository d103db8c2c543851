"""Tests for the render orchestrator with fake collaborators."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

from resumepdf.modules.render.document import Measurements
from resumepdf.modules.render.schemas import RenderState, build_request
from resumepdf.modules.render.service import RenderService
from resumepdf.shared.errors import (
    BrowserNotFound,
    NavigationTimeout,
    PdfCaptureError,
    ServerStartTimeout,
    ServerUnreachable,
)

FULL_RUN = [
    RenderState.INIT,
    RenderState.SERVER_STARTING,
    RenderState.SERVER_READY,
    RenderState.TARGET_ACQUIRING,
    RenderState.RENDERING,
    RenderState.MEASURING_GEOMETRY,
    RenderState.EXPORTING,
    RenderState.DONE,
]


class FakeServer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.started = 0
        self.stopped = []

    async def start(self, port=None):
        self.started += 1
        if self.error:
            raise self.error
        return SimpleNamespace(ready_url="http://127.0.0.1:15555")

    async def stop(self, handle) -> None:
        self.stopped.append(handle)


class FakeBrowser:
    def __init__(self, close_error: Exception | None = None) -> None:
        self.close_error = close_error
        self.closed = False

    async def close(self) -> None:
        self.closed = True
        if self.close_error:
            raise self.close_error


class FakeResolver:
    def __init__(self, browser: FakeBrowser | None = None, error: Exception | None = None) -> None:
        self.browser = browser or FakeBrowser()
        self.error = error
        self.calls = 0

    async def acquire(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.browser


class FakeDocument:
    def __init__(self, content_height: float | None) -> None:
        self.page = object()
        self.measurements = Measurements(content_height_px=content_height, fonts_ready=True)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeRenderer:
    def __init__(self, content_height: float | None = None, error: Exception | None = None) -> None:
        self.document = FakeDocument(content_height)
        self.error = error
        self.calls = []

    async def render(self, browser, server_url, request, geometry, on_progress=None):
        self.calls.append((server_url, request, geometry))
        if self.error:
            raise self.error
        if on_progress:
            on_progress(RenderState.MEASURING_GEOMETRY)
        return self.document


class FakeExporter:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = []

    async def capture(self, page, geometry, content_height=None) -> bytes:
        self.calls.append((geometry, content_height))
        if self.error:
            raise self.error
        return b"%PDF-1.7 fake"


async def _reachable(url: str, timeout: float) -> None:
    return None


def _service(settings, **overrides) -> RenderService:
    parts = {
        "server": FakeServer(),
        "resolver": FakeResolver(),
        "renderer": FakeRenderer(),
        "exporter": FakeExporter(),
    }
    parts.update(overrides)
    return RenderService(settings, reachable=_reachable, **parts)


@pytest.fixture
def request_a4():
    return build_request({"metadata": {"template": "onyx", "page": {"format": "a4"}}})


class TestRenderServiceSuccess:

    def test_writes_pdf_and_cleans_up(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(settings)
        output = temp_dir / "out" / "resume.pdf"

        result = asyncio.run(service.render(request_a4, output))

        assert result.success is True
        assert result.state == RenderState.DONE
        assert result.artifact.path == str(output)
        assert result.artifact.size_bytes == len(b"%PDF-1.7 fake")
        assert output.read_bytes() == b"%PDF-1.7 fake"
        assert result.run_id.startswith("run_")

        assert service.history == FULL_RUN
        assert service.renderer.document.closed is True
        assert service.resolver.browser.closed is True
        assert len(service.server.stopped) == 1

    def test_passes_server_url_and_geometry(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(settings)
        asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        server_url, request, geometry = service.renderer.calls[0]
        assert server_url == "http://127.0.0.1:15555"
        assert request is request_a4
        assert (geometry.margin_x_px, geometry.margin_y_px) == (19, 16)

    def test_free_form_height_reaches_exporter(self, settings, temp_dir: Path) -> None:
        request = build_request({"metadata": {"template": "ditto", "page": {"format": "free-form"}}})
        service = _service(settings, renderer=FakeRenderer(content_height=1518))

        asyncio.run(service.render(request, temp_dir / "resume.pdf"))

        geometry, content_height = service.exporter.calls[0]
        assert geometry.is_free_form is True
        assert content_height == 1518

    def test_cleanup_failure_does_not_fail_run(self, settings, request_a4, temp_dir: Path) -> None:
        browser = FakeBrowser(close_error=RuntimeError("browser already gone"))
        service = _service(settings, resolver=FakeResolver(browser=browser))

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.success is True
        assert len(service.server.stopped) == 1


class TestRenderServiceFailures:

    def test_server_start_timeout(self, settings, request_a4, temp_dir: Path) -> None:
        server = FakeServer(error=ServerStartTimeout("Rendering server failed to start within 60 seconds"))
        service = _service(settings, server=server)
        output = temp_dir / "resume.pdf"

        result = asyncio.run(service.render(request_a4, output))

        assert result.success is False
        assert result.state == RenderState.FAILED
        assert result.error["code"] == "SERVER_START_TIMEOUT"
        assert not output.exists()
        assert service.resolver.calls == 0
        assert service.history == [RenderState.INIT, RenderState.SERVER_STARTING, RenderState.FAILED]

    def test_browser_not_found_stops_server(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(settings, resolver=FakeResolver(error=BrowserNotFound(["/usr/bin/chromium"])))

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.error["code"] == "BROWSER_NOT_FOUND"
        assert result.error["details"]["remediation"]
        assert len(service.server.stopped) == 1
        assert service.history[-2:] == [RenderState.TARGET_ACQUIRING, RenderState.FAILED]

    def test_navigation_timeout_closes_browser(self, settings, request_a4, temp_dir: Path) -> None:
        renderer = FakeRenderer(error=NavigationTimeout("Preview did not finish loading"))
        service = _service(settings, renderer=renderer)

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.error["code"] == "NAVIGATION_TIMEOUT"
        assert service.resolver.browser.closed is True
        assert len(service.server.stopped) == 1

    def test_capture_error_leaves_no_file(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(settings, exporter=FakeExporter(error=PdfCaptureError("PDF capture failed")))
        output = temp_dir / "resume.pdf"

        result = asyncio.run(service.render(request_a4, output))

        assert result.error["code"] == "PDF_CAPTURE_ERROR"
        assert not output.exists()
        assert service.renderer.document.closed is True
        assert service.resolver.browser.closed is True
        assert len(service.server.stopped) == 1

    def test_cleanup_failure_does_not_mask_primary_error(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(
            settings,
            resolver=FakeResolver(browser=FakeBrowser(close_error=RuntimeError("close failed"))),
            exporter=FakeExporter(error=PdfCaptureError("PDF capture failed")),
        )

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.error["code"] == "PDF_CAPTURE_ERROR"
        assert len(service.server.stopped) == 1

    def test_unexpected_error(self, settings, request_a4, temp_dir: Path) -> None:
        service = _service(settings, renderer=FakeRenderer(error=KeyError("boom")))

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.success is False
        assert result.error["code"] == "UNEXPECTED_ERROR"
        assert len(service.server.stopped) == 1

    def test_unreachable_server(self, settings, request_a4, temp_dir: Path) -> None:
        async def unreachable(url: str, timeout: float) -> None:
            raise ServerUnreachable(f"Server at {url} not reachable after 15000ms")

        service = RenderService(
            settings,
            server=FakeServer(),
            resolver=FakeResolver(),
            renderer=FakeRenderer(),
            exporter=FakeExporter(),
            reachable=unreachable,
        )

        result = asyncio.run(service.render(request_a4, temp_dir / "resume.pdf"))

        assert result.error["code"] == "SERVER_UNREACHABLE"
        assert len(service.server.stopped) == 1
        assert service.resolver.calls == 0

"""
Render service - orchestrates server, browser, page and capture for one
resume, with cleanup on every exit path.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from resumepdf.config import Settings, get_settings
from resumepdf.shared.errors import PdfCaptureError, ResumePdfError
from resumepdf.shared.ids import generate_run_id
from resumepdf.shared.logging import clear_run_context, get_logger, set_run_context

from .document import DocumentRenderer, RenderedDocument
from .exporter import PdfExporter
from .geometry import compute_geometry
from .schemas import PdfArtifact, RenderRequest, RenderResult, RenderState
from .server import ServerHandle, ServerLifecycle, wait_reachable
from .target import BrowserHandle, RenderTargetResolver

logger = get_logger(__name__)


@dataclass
class RenderSession:
    """Everything a run owns. Released in full by cleanup."""
    server: ServerHandle | None = None
    browser: BrowserHandle | None = None
    document: RenderedDocument | None = None


# =============================================================================
# SERVICE
# =============================================================================

class RenderService:
    """Renders a RenderRequest to a PDF file."""

    def __init__(
        self,
        settings: Settings | None = None,
        server: ServerLifecycle | None = None,
        resolver: RenderTargetResolver | None = None,
        renderer: DocumentRenderer | None = None,
        exporter: PdfExporter | None = None,
        reachable: Callable[[str, float], Awaitable[None]] = wait_reachable,
    ) -> None:
        self.settings = settings or get_settings()
        self.server = server or ServerLifecycle(self.settings)
        self.resolver = resolver or RenderTargetResolver(self.settings)
        self.renderer = renderer or DocumentRenderer(self.settings)
        self.exporter = exporter or PdfExporter()
        self.reachable = reachable
        self.state = RenderState.INIT
        self.history: list[RenderState] = []

    def _transition(self, state: RenderState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug(f"State -> {state.value}")

    async def render(self, request: RenderRequest, output_path: str | Path) -> RenderResult:
        """
        Render one resume to ``output_path``.

        The output file is written only after a successful capture. Failures
        are reported in the result, never raised; cleanup always runs.
        """
        run_id = generate_run_id()
        set_run_context(run_id)
        self.history = []
        self._transition(RenderState.INIT)
        start_time = time.time()
        session = RenderSession()

        logger.info(f"Template: {request.template}, Format: {request.page_format}")

        try:
            geometry = compute_geometry(request)

            self._transition(RenderState.SERVER_STARTING)
            logger.info("Starting rendering server...")
            session.server = await self.server.start()
            server_url = session.server.ready_url
            logger.info(f"Rendering server running at {server_url}")
            await self.reachable(server_url, self.settings.reachability_timeout)
            self._transition(RenderState.SERVER_READY)

            self._transition(RenderState.TARGET_ACQUIRING)
            session.browser = await self.resolver.acquire()

            self._transition(RenderState.RENDERING)
            session.document = await self.renderer.render(
                session.browser,
                server_url,
                request,
                geometry,
                on_progress=self._transition,
            )
            measurements = session.document.measurements

            self._transition(RenderState.EXPORTING)
            pdf_bytes = await self.exporter.capture(
                session.document.page,
                geometry,
                measurements.content_height_px if measurements else None,
            )
            artifact = self._write(pdf_bytes, Path(output_path))

            self._transition(RenderState.DONE)
            logger.info(f"PDF saved to: {artifact.path}")
            return RenderResult(
                success=True,
                run_id=run_id,
                state=self.state,
                artifact=artifact,
                duration_ms=int((time.time() - start_time) * 1000),
            )

        except ResumePdfError as e:
            failed_in = self.state
            self._transition(RenderState.FAILED)
            logger.error(f"Render failed during {failed_in.value}: {e.message}")
            return RenderResult(
                success=False,
                run_id=run_id,
                state=self.state,
                error=e.to_dict(),
                duration_ms=int((time.time() - start_time) * 1000),
            )

        except Exception as e:
            self._transition(RenderState.FAILED)
            logger.exception("Render failed")
            return RenderResult(
                success=False,
                run_id=run_id,
                state=self.state,
                error={"code": "UNEXPECTED_ERROR", "message": str(e), "details": {}},
                duration_ms=int((time.time() - start_time) * 1000),
            )

        finally:
            await self._cleanup(session)
            clear_run_context()

    def _write(self, pdf_bytes: bytes, output_path: Path) -> PdfArtifact:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(pdf_bytes)
        except OSError as e:
            raise PdfCaptureError(f"Failed to write PDF to {output_path}: {e}") from e
        return PdfArtifact(path=str(output_path), size_bytes=len(pdf_bytes))

    async def _cleanup(self, session: RenderSession) -> None:
        """Release page, browser and server. Logs failures, never raises."""
        if session.document is not None:
            try:
                await session.document.close()
            except Exception as e:
                logger.warning(f"Failed to close page: {e}")
            session.document = None

        if session.browser is not None:
            try:
                await session.browser.close()
            except Exception as e:
                logger.warning(f"Failed to close browser: {e}")
            session.browser = None

        if session.server is not None:
            try:
                await self.server.stop(session.server)
            except Exception as e:
                logger.warning(f"Failed to stop rendering server: {e}")
            session.server = None

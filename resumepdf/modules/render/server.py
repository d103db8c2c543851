"""
Ephemeral rendering server lifecycle.

Spawns the preview server as a child process, learns its address, waits
until it accepts connections, and guarantees it is terminated.
"""

import asyncio
import contextlib
import random
import re
import shlex
import shutil
import sys
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from resumepdf.config import Settings, get_settings
from resumepdf.shared.errors import (
    ServerExitedEarly,
    ServerSpawnError,
    ServerStartTimeout,
    ServerUnreachable,
)
from resumepdf.shared.logging import get_logger

logger = get_logger(__name__)


BASE_PORT = 15173
READ_CHUNK = 4096
READ_POLL_INTERVAL = 0.1
STOP_GRACE_PERIOD = 5.0

REACHABILITY_ATTEMPT_TIMEOUT = 2.0
REACHABILITY_RETRY_INTERVAL = 0.3

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


# =============================================================================
# READINESS PROBES
# =============================================================================

class ReadinessProbe(ABC):
    """Reports the server URL once the server announces it."""

    def feed(self, text: str) -> None:
        """Receive a chunk of combined stdout/stderr output."""

    def finish(self) -> None:
        """Output stream reached EOF."""

    @abstractmethod
    def ready_url(self) -> str | None:
        ...


class StatusFileProbe(ReadinessProbe):
    """Reads the URL the preview server writes to its status file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def ready_url(self) -> str | None:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return text or None


class OutputScanProbe(ReadinessProbe):
    """Scans server output for the first ``scheme://host:port`` URL."""

    URL_PATTERN = re.compile(r"https?://[^\s]+?:\d+")

    def __init__(self) -> None:
        self._buffer = ""
        self._closed = False

    def feed(self, text: str) -> None:
        self._buffer += _ANSI_ESCAPE.sub("", text)

    def finish(self) -> None:
        self._closed = True

    def ready_url(self) -> str | None:
        match = self.URL_PATTERN.search(self._buffer)
        if match is None:
            return None
        # The port may continue in the next chunk
        if match.end() == len(self._buffer) and not self._closed:
            return None
        return match.group(0).replace('"', "").replace("'", "")


# =============================================================================
# HANDLE
# =============================================================================

@dataclass
class ServerHandle:
    process: asyncio.subprocess.Process
    ready_url: str = ""
    workdir: Path | None = None
    output: list[str] = field(default_factory=list)
    drain_task: asyncio.Task | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return self.process.returncode is None


def random_port() -> int:
    """Pick a port in a high range to avoid clashing with a dev server."""
    return BASE_PORT + random.randint(0, 999)


# =============================================================================
# LIFECYCLE
# =============================================================================

class ServerLifecycle:
    """Starts and stops the ephemeral preview server."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def build_command(self, port: int, status_file: Path) -> list[str]:
        values = {
            "port": str(port),
            "host": self.settings.server_host,
            "root": str(self.settings.preview_root),
            "status_file": str(status_file),
        }
        if self.settings.server_command:
            return [token.format(**values) for token in shlex.split(self.settings.server_command)]

        return [
            sys.executable, "-m", "resumepdf.serve",
            "--host", values["host"],
            "--port", values["port"],
            "--root", values["root"],
            "--status-file", values["status_file"],
        ]

    async def start(self, port: int | None = None) -> ServerHandle:
        """
        Spawn the server and wait for it to announce its URL.

        Args:
            port: Port to bind; a random high port when omitted

        Returns:
            Handle owning the process, with ``ready_url`` set

        Raises:
            ServerStartTimeout: no URL announced within the start timeout
            ServerExitedEarly: process exited non-zero before announcing
            ServerSpawnError: the server command could not be run
        """
        port = port or self.settings.server_port or random_port()
        workdir = Path(tempfile.mkdtemp(prefix="resumepdf-"))
        status_file = workdir / "server-url"

        try:
            command = self.build_command(port, status_file)
            logger.debug(f"Spawning rendering server: {shlex.join(command)}")
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError, KeyError) as e:
            shutil.rmtree(workdir, ignore_errors=True)
            raise ServerSpawnError(
                f"Failed to spawn rendering server: {e}",
                details={"command": self.settings.server_command or "resumepdf.serve"},
            ) from e
        except BaseException:
            shutil.rmtree(workdir, ignore_errors=True)
            raise
        handle = ServerHandle(process=process, workdir=workdir)
        probes: list[ReadinessProbe] = [StatusFileProbe(status_file), OutputScanProbe()]

        try:
            handle.ready_url = await asyncio.wait_for(
                self._await_ready(handle, probes),
                timeout=self.settings.server_start_timeout,
            )
        except asyncio.TimeoutError:
            await self.stop(handle)
            raise ServerStartTimeout(
                f"Rendering server failed to start within {self.settings.server_start_timeout:g} seconds",
                details={"output": "".join(handle.output)[-2000:]},
            ) from None
        except BaseException:
            await self.stop(handle)
            raise

        handle.drain_task = asyncio.create_task(self._drain(handle))
        return handle

    async def _await_ready(self, handle: ServerHandle, probes: list[ReadinessProbe]) -> str:
        stdout = handle.process.stdout
        assert stdout is not None

        while True:
            # A URL from a process that already exited is stale
            if handle.process.returncode is None:
                for probe in probes:
                    url = probe.ready_url()
                    if url:
                        return url

            try:
                chunk = await asyncio.wait_for(stdout.read(READ_CHUNK), timeout=READ_POLL_INTERVAL)
            except asyncio.TimeoutError:
                continue

            if not chunk:
                for probe in probes:
                    probe.finish()
                return await self._await_exit(handle, probes)

            text = chunk.decode("utf-8", errors="replace")
            handle.output.append(text)
            for probe in probes:
                probe.feed(text)

    async def _await_exit(self, handle: ServerHandle, probes: list[ReadinessProbe]) -> str:
        """Output is closed; keep checking probes until the process exits."""
        while True:
            try:
                returncode = await asyncio.wait_for(handle.process.wait(), timeout=READ_POLL_INTERVAL)
            except asyncio.TimeoutError:
                for probe in probes:
                    url = probe.ready_url()
                    if url:
                        return url
                continue

            if returncode != 0:
                raise ServerExitedEarly(returncode, "".join(handle.output))
            # Exited cleanly without announcing; only the start timeout ends this
            await asyncio.Event().wait()

    async def _drain(self, handle: ServerHandle) -> None:
        """Keep reading output so a chatty server never blocks on a full pipe."""
        stdout = handle.process.stdout
        if stdout is None:
            return
        while True:
            chunk = await stdout.read(READ_CHUNK)
            if not chunk:
                return
            for line in chunk.decode("utf-8", errors="replace").splitlines():
                logger.debug(f"[server] {line}")

    async def stop(self, handle: ServerHandle) -> None:
        """Terminate the server. Safe to call on an exited process."""
        if handle.drain_task is not None:
            handle.drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await handle.drain_task
            handle.drain_task = None

        process = handle.process
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=STOP_GRACE_PERIOD)
            except asyncio.TimeoutError:
                logger.warning(f"Rendering server {process.pid} ignored SIGTERM; killing")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if handle.workdir is not None:
            shutil.rmtree(handle.workdir, ignore_errors=True)
            handle.workdir = None


async def wait_reachable(
    url: str,
    timeout: float,
    interval: float = REACHABILITY_RETRY_INTERVAL,
    attempt_timeout: float = REACHABILITY_ATTEMPT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """
    Poll ``url`` until it answers or ``timeout`` seconds elapse.

    Any HTTP response counts. Servers may print their URL before the listener
    accepts connections, so this runs after readiness detection.

    Raises:
        ServerUnreachable: no response before the deadline
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempts = 0

    async with httpx.AsyncClient(timeout=attempt_timeout, transport=transport) as client:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            attempts += 1
            try:
                await asyncio.wait_for(client.get(url), timeout=min(attempt_timeout, remaining))
                logger.debug(f"{url} reachable after {attempts} attempt(s)")
                return
            except (httpx.HTTPError, asyncio.TimeoutError):
                pass

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

    raise ServerUnreachable(
        f"Server at {url} not reachable after {int(timeout * 1000)}ms",
        details={"url": url, "attempts": attempts},
    )

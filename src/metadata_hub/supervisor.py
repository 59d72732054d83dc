"""Supervisor for the external decoder process.

Launches the decoder with stdout and stderr piped, feeds every complete
output line to a callback, and relaunches the decoder after a fixed delay
whenever it exits or fails to start. Runs until stop() is called.

States:

    IDLE -> STARTING -> RUNNING -> EXITED_CLEAN | EXITED_WITH_ERROR
                 \\-> EXITED_WITH_ERROR (spawn failed)
    STARTING | RUNNING --(unexpected error)--> EXITED_WITH_ERROR
    EXITED_* --(restart_delay)--> STARTING
    any --stop()--> STOPPED
"""

import asyncio
import codecs
import os
import signal
from enum import Enum
from typing import Any, Callable, Optional

from .config import READ_CHUNK_SIZE, RESTART_DELAY_SECONDS, TERMINATE_TIMEOUT_SECONDS
from .logging_config import get_logger
from .models import now_ms
from .parser import LineSplitter
from .types import SupervisorStatus

logger = get_logger(__name__, namespace='decoder')

# Called with (line, received_at_ms) for each complete output line
LineCallback = Callable[[str, int], Any]


class SupervisorState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    EXITED_CLEAN = "exited_clean"
    EXITED_WITH_ERROR = "exited_with_error"
    STOPPED = "stopped"


class ProcessSupervisor:
    """Keeps exactly one decoder process alive."""

    def __init__(
        self,
        command: str,
        args: Optional[list[str]] = None,
        cwd: Optional[str] = None,
        on_line: Optional[LineCallback] = None,
        restart_delay: float = RESTART_DELAY_SECONDS,
        terminate_timeout: float = TERMINATE_TIMEOUT_SECONDS,
    ):
        self.command = command
        self.args = list(args or [])
        self.cwd = cwd
        self.on_line = on_line
        self.restart_delay = restart_delay
        self.terminate_timeout = terminate_timeout

        self.state = SupervisorState.IDLE
        self.process: Optional[asyncio.subprocess.Process] = None
        self.exit_code: Optional[int] = None
        self.spawn_count = 0
        self.restart_count = 0
        self._stop_event = asyncio.Event()
        self._run_task: Optional[asyncio.Task] = None
        # Decoders run in their own session so helpers they fork die with them
        self._process_group: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    def start(self) -> asyncio.Task:
        """Start supervising. Calling start() while running is a no-op."""
        if self.is_running:
            return self._run_task

        self._stop_event = asyncio.Event()
        self._run_task = asyncio.create_task(self._run_loop())
        return self._run_task

    async def stop(self):
        """Cancel any pending restart and terminate the decoder."""
        self._stop_event.set()

        process = self.process
        if process is not None:
            await self._terminate(process)

        task = self._run_task
        if task is not None and not task.done():
            try:
                await asyncio.wait_for(task, self.terminate_timeout)
            except asyncio.TimeoutError:
                logger.warning("Supervisor loop did not finish in time; cancelled")

        self._run_task = None
        self.state = SupervisorState.STOPPED

    async def _run_loop(self):
        try:
            while not self._stop_event.is_set():
                try:
                    await self._run_once()
                except Exception:
                    logger.exception("Decoder run failed")
                    if self.process is not None:
                        await self._terminate(self.process)
                    self.process = None
                    self._process_group = None
                    self.exit_code = None
                    self.state = SupervisorState.EXITED_WITH_ERROR

                if self._stop_event.is_set():
                    break

                self.restart_count += 1
                logger.info(f"Restarting decoder in {self.restart_delay:g} seconds...")
                if await self._wait_for_stop(self.restart_delay):
                    break
        finally:
            self.process = None
            self._process_group = None
            self.state = SupervisorState.STOPPED
            logger.info("Decoder supervisor stopped")

    async def _run_once(self):
        """Launch the decoder once and pump its output until it exits."""
        self.state = SupervisorState.STARTING
        logger.info("Launching decoder process:")
        logger.info(f"  Command: {self.command}")
        logger.info(f"  Args: {' '.join(self.args)}")
        logger.info(f"  Working Directory: {self.cwd}")

        try:
            process = await self._spawn()
        except OSError as e:
            logger.error(f"Error starting decoder process: {e}")
            self.exit_code = None
            self.state = SupervisorState.EXITED_WITH_ERROR
            return

        self.process = process
        self.spawn_count += 1
        self.state = SupervisorState.RUNNING
        logger.info(f"Decoder process started (pid {process.pid})")

        if self._stop_event.is_set():
            await self._terminate(process)

        await asyncio.gather(
            self._read_stream(process.stdout),
            self._read_stream(process.stderr),
        )
        code = await process.wait()

        self.process = None
        self._process_group = None
        self.exit_code = code
        self.state = SupervisorState.EXITED_CLEAN if code == 0 else SupervisorState.EXITED_WITH_ERROR
        logger.info(f"Decoder process exited with code {code}.")

    async def _spawn(self) -> asyncio.subprocess.Process:
        process = await asyncio.create_subprocess_exec(
            self.command,
            *self.args,
            cwd=self.cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        self._process_group = process.pid
        return process

    async def _read_stream(self, stream: Optional[asyncio.StreamReader]):
        """Split one output pipe into lines and hand them to on_line."""
        if stream is None:
            return

        splitter = LineSplitter()
        decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            received_at = now_ms()
            self._emit(splitter.feed(decoder.decode(chunk)), received_at)

        tail = splitter.feed(decoder.decode(b'', final=True)) + splitter.flush()
        self._emit(tail, now_ms())

    def _emit(self, lines: list[str], received_at: int):
        if self.on_line is None:
            return
        for line in lines:
            try:
                self.on_line(line, received_at)
            except Exception:
                logger.exception(f"Error handling decoder line: {line!r}")

    async def _terminate(self, process: asyncio.subprocess.Process):
        """SIGTERM the decoder and its process group, SIGKILL after the timeout.

        The group is signalled even when the direct child has already
        exited, since a forked helper may still hold the output pipes.
        """
        logger.info(f"Terminating decoder process (pid {process.pid})")
        self._signal_group(signal.SIGTERM)
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), self.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Decoder (pid {process.pid}) ignored SIGTERM; killing it")
            self._signal_group(signal.SIGKILL)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    def _signal_group(self, sig: int):
        if self._process_group is None:
            return
        try:
            os.killpg(self._process_group, sig)
        except ProcessLookupError:
            logger.debug(f"Process group {self._process_group} already gone")

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if stop() was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def status(self) -> SupervisorStatus:
        process = self.process
        return {
            'state': self.state.value,
            'pid': process.pid if process is not None and process.returncode is None else None,
            'command': self.command,
            'restarts': self.restart_count,
            'exit_code': self.exit_code,
        }

"""
Subprocess runner for external build and kubectl commands.

A Command exposes three independently observable things:
- start(): spawns the process, raising LaunchError if it cannot be spawned
- output(): async iterator over combined stdout/stderr lines
- wait(): completion signal, returning None or the failure

Output lines are buffered without bound by a reader task, so the process
never stalls on a slow consumer and completion does not depend on whether
anyone drains the output. Callers that forward output use
run_to_completion(), which joins its drain task before returning.
"""

import asyncio
import logging
import os
from typing import TYPE_CHECKING, AsyncIterator, Callable, Dict, List, Optional

from arkctl.modules.api import BuildError, CancelledBuildError, LaunchError

if TYPE_CHECKING:
    from arkctl.modules.context import ExecutionContext

logger = logging.getLogger("arkctl.executor")

# Maven lines can be long; the asyncio default of 64 KiB is too small
STREAM_LIMIT = 1024 * 1024

DEFAULT_KILL_GRACE = 5.0

_EOF = object()


class Command:
    """One external process run in a working directory."""

    def __init__(
        self,
        ctx: "ExecutionContext",
        work_dir: Optional[str],
        program: str,
        *args: str,
        env: Optional[Dict[str, str]] = None,
        kill_grace: float = DEFAULT_KILL_GRACE,
    ):
        self.ctx = ctx
        self.work_dir = work_dir
        self.program = program
        self.args = list(args)
        self.env = env
        self.kill_grace = kill_grace

        self._process: Optional[asyncio.subprocess.Process] = None
        self._lines: Optional[asyncio.Queue] = None
        self._reader: Optional[asyncio.Task] = None
        self._completion: Optional[asyncio.Task] = None
        self._output_claimed = False

    @property
    def argv(self) -> List[str]:
        return [self.program] + self.args

    def __str__(self) -> str:
        return " ".join(self.argv)

    async def start(self) -> None:
        """
        Spawn the process.

        Raises:
            LaunchError: executable missing, not executable, or bad work dir
        """
        if self._process is not None:
            raise RuntimeError(f"command already started: {self}")

        env = None
        if self.env is not None:
            env = {**os.environ, **self.env}

        logger.debug(f"Running: {self} (cwd={self.work_dir or os.getcwd()})")
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.program,
                *self.args,
                cwd=self.work_dir or None,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise LaunchError(f"failed to launch {self.program!r}: {e}") from e

        self._lines = asyncio.Queue()
        self._reader = asyncio.create_task(self._read_output())
        self._completion = asyncio.create_task(self._supervise())

    async def output(self) -> AsyncIterator[str]:
        """Yield output lines until the process closes its output."""
        if self._lines is None:
            raise RuntimeError(f"command not started: {self}")
        if self._output_claimed:
            raise RuntimeError(f"output of {self} already consumed")
        self._output_claimed = True

        while True:
            line = await self._lines.get()
            if line is _EOF:
                return
            yield line

    async def wait(self) -> Optional[BuildError]:
        """
        Wait for the process to exit or be killed.

        Returns:
            None on exit status 0, BuildError on a non-zero exit,
            CancelledBuildError if the context was cancelled first
        """
        if self._completion is None:
            raise RuntimeError(f"command not started: {self}")
        try:
            return await asyncio.shield(self._completion)
        except asyncio.CancelledError:
            # The waiter itself was cancelled; do not leave the child behind
            await self._terminate()
            raise

    def exit_error(self) -> Optional[BuildError]:
        """Exit status as an error; only valid after completion."""
        if self._completion is None or not self._completion.done():
            raise RuntimeError(f"command has not completed: {self}")
        returncode = self._process.returncode
        if returncode != 0:
            return BuildError(f"{self.program} exited with status {returncode}", returncode)
        return None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def _read_output(self) -> None:
        stream = self._process.stdout
        try:
            while True:
                try:
                    raw = await stream.readline()
                except ValueError as e:
                    # readline has already discarded the over-long chunk
                    logger.warning(f"Skipping over-long output line of {self.program}: {e}")
                    continue
                if not raw:
                    break
                self._lines.put_nowait(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
        finally:
            self._lines.put_nowait(_EOF)

    async def _supervise(self) -> Optional[BuildError]:
        exited = asyncio.ensure_future(self._process.wait())
        cancelled = asyncio.ensure_future(self.ctx.wait_cancelled())
        try:
            await asyncio.wait({exited, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        killed = False
        if not exited.done():
            logger.warning(f"Cancellation requested, stopping {self.program} (pid {self._process.pid})")
            await self._terminate()
            killed = True

        returncode = await exited
        await self._reader

        if killed:
            return CancelledBuildError(
                f"{self.program} was killed after cancellation", returncode
            )
        if returncode != 0:
            return BuildError(f"{self.program} exited with status {returncode}", returncode)
        return None

    async def _terminate(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace)
        except asyncio.TimeoutError:
            logger.warning(f"{self.program} ignored SIGTERM for {self.kill_grace}s, killing")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()


async def run_to_completion(
    command: Command,
    sink: Callable[[str], None],
) -> Optional[BuildError]:
    """
    Start a command, forward every output line to sink, and wait for it.

    All output has reached sink by the time this returns.

    Raises:
        LaunchError: the command could not be spawned
    """
    await command.start()

    async def drain() -> None:
        async for line in command.output():
            sink(line)

    drainer = asyncio.create_task(drain())
    try:
        error = await command.wait()
    except BaseException:
        drainer.cancel()
        raise
    await drainer
    return error

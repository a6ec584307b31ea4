"""Stream bytes through an external decoder process.

``cmd_stream(args, source)`` spawns ``args`` and returns a readable stream of the
process stdout. Three daemon threads run per process:

  - feed:   copies ``source`` into the process stdin, then closes it
  - stderr: collects the process stderr (bounded by the process lifetime)
  - wait:   waits for exit, joins the other two, publishes the outcome once

The reader sees the outcome only when stdout hits EOF: a clean exit reads as
``b""``, a non-zero exit raises ExternalToolFailed carrying the stderr text.
A failed stream stays failed (every later read raises the same error).

Known limitation: a feed thread blocked on a ``source`` that never ends is not
interruptible. ``close()`` terminates the process and returns after a bounded
wait, but that thread stays parked until the source returns.
"""

from __future__ import annotations

import io
import logging
import subprocess
import threading
from collections.abc import Sequence
from typing import BinaryIO

from arcz.config import BUFFER_SIZE, CLOSE_GRACE_SECONDS
from arcz.errors import ExternalToolError, ExternalToolFailed

logger = logging.getLogger(__name__)


class CmdStream(io.RawIOBase):
    def __init__(
        self,
        proc: subprocess.Popen,
        args: Sequence[str],
        source: BinaryIO,
        *,
        grace: float = CLOSE_GRACE_SECONDS,
    ) -> None:
        super().__init__()
        if proc.stdin is None or proc.stdout is None or proc.stderr is None:
            raise ValueError("CmdStream needs a process with piped stdin, stdout and stderr")
        self.args = list(args)
        self._proc = proc
        self._stdin = proc.stdin
        self._stdout = proc.stdout
        self._stderr_pipe = proc.stderr
        self._source = source
        self._grace = float(grace)

        self._stderr = b""
        self._feed_error: BaseException | None = None
        self._outcome: BaseException | None = None
        self._error: BaseException | None = None
        self._cancelled = threading.Event()
        self._done = threading.Event()

        self._feeder = threading.Thread(target=self._feed, name=f"arcz-feed-{proc.pid}", daemon=True)
        self._drainer = threading.Thread(target=self._drain, name=f"arcz-stderr-{proc.pid}", daemon=True)
        self._waiter = threading.Thread(target=self._supervise, name=f"arcz-wait-{proc.pid}", daemon=True)
        self._feeder.start()
        self._drainer.start()
        self._waiter.start()

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode

    def readable(self) -> bool:
        return True

    # -------------------
    # background threads
    # -------------------

    def _feed(self) -> None:
        stdin = self._stdin
        try:
            while not self._cancelled.is_set():
                try:
                    chunk = self._source.read(BUFFER_SIZE)
                except Exception as e:  # surfaced to the reader by _supervise
                    self._feed_error = e
                    break
                if not chunk:
                    break
                try:
                    stdin.write(chunk)
                except (BrokenPipeError, ValueError):
                    # processo uscito (o stdin già chiuso): smettiamo di alimentarlo
                    break
        finally:
            try:
                stdin.close()
            except (BrokenPipeError, OSError):
                pass

    def _drain(self) -> None:
        stderr = self._stderr_pipe
        try:
            self._stderr = stderr.read()
        finally:
            stderr.close()

    def _supervise(self) -> None:
        rc = self._proc.wait()
        self._feeder.join()
        self._drainer.join()

        outcome: BaseException | None = None
        if self._cancelled.is_set():
            logger.debug("%s (pid %d) ended after close, status %d", self.args[0], self._proc.pid, rc)
        elif rc != 0:
            text = self._stderr.decode("utf-8", errors="replace").strip()
            outcome = ExternalToolFailed(self.args, rc, text)
        elif self._feed_error is not None:
            outcome = self._feed_error
        else:
            logger.debug("%s (pid %d) exited cleanly", self.args[0], self._proc.pid)

        self._outcome = outcome
        self._done.set()

    # -------------------
    # reader side
    # -------------------

    def readinto(self, b) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if self._error is not None:
            raise self._error

        n = self._stdout.readinto1(b)
        if n:
            return n

        # EOF on stdout: the answer is whatever the process outcome is
        self._done.wait()
        if self._outcome is not None:
            self._error = self._outcome
            raise self._error
        return 0

    def wait_outcome(self, timeout: float | None = None) -> BaseException | None:
        """Block until the process outcome is known; return the error (None on success)."""
        if not self._done.wait(timeout):
            raise TimeoutError(f"{self.args[0]} (pid {self._proc.pid}) still running")
        return self._outcome

    def close(self) -> None:
        if self.closed:
            return
        self._cancelled.set()
        proc = self._proc
        try:
            self._stdout.close()
        finally:
            if proc.poll() is None:
                logger.debug("terminating %s (pid %d)", self.args[0], proc.pid)
                proc.terminate()
                try:
                    proc.wait(timeout=self._grace)
                except subprocess.TimeoutExpired:
                    logger.warning("%s (pid %d) ignored SIGTERM, killing it", self.args[0], proc.pid)
                    proc.kill()
                    proc.wait()
            self._waiter.join(timeout=self._grace)
            if self._waiter.is_alive():
                logger.warning(
                    "%s (pid %d): input feed still blocked after close", self.args[0], proc.pid
                )
            super().close()


def cmd_stream(
    args: Sequence[str], source: BinaryIO, *, grace: float = CLOSE_GRACE_SECONDS
) -> CmdStream:
    """Run ``args`` with ``source`` on stdin; return its stdout as a stream.

    Spawn failures raise ExternalToolError right away, before any stream exists.
    """
    argv = [str(a) for a in args]
    if not argv:
        raise ValueError("cmd_stream: empty command")
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalToolError(argv, e.strerror or str(e)) from e

    logger.debug("started %s (pid %d)", " ".join(argv), proc.pid)
    return CmdStream(proc, argv, source, grace=grace)

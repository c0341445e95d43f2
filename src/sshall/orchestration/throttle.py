"""Bounded-concurrency dispatcher.

Reads hosts from a :class:`~sshall.hosts.HostSource`, launches one worker
process per host, and keeps at most ``ceiling`` of them running.  When the
ceiling is reached it waits for *any* worker to finish before launching the
next one, then drains the remaining workers once the hosts run out.

Accounting is count-only: the throttle never looks at which worker
finished, just that one did.
"""

from __future__ import annotations

import logging
import multiprocessing
import time
from dataclasses import dataclass, field
from multiprocessing.connection import wait as wait_sentinels
from typing import Any, Callable, Iterable

from sshall import PROG_NAME
from sshall.orchestration import EXIT_FATAL, FatalError, flush_std_streams
from sshall.orchestration.lock import OutputLock
from sshall.orchestration.worker import WorkerJob, run_job

logger = logging.getLogger(__name__)

# spawn keeps workers independent of the dispatcher's threads and state
DEFAULT_START_METHOD = "spawn"


class JobTracker:
    """Starts worker processes and joins whichever one finishes first."""

    def __init__(self, start_method: str = DEFAULT_START_METHOD):
        self._ctx = multiprocessing.get_context(start_method)
        self._running: dict[int, Any] = {}

    def launch(self, target: Callable[..., Any], *args) -> int:
        """Start ``target(*args)`` in a new process and return its pid.

        Raises:
            OSError: If the process can't be started.
        """
        proc = self._ctx.Process(target=target, args=args)
        proc.start()
        self._running[proc.sentinel] = proc
        return proc.pid

    def wait_any(self) -> int:
        """Block until one running worker exits and return its exit code.

        The exit code is the only completion token; which launch it belongs
        to is not reported.

        Raises:
            FatalError: If nothing is running or the wait itself fails.
        """
        if not self._running:
            raise FatalError("No running workers to wait for")
        try:
            ready = wait_sentinels(list(self._running))
        except OSError as e:
            raise FatalError("Failed to wait for workers: %s" % e)
        proc = self._running.pop(ready[0])
        proc.join()
        return proc.exitcode


@dataclass
class DispatchSummary:
    """What happened during a dispatch run."""

    launched: int = 0
    skipped: list[str] = field(default_factory=list)
    abnormal_exits: int = 0
    elapsed: float = 0.0


class Throttle:
    """Owns the launch/wait loop and the running count."""

    def __init__(
            self,
            ceiling: int,
            tracker: JobTracker | None = None,
            delay: float = 0.0,
    ):
        if ceiling < 1:
            raise ValueError("Concurrency ceiling must be >= 1, got %d" % ceiling)
        self.ceiling = ceiling
        self.delay = delay
        self.tracker = tracker or JobTracker()
        self.running = 0

    def run(self, hosts: Iterable[str], make_job: Callable[[str], WorkerJob],
            summary: DispatchSummary) -> None:
        """Launch a worker per host, keeping at most ``ceiling`` in flight.

        Raises:
            FatalError: If a worker reports a fatal error or the wait fails.
                Workers still running are waited for before it propagates.
        """
        try:
            self._run(hosts, make_job, summary)
        except FatalError:
            self._drain_after_fatal()
            raise

    def _run(self, hosts: Iterable[str], make_job: Callable[[str], WorkerJob],
             summary: DispatchSummary) -> None:
        for host in hosts:
            flush_std_streams()
            try:
                self.tracker.launch(run_job, make_job(host))
            except OSError as e:
                logger.warning("Failed to launch worker for %s: %s", host, e)
                summary.skipped.append(host)
            else:
                summary.launched += 1
                self.running += 1
                if self.running >= self.ceiling:
                    self._wait_one(summary)

            if self.delay > 0:
                time.sleep(self.delay)

        logger.debug("Host input exhausted, waiting for %d running worker(s)", self.running)
        while self.running > 0:
            self._wait_one(summary)

    def _wait_one(self, summary: DispatchSummary) -> None:
        status = self.tracker.wait_any()
        self.running -= 1
        if status == EXIT_FATAL:
            raise FatalError("A worker hit a fatal error; aborting")
        if status != 0:
            summary.abnormal_exits += 1
            logger.warning("Worker exited abnormally (status %s)", status)

    def _drain_after_fatal(self) -> None:
        # in-flight workers still need the lock file to publish their blocks
        if self.running > 0:
            logger.warning("Waiting for %d running worker(s) before aborting", self.running)
        while self.running > 0:
            try:
                self.tracker.wait_any()
            except FatalError as e:
                logger.error("Giving up on running workers: %s", e)
                break
            self.running -= 1


def dispatch(
        hosts: Iterable[str],
        command: str | None,
        ceiling: int,
        *,
        transport,
        binary: str | None = None,
        user: str | None = None,
        key: str | None = None,
        options: list[str] | None = None,
        delay: float = 0.0,
        color: bool = False,
        show_headers: bool = True,
        output_path: str | None = None,
        tmp_dir: str | None = None,
        prog_name: str = PROG_NAME,
        verbose: bool = False,
        quiet: bool = False,
        tracker: JobTracker | None = None,
) -> DispatchSummary:
    """Run ``command`` on every host with at most ``ceiling`` workers in flight.

    Args:
        hosts: Host tokens, usually a :class:`~sshall.hosts.HostSource`.
        command: Remote command string.
        ceiling: Maximum number of concurrently running workers (>= 1).
        transport: Transport plugin used to build each host's command line.
        binary: Override for the transport executable.
        user: Optional remote user name.
        key: Optional identity file (ssh only).
        options: Extra transport options.
        delay: Seconds to pause after each launch.
        color: Colourise block headers and error bodies.
        show_headers: Write the host header before each block.
        output_path: Append blocks to this file instead of stdout.
        tmp_dir: Directory for the lock file and per-host buffers.
        prog_name: Prefix for temp file names.
        verbose: Debug logging in workers.
        quiet: Warnings-only logging in workers.
        tracker: Process tracker (tests substitute a fake).

    Returns:
        DispatchSummary for the run.

    Raises:
        ValueError: If ``ceiling`` is below 1.
        FatalError: On lock-file or worker infrastructure failures.
    """
    throttle = Throttle(ceiling, tracker=tracker, delay=delay)
    summary = DispatchSummary()

    logger.debug("Running %d in parallel asynchronously", ceiling)
    t0 = time.monotonic()
    with OutputLock.create(prog_name, tmp_dir) as lock:
        def make_job(host: str) -> WorkerJob:
            argv = transport.build_command(
                host, command, binary=binary, user=user, key=key, options=options,
            )
            return WorkerJob(
                host=host,
                argv=argv,
                lock_path=lock.path,
                output_path=output_path,
                tmp_dir=tmp_dir,
                prog_name=prog_name,
                color=color,
                show_header=show_headers,
                verbose=verbose,
                quiet=quiet,
            )

        throttle.run(hosts, make_job, summary)

    summary.elapsed = time.monotonic() - t0
    logger.debug("Dispatch done: %d launched, %d skipped, %d abnormal (%.1fs total)",
                 summary.launched, len(summary.skipped), summary.abnormal_exits, summary.elapsed)
    return summary

# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Orchestrating side of the worker protocol.

``WorkerPool`` runs predicates in separate processes so that a predicate
that hangs or kills its interpreter cannot take the test run down with it.

- Each registered predicate gets its own worker processes, each with its
  own pipe.  Predicates never share a channel.
- A worker runs one message at a time.  Further runs for the same
  predicate wait in a backlog until a worker is idle, or until a new worker
  can be started (up to ``max_workers`` per predicate).
- ``dispatch`` returns a ``concurrent.futures.Future`` resolved with a
  ``RunOutcome``.  A run exceeding its timeout resolves as ``TIMEOUT`` and
  its worker is terminated.  A worker that dies mid-run resolves the run as
  ``WORKER_CRASH``.  Nothing is retried.

Example::

    with WorkerPool(max_workers=2) as pool:
        predicate_id = pool.register(my_predicate)
        future = pool.dispatch(
            predicate_id, pool.next_run_id(), MainPayload((1, 2)), timeout=5.0,
        )
        outcome = future.result()
"""

import itertools
import multiprocessing
import pickle
import threading
from collections import deque
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import structlog

from prop_harness.core.outcome import RunOutcome
from prop_harness.worker.messages import Payload, ResultMessage, RunMessage
from prop_harness.worker.worker_runner import BuildInputs, run_worker

logger = structlog.get_logger(__name__)

_JOIN_TIMEOUT = 2.0


def _default_start_method() -> Optional[str]:
    """``forkserver`` on POSIX; None (platform default) elsewhere."""
    if 'forkserver' in multiprocessing.get_all_start_methods():
        return 'forkserver'
    return None


@dataclass
class _PendingRun:
    """A dispatched run waiting for its response."""
    message: RunMessage
    future: Future
    timeout: Optional[float]

    @property
    def run_id(self) -> int:
        return self.message.run_id


@dataclass
class _Registration:
    """A predicate together with its workers and backlog."""
    predicate_id: int
    predicate: Callable[..., Any]
    build_inputs: Optional[BuildInputs]
    workers: List['_WorkerHandle'] = field(default_factory=list)
    backlog: Deque[_PendingRun] = field(default_factory=deque)


class _WorkerHandle:
    """One worker process and the orchestrator end of its pipe."""

    def __init__(self, pool: 'WorkerPool', context, registration: _Registration):
        self.predicate_id = registration.predicate_id
        self.current: Optional[_PendingRun] = None
        self.retired = False
        self.timer: Optional[threading.Timer] = None
        self._pool = pool

        self.conn, child_conn = context.Pipe()
        self.process = context.Process(
            target=run_worker,
            args=(
                child_conn,
                registration.predicate_id,
                registration.predicate,
                registration.build_inputs,
            ),
            name=f"prop-harness-worker-{registration.predicate_id}",
            daemon=True,
        )
        self.process.start()
        child_conn.close()

        self._reader = threading.Thread(
            target=self._read_loop,
            name=f"prop-harness-reader-{self.process.pid}",
            daemon=True,
        )
        self._reader.start()

    @property
    def idle(self) -> bool:
        return self.current is None and not self.retired

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def _read_loop(self) -> None:
        while True:
            try:
                message = self.conn.recv()
            except (EOFError, OSError):
                self.conn.close()
                self._pool._on_worker_exit(self)
                return
            self._pool._on_result(self, message)

    def stop(self, graceful: bool = True) -> None:
        """Ask the worker to exit, then terminate it if it does not."""
        if graceful:
            try:
                self.conn.send(None)
            except (OSError, ValueError):
                logger.debug("Worker already gone", pid=self.process.pid)
            self.process.join(timeout=_JOIN_TIMEOUT)
        if self.process.is_alive():
            self.process.terminate()
            self.process.join(timeout=_JOIN_TIMEOUT)


class WorkerPool:
    """Runs registered predicates in isolated worker processes."""

    def __init__(self, max_workers: int = 1, start_method: Optional[str] = None):
        """
        Args:
            max_workers: Maximum number of concurrent worker processes per
                predicate
            start_method: ``multiprocessing`` start method (``fork``,
                ``spawn``, ``forkserver``); None uses ``forkserver`` where
                available, else the platform default.  Workers are started
                while reader and timer threads run, so ``fork`` is unsafe.
                With ``spawn`` and ``forkserver`` predicates and
                ``build_inputs`` must be picklable.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self._context = multiprocessing.get_context(
            start_method or _default_start_method()
        )
        self._lock = threading.Lock()
        self._registrations: Dict[int, _Registration] = {}
        self._in_flight: Dict[int, _PendingRun] = {}
        self._predicate_ids = itertools.count(1)
        self._run_ids = itertools.count(1)
        self._closed = False

    def __enter__(self) -> 'WorkerPool':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def register(
        self,
        predicate: Callable[..., Any],
        build_inputs: Optional[BuildInputs] = None,
    ) -> int:
        """
        Register a predicate and return its id.

        Workers are started lazily on the first dispatch.

        Args:
            predicate: Property predicate run inside the workers
            build_inputs: Rebuilds inputs from a ``GenerationState``; needed
                for ``StatePayload`` dispatches
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("WorkerPool is closed")
            predicate_id = next(self._predicate_ids)
            self._registrations[predicate_id] = _Registration(
                predicate_id=predicate_id,
                predicate=predicate,
                build_inputs=build_inputs,
            )
        return predicate_id

    def unregister(self, predicate_id: int) -> None:
        """Stop the predicate's workers and cancel its outstanding runs."""
        with self._lock:
            registration = self._registrations.pop(predicate_id, None)
            if registration is None:
                return
            workers = list(registration.workers)
            pending = list(registration.backlog)
            registration.workers.clear()
            registration.backlog.clear()
            for worker in workers:
                worker.retired = True
                worker.cancel_timer()
                if worker.current is not None:
                    pending.append(worker.current)
                    worker.current = None
            for run in pending:
                self._in_flight.pop(run.run_id, None)

        for worker in workers:
            worker.stop()
        for run in pending:
            run.future.cancel()

    def next_run_id(self) -> int:
        """Return a run id never handed out before by this pool."""
        with self._lock:
            return next(self._run_ids)

    def active_workers(self, predicate_id: int) -> int:
        """Number of live worker processes for a predicate."""
        with self._lock:
            registration = self._registrations.get(predicate_id)
            return len(registration.workers) if registration else 0

    def dispatch(
        self,
        predicate_id: int,
        run_id: int,
        payload: Payload,
        timeout: Optional[float] = None,
    ) -> 'Future[RunOutcome]':
        """
        Send one run to a worker of ``predicate_id``.

        Args:
            predicate_id: Id returned by ``register``
            run_id: Correlation id; must not be in flight
            payload: ``MainPayload`` or ``StatePayload``
            timeout: Seconds the run may take once started; None for no limit

        Returns:
            Future resolved with the run's ``RunOutcome``

        Raises:
            ValueError: On an unknown predicate id, a run id already in
                flight, or a non-positive timeout
            RuntimeError: If the pool is closed
        """
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")

        settle: List[Tuple[Future, Any]] = []
        with self._lock:
            if self._closed:
                raise RuntimeError("WorkerPool is closed")
            registration = self._registrations.get(predicate_id)
            if registration is None:
                raise ValueError(f"Unknown predicate id {predicate_id}")
            if run_id in self._in_flight:
                raise ValueError(f"Run id {run_id} is already in flight")

            pending = _PendingRun(
                message=RunMessage(predicate_id, run_id, payload),
                future=Future(),
                timeout=timeout,
            )
            self._in_flight[run_id] = pending
            registration.backlog.append(pending)
            try:
                self._drain(registration, settle)
            except Exception:
                # Worker could not be started, e.g. an unpicklable predicate
                if pending in registration.backlog:
                    registration.backlog.remove(pending)
                    self._in_flight.pop(run_id, None)
                raise

        self._settle(settle)
        return pending.future

    def close(self) -> None:
        """Stop all workers and cancel runs still waiting for a response."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            workers = [
                worker
                for registration in self._registrations.values()
                for worker in registration.workers
            ]
            for registration in self._registrations.values():
                registration.workers.clear()
                registration.backlog.clear()
            pending = list(self._in_flight.values())
            self._in_flight.clear()
            for worker in workers:
                worker.retired = True
                worker.current = None
                worker.cancel_timer()

        for worker in workers:
            worker.stop()
        for run in pending:
            run.future.cancel()

    # -- internals (called with self._lock held unless stated otherwise) --

    def _drain(self, registration: _Registration, settle: list) -> None:
        """Hand backlog runs to idle workers, starting workers as allowed."""
        while registration.backlog and not self._closed:
            worker = next((w for w in registration.workers if w.idle), None)
            if worker is None:
                if len(registration.workers) >= self.max_workers:
                    return
                worker = _WorkerHandle(self, self._context, registration)
                registration.workers.append(worker)
                logger.debug(
                    "Started worker",
                    predicate_id=registration.predicate_id,
                    pid=worker.process.pid,
                )
            self._start(worker, registration.backlog.popleft(), settle)

    def _start(self, worker: _WorkerHandle, pending: _PendingRun, settle: list) -> None:
        worker.current = pending
        try:
            worker.conn.send(pending.message)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            worker.current = None
            self._in_flight.pop(pending.run_id, None)
            settle.append((pending.future, exc))
            return
        except (OSError, ValueError):
            # The reader thread reports the dead worker as a crash
            return

        if pending.timeout is not None:
            worker.timer = threading.Timer(
                pending.timeout, self._on_timeout, args=(worker, pending.run_id),
            )
            worker.timer.daemon = True
            worker.timer.start()

    def _retire(self, worker: _WorkerHandle) -> Optional[_PendingRun]:
        worker.retired = True
        worker.cancel_timer()
        registration = self._registrations[worker.predicate_id]
        if worker in registration.workers:
            registration.workers.remove(worker)
        pending, worker.current = worker.current, None
        if pending is not None:
            self._in_flight.pop(pending.run_id, None)
        return pending

    @staticmethod
    def _settle(settle: list) -> None:
        """Resolve futures; called without the lock held."""
        for future, result in settle:
            try:
                if isinstance(result, BaseException):
                    future.set_exception(result)
                else:
                    future.set_result(result)
            except InvalidStateError:
                # Cancelled by close() while the result was in transit
                logger.debug("Dropping result of a cancelled run")

    def _on_result(self, worker: _WorkerHandle, message: Any) -> None:
        """Reader thread callback for every message from a worker."""
        settle: List[Tuple[Future, Any]] = []
        with self._lock:
            pending = worker.current
            if (
                pending is None
                or not isinstance(message, ResultMessage)
                or message.run_id != pending.run_id
            ):
                pending = None
            else:
                worker.current = None
                worker.cancel_timer()
                self._in_flight.pop(pending.run_id, None)
                settle.append((pending.future, message.to_outcome()))
                self._drain(self._registrations[worker.predicate_id], settle)

        if pending is None:
            logger.warning(
                "Discarding response for a run that is not in flight",
                predicate_id=worker.predicate_id,
                run_id=getattr(message, 'run_id', None),
            )
        self._settle(settle)

    def _on_timeout(self, worker: _WorkerHandle, run_id: int) -> None:
        """Timer thread callback."""
        settle: List[Tuple[Future, Any]] = []
        with self._lock:
            if worker.retired or worker.current is None or worker.current.run_id != run_id:
                return
            pending = self._retire(worker)
            settle.append((pending.future, RunOutcome.timeout(pending.timeout)))
            self._drain(self._registrations[worker.predicate_id], settle)

        logger.warning(
            "Run timed out, terminating worker",
            predicate_id=worker.predicate_id,
            run_id=run_id,
            timeout=pending.timeout,
        )
        self._settle(settle)
        worker.stop(graceful=False)

    def _on_worker_exit(self, worker: _WorkerHandle) -> None:
        """Reader thread callback once the worker's pipe is closed."""
        settle: List[Tuple[Future, Any]] = []
        with self._lock:
            if worker.retired:
                return
            pending = self._retire(worker)
            self._drain(self._registrations[worker.predicate_id], settle)

        worker.process.join(timeout=_JOIN_TIMEOUT)
        exitcode = worker.process.exitcode
        if pending is None:
            logger.warning(
                "Worker exited while idle",
                predicate_id=worker.predicate_id,
                exitcode=exitcode,
            )
        else:
            logger.warning(
                "Worker crashed during run",
                predicate_id=worker.predicate_id,
                run_id=pending.run_id,
                exitcode=exitcode,
            )
            settle.append((pending.future, RunOutcome.worker_crash(exitcode)))
        self._settle(settle)

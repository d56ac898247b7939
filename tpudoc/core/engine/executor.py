###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Check Execution.

Runs resolved waves either one check at a time or with bounded concurrency.
Every invocation happens on its own daemon thread and reports back through a
completion queue; only the calling thread writes records. Timeouts are
best-effort: an overrunning check is recorded as failed and its thread is
abandoned, never killed.
"""

import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set

from tpudoc.core.engine.models import Check, CheckOutcome, ExecutionRecord
from tpudoc.core.errors import CheckFault
from tpudoc.core.utils import logger

DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_CHECK_TIMEOUT_MS = 30_000

FAIL_FAST_REASON = "fail-fast: earlier failure"
GLOBAL_TIMEOUT_REASON = "global timeout exceeded"


@dataclass
class _InFlight:
    check: Check
    started_at: float
    deadline: float


def _invoke(check: Check, context: Any, completions: "queue.Queue") -> None:
    """Worker body: run one check and post (id, outcome, finished_at)."""
    try:
        if check.handler is None:
            raise CheckFault(check.id, "check has no handler")
        outcome = check.handler(context)
        if not isinstance(outcome, CheckOutcome):
            raise CheckFault(check.id, f"check returned {type(outcome).__name__}, expected CheckOutcome")
    except CheckFault as fault:
        outcome = CheckOutcome.fail(fault.summary)
    except BaseException as exc:  # noqa: BLE001
        fault = CheckFault(check.id, f"check raised {type(exc).__name__}: {exc}")
        outcome = CheckOutcome.fail(fault.summary, details=repr(exc))
    completions.put((check.id, outcome, time.monotonic()))


class Executor:
    """
    Wave executor.

    Args:
        context:
            Immutable environment context handed to every check.
        parallel:
            Run up to `max_concurrency` checks of a wave at once.
        max_concurrency:
            Concurrency bound in parallel mode (ignored when sequential).
        check_timeout_ms:
            Per-check budget; an overrun is recorded as a failure.
        global_timeout_ms:
            Budget for the whole run; once exceeded nothing new is started.
            None disables it.
        fail_fast:
            Stop launching checks after the first failure.
    """

    def __init__(
        self,
        context: Any,
        *,
        parallel: bool = False,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        check_timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS,
        global_timeout_ms: Optional[int] = None,
        fail_fast: bool = False,
    ):
        self.context = context
        self.limit = max(1, max_concurrency) if parallel else 1
        self.check_timeout_ms = check_timeout_ms
        self.global_timeout_ms = global_timeout_ms
        self.fail_fast = fail_fast

        self._deadline: Optional[float] = None
        self._failed = False
        self._abandoned: Set[str] = set()
        self._completions: "queue.Queue" = queue.Queue()

    # ------------------------------------------------------------------ #

    def run(self, waves: Sequence[Sequence[Check]]) -> List[ExecutionRecord]:
        """Execute every wave in order; returns one record per check."""
        start = time.monotonic()
        if self.global_timeout_ms is not None:
            self._deadline = start + self.global_timeout_ms / 1000.0

        records: Dict[str, ExecutionRecord] = {}
        for index, wave in enumerate(waves):
            logger.debug(f"[Executor] wave {index}: {[c.id for c in wave]} (limit={self.limit})")
            self._run_wave(wave, records)

        return [records[check.id] for wave in waves for check in wave]

    # ------------------------------------------------------------------ #

    def _stop_reason(self) -> Optional[str]:
        if self.fail_fast and self._failed:
            return FAIL_FAST_REASON
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return GLOBAL_TIMEOUT_REASON
        return None

    def _launch(self, check: Check) -> _InFlight:
        started_at = time.monotonic()
        worker = threading.Thread(
            target=_invoke,
            args=(check, self.context, self._completions),
            name=f"tpudoc-{check.id}",
            daemon=True,
        )
        worker.start()
        return _InFlight(check, started_at, started_at + self.check_timeout_ms / 1000.0)

    def _record(self, records: Dict[str, ExecutionRecord], record: ExecutionRecord) -> None:
        records[record.check.id] = record
        if record.outcome.is_failure:
            self._failed = True
            if self.fail_fast:
                logger.info(f"[Executor] {record.check.id} failed, fail-fast engaged")

    def _run_wave(self, wave: Sequence[Check], records: Dict[str, ExecutionRecord]) -> None:
        pending = list(wave)
        in_flight: Dict[str, _InFlight] = {}

        while pending or in_flight:
            while pending and len(in_flight) < self.limit:
                reason = self._stop_reason()
                if reason is not None:
                    logger.info(f"[Executor] skipping {len(pending)} check(s): {reason}")
                    for check in pending:
                        records[check.id] = ExecutionRecord(check, CheckOutcome.skip(reason))
                    pending = []
                    break
                check = pending.pop(0)
                in_flight[check.id] = self._launch(check)

            if not in_flight:
                break

            wait_s = max(0.0, min(f.deadline for f in in_flight.values()) - time.monotonic())
            try:
                check_id, outcome, finished_at = self._completions.get(timeout=wait_s)
            except queue.Empty:
                self._expire(in_flight, records)
                continue

            current = in_flight.pop(check_id, None)
            if current is None:
                if check_id in self._abandoned:
                    logger.warning(f"[Executor] discarding late result of timed-out check {check_id}")
                continue

            duration_ms = (finished_at - current.started_at) * 1000.0
            self._record(
                records,
                ExecutionRecord(current.check, outcome.with_duration(duration_ms), current.started_at, finished_at),
            )

    def _expire(self, in_flight: Dict[str, _InFlight], records: Dict[str, ExecutionRecord]) -> None:
        now = time.monotonic()
        for check_id, current in list(in_flight.items()):
            if now < current.deadline:
                continue
            del in_flight[check_id]
            self._abandoned.add(check_id)
            logger.warning(f"[Executor] {check_id} timed out after {self.check_timeout_ms}ms")
            outcome = CheckOutcome.fail(f"check timed out after {self.check_timeout_ms}ms")
            self._record(
                records,
                ExecutionRecord(current.check, outcome.with_duration(self.check_timeout_ms), current.started_at, now),
            )


def execute(
    waves: Sequence[Sequence[Check]],
    context: Any,
    *,
    parallel: bool = False,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    check_timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS,
    global_timeout_ms: Optional[int] = None,
    fail_fast: bool = False,
) -> List[ExecutionRecord]:
    """Convenience wrapper around Executor(...).run(waves)."""
    return Executor(
        context,
        parallel=parallel,
        max_concurrency=max_concurrency,
        check_timeout_ms=check_timeout_ms,
        global_timeout_ms=global_timeout_ms,
        fail_fast=fail_fast,
    ).run(waves)

# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Isolated predicate execution in worker processes."""

from prop_harness.worker.messages import (
    MainPayload,
    Payload,
    ResultMessage,
    RunMessage,
    StatePayload,
)
from prop_harness.worker.worker_runner import (
    WorkerRunner,
    run_worker,
)
from prop_harness.worker.pool import WorkerPool

__all__ = [
    'MainPayload',
    'Payload',
    'ResultMessage',
    'RunMessage',
    'StatePayload',
    'WorkerRunner',
    'run_worker',
    'WorkerPool',
]

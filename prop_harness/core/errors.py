# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Exceptions raised by prop_harness."""

from typing import Any, Optional


class PropHarnessError(Exception):
    """Base class for prop_harness errors."""


class ConstraintError(PropHarnessError, ValueError):
    """Raised when an arbitrary is built from malformed constraints."""


class PreconditionSkip(PropHarnessError):
    """
    Raised by ``pre()`` inside a predicate to discard the current input.

    The runner resamples instead of counting the input as a pass or a
    failure.
    """


def pre(condition: bool) -> None:
    """
    Discard the current input unless ``condition`` holds.

    Example::

        def predicate(a, b):
            pre(b != 0)
            return (a // b) * b + a % b == a
    """
    if not condition:
        raise PreconditionSkip("Precondition not satisfied")


class PropertyFailure(AssertionError):
    """
    Raised by ``assert_property`` when a counterexample was found.

    Attributes:
        counterexample: The shrunk failing input.
        details: The full ``RunDetails`` of the failing run.
    """

    def __init__(
        self,
        message: str,
        counterexample: Any = None,
        details: Optional[Any] = None,
    ):
        self.counterexample = counterexample
        self.details = details
        super().__init__(message)

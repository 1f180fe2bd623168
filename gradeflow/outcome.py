# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Structured success or failure of a grading operation, for display."""

import logging

from gradeflow.grading_exceptions import GradingException


log = logging.getLogger("server")


def outcome_of(f, *args, **kwargs):
    """Call a grading operation and describe how it went.

    Only grading exceptions are caught: anything else is a bug and
    propagates.

    Args:
        f (callable): the operation, for example ``server.claim``.
        args, kwargs: passed to `f`.

    Returns:
        dict: with keys ``"outcome"`` (``"success"`` or ``"failure"``),
        ``"kind"`` (None on success, else the kind of failure for
        programmatic branching), ``"message"`` (human readable) and
        ``"result"`` (whatever `f` returned, or None on failure).
    """
    name = getattr(f, "__name__", repr(f))
    try:
        result = f(*args, **kwargs)
    except GradingException as e:
        log.debug("%s failed: %s: %s", name, e.kind, e)
        return {
            "outcome": "failure",
            "kind": e.kind,
            "message": str(e),
            "retryable": e.retryable,
            "result": None,
        }
    return {
        "outcome": "success",
        "kind": None,
        "message": f"{name} succeeded",
        "retryable": False,
        "result": result,
    }

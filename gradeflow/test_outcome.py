# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from pytest import raises

from gradeflow.grading_exceptions import GradingNotFound, GradingStoreUnavailable
from gradeflow.outcome import outcome_of


def test_outcome_success() -> None:
    r = outcome_of(lambda x, y=1: x + y, 2, y=3)
    assert r["outcome"] == "success"
    assert r["kind"] is None
    assert r["result"] == 5
    assert r["message"]


def test_outcome_failure() -> None:
    def f():
        raise GradingNotFound("No such task abc")

    r = outcome_of(f)
    assert r["outcome"] == "failure"
    assert r["kind"] == "NotFound"
    assert r["message"] == "No such task abc"
    assert r["result"] is None
    assert not r["retryable"]


def test_outcome_failure_retryable() -> None:
    def f():
        raise GradingStoreUnavailable()

    r = outcome_of(f)
    assert r["kind"] == "StoreUnavailable"
    assert r["retryable"]


def test_outcome_bugs_propagate() -> None:
    def f():
        raise KeyError("oops")

    with raises(KeyError):
        outcome_of(f)

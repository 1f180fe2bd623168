# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from datetime import datetime, timedelta
from pathlib import Path

from pytest import raises

from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.db import GradingDB
from gradeflow.grading_exceptions import GradingNotFound
from gradeflow.server import Server


class Clock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_server(tmpdir, clock, **kwargs):
    catalog = ExamCatalog(
        {
            "E1": {
                "name": "Final",
                "status": "grading",
                "numberOfQuestions": 2,
                "question": {1: {"mark": 5}, 2: {"mark": 5}},
            }
        }
    )
    db = GradingDB(Path(tmpdir) / "grading.db", clock=clock)
    subs = SubmissionSource({"E1": ["s1", "s2"]})
    return Server(db, catalog, subs, **kwargs)


def test_timezone_is_required(tmpdir) -> None:
    clock = Clock(datetime(2024, 5, 15, 9, 0))
    with raises(TypeError):
        make_server(tmpdir, clock)
    with raises(ValueError):
        make_server(tmpdir, clock, timezone="")
    with raises(ValueError):
        make_server(tmpdir, clock, timezone="UTC", progress_window=timedelta(0))


def test_exam_progress(tmpdir) -> None:
    clock = Clock(datetime(2024, 5, 15, 9, 0))
    s = make_server(tmpdir, clock, timezone="UTC", progress_window=timedelta(minutes=30))
    a = s.assign("E1", 1, ["g1", "g2"])
    key = a["tasks"][0]["id"]
    p = s.examProgress("E1")
    assert p["examName"] == "Final"
    assert p["totalTasks"] == 2
    assert p["estimatedCompletionTime"] == "unknown"
    s.claim(key, "g1")
    clock.advance(minutes=10)
    s.complete(key, "g1", 5)
    p = s.examProgress("E1")
    assert p["windowSeconds"] == 1800
    # 1 done in 30 minutes, 1 to go
    assert p["estimatedSecondsRemaining"] == 1800
    with raises(GradingNotFound):
        s.examProgress("nope")


def test_statistics_today_depends_on_timezone(tmpdir) -> None:
    # 02:00 UTC on June 1st is 19:00 on May 31st in Vancouver
    clock = Clock(datetime(2024, 6, 1, 2, 0))
    s = make_server(tmpdir, clock, timezone="America/Vancouver")
    a = s.assign("E1", 1, ["g1"])
    k1, k2 = [t["id"] for t in a["tasks"]]
    s.claim(k1, "g1")
    clock.advance(minutes=30)
    s.complete(k1, "g1", 3)
    clock.now = datetime(2024, 6, 1, 8, 0)
    s.claim(k2, "g1")
    s.complete(k2, "g1", 4)
    stats = s.dashboardStatistics()
    assert stats["timezone"] == "America/Vancouver"
    assert stats["completedToday"] == 1
    assert stats["completedThisMonth"] == 1
    assert stats["completedThisWeek"] == 2

    s.timezone = "UTC"
    stats = s.dashboardStatistics()
    assert stats["completedToday"] == 2
    assert stats["completedThisMonth"] == 2


def test_statistics_for_grader(tmpdir) -> None:
    clock = Clock(datetime(2024, 5, 15, 9, 0))
    s = make_server(tmpdir, clock, timezone="UTC")
    a = s.assign("E1", 1, ["g1", "g2"])
    k1 = a["tasks"][0]["id"]
    s.claim(k1, "g1")
    clock.advance(minutes=4)
    s.complete(k1, "g1", 2.5)
    stats = s.dashboardStatistics(grader="g1")
    assert stats["graderId"] == "g1"
    assert stats["completedTasks"] == 1
    assert stats["efficiency"] == 240
    stats = s.dashboardStatistics(grader="g2")
    assert stats["completedTasks"] == 0
    assert stats["pendingTasks"] == 1
    assert stats["efficiency"] is None


def test_grader_history_time_strings(tmpdir) -> None:
    clock = Clock(datetime(2024, 5, 15, 9, 0))
    s = make_server(tmpdir, clock, timezone="UTC")
    a = s.assign("E1", 1, ["g1"])
    k1, k2 = [t["id"] for t in a["tasks"]]
    s.claim(k1, "g1")
    s.complete(k1, "g1", 1)
    clock.advance(hours=2)
    s.claim(k2, "g1")
    s.complete(k2, "g1", 1)
    h = s.graderHistory("g1")
    assert [t["id"] for t in h] == [k2, k1]
    # 10:00 UTC is 03:00 in Vancouver in summer
    h = s.graderHistory("g1", start="2024-05-15T03:00:00-07:00")
    assert [t["id"] for t in h] == [k2]
    h = s.graderHistory("g1", end="2024-05-15T10:00:00+00:00")
    assert [t["id"] for t in h] == [k1]
    with raises(ValueError):
        s.graderHistory("g1", start="yesterday-ish")

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from pathlib import Path

from pytest import raises

from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.db import GradingDB
from gradeflow.grading_exceptions import GradingNotFound, GradingStoreUnavailable
from gradeflow.server import Server
from gradeflow.server.gradingServer import ReassignmentPolicy


def make_server(tmpdir, subs, **kwargs):
    catalog = ExamCatalog(
        {"E1": {"status": "grading", "numberOfQuestions": 1, "question": {1: {"mark": 5}}}}
    )
    db = GradingDB(Path(tmpdir) / "grading.db")
    return Server(db, catalog, SubmissionSource({"E1": subs}), timezone="UTC", **kwargs)


def test_policy_settings() -> None:
    p = ReassignmentPolicy()
    assert p.mode == "pool"
    assert p.threshold == 3
    with raises(ValueError):
        ReassignmentPolicy("random")
    for t in (-1, 1.5, "3", True):
        with raises(ValueError):
            ReassignmentPolicy(threshold=t)


def test_policy_flag_threshold() -> None:
    p = ReassignmentPolicy(threshold=2)
    assert not p.should_flag(1)
    assert not p.should_flag(2)
    assert p.should_flag(3)


def test_least_loaded() -> None:
    assert ReassignmentPolicy.least_loaded({}) is None
    assert ReassignmentPolicy.least_loaded({"a": 2, "b": 1, "c": 1}) == "b"
    assert ReassignmentPolicy.least_loaded({"a": 0, "b": 0}) == "a"


def test_pool_mode_leaves_task_in_pool(tmpdir) -> None:
    s = make_server(tmpdir, ["s1", "s2"])
    a = s.assign("E1", 1, ["g1", "g2"])
    key = a["tasks"][0]["id"]
    s.claim(key, "g1")
    t = s.abandon(key, "g1", "overloaded")
    assert t["graderId"] is None
    (ev,) = s.abandonHistory(key)
    assert ev["reason"] == "overloaded"
    assert ev["reboundTo"] is None
    assert not ev["flagged"]


def test_auto_mode_picks_least_loaded_other_grader(tmpdir) -> None:
    s = make_server(tmpdir, ["s1", "s2", "s3", "s4", "s5"], reassignment="auto")
    a = s.assign("E1", 1, ["g1", "g2", "g3"])
    # g1: s1 s4, g2: s2 s5, g3: s3
    keys = [t["id"] for t in a["tasks"]]
    s.claim(keys[2], "g3")
    s.complete(keys[2], "g3", 1)
    s.claim(keys[0], "g1")
    t = s.abandon(keys[0], "g1")
    assert t["graderId"] == "g3"
    assert t["status"] == "pending"
    (ev,) = s.abandonHistory(keys[0])
    assert ev["reboundTo"] == "g3"
    assert keys[0] in [x["id"] for x in s.listForGrader("g3")]


def test_auto_mode_never_gives_back_to_abandoner(tmpdir) -> None:
    s = make_server(tmpdir, ["s1", "s2"], reassignment="auto")
    a = s.assign("E1", 1, ["g1"])
    key = a["tasks"][0]["id"]
    t = s.abandon(key, "g1")
    # nobody else to give it to
    assert t["graderId"] is None
    assert s.abandonHistory(key)[0]["reboundTo"] is None


def test_flagging_does_not_block(tmpdir) -> None:
    s = make_server(tmpdir, ["s1"], abandon_threshold=1)
    a = s.assign("E1", 1, ["g1", "g2"])
    key = a["tasks"][0]["id"]
    s.claim(key, "g1")
    s.abandon(key, "g1")
    assert s.flaggedTasks() == []
    s.claim(key, "g2")
    t = s.abandon(key, "g2")
    assert t["abandonCount"] == 2
    assert [x["id"] for x in s.flaggedTasks()] == [key]
    assert [e["flagged"] for e in s.abandonHistory(key)] == [False, True]
    # still claimable
    t = s.claim(key, "g1")
    assert t["status"] == "claimed"


def test_assign_repools_after_abandon(tmpdir) -> None:
    s = make_server(tmpdir, ["s1"])
    a = s.assign("E1", 1, ["g1"])
    key = a["tasks"][0]["id"]
    s.claim(key, "g1")
    s.abandon(key, "g1")
    b = s.assign("E1", 1, ["g2"])
    assert [t["id"] for t in b["tasks"]] == [key]
    assert s.getTask(key)["graderId"] == "g2"


def fail(*args, **kwargs):
    raise GradingStoreUnavailable("database went away")


def test_failed_rebind_leaves_task_with_grader(tmpdir) -> None:
    s = make_server(tmpdir, ["s1", "s2"], reassignment="auto")
    a = s.assign("E1", 1, ["g1", "g2"])
    key = a["tasks"][0]["id"]
    s.claim(key, "g1")
    s.DB.bindPooledTask = fail
    with raises(GradingStoreUnavailable):
        s.abandon(key, "g1", "overloaded")
    t = s.getTask(key)
    assert t["status"] == "claimed"
    assert t["graderId"] == "g1"
    assert t["abandonCount"] == 0
    assert s.abandonHistory(key) == []
    # once the store is back, the same call goes through
    del s.DB.bindPooledTask
    t = s.abandon(key, "g1", "overloaded")
    assert t["graderId"] == "g2"
    (ev,) = s.abandonHistory(key)
    assert ev["reboundTo"] == "g2"


def test_failed_outcome_record_leaves_task_with_grader(tmpdir) -> None:
    s = make_server(tmpdir, ["s1"], abandon_threshold=0)
    a = s.assign("E1", 1, ["g1"])
    key = a["tasks"][0]["id"]
    s.claim(key, "g1")
    s.DB.recordAbandonOutcome = fail
    with raises(GradingStoreUnavailable):
        s.abandon(key, "g1")
    assert s.getTask(key)["status"] == "claimed"
    assert s.flaggedTasks() == []
    del s.DB.recordAbandonOutcome
    s.abandon(key, "g1")
    assert [t["id"] for t in s.flaggedTasks()] == [key]
    assert s.abandonHistory(key)[0]["flagged"]


def test_record_outcome_of_unknown_abandonment(tmpdir) -> None:
    s = make_server(tmpdir, ["s1"])
    with raises(GradingNotFound):
        s.DB.recordAbandonOutcome(12345, flagged=True)

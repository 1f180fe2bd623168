# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from pathlib import Path

from pytest import raises

from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.db import GradingDB
from gradeflow.grading_exceptions import (
    GradingEmptyGraderSet,
    GradingInvalidState,
    GradingNotFound,
)
from gradeflow.server import Server


def make_server(tmpdir, subs=("s1", "s2", "s3")):
    catalog = ExamCatalog(
        {
            "E1": {
                "status": "grading",
                "numberOfQuestions": 3,
                "question": {1: {"mark": 5}, 2: {"mark": 5}, 3: {"mark": 10}},
            },
            "E2": {
                "status": "ongoing",
                "numberOfQuestions": 1,
                "question": {1: {"mark": 4}},
            },
        }
    )
    submissions = SubmissionSource(
        {"E1": {"submissions": list(subs), "questions": {"3": ["s1"]}}, "E2": ["t1"]}
    )
    db = GradingDB(Path(tmpdir) / "grading.db")
    return Server(db, catalog, submissions, timezone="UTC")


def test_assign(tmpdir) -> None:
    s = make_server(tmpdir)
    a = s.assign("E1", 1, ["g1", "g2"], creator="boss")
    assert a["examId"] == "E1"
    assert a["questionNumber"] == 1
    assert a["graderIds"] == ["g1", "g2"]
    assert a["creator"] == "boss"
    assert a["status"] == "pending"
    assert [t["graderId"] for t in a["tasks"]] == ["g1", "g2", "g1"]
    assert all(t["maxScore"] == 5 for t in a["tasks"])


def test_assign_check_order(tmpdir) -> None:
    s = make_server(tmpdir)
    # empty grader list is reported before anything about the exam
    with raises(GradingEmptyGraderSet):
        s.assign("nope", 99, [])
    with raises(GradingNotFound):
        s.assign("nope", 99, ["g1"])
    with raises(GradingInvalidState, match="ongoing"):
        s.assign("E2", 99, ["g1"])
    for q in (0, 4, -1, "1", True, None):
        with raises(GradingInvalidState):
            s.assign("E1", q, ["g1"])
    assert s.listTasks() == []


def test_assign_drops_repeated_graders(tmpdir) -> None:
    s = make_server(tmpdir)
    a = s.assign("E1", 1, ["g2", "g1", "g2"])
    assert a["graderIds"] == ["g2", "g1"]
    assert [t["graderId"] for t in a["tasks"]] == ["g2", "g1", "g2"]


def test_assign_per_question_submissions(tmpdir) -> None:
    s = make_server(tmpdir)
    a = s.assign("E1", 3, ["g1", "g2"])
    assert [t["submissionId"] for t in a["tasks"]] == ["s1"]
    assert a["tasks"][0]["maxScore"] == 10


def test_assign_twice(tmpdir) -> None:
    s = make_server(tmpdir)
    s.assign("E1", 1, ["g1", "g2"])
    n = len(s.listTasks())
    a = s.assign("E1", 1, ["g1", "g2"])
    assert a["tasks"] == []
    assert len(s.listTasks()) == n


def test_assign_becomes_gradable(tmpdir) -> None:
    s = make_server(tmpdir)
    with raises(GradingInvalidState):
        s.assign("E2", 1, ["g1"])
    s.catalog.set_status("E2", "grading")
    a = s.assign("E2", 1, ["g1"])
    assert len(a["tasks"]) == 1


def test_max_score_is_copied(tmpdir) -> None:
    s = make_server(tmpdir)
    a = s.assign("E1", 1, ["g1"], creator="boss")
    key = a["tasks"][0]["id"]
    s.catalog.set_max_score("E1", 1, 2)
    assert s.maxScore("E1", 1) == 2
    assert s.getTask(key)["maxScore"] == 5
    s.claim(key, "g1")
    # still valid against the score the task was created with
    t = s.complete(key, "g1", 4.5)
    assert t["score"] == 4.5


def test_max_score_out_of_range(tmpdir) -> None:
    s = make_server(tmpdir)
    with raises(ValueError):
        s.maxScore("E1", 4)
    with raises(GradingNotFound):
        s.maxScore("nope", 1)


def test_cancel_and_reassign(tmpdir) -> None:
    s = make_server(tmpdir)
    a = s.assign("E1", 1, ["g1"])
    k1, k2, k3 = [t["id"] for t in a["tasks"]]
    s.claim(k1, "g1")
    c = s.cancelAssignment(a["id"])
    assert c["canceled"]
    assert sorted(c["pooledTasks"]) == sorted([k2, k3])
    assert c["status"] == "in_progress"
    # g1 is no longer permitted to pull from the pool
    assert s.listPool("g1") == []
    b = s.assign("E1", 1, ["g2"])
    assert sorted(t["id"] for t in b["tasks"]) == sorted([k2, k3])
    assert [x["id"] for x in s.listAssignments("E1")] == [a["id"], b["id"]]

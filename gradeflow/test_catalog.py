# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from pathlib import Path

from pytest import raises

from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.grading_exceptions import GradingNotFound


def exam(status="grading", N=2):
    return {
        "name": "Quiz",
        "status": status,
        "numberOfQuestions": N,
        "question": {q: {"mark": 5 * q} for q in range(1, N + 1)},
    }


def test_catalog_template_loads() -> None:
    c = ExamCatalog.from_toml_string(ExamCatalog._template_as_string())
    assert "E1" in c
    assert c.is_gradable("E1")
    assert c.number_of_questions("E1") == 3
    assert c.max_score("E1", 3) == 10


def test_catalog_template_file(tmpdir) -> None:
    f = Path(tmpdir) / "cat.toml"
    ExamCatalog.create_template(f)
    c = ExamCatalog.from_toml_file(f)
    assert c.exam_ids() == ["E1"]
    assert c.exam_name("E1") == "Midterm 1"


def test_catalog_int_question_keys() -> None:
    c = ExamCatalog({"Q": exam()})
    assert c.max_score("Q", 1) == 5
    assert c.max_score("Q", 2) == 10


def test_catalog_unknown_exam() -> None:
    c = ExamCatalog({"Q": exam()})
    assert "nope" not in c
    with raises(GradingNotFound):
        c.status("nope")
    with raises(GradingNotFound):
        c.max_score("nope", 1)


def test_catalog_question_out_of_range() -> None:
    c = ExamCatalog({"Q": exam()})
    for q in (0, 3, -1, True, "1"):
        with raises(ValueError, match="range"):
            c.max_score("Q", q)


def test_catalog_status() -> None:
    c = ExamCatalog({"Q": exam(status="ongoing")})
    assert not c.is_gradable("Q")
    c.set_status("Q", "grading")
    assert c.is_gradable("Q")
    with raises(ValueError):
        c.set_status("Q", "marking")


def test_catalog_invalid_exams() -> None:
    with raises(ValueError, match="status"):
        ExamCatalog({"Q": exam(status="weird")})
    e = exam()
    e["numberOfQuestions"] = 0
    with raises(ValueError, match="numberOfQuestions"):
        ExamCatalog({"Q": e})
    e = exam()
    e["question"].pop(2)
    with raises(ValueError, match="no mark"):
        ExamCatalog({"Q": e})
    e = exam()
    e["question"][1]["mark"] = -2
    with raises(ValueError, match="mark"):
        ExamCatalog({"Q": e})
    e = exam()
    e["question"][3] = {"mark": 1}
    with raises(ValueError, match="beyond"):
        ExamCatalog({"Q": e})


def test_catalog_set_max_score_does_not_touch_input() -> None:
    e = exam()
    c = ExamCatalog({"Q": e})
    c.set_max_score("Q", 1, 7)
    assert c.max_score("Q", 1) == 7
    assert e["question"][1]["mark"] == 5


def test_submissions_all_questions() -> None:
    s = SubmissionSource({"Q": ["a", "b", "c"]})
    assert s.eligible_submissions("Q", 1) == ["a", "b", "c"]
    assert s.eligible_submissions("Q", 2) == ["a", "b", "c"]


def test_submissions_unknown_exam_is_empty() -> None:
    s = SubmissionSource({"Q": ["a"]})
    assert s.eligible_submissions("nope", 1) == []


def test_submissions_per_question() -> None:
    s = SubmissionSource({"Q": {"submissions": ["a", "b"], "questions": {"2": ["b"]}}})
    assert s.eligible_submissions("Q", 1) == ["a", "b"]
    assert s.eligible_submissions("Q", 2) == ["b"]


def test_submissions_duplicates_ignored() -> None:
    s = SubmissionSource({"Q": ["a", "b"]})
    s.add_submission("Q", "a")
    s.add_submission("Q", "c")
    assert s.eligible_submissions("Q", 1) == ["a", "b", "c"]


def test_submissions_template(tmpdir) -> None:
    f = Path(tmpdir) / "subs.toml"
    SubmissionSource.create_template(f)
    s = SubmissionSource.from_toml_file(f)
    assert len(s.eligible_submissions("E1", 1)) == 4
    assert len(s.eligible_submissions("E1", 3)) == 3

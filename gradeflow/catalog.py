# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""The exam catalog and submission source used when planning grading work.

Neither is owned by the grading engine: in a real deployment they are
fed by the exam management screens and the upload pipeline.  Here they
are simple in-memory objects which can be loaded from TOML files.

An exam catalog looks like::

    [E1]
    name = "Midterm 1"
    status = "grading"
    numberOfQuestions = 2

    [E1.question.1]
    mark = 5

    [E1.question.2]
    mark = 10

and a submission source like::

    [E1]
    submissions = ["s0001", "s0002", "s0003"]

    # optional: only some submissions answered question 2
    [E1.questions]
    2 = ["s0001", "s0003"]
"""

from __future__ import annotations

from copy import deepcopy
from importlib import resources
import logging
from pathlib import Path
import sys
from typing import Any

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib

import gradeflow
from gradeflow.grading_exceptions import GradingNotFound


log = logging.getLogger("catalog")

exam_statuses = ("draft", "published", "ongoing", "grading", "completed")


def _is_positive_int(n) -> bool:
    return isinstance(n, int) and not isinstance(n, bool) and n > 0


def _is_non_negative_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and x >= 0


class ExamCatalog:
    """Exam status, question count and per-question maximum score.

    Only exams whose status is ``"grading"`` can have grading work
    assigned.
    """

    GRADABLE = "grading"

    def __init__(self, exams: dict[str, dict[str, Any]] | None = None):
        self._exams: dict[str, dict[str, Any]] = {}
        for exam_id, exam in (exams or {}).items():
            self.add_exam(exam_id, exam)

    @classmethod
    def _template_as_string(cls) -> str:
        return (resources.files(gradeflow) / "templateExamCatalog.toml").read_text()

    @classmethod
    def create_template(cls, fname="examCatalog.toml"):
        fname = Path(fname)
        with open(fname, "w") as f:
            f.write(cls._template_as_string())
        log.info('Wrote exam catalog template to "%s"', fname)

    @classmethod
    def from_toml_file(cls, fname="examCatalog.toml"):
        with open(fname, "rb") as f:
            return cls(tomllib.load(f))

    @classmethod
    def from_toml_string(cls, text: str):
        return cls(tomllib.loads(text))

    @staticmethod
    def _check_exam(exam_id: str, exam: dict[str, Any]) -> None:
        status = exam.get("status")
        if status not in exam_statuses:
            raise ValueError(
                f"Exam {exam_id}: status {status!r} is not one of {exam_statuses}"
            )
        N = exam.get("numberOfQuestions")
        if not _is_positive_int(N):
            raise ValueError(f"Exam {exam_id}: numberOfQuestions must be positive")
        questions = exam.get("question", {})
        for q in range(1, N + 1):
            try:
                mark = questions[str(q)]["mark"]
            except KeyError:
                raise ValueError(f"Exam {exam_id}: question {q} has no mark") from None
            if not _is_non_negative_number(mark):
                raise ValueError(
                    f"Exam {exam_id}: question {q} mark {mark!r} is not a number >= 0"
                )
        extra = set(questions.keys()) - {str(q) for q in range(1, N + 1)}
        if extra:
            raise ValueError(
                f"Exam {exam_id}: questions {sorted(extra)} beyond numberOfQuestions={N}"
            )

    def add_exam(self, exam_id: str, exam: dict[str, Any]) -> None:
        exam = deepcopy(exam)
        # toml tables always have string keys, python callers might not
        exam["question"] = {str(k): v for k, v in exam.get("question", {}).items()}
        self._check_exam(exam_id, exam)
        self._exams[exam_id] = exam

    def __contains__(self, exam_id) -> bool:
        return exam_id in self._exams

    def exam_ids(self) -> list[str]:
        return sorted(self._exams.keys())

    def get_exam(self, exam_id: str) -> dict[str, Any]:
        try:
            return self._exams[exam_id]
        except KeyError:
            raise GradingNotFound(f"No such exam {exam_id}") from None

    def exam_name(self, exam_id: str) -> str:
        return self.get_exam(exam_id).get("name", exam_id)

    def status(self, exam_id: str) -> str:
        return self.get_exam(exam_id)["status"]

    def set_status(self, exam_id: str, status: str) -> None:
        if status not in exam_statuses:
            raise ValueError(f"status {status!r} is not one of {exam_statuses}")
        self.get_exam(exam_id)["status"] = status

    def is_gradable(self, exam_id: str) -> bool:
        return self.status(exam_id) == self.GRADABLE

    def number_of_questions(self, exam_id: str) -> int:
        return self.get_exam(exam_id)["numberOfQuestions"]

    def max_score(self, exam_id: str, question: int) -> int | float:
        """The maximum score of a question.

        Raises:
            GradingNotFound: no such exam.
            ValueError: question out of range.
        """
        N = self.number_of_questions(exam_id)
        if not _is_positive_int(question) or question > N:
            raise ValueError(f"question={question} out of range [1, {N}]")
        return self.get_exam(exam_id)["question"][str(question)]["mark"]

    def set_max_score(self, exam_id: str, question: int, mark: int | float) -> None:
        """Change the maximum score of a question.

        Tasks already created keep the maximum score they were created with.
        """
        self.max_score(exam_id, question)
        if not _is_non_negative_number(mark):
            raise ValueError(f"mark {mark!r} is not a number >= 0")
        self.get_exam(exam_id)["question"][str(question)]["mark"] = mark


class SubmissionSource:
    """Which student submissions exist to be graded, per exam and question.

    By default every submission of an exam is eligible for every
    question; an exam may instead list the submissions for particular
    questions.  Order is preserved: it decides the round-robin order in
    which graders receive work.
    """

    def __init__(self, submissions: dict[str, Any] | None = None):
        self._subs: dict[str, list[str]] = {}
        self._per_question: dict[str, dict[int, list[str]]] = {}
        for exam_id, data in (submissions or {}).items():
            if isinstance(data, list):
                data = {"submissions": data}
            for sid in data.get("submissions", []):
                self.add_submission(exam_id, sid)
            for q, sids in data.get("questions", {}).items():
                self._per_question.setdefault(exam_id, {})[int(q)] = list(sids)

    @classmethod
    def _template_as_string(cls) -> str:
        return (resources.files(gradeflow) / "templateSubmissions.toml").read_text()

    @classmethod
    def create_template(cls, fname="submissions.toml"):
        with open(fname, "w") as f:
            f.write(cls._template_as_string())
        log.info('Wrote submissions template to "%s"', fname)

    @classmethod
    def from_toml_file(cls, fname="submissions.toml"):
        with open(fname, "rb") as f:
            return cls(tomllib.load(f))

    def add_submission(self, exam_id: str, submission_id: str) -> None:
        subs = self._subs.setdefault(exam_id, [])
        if submission_id in subs:
            log.warning("Submission %s of exam %s already known", submission_id, exam_id)
            return
        subs.append(submission_id)

    def eligible_submissions(self, exam_id: str, question: int) -> list[str]:
        """Submissions of an exam which have an answer to the given question.

        Unknown exams have no submissions, which is not an error.
        """
        per_q = self._per_question.get(exam_id, {})
        if question in per_q:
            return list(per_q[question])
        return list(self._subs.get(exam_id, []))

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import logging

from gradeflow.grading_exceptions import GradingEmptyGraderSet, GradingInvalidState


log = logging.getLogger("server")


def assign(self, exam_id, question, grader_ids, *, creator=None):
    """Assign grading of one question of an exam to some graders.

    Every eligible submission not already being graded for this question
    gets a task, handed out round-robin over `grader_ids` in order.
    Tasks sitting in the pool are eligible and are re-bound.

    Args:
        exam_id (str):
        question (int): 1-indexed.
        grader_ids (list[str]): repeats are dropped, keeping the first.

    Keyword Args:
        creator (str/None): the administrator doing this.

    Returns:
        dict: the assignment, including a ``"tasks"`` list of the tasks
        created or re-bound.  Calling again with nothing new to grade
        creates an assignment with no tasks.

    Raises:
        GradingEmptyGraderSet: no graders.
        GradingNotFound: no such exam.
        GradingInvalidState: the exam is not being graded, or it has no
            such question.
    """
    graders = []
    for g in grader_ids or []:
        if g not in graders:
            graders.append(g)
    if not graders:
        raise GradingEmptyGraderSet()
    status = self.catalog.status(exam_id)
    if status != self.catalog.GRADABLE:
        raise GradingInvalidState(
            f"Exam {exam_id} is {status}: it must be {self.catalog.GRADABLE} to assign work"
        )
    N = self.catalog.number_of_questions(exam_id)
    if isinstance(question, bool) or not isinstance(question, int) or not 1 <= question <= N:
        raise GradingInvalidState(
            f"Exam {exam_id} has no question {question}: questions are 1 to {N}"
        )
    max_score = self.catalog.max_score(exam_id, question)
    submissions = self.submissions.eligible_submissions(exam_id, question)
    log.info(
        'Assigning Q%d of exam %s to %s for "%s"', question, exam_id, graders, creator
    )
    return self.DB.assignTasks(
        exam_id, question, graders, submissions, max_score, creator=creator
    )


def maxScore(self, exam_id, question):
    return self.catalog.max_score(exam_id, question)


def listAssignments(self, exam_id=None):
    return self.DB.listAssignments(exam_id)


def cancelAssignment(self, key):
    """Cancel an assignment, returning its unstarted tasks to the pool.

    Returns:
        dict: the assignment, with an extra key ``"pooledTasks"`` listing
        the keys of tasks put back in the pool.
    """
    assignment, pooled = self.DB.cancelAssignment(key)
    assignment["pooledTasks"] = pooled
    return assignment

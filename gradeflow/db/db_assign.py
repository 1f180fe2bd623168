# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import json
import logging
import uuid

from gradeflow.grading_exceptions import (
    GradingEmptyGraderSet,
    GradingInvalidState,
    GradingNotFound,
)
from gradeflow.db.tables import GradingAssignment, GradingTask
from gradeflow.db.db_utils import store_guard, assignment_as_dict


log = logging.getLogger("DB")


def _permitted_graders(exam_id, question):
    """Everyone named on a live assignment of this exam and question."""
    graders = set()
    for aref in GradingAssignment.select().where(
        GradingAssignment.exam_id == exam_id,
        GradingAssignment.question == question,
        GradingAssignment.canceled == False,  # noqa: E712
    ):
        graders.update(aref.grader_list())
    return graders


def _get_assignment_ref(key):
    aref = GradingAssignment.get_or_none(GradingAssignment.key == key)
    if aref is None:
        raise GradingNotFound(f"No such assignment {key}")
    return aref


@store_guard
def assignTasks(
    self, exam_id, question, graders, submission_ids, max_score, *, creator=None
):
    """Create an assignment and tasks for those submissions not already covered.

    A submission is covered if it has a task for this question which is
    bound to a grader or is claimed or completed.  Submissions whose
    task sits in the pool are re-bound to the new assignment's graders.
    The check and the creation happen in one write transaction.

    Args:
        exam_id (str):
        question (int):
        graders (list[str]): non-empty, without repeats, in round-robin order.
        submission_ids (list[str]): the eligible submissions, in order.
        max_score (int/float): for newly created tasks.

    Keyword Args:
        creator (str/None): who asked for this assignment.

    Returns:
        dict: the assignment, with an extra key ``"tasks"`` listing
        the tasks created or re-bound by this call.  An assignment is
        recorded even if it covers no new submissions.
    """
    if not graders:
        raise GradingEmptyGraderSet()
    with self._write_atomic():
        covered = set(
            t.submission_id
            for t in GradingTask.select().where(
                GradingTask.exam_id == exam_id,
                GradingTask.question == question,
                (GradingTask.grader.is_null(False))
                | (GradingTask.status != GradingTask.PENDING),
            )
        )
        todo = [s for s in submission_ids if s not in covered]
        aref = GradingAssignment.create(
            key=uuid.uuid4().hex,
            exam_id=exam_id,
            question=question,
            graders=json.dumps(list(graders)),
            creator=creator,
            created_at=self.now(),
        )
        log.info(
            "Assignment %s for Q%d of exam %s: %d submissions, %d already covered",
            aref.key,
            question,
            exam_id,
            len(submission_ids),
            len(submission_ids) - len(todo),
        )
        tasks = self.createTasks(aref.key, todo, max_score) if todo else []
        rval = assignment_as_dict(aref)
    rval["tasks"] = tasks
    return rval


@store_guard
def getAssignment(self, key):
    return assignment_as_dict(_get_assignment_ref(key))


@store_guard
def listAssignments(self, exam_id=None):
    query = GradingAssignment.select()
    if exam_id is not None:
        query = query.where(GradingAssignment.exam_id == exam_id)
    return [
        assignment_as_dict(a)
        for a in query.order_by(GradingAssignment.created_at, GradingAssignment.id)
    ]


@store_guard
def cancelAssignment(self, key):
    """Cancel an assignment.

    Its pending tasks return to the pool.  Claimed tasks stay with their
    graders, who may still finish them.  Completed tasks are untouched.

    Returns:
        tuple: the assignment as a dict and the list of task keys
        returned to the pool.

    Raises:
        GradingNotFound: no such assignment.
        GradingInvalidState: already canceled.
    """
    with self._write_atomic():
        aref = _get_assignment_ref(key)
        if aref.canceled:
            raise GradingInvalidState(f"Assignment {key} is already canceled")
        aref.canceled = True
        aref.save()
        pooled = [
            t.key
            for t in aref.tasks.where(
                GradingTask.status == GradingTask.PENDING,
                GradingTask.grader.is_null(False),
            )
        ]
        if pooled:
            GradingTask.update(grader=None, assigned_at=None).where(
                GradingTask.key.in_(pooled)
            ).execute()
        rval = assignment_as_dict(aref)
    log.info("Assignment %s canceled: %d tasks returned to pool", key, len(pooled))
    return rval, pooled


@store_guard
def permittedGraders(self, exam_id, question):
    return sorted(_permitted_graders(exam_id, question))

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import logging
import uuid

import peewee as pw

from gradeflow.grading_exceptions import (
    GradingAlreadyCompleted,
    GradingDuplicateAssignment,
    GradingEmptyGraderSet,
    GradingInvalidState,
    GradingInvalidTransition,
    GradingNotAssignedToGrader,
    GradingNotFound,
)
from gradeflow.score_utils import check_score
from gradeflow.db.tables import GradingAssignment, GradingTask, AbandonEvent
from gradeflow.db.db_utils import store_guard, task_as_dict, event_as_dict
from gradeflow.db.db_assign import _permitted_graders


log = logging.getLogger("DB")


# transition name: (statuses it may start from, status it ends in)
TRANSITIONS = {
    "claim": ((GradingTask.PENDING,), GradingTask.CLAIMED),
    "save": ((GradingTask.CLAIMED,), GradingTask.CLAIMED),
    "complete": ((GradingTask.CLAIMED,), GradingTask.COMPLETED),
    "abandon": ((GradingTask.CLAIMED, GradingTask.PENDING), GradingTask.PENDING),
}

task_statuses = (GradingTask.PENDING, GradingTask.CLAIMED, GradingTask.COMPLETED)


def _get_task_ref(key):
    tref = GradingTask.get_or_none(GradingTask.key == key)
    if tref is None:
        log.info("Task %s not known", key)
        raise GradingNotFound(f"No such task {key}")
    return tref


def _check_transition(tref, transition):
    """Raise unless the task's current status permits the transition."""
    allowed, _ = TRANSITIONS[transition]
    if transition == "complete" and tref.status == GradingTask.COMPLETED:
        raise GradingAlreadyCompleted(
            f"Task {tref.key} is already completed with score {tref.score:g}"
        )
    if tref.status not in allowed:
        raise GradingInvalidTransition(
            f"Cannot {transition} task {tref.key}: it is {tref.status}"
        )


def _check_owner(tref, grader):
    if tref.grader != grader:
        log.info('Task %s is held by "%s", not by "%s"', tref.key, tref.grader, grader)
        raise GradingNotAssignedToGrader(f"Task {tref.key} is not assigned to {grader}")


def _apply_changes(tref, changes):
    """Write changes to a task, but only if it is still as we read it.

    Returns:
        GradingTask: the freshly read task.

    Raises:
        GradingInvalidTransition: someone else changed the task first.
    """
    conditions = [GradingTask.id == tref.id, GradingTask.status == tref.status]
    if tref.grader is None:
        conditions.append(GradingTask.grader.is_null())
    else:
        conditions.append(GradingTask.grader == tref.grader)
    n = GradingTask.update(**changes).where(*conditions).execute()
    current = GradingTask.get_by_id(tref.id)
    if n != 1:
        log.warning(
            "Task %s changed from %s to %s underneath us", tref.key, tref.status, current.status
        )
        raise GradingInvalidTransition(
            f"Task {tref.key} was changed by someone else: it is now {current.status}"
        )
    return current


@store_guard
def createTasks(self, assignment_key, submission_ids, max_score):
    """Create one pending task per submission, bound round-robin to the assignment's graders.

    A task already in the pool (pending with no grader) for the same
    submission and question is re-bound in place rather than duplicated.

    Args:
        assignment_key (str): which assignment owns the new tasks.
        submission_ids (list[str]): in the order graders should receive them.
        max_score (int/float): copied into each new task.

    Returns:
        list[dict]: the created or re-bound tasks.

    Raises:
        GradingNotFound: no such assignment.
        GradingInvalidState: the assignment is canceled.
        GradingEmptyGraderSet: the assignment has no graders.
        GradingDuplicateAssignment: one of the submissions is already
            actively covered.  Nothing is created in this case.
    """
    if len(set(submission_ids)) != len(submission_ids):
        raise ValueError("Repeated submission ids")
    with self._write_atomic():
        aref = GradingAssignment.get_or_none(GradingAssignment.key == assignment_key)
        if aref is None:
            raise GradingNotFound(f"No such assignment {assignment_key}")
        if aref.canceled:
            raise GradingInvalidState(f"Assignment {assignment_key} is canceled")
        graders = aref.grader_list()
        if not graders:
            raise GradingEmptyGraderSet()
        now = self.now()
        trefs = []
        for n, sid in enumerate(submission_ids):
            grader = graders[n % len(graders)]
            tref = GradingTask.get_or_none(
                exam_id=aref.exam_id, submission_id=sid, question=aref.question
            )
            if tref is None:
                try:
                    tref = GradingTask.create(
                        key=uuid.uuid4().hex,
                        assignment=aref,
                        exam_id=aref.exam_id,
                        question=aref.question,
                        submission_id=sid,
                        grader=grader,
                        status=GradingTask.PENDING,
                        max_score=max_score,
                        created_at=now,
                        assigned_at=now,
                    )
                except pw.IntegrityError:
                    raise GradingDuplicateAssignment(
                        f"Submission {sid} question {aref.question} of exam"
                        f" {aref.exam_id} was assigned concurrently"
                    ) from None
                trefs.append(tref)
                continue
            if tref.grader is not None or tref.status != GradingTask.PENDING:
                raise GradingDuplicateAssignment(
                    f"Submission {sid} question {aref.question} of exam"
                    f" {aref.exam_id} is already assigned as task {tref.key}"
                )
            log.info("Re-binding pooled task %s to %s", tref.key, grader)
            tref = _apply_changes(
                tref, {"grader": grader, "assignment": aref, "assigned_at": now}
            )
            trefs.append(tref)
    log.info(
        "Assignment %s: %d tasks for Q%d of exam %s over graders %s",
        assignment_key,
        len(trefs),
        aref.question,
        aref.exam_id,
        graders,
    )
    return [task_as_dict(t) for t in trefs]


@store_guard
def getTask(self, key):
    """Get one task as a dict.

    Raises:
        GradingNotFound: no such task.
    """
    return task_as_dict(_get_task_ref(key))


@store_guard
def listTasks(
    self,
    *,
    exam_id=None,
    grader=None,
    status=None,
    question=None,
    assignment_key=None,
    offset=0,
    limit=None,
):
    """List tasks matching all the given filters, oldest first.

    Keyword Args:
        exam_id, grader, status, question, assignment_key: filters,
            each ignored when None.
        offset (int): skip this many matches.
        limit (int/None): return at most this many.

    Returns:
        list[dict]: ordered by creation time, ties in creation order, so
        that pages of results are stable.
    """
    if status is not None and status not in task_statuses:
        raise ValueError(f"status {status!r} is not one of {task_statuses}")
    query = GradingTask.select()
    if exam_id is not None:
        query = query.where(GradingTask.exam_id == exam_id)
    if grader is not None:
        query = query.where(GradingTask.grader == grader)
    if status is not None:
        query = query.where(GradingTask.status == status)
    if question is not None:
        query = query.where(GradingTask.question == question)
    if assignment_key is not None:
        query = query.join(GradingAssignment).where(
            GradingAssignment.key == assignment_key
        )
    query = query.order_by(GradingTask.created_at, GradingTask.id)
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return [task_as_dict(t) for t in query]


@store_guard
def updateTaskState(self, key, transition, grader, *, score=None, feedback=None, reason=None):
    """Apply one transition of the grading state machine to a task.

    Args:
        key (str): which task.
        transition (str): one of ``"claim"``, ``"save"``, ``"complete"``
            or ``"abandon"``.
        grader (str): who is acting.

    Keyword Args:
        score (float/None): for "save" (optional) and "complete" (required).
        feedback (str/None): for "save" and "complete", optional.  None
            leaves any saved feedback in place.
        reason (str/None): for "abandon".

    Returns:
        dict: the task after the transition.

    Raises:
        GradingNotFound: no such task.
        GradingAlreadyCompleted: completing a completed task.
        GradingInvalidTransition: the current status does not permit
            this transition, including losing a race to another one.
        GradingNotAssignedToGrader: the task is someone else's.
        GradingMissingScore: completing without a score.
        GradingScoreOutOfRange: invalid score.
    """
    if transition not in TRANSITIONS:
        raise ValueError(f"Unknown transition {transition!r}")
    if transition == "abandon":
        return self.abandonTask(key, grader, reason=reason)[0]
    with self._write_atomic():
        tref = _get_task_ref(key)
        # status before ownership: the loser of a race sees InvalidTransition
        _check_transition(tref, transition)
        now = self.now()
        if transition == "claim":
            changes = {}
            if tref.grader is None:
                if grader not in _permitted_graders(tref.exam_id, tref.question):
                    raise GradingNotAssignedToGrader(
                        f"{grader} is not grading question {tref.question}"
                        f" of exam {tref.exam_id}"
                    )
                changes.update(grader=grader, assigned_at=now)
            else:
                _check_owner(tref, grader)
            changes.update(status=GradingTask.CLAIMED, started_at=now)
        elif transition == "save":
            _check_owner(tref, grader)
            score = check_score(score, tref.max_score, places=self.score_decimal_places)
            changes = {"progress_saved_at": now}
            if score is not None:
                changes["score"] = score
            if feedback is not None:
                changes["feedback"] = feedback
        else:
            _check_owner(tref, grader)
            score = check_score(
                score, tref.max_score, places=self.score_decimal_places, required=True
            )
            changes = {
                "status": GradingTask.COMPLETED,
                "score": score,
                "completed_at": now,
                "progress_saved_at": now,
            }
            if feedback is not None:
                changes["feedback"] = feedback
        tref = _apply_changes(tref, changes)
    log.info('Task %s: %s by "%s", now %s', key, transition, grader, tref.status)
    return task_as_dict(tref)


@store_guard
def abandonTask(self, key, grader, *, reason=None, on_abandon=None):
    """Release a task back to the pool.

    A claimed task, or a pending task bound to this grader, loses its
    grader and any draft score or feedback, and an abandonment is
    recorded.  Abandoning a task already in the pool changes nothing.

    Keyword Args:
        reason (str/None): why, as given by the grader.
        on_abandon (callable/None): called as ``on_abandon(task, event)``
            inside the same transaction, returning the task as it should
            be reported.  If it raises, the abandonment is rolled back.

    Returns:
        tuple: ``(task, event)`` where `task` is the task dict after
        abandonment and `event` is the abandonment record as a dict,
        or None if nothing happened.

    Raises:
        GradingNotFound: no such task.
        GradingInvalidTransition: the task is completed, or changed
            underneath us.
        GradingNotAssignedToGrader: the task is someone else's.
    """
    with self._write_atomic():
        tref = _get_task_ref(key)
        _check_transition(tref, "abandon")
        if tref.status == GradingTask.PENDING and tref.grader is None:
            log.debug("Task %s is already in the pool: nothing to abandon", key)
            return task_as_dict(tref), None
        _check_owner(tref, grader)
        now = self.now()
        from_status = tref.status
        tref = _apply_changes(
            tref,
            {
                "status": GradingTask.PENDING,
                "grader": None,
                "assigned_at": None,
                "score": None,
                "feedback": None,
                "started_at": None,
                "progress_saved_at": None,
                "abandon_count": tref.abandon_count + 1,
                "last_abandoned_at": now,
                "last_abandon_reason": reason,
            },
        )
        eref = AbandonEvent.create(
            task=tref, grader=grader, reason=reason, from_status=from_status, time=now
        )
        task = task_as_dict(tref)
        if on_abandon is not None:
            task = on_abandon(task, event_as_dict(eref))
            eref = AbandonEvent.get_by_id(eref.id)
    log.info(
        'Task %s abandoned by "%s" from %s (abandonment %d): %s',
        key,
        grader,
        from_status,
        tref.abandon_count,
        reason,
    )
    return task, event_as_dict(eref)


@store_guard
def bindPooledTask(self, key, grader):
    """Bind a task in the pool to a grader, without claiming it.

    Returns:
        dict/None: the task, or None if it was no longer in the pool.
    """
    with self._write_atomic():
        tref = _get_task_ref(key)
        if tref.status != GradingTask.PENDING or tref.grader is not None:
            log.info("Task %s left the pool before it could be bound", key)
            return None
        tref = _apply_changes(tref, {"grader": grader, "assigned_at": self.now()})
    log.info('Pooled task %s bound to "%s"', key, grader)
    return task_as_dict(tref)


@store_guard
def recordAbandonOutcome(self, event_id, *, flagged, rebound_to=None):
    """Note what the reassignment policy did about an abandonment.

    Args:
        event_id (int): the `"id"` of the abandonment record.

    Keyword Args:
        flagged (bool): the task has been abandoned too often.
        rebound_to (str/None): the grader it was given to, if any.

    Raises:
        GradingNotFound: no such abandonment.
    """
    # not the update's row count: MySQL only counts rows whose values changed
    if AbandonEvent.get_or_none(AbandonEvent.id == event_id) is None:
        raise GradingNotFound(f"No such abandonment {event_id}")
    AbandonEvent.update(flagged=flagged, rebound_to=rebound_to).where(
        AbandonEvent.id == event_id
    ).execute()


@store_guard
def listPool(self, grader, *, exam_id=None):
    """Tasks in the pool which a grader may pull, oldest first."""
    query = GradingTask.select().where(
        GradingTask.status == GradingTask.PENDING, GradingTask.grader.is_null()
    )
    if exam_id is not None:
        query = query.where(GradingTask.exam_id == exam_id)
    permitted = {}
    pool = []
    for tref in query.order_by(GradingTask.created_at, GradingTask.id):
        eq = (tref.exam_id, tref.question)
        if eq not in permitted:
            permitted[eq] = _permitted_graders(*eq)
        if grader in permitted[eq]:
            pool.append(task_as_dict(tref))
    return pool

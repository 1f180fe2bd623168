# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Helpers shared by the database modules."""

import functools
import logging

import peewee as pw

from gradeflow.grading_exceptions import GradingStoreUnavailable
from gradeflow.misc_utils import datetime_to_json
from gradeflow.db.tables import GradingTask


log = logging.getLogger("DB")


def store_guard(f):
    """Decorator turning failures of the backing store into GradingStoreUnavailable.

    Only operational problems (locked or vanished database, dropped
    connection) are converted: integrity errors are bugs or duplicate
    detection, and are handled where they occur.
    """

    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (pw.OperationalError, pw.InterfaceError) as e:
            log.error("%s: database failure: %s", f.__name__, e)
            raise GradingStoreUnavailable(
                f"The grading database is unavailable: {e}"
            ) from e

    return wrapped


def task_as_dict(tref):
    """The JSON-friendly view of a task given to callers."""
    return {
        "id": tref.key,
        "examId": tref.exam_id,
        "questionNumber": tref.question,
        "submissionId": tref.submission_id,
        "assignmentId": tref.assignment.key if tref.assignment else None,
        "graderId": tref.grader,
        "status": tref.status,
        "score": tref.score,
        "maxScore": tref.max_score,
        "feedback": tref.feedback,
        "createdAt": datetime_to_json(tref.created_at),
        "assignedAt": datetime_to_json(tref.assigned_at),
        "startedAt": datetime_to_json(tref.started_at),
        "completedAt": datetime_to_json(tref.completed_at),
        "lastProgressSavedAt": datetime_to_json(tref.progress_saved_at),
        "abandonCount": tref.abandon_count,
        "lastAbandonedAt": datetime_to_json(tref.last_abandoned_at),
        "lastAbandonReason": tref.last_abandon_reason,
    }


def assignment_status(statuses):
    """Derive the status of an assignment from the statuses of its tasks."""
    if statuses and all(s == GradingTask.COMPLETED for s in statuses):
        return "completed"
    if any(s in (GradingTask.CLAIMED, GradingTask.COMPLETED) for s in statuses):
        return "in_progress"
    return "pending"


def assignment_as_dict(aref):
    statuses = [t.status for t in aref.tasks]
    return {
        "id": aref.key,
        "examId": aref.exam_id,
        "questionNumber": aref.question,
        "graderIds": aref.grader_list(),
        "creator": aref.creator,
        "canceled": aref.canceled,
        "status": assignment_status(statuses),
        "taskCount": len(statuses),
        "completedCount": statuses.count(GradingTask.COMPLETED),
        "createdAt": datetime_to_json(aref.created_at),
    }


def event_as_dict(eref):
    return {
        "id": eref.id,
        "taskId": eref.task.key,
        "graderId": eref.grader,
        "reason": eref.reason,
        "fromStatus": eref.from_status,
        "time": datetime_to_json(eref.time),
        "flagged": eref.flagged,
        "reboundTo": eref.rebound_to,
    }

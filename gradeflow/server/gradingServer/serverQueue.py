# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import logging


log = logging.getLogger("server")


def getTask(self, key):
    return self.DB.getTask(key)


def listTasks(self, **kwargs):
    return self.DB.listTasks(**kwargs)


def listForGrader(self, grader, exam_id=None):
    """The work queue of a grader: their pending and claimed tasks, oldest first."""
    return [
        t
        for t in self.DB.listTasks(grader=grader, exam_id=exam_id)
        if t["status"] != "completed"
    ]


def listPool(self, grader, exam_id=None):
    return self.DB.listPool(grader, exam_id=exam_id)


def claim(self, key, grader):
    """Start work on a task.

    The task must be pending and either bound to this grader or sitting
    in the pool for a question this grader is assigned to.

    Raises:
        GradingNotFound:
        GradingInvalidTransition: not pending.
        GradingNotAssignedToGrader:
    """
    return self.DB.updateTaskState(key, "claim", grader)


def saveProgress(self, key, grader, score=None, feedback=None):
    """Save a draft score and/or feedback on a claimed task.

    Fields given as None are left as they were.
    """
    return self.DB.updateTaskState(key, "save", grader, score=score, feedback=feedback)


def complete(self, key, grader, score, feedback=None):
    """Finish a claimed task with a final score.

    If `feedback` is None any saved draft feedback is kept.

    Raises:
        GradingNotFound:
        GradingAlreadyCompleted:
        GradingInvalidTransition: not claimed.
        GradingNotAssignedToGrader:
        GradingMissingScore:
        GradingScoreOutOfRange:
    """
    return self.DB.updateTaskState(
        key, "complete", grader, score=score, feedback=feedback
    )


def abandon(self, key, grader, reason=None):
    """Give a task up, returning it to the pool.

    The reassignment policy then decides what happens to it, in the
    same transaction: if the policy cannot finish, the task is left as
    it was.  Abandoning a task which is already in the pool does nothing.

    Returns:
        dict: the task after the reassignment policy has acted.

    Raises:
        GradingNotFound:
        GradingInvalidTransition: completed.
        GradingNotAssignedToGrader: someone else's task.
        GradingStoreUnavailable: nothing was changed.
    """
    task, _ = self.DB.abandonTask(
        key,
        grader,
        reason=reason,
        on_abandon=lambda t, ev: self.reassigner.handle(self.DB, t, ev),
    )
    return task

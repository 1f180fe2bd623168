# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""What happens to a task after its grader abandons it."""

import logging


log = logging.getLogger("server")


class ReassignmentPolicy:
    """React to abandonment of a task.

    By the time the policy hears about it, the task is already back in
    the pool: pending, with no grader.  In ``"pool"`` mode it stays
    there, for any permitted grader to claim or for an administrator to
    hand out with another assignment.  In ``"auto"`` mode it is bound to
    the permitted grader with the fewest unfinished tasks, other than
    the one who just abandoned it; if there is no such grader it stays
    in the pool.

    Independently of the mode, a task abandoned more than `threshold`
    times is flagged for an administrator's attention.  Flagging never
    prevents reassignment.

    The policy runs inside the abandonment's transaction: if it fails,
    the abandonment is undone too.
    """

    modes = ("pool", "auto")

    def __init__(self, mode="pool", *, threshold=3):
        if mode not in self.modes:
            raise ValueError(f"reassignment {mode!r} is not one of {self.modes}")
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
            raise ValueError(f"abandon threshold {threshold!r} must be an integer >= 0")
        self.mode = mode
        self.threshold = threshold

    def __repr__(self):
        return f"ReassignmentPolicy({self.mode!r}, threshold={self.threshold})"

    def should_flag(self, abandon_count):
        return abandon_count > self.threshold

    @staticmethod
    def least_loaded(load):
        """The grader with the least load, ties going to the first listed.

        Args:
            load (dict): grader name to number of unfinished tasks.

        Returns:
            str/None: None if `load` is empty.
        """
        best = None
        for grader, n in load.items():
            if best is None or n < load[best]:
                best = grader
        return best

    def handle(self, db, task, event):
        """Apply the policy to a freshly abandoned task.

        Args:
            db (GradingDB): the task store.
            task (dict): the task, as returned by the abandonment.
            event (dict): the abandonment record.

        Returns:
            dict: the task as it stands after the policy has acted.
        """
        flagged = self.should_flag(task["abandonCount"])
        if flagged:
            log.warning(
                "Task %s (exam %s Q%d submission %s) has been abandoned %d times",
                task["id"],
                task["examId"],
                task["questionNumber"],
                task["submissionId"],
                task["abandonCount"],
            )
        rebound_to = None
        if self.mode == "auto":
            candidates = [
                g
                for g in db.permittedGraders(task["examId"], task["questionNumber"])
                if g != event["graderId"]
            ]
            choice = self.least_loaded(db.RgetGraderLoad(candidates))
            if choice is None:
                log.info("Task %s: no other grader available, left in pool", task["id"])
            else:
                rebound = db.bindPooledTask(task["id"], choice)
                if rebound is not None:
                    task = rebound
                    rebound_to = choice
        db.recordAbandonOutcome(event["id"], flagged=flagged, rebound_to=rebound_to)
        return task

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import json

import peewee as pw


database_proxy = pw.Proxy()


class BaseModel(pw.Model):
    class Meta:
        database = database_proxy


class GradingAssignment(BaseModel):
    # unique key - uuid4 hex, system generated
    key = pw.CharField(unique=True, null=False)
    exam_id = pw.CharField(null=False)
    question = pw.IntegerField(null=False)
    # ordered list of grader names, stored as json
    graders = pw.TextField(null=False, default=json.dumps([]))
    creator = pw.CharField(null=True)
    canceled = pw.BooleanField(default=False)
    created_at = pw.DateTimeField(null=False)

    def grader_list(self):
        return json.loads(self.graders)


class GradingTask(BaseModel):
    """One student's answer to one question, to be scored by one grader.

    The status is one of:

      - ``PENDING``: nobody has started.  If ``grader`` is None the task
        is in the pool, otherwise it is waiting for that grader.
      - ``CLAIMED``: the grader has started work.  Score and feedback
        may hold saved progress.
      - ``COMPLETED``: finished, with a final score.  Terminal.

    Abandoning a task is not a status: the task is reset to ``PENDING``
    with no grader, and an :class:`AbandonEvent` records what happened.
    """

    PENDING = "pending"
    CLAIMED = "claimed"
    COMPLETED = "completed"

    # unique key - uuid4 hex, system generated
    key = pw.CharField(unique=True, null=False)
    assignment = pw.ForeignKeyField(GradingAssignment, backref="tasks", null=True)
    exam_id = pw.CharField(null=False)
    question = pw.IntegerField(null=False)
    submission_id = pw.CharField(null=False)
    grader = pw.CharField(null=True)
    status = pw.CharField(null=False, default=PENDING)  # system generated - is short
    score = pw.DoubleField(null=True)
    # copied from the exam catalog when the task is created
    max_score = pw.DoubleField(null=False)
    feedback = pw.TextField(null=True)  # can be long
    created_at = pw.DateTimeField(null=False)
    assigned_at = pw.DateTimeField(null=True)
    started_at = pw.DateTimeField(null=True)
    completed_at = pw.DateTimeField(null=True)
    progress_saved_at = pw.DateTimeField(null=True)
    abandon_count = pw.IntegerField(null=False, default=0)
    last_abandoned_at = pw.DateTimeField(null=True)
    last_abandon_reason = pw.TextField(null=True)

    class Meta:
        # a submission/question pair is only ever covered by one task
        indexes = ((("exam_id", "submission_id", "question"), True),)


class AbandonEvent(BaseModel):
    task = pw.ForeignKeyField(GradingTask, backref="abandon_events")
    grader = pw.CharField(null=False)
    reason = pw.TextField(null=True)
    from_status = pw.CharField(null=False)
    time = pw.DateTimeField(null=False)
    flagged = pw.BooleanField(default=False)
    rebound_to = pw.CharField(null=True)

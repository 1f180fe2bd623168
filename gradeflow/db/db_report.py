# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from collections import defaultdict
from datetime import timedelta
import logging
from time import time

from gradeflow.misc_utils import datetime_to_json, seconds_between
from gradeflow.db.tables import GradingTask, AbandonEvent
from gradeflow.db.db_task import _get_task_ref
from gradeflow.db.db_utils import store_guard, task_as_dict, event_as_dict


log = logging.getLogger("DB")


# ------------------
# Reporting functions


def _percent(part, whole):
    if not whole:
        return 0.0
    return round(100 * part / whole, 1)


@store_guard
def RgetExamProgress(self, exam_id, *, window):
    """How far along the grading of an exam is.

    Args:
        exam_id (str):

    Keyword Args:
        window (datetime.timedelta): the trailing window over which the
            recent completion rate is measured.

    Returns:
        dict: overall and per-question counts, a per-grader breakdown
        and an estimate of when grading will finish.  The estimate is
        linear extrapolation of the completion rate within the window:
        ``"unknown"`` if nothing was completed in the window, and the
        current time if nothing remains to do.
    """
    t0 = time()
    now = self.now()
    window_start = now - window
    per_question = defaultdict(lambda: {"total": 0, "completed": 0})
    per_grader = defaultdict(lambda: {"total": 0, "completed": 0, "questions": set()})
    counts = {s: 0 for s in (GradingTask.PENDING, GradingTask.CLAIMED, GradingTask.COMPLETED)}
    pooled = 0
    recent = 0
    for tref in GradingTask.select().where(GradingTask.exam_id == exam_id):
        counts[tref.status] += 1
        done = tref.status == GradingTask.COMPLETED
        per_question[tref.question]["total"] += 1
        per_question[tref.question]["completed"] += done
        if tref.grader is None:
            pooled += 1
        else:
            per_grader[tref.grader]["total"] += 1
            per_grader[tref.grader]["completed"] += done
            per_grader[tref.grader]["questions"].add(tref.question)
        if done and tref.completed_at >= window_start:
            recent += 1

    total = sum(counts.values())
    remaining = total - counts[GradingTask.COMPLETED]
    if remaining == 0:
        eta_seconds = 0.0
    elif recent == 0:
        eta_seconds = None
    else:
        eta_seconds = remaining * window.total_seconds() / recent

    graders = []
    for g in sorted(per_grader):
        x = per_grader[g]
        graders.append(
            {
                "graderId": g,
                "totalTasks": x["total"],
                "completedTasks": x["completed"],
                "questions": sorted(x["questions"]),
                "progress": _percent(x["completed"], x["total"]),
            }
        )

    rval = {
        "examId": exam_id,
        "totalQuestions": len(per_question),
        "completedQuestions": sum(
            1 for x in per_question.values() if x["completed"] == x["total"]
        ),
        "questions": {
            q: {
                "totalTasks": x["total"],
                "completedTasks": x["completed"],
                "progress": _percent(x["completed"], x["total"]),
            }
            for q, x in sorted(per_question.items())
        },
        "totalTasks": total,
        "completedTasks": counts[GradingTask.COMPLETED],
        "claimedTasks": counts[GradingTask.CLAIMED],
        "pendingTasks": counts[GradingTask.PENDING],
        "pooledTasks": pooled,
        "progress": _percent(counts[GradingTask.COMPLETED], total),
        "graders": graders,
        "windowSeconds": window.total_seconds(),
        "completedInWindow": recent,
    }
    if eta_seconds is None:
        rval["estimatedSecondsRemaining"] = "unknown"
        rval["estimatedCompletionTime"] = "unknown"
    else:
        rval["estimatedSecondsRemaining"] = eta_seconds
        rval["estimatedCompletionTime"] = datetime_to_json(
            now + timedelta(seconds=eta_seconds)
        )
    log.debug(f"Progress of exam {exam_id} - took {time() - t0}s")
    return rval


@store_guard
def RgetStatistics(self, *, grader=None, exam_id=None, period_starts):
    """Counts by state, recent completions, scores and grading times.

    Keyword Args:
        grader (str/None): restrict to tasks held (or completed) by this
            grader, and abandonments made by them.
        exam_id (str/None): restrict to one exam.
        period_starts (dict): naive UTC datetimes keyed by ``"day"``,
            ``"week"`` and ``"month"``: the start of the current calendar
            periods in whatever time zone the caller has decided on.

    Returns:
        dict: an empty store gives zero counts, and None for the
        averages and ``efficiency``.
    """
    query = GradingTask.select()
    events = AbandonEvent.select().join(GradingTask)
    if grader is not None:
        query = query.where(GradingTask.grader == grader)
        events = events.where(AbandonEvent.grader == grader)
    if exam_id is not None:
        query = query.where(GradingTask.exam_id == exam_id)
        events = events.where(GradingTask.exam_id == exam_id)

    counts = defaultdict(int)
    period_counts = {p: 0 for p in ("day", "week", "month")}
    scores = []
    durations = []
    for tref in query:
        counts[tref.status] += 1
        if tref.status != GradingTask.COMPLETED:
            continue
        scores.append(tref.score)
        for p in period_counts:
            if tref.completed_at >= period_starts[p]:
                period_counts[p] += 1
        if tref.started_at is not None:
            durations.append(seconds_between(tref.started_at, tref.completed_at))

    total_time = sum(durations)
    average_time = total_time / len(durations) if durations else None
    return {
        "graderId": grader,
        "examId": exam_id,
        "totalTasks": sum(counts.values()),
        "pendingTasks": counts[GradingTask.PENDING],
        "claimedTasks": counts[GradingTask.CLAIMED],
        "completedTasks": counts[GradingTask.COMPLETED],
        "abandonedTasks": events.count(),
        "completedToday": period_counts["day"],
        "completedThisWeek": period_counts["week"],
        "completedThisMonth": period_counts["month"],
        "averageScore": sum(scores) / len(scores) if scores else None,
        "totalGradingTime": total_time,
        "averageGradingTime": average_time,
        "efficiency": average_time,
    }


@store_guard
def RgetGraderHistory(
    self, grader, *, exam_id=None, start=None, end=None, offset=0, limit=None
):
    """Tasks completed by a grader, most recent first.

    Keyword Args:
        exam_id (str/None): restrict to one exam.
        start (datetime/None): naive UTC, completed at or after this.
        end (datetime/None): naive UTC, completed strictly before this.
        offset (int):
        limit (int/None):
    """
    query = GradingTask.select().where(
        GradingTask.grader == grader, GradingTask.status == GradingTask.COMPLETED
    )
    if exam_id is not None:
        query = query.where(GradingTask.exam_id == exam_id)
    if start is not None:
        query = query.where(GradingTask.completed_at >= start)
    if end is not None:
        query = query.where(GradingTask.completed_at < end)
    query = query.order_by(GradingTask.completed_at.desc(), GradingTask.id.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return [task_as_dict(t) for t in query]


@store_guard
def RgetGraderLoad(self, graders):
    """Number of unfinished tasks bound to each of the given graders."""
    load = {g: 0 for g in graders}
    query = GradingTask.select().where(
        GradingTask.grader.in_(list(graders)),
        GradingTask.status != GradingTask.COMPLETED,
    )
    for tref in query:
        load[tref.grader] += 1
    return load


@store_guard
def RgetAbandonHistory(self, key):
    """Every abandonment of a task, oldest first.

    Raises:
        GradingNotFound: no such task.
    """
    tref = _get_task_ref(key)
    return [
        event_as_dict(e)
        for e in tref.abandon_events.order_by(AbandonEvent.time, AbandonEvent.id)
    ]


@store_guard
def RgetFlaggedTasks(self, threshold):
    """Tasks abandoned more than `threshold` times, most abandoned first."""
    query = (
        GradingTask.select()
        .where(GradingTask.abandon_count > threshold)
        .order_by(GradingTask.abandon_count.desc(), GradingTask.created_at)
    )
    return [task_as_dict(t) for t in query]

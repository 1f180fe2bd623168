# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from gradeflow.misc_utils import calendar_period_starts, to_naive_utc


def examProgress(self, exam_id):
    """How far along grading of an exam is.

    Raises:
        GradingNotFound: no such exam.
    """
    name = self.catalog.exam_name(exam_id)
    progress = self.DB.RgetExamProgress(exam_id, window=self.progress_window)
    progress["examName"] = name
    return progress


def dashboardStatistics(self, grader=None, exam_id=None):
    """Statistics for the dashboard, with calendar periods in the configured time zone."""
    period_starts = calendar_period_starts(self.DB.now(), self.timezone)
    stats = self.DB.RgetStatistics(
        grader=grader, exam_id=exam_id, period_starts=period_starts
    )
    stats["timezone"] = self.timezone
    return stats


def graderHistory(self, grader, exam_id=None, start=None, end=None, offset=0, limit=None):
    """Tasks a grader has completed, newest first.

    Args:
        start, end: anything arrow can parse, or None.  Naive times
            are taken to be UTC.
    """
    if start is not None:
        start = to_naive_utc(start)
    if end is not None:
        end = to_naive_utc(end)
    return self.DB.RgetGraderHistory(
        grader, exam_id=exam_id, start=start, end=end, offset=offset, limit=limit
    )


def abandonHistory(self, key):
    return self.DB.RgetAbandonHistory(key)


def flaggedTasks(self):
    return self.DB.RgetFlaggedTasks(self.reassigner.threshold)

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Validation of scores entered by graders."""

import math

from gradeflow.grading_exceptions import GradingMissingScore, GradingScoreOutOfRange


def check_score(score, max_score, *, places=1, required=False):
    """Validate a score against the maximum score of its task.

    Args:
        score (int/float/None): the proposed score.
        max_score (int/float): upper bound, inclusive.

    Keyword Args:
        places (int/None): maximum number of decimal places allowed,
            or None for no restriction.
        required (bool): if True, a score of None is an error.

    Returns:
        float/None: the score as a float, or None if none was given and
        none was required.

    Raises:
        GradingMissingScore: score is None but required.
        GradingScoreOutOfRange: not a number, negative, too large, or
            too many decimal places.
    """
    if score is None:
        if required:
            raise GradingMissingScore()
        return None
    # bool is an int subclass, but True is not a score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise GradingScoreOutOfRange(f"Score {score!r} is not a number")
    if math.isnan(score) or math.isinf(score):
        raise GradingScoreOutOfRange(f"Score {score} is not a finite number")
    if score < 0:
        raise GradingScoreOutOfRange(f"Score {score} cannot be negative")
    if score > max_score:
        raise GradingScoreOutOfRange(f"Score {score} cannot exceed {max_score}")
    if places is not None and round(score, places) != score:
        raise GradingScoreOutOfRange(
            f"Score {score} has more than {places} decimal place(s)"
        )
    return float(score)

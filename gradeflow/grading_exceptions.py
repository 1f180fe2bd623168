# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Exceptions for the Gradeflow grading engine.

Serious exceptions are for unexpected things that the engine cannot
sanely recover from, such as the backing store going away.  Benign are
for signaling expected (or at least not unexpected) situations, usually
a caller acting on stale state.

Every exception carries a machine-checkable ``kind`` string for
programmatic branching, and its message is suitable for showing to a
user directly.
"""


class GradingException(Exception):
    """Catch-all parent of all grading-related exceptions."""

    kind = "GradingError"
    default_message = "Grading operation failed."
    retryable = False

    def __init__(self, msg=None):
        if not msg:
            msg = self.default_message
        super().__init__(msg)


class GradingSeriousException(GradingException):
    """Serious or unexpected problems that are generally not recoverable here."""

    pass


class GradingBenignException(GradingException):
    """A not-unexpected situation, often signaling misuse or stale state."""

    pass


class GradingNotFound(GradingBenignException):
    """No such task, assignment or exam."""

    kind = "NotFound"
    default_message = "No such task."


class GradingInvalidTransition(GradingBenignException):
    """The task is not in a state that permits that action."""

    kind = "InvalidTransition"
    default_message = "The task cannot make that transition from its current state."


class GradingAlreadyCompleted(GradingInvalidTransition):
    """The task is already completed and its score can no longer change."""

    kind = "AlreadyCompleted"
    default_message = "The task is already completed."


class GradingInvalidState(GradingBenignException):
    """The exam is not in a state that permits grading."""

    kind = "InvalidState"
    default_message = "The exam is not open for grading."


class GradingEmptyGraderSet(GradingBenignException):
    kind = "EmptyGraderSet"
    default_message = "At least one grader must be given."


class GradingDuplicateAssignment(GradingBenignException):
    """A submission/question pair is already actively assigned."""

    kind = "DuplicateAssignment"
    default_message = "That submission is already assigned for grading."


class GradingNotAssignedToGrader(GradingBenignException):
    """The task belongs to someone else, or the grader may not take it."""

    kind = "NotAssignedToGrader"
    default_message = "That task is not assigned to you."


class GradingScoreOutOfRange(GradingBenignException):
    kind = "ScoreOutOfRange"
    default_message = "Score is outside the permitted range."


class GradingMissingScore(GradingBenignException):
    kind = "MissingScore"
    default_message = "A score is required to complete a task."


class GradingStoreUnavailable(GradingSeriousException):
    """The backing store failed; the caller may retry later."""

    kind = "StoreUnavailable"
    default_message = "The grading database is unavailable, please try again."
    retryable = True

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Gradeflow coordinates the grading of multi-question exams.

An administrator splits an exam into per-question grading tasks and
assigns them to graders, who claim, save, complete or abandon them.
Progress and statistics are derived from the task store on demand.
"""

__copyright__ = "Copyright (C) 2025 The Gradeflow Developers"
__credits__ = "The Gradeflow Developers"
__license__ = "AGPL-3.0-or-later"

from pathlib import Path

from .version import __version__

Default_Port = 41985

specdir = Path("specAndDatabase")

from .catalog import ExamCatalog, SubmissionSource

__all__ = [
    "__version__",
    "Default_Port",
    "ExamCatalog",
    "SubmissionSource",
]

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Gradeflow database stuff: the task store."""

__copyright__ = "Copyright (C) 2025 The Gradeflow Developers"
__credits__ = "The Gradeflow Developers"
__license__ = "AGPL-3.0-or-later"


from .gradingDB import GradingDB

__all__ = [
    "GradingDB",
]

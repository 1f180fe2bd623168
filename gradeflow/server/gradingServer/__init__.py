# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Routes and server details for the grading server.

The routes have a corresponding server method to do the non-HTTP
stuff, which in most cases makes the same call to the task store
in :mod:`gradeflow.db`.
"""

__copyright__ = "Copyright (C) 2025 The Gradeflow Developers"
__credits__ = "The Gradeflow Developers"
__license__ = "AGPL-3.0-or-later"

from .reassignment import ReassignmentPolicy
from .routesGrader import GraderHandler
from .routesAdmin import AdminHandler

__all__ = [
    "AdminHandler",
    "GraderHandler",
    "ReassignmentPolicy",
]

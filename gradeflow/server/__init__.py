# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""The Gradeflow grading server."""

__copyright__ = "Copyright (C) 2025 The Gradeflow Developers"
__credits__ = "The Gradeflow Developers"
__license__ = "AGPL-3.0-or-later"

from pathlib import Path

from gradeflow import specdir

specdir = Path(specdir)
confdir: Path = Path("serverConfiguration")

from .misc import build_server_directories
from .misc import create_server_config
from .misc import check_server_directories, check_server_fully_configured

from gradeflow.server.theServer import Server, launch

__all__ = ["launch", "Server"]

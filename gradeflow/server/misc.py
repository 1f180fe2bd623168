# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Layout of a Gradeflow server directory.

A server directory looks like::

    serverConfiguration/serverDetails.toml   settings, see create_server_config
    serverConfiguration/users.toml           written by "gradeflow-server users"
    specAndDatabase/examCatalog.toml         exams, their status and questions
    specAndDatabase/submissions.toml         what there is to grade
    specAndDatabase/grading.db               the task store, unless using MySQL

The ``init`` subcommand makes the directories and the three editable
files; the users file and the database appear later.
"""

from importlib import resources
import logging
from pathlib import Path

import gradeflow
from gradeflow import Default_Port
from gradeflow.server import specdir, confdir


log = logging.getLogger("server")

server_dirs = (specdir, confdir)

required_files = (
    confdir / "serverDetails.toml",
    specdir / "examCatalog.toml",
    specdir / "submissions.toml",
)


def build_server_directories(basedir=Path(".")):
    basedir = Path(basedir)
    for d in server_dirs:
        log.debug('Making directory "%s"', basedir / d)
        (basedir / d).mkdir(parents=True, exist_ok=True)


def check_server_directories(basedir=Path(".")):
    """Raise FileNotFoundError unless basedir has the server sub-directories."""
    basedir = Path(basedir)
    missing = [str(d) for d in server_dirs if not (basedir / d).is_dir()]
    if missing:
        raise FileNotFoundError(
            f'"{basedir}" is not a server directory: it has no {", ".join(missing)}.'
            ' Use "gradeflow-server init" to make one.'
        )


def check_server_fully_configured(basedir):
    """Raise FileNotFoundError naming every missing configuration file."""
    basedir = Path(basedir)
    missing = [str(f) for f in required_files if not (basedir / f).exists()]
    if missing:
        raise FileNotFoundError(
            f'Server directory "{basedir}" is missing {", ".join(missing)}'
        )


def create_server_config(dur=confdir, *, port=None, name=None, db_name=None, timezone=None):
    """Write serverDetails.toml from the packaged template.

    args:
        dur (pathlib.Path): where to put the file.

    keyword args:
        port (int/None): defaults to the template's port.
        name (str/None): server name, "localhost" if omitted.
        db_name (str/None): a MySQL database, else the SQLite file is used.
        timezone (str/None): for the calendar statistics, "UTC" if omitted.

    raises:
        FileExistsError: file is already there.
    """
    sd = Path(dur) / "serverDetails.toml"
    if sd.exists():
        raise FileExistsError(f'Config already exists in "{sd}"')
    # edit the text rather than round-tripping, so the comments survive
    template = (resources.files(gradeflow) / "serverDetails.toml").read_text()
    for old, new in (
        ('server = "localhost"', f'server = "{name}"' if name else None),
        (f"port = {Default_Port}", f"port = {port}" if port else None),
        ("#db_name =", f'db_name = "{db_name}"' if db_name else None),
        ('timezone = "UTC"', f'timezone = "{timezone}"' if timezone else None),
    ):
        if new is not None:
            template = template.replace(old, new, 1)
    with open(sd, "w") as fh:
        fh.write(template)
    log.info('Wrote server config "%s"', sd)

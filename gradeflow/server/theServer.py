# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from datetime import timedelta
import logging
from pathlib import Path
import sys

import arrow
from aiohttp import web

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib

from gradeflow import __version__
from gradeflow import Default_Port
from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.db import GradingDB
from gradeflow.misc_utils import validate_timezone, working_directory
from gradeflow.server import specdir, confdir, check_server_directories

from .authenticate import Authority

from .gradingServer import AdminHandler, GraderHandler, ReassignmentPolicy


class Server:
    """The grading engine: planning, work queues, reassignment and reports.

    The task store does the bookkeeping; this class adds the exam
    catalog, the submission source and the configured policies.
    """

    def __init__(
        self,
        db,
        catalog,
        submissions,
        *,
        timezone,
        reassignment="pool",
        abandon_threshold=3,
        progress_window=timedelta(minutes=60),
        authority=None,
    ):
        """Set up a grading server.

        Args:
            db (GradingDB): the task store.
            catalog (ExamCatalog):
            submissions (SubmissionSource):

        Keyword Args:
            timezone (str): calendar periods in the statistics are
                computed in this time zone.  Required.
            reassignment (str): ``"pool"`` or ``"auto"``, see
                :class:`ReassignmentPolicy`.
            abandon_threshold (int): flag tasks abandoned more than this.
            progress_window (datetime.timedelta): trailing window for the
                completion-time estimate.
            authority (Authority/None): checks tokens and roles for the
                HTTP routes.  Not needed when called directly.

        Raises:
            ValueError: bad time zone or policy settings.
        """
        log = logging.getLogger("server")
        log.debug("Initialising server")
        self.DB = db
        self.catalog = catalog
        self.submissions = submissions
        self.timezone = validate_timezone(timezone)
        self.reassigner = ReassignmentPolicy(reassignment, threshold=abandon_threshold)
        if progress_window <= timedelta(0):
            raise ValueError("The progress window must be positive")
        self.progress_window = progress_window
        self.authority = authority if authority is not None else Authority()
        self.Version = __version__
        log.info(
            "Grading server: time zone %s, %s, progress window %s",
            self.timezone,
            self.reassigner,
            self.progress_window,
        )

    def validate(self, user, token):
        return self.authority.validate(user, token)

    def is_admin(self, user):
        return self.authority.is_admin(user)

    from .gradingServer.serverAssign import (
        assign,
        maxScore,
        listAssignments,
        cancelAssignment,
    )
    from .gradingServer.serverQueue import (
        getTask,
        listTasks,
        listForGrader,
        listPool,
        claim,
        saveProgress,
        complete,
        abandon,
    )
    from .gradingServer.serverReport import (
        examProgress,
        dashboardStatistics,
        graderHistory,
        abandonHistory,
        flaggedTasks,
    )


def get_server_info(basedir):
    """Read the server info from config file."""

    log = logging.getLogger("server")
    serverInfo = {"server": "127.0.0.1", "port": Default_Port, "LogLevel": "info"}
    try:
        with open(Path(basedir) / confdir / "serverDetails.toml", "rb") as data_file:
            serverInfo = tomllib.load(data_file)
            logging.getLogger().setLevel(serverInfo["LogLevel"].upper())
            log.debug("Server details loaded: {}".format(serverInfo))
    except FileNotFoundError:
        log.warning("Cannot find server details, using defaults")
    # Special treatment for chatty modules
    if serverInfo["LogLevel"].upper() == "INFO":
        logging.getLogger("aiohttp.access").setLevel("WARNING")
    return serverInfo


def grading_settings(server_info):
    """Validate the ``[grading]`` table of the server info.

    There is no default time zone: it must be configured.

    Returns:
        dict: keyword arguments for :class:`Server`, plus
        ``"score_decimal_places"`` for :class:`GradingDB`.

    Raises:
        ValueError: missing or invalid settings.
    """
    grading = server_info.get("grading")
    if grading is None:
        raise ValueError('Server configuration has no [grading] table')
    settings = {
        "timezone": validate_timezone(grading.get("timezone")),
        "reassignment": grading.get("reassignment", "pool"),
        "abandon_threshold": grading.get("abandon_threshold", 3),
    }
    if settings["reassignment"] not in ReassignmentPolicy.modes:
        raise ValueError(
            f"reassignment must be one of {ReassignmentPolicy.modes},"
            f" not {settings['reassignment']!r}"
        )
    for key, lowest in (
        ("abandon_threshold", 0),
        ("progress_window_minutes", 1),
        ("score_decimal_places", 0),
    ):
        x = grading.get(key, settings.get(key))
        if x is None:
            continue
        if isinstance(x, bool) or not isinstance(x, int) or x < lowest:
            raise ValueError(f"{key} must be an integer >= {lowest}, not {x!r}")
    settings["progress_window"] = timedelta(
        minutes=grading.get("progress_window_minutes", 60)
    )
    settings["score_decimal_places"] = grading.get("score_decimal_places", 1)
    return settings


def make_app(server):
    """Construct the web application for a grading server."""
    log = logging.getLogger("server")
    app = web.Application()
    log.info("Setting up routes")
    GraderHandler(server).setUpRoutes(app.router)
    AdminHandler(server).setUpRoutes(app.router)
    return app


def launch(basedir=Path("."), *, logfile=None, logconsole=True):
    """Launches the grading server.

    args:
        basedir (pathlib.Path/str): the directory containing the file
            space to be used by this server.
        logfile (pathlib.Path/str/None): name-only then relative to basedir else
            If omitted, use a default name with date and time included.
        logconsole (bool): if True (default) then log to the stderr.
    """
    basedir = Path(basedir)
    if not logfile:
        # filename must not have ":" (forbidden on win32)
        # e.g., use "ZZZ" not "ZZ" as the latter has "+00:00"
        now = arrow.utcnow().format("YYYY-MM-DD_HH-mm-ss_ZZZ")
        logfile = basedir / f"gradeflow-server-{now}.log"
    logfile = Path(logfile)
    # if just filename, make log in basedir
    if logfile.parent == Path("."):
        logfile = basedir / logfile
    # 5 is to keep debug/info lined up
    fmtstr = "%(asctime)s %(levelname)5s:%(name)s\t%(message)s"
    logging.basicConfig(format=fmtstr, datefmt="%b%d %H:%M:%S %Z", filename=logfile)
    if logconsole:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(fmtstr, datefmt="%b%d %H:%M:%S %Z"))
        logging.getLogger().addHandler(h)

    log = logging.getLogger("server")
    # We will reset this later after we read the config
    logging.getLogger().setLevel("Debug".upper())

    log.info("Gradeflow Server {}".format(__version__))
    check_server_directories(basedir)
    server_info = get_server_info(basedir)
    settings = grading_settings(server_info)
    log.info(f'Working from directory "{basedir}"')
    if not (basedir / specdir / "grading.db").exists():
        log.info("Database is not yet present: creating...")
    gradingDB = GradingDB(
        basedir / specdir / "grading.db",
        db_name=server_info.get("db_name", None),
        db_host=server_info.get("db_host", None),
        db_port=server_info.get("db_port", None),
        db_username=server_info.get("db_username", None),
        db_password=server_info.get("db_password", None),
        score_decimal_places=settings.pop("score_decimal_places"),
    )
    catalog = ExamCatalog.from_toml_file(basedir / specdir / "examCatalog.toml")
    log.info("Exam catalog has exams %s", catalog.exam_ids())
    submissions = SubmissionSource.from_toml_file(basedir / specdir / "submissions.toml")
    authority = Authority.from_toml_file(basedir / confdir / "users.toml")

    with working_directory(basedir):
        peon = Server(gradingDB, catalog, submissions, authority=authority, **settings)
        app = make_app(peon)

    log.info("Start the server!")
    with working_directory(basedir):
        web.run_app(app, port=server_info["port"])

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

import logging

import peewee as pw
import pymysql

from gradeflow.misc_utils import utc_now
from gradeflow.db.tables import GradingAssignment, GradingTask, AbandonEvent
from gradeflow.db.tables import database_proxy


log = logging.getLogger("DB")


class GradingDB:
    """The task store: the single source of truth for grading tasks.

    Every state change of a task happens inside one write transaction,
    so concurrent callers acting on the same task are serialized.
    """

    MySQL = None

    def __init__(
        self,
        dbfile_name="grading.db",
        *,
        db_name=None,
        db_host=None,
        db_port=None,
        db_username=None,
        db_password=None,
        score_decimal_places=1,
        clock=None,
    ):
        """Connect to (and if needed create) the grading database.

        Args:
            dbfile_name (str/pathlib.Path): the SQLite file, used unless
                `db_name` is given.

        Keyword Args:
            db_name (str/None): name of a MySQL database to use instead.
            db_host, db_port, db_username, db_password: for MySQL.
            score_decimal_places (int/None): scores may have at most this
                many decimal places; None for no restriction.
            clock (callable/None): returns the current time as a naive
                UTC datetime.  Defaults to the system clock.
        """
        db = None
        if self.should_connect_to_mysql(
            db_name, db_host, db_port, db_username, db_password
        ):
            log.info(f"Connecting to MySQL database: {db_name}...")
            db = self.connect_mysql(db_name, db_host, db_port, db_username, db_password)
            log.info(f"Connected to MySQL database: {db_name}")
        else:
            log.info("Connecting to SQLite...")
            db = self.connect_sqlite(dbfile_name)
            log.info("Connected to SQLite.")

        self._db = db
        database_proxy.initialize(self._db)
        self.score_decimal_places = score_decimal_places
        self._clock = clock or utc_now

        with self._db:
            self._db.create_tables([GradingAssignment, GradingTask, AbandonEvent])
        log.info("Database initialised.")

    def should_connect_to_mysql(
        self, db_name, db_host, db_port, db_username, db_password
    ):
        return True if db_name else False

    def connect_mysql(self, db_name, db_host, db_port, db_username, db_password):
        mysql_connection = pymysql.connect(
            host=db_host,
            port=db_port,
            user=db_username,
            password=db_password,
        )

        mysql_connection.cursor().execute(f"CREATE DATABASE IF NOT EXISTS {db_name};")
        mysql_connection.close()

        self.MySQL = mysql_connection

        return pw.MySQLDatabase(
            db_name,
            host=db_host,
            port=db_port,
            user=db_username,
            password=db_password,
        )

    def connect_sqlite(self, dbfile_name):
        # each thread gets its own connection; writers wait up to timeout seconds
        db = pw.SqliteDatabase(None)
        # can't handle pathlib?
        db.init(str(dbfile_name), timeout=10, pragmas={"foreign_keys": 1})

        return db

    def _write_atomic(self):
        """A transaction holding the write lock from the start.

        SQLite's default deferred transactions can deadlock when two
        readers both try to upgrade to writers, so take the lock up front.
        Other backends lock rows on UPDATE.
        """
        if isinstance(self._db, pw.SqliteDatabase):
            return self._db.atomic("IMMEDIATE")
        return self._db.atomic()

    def now(self):
        return self._clock()

    def close(self):
        if not self._db.is_closed():
            self._db.close()

    from gradeflow.db.db_task import (
        createTasks,
        getTask,
        listTasks,
        updateTaskState,
        abandonTask,
        bindPooledTask,
        recordAbandonOutcome,
        listPool,
    )

    from gradeflow.db.db_assign import (
        assignTasks,
        getAssignment,
        listAssignments,
        cancelAssignment,
        permittedGraders,
    )

    from gradeflow.db.db_report import (
        RgetExamProgress,
        RgetStatistics,
        RgetGraderHistory,
        RgetGraderLoad,
        RgetAbandonHistory,
        RgetFlaggedTasks,
    )

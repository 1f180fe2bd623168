#!/usr/bin/env python3

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Command line tool to start Gradeflow servers."""

__copyright__ = "Copyright (C) 2025 The Gradeflow Developers"
__credits__ = "The Gradeflow Developers"
__license__ = "AGPL-3.0-or-later"

import argparse
from pathlib import Path

from gradeflow import __version__
from gradeflow import Default_Port
from gradeflow import ExamCatalog, SubmissionSource
from gradeflow.server import specdir, confdir
from gradeflow.server import theServer
from gradeflow.server import (
    build_server_directories,
    check_server_directories,
    check_server_fully_configured,
    create_server_config,
)
from gradeflow.server.authenticate import Authority


server_instructions = f"""Overview of running the Gradeflow server:

  0. Make a new directory and change into it.

  1. Run '%(prog)s init' - creates sub-directories and config files,
     including template exam catalog and submission lists in
     '{specdir}' for you to edit.

  2. Run '%(prog)s users <name> [--role admin]' for each user: it
     prints a token for them to log in with.  Only a hash is kept.

  3. Now you can start the server with '%(prog)s launch'.
"""


def initialise_server(basedir=None, *, port=None, name=None, timezone=None):
    """Create directories, config and templates for a new server.

    Existing files are left alone.
    """
    basedir = Path(basedir) if basedir else Path(".")
    basedir.mkdir(exist_ok=True)
    print("Build required directories")
    build_server_directories(basedir)
    try:
        create_server_config(
            basedir / confdir, port=port, name=name, timezone=timezone
        )
        print("Server config file created")
    except FileExistsError as e:
        print(f"Skipping server config: {e}")
    catalog = basedir / specdir / "examCatalog.toml"
    if catalog.exists():
        print(f"Skipping exam catalog: {catalog} already exists")
    else:
        ExamCatalog.create_template(catalog)
        print(f"Created template exam catalog {catalog}: please edit")
    subs = basedir / specdir / "submissions.toml"
    if subs.exists():
        print(f"Skipping submissions: {subs} already exists")
    else:
        SubmissionSource.create_template(subs)
        print(f"Created template submissions {subs}: please edit")


def processUsers(basedir, username, role):
    """Add a user, or replace their token, and print the new token."""
    basedir = Path(basedir) if basedir else Path(".")
    check_server_directories(basedir)
    users_file = basedir / confdir / "users.toml"
    authority = Authority.from_toml_file(users_file)
    token = authority.add_user(username, role)
    authority.save_toml_file(users_file)
    print(f'User "{username}" ({role}) saved to {users_file}')
    print(f"Their token, which is not stored anywhere: {token}")


def get_parser():
    parser = argparse.ArgumentParser(
        epilog="Use '%(prog)s <subcommand> -h' for detailed help.\n\n"
        + server_instructions,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s " + __version__
    )
    sub = parser.add_subparsers(
        dest="command", description="Perform various server-related tasks."
    )

    spI = sub.add_parser(
        "init",
        help="Initialise server",
        description="""
          Initialises a directory in preparation for starting a Gradeflow
          server.  Creates sub-directories, config files and templates.
        """,
    )
    spI.add_argument(
        "dir",
        nargs="?",
        help="The directory to use. If omitted, use the current directory.",
    )
    spI.add_argument(
        "--port",
        type=int,
        help=f"Use alternative port (defaults to {Default_Port} if omitted)",
    )
    spI.add_argument(
        "--server-name",
        metavar="NAME",
        type=str,
        help="""
            The server name such as "grading.example.com" or an IP address.
            Defaults to "localhost" if omitted.
        """,
    )
    spI.add_argument(
        "--timezone",
        metavar="TZ",
        help="""
            Time zone for "today", "this week" and "this month" in the
            statistics, such as "America/Vancouver".  Defaults to "UTC":
            you can change it later in the config file.
        """,
    )

    spU = sub.add_parser(
        "users",
        help="Create user accounts",
        description="""
          Add a user, or give an existing user a new token.  The token
          is printed once; only a hash of it is stored.
        """,
    )
    spU.add_argument("username")
    spU.add_argument(
        "--role",
        choices=("grader", "admin"),
        default="grader",
        help="Defaults to grader.",
    )
    spU.add_argument(
        "--dir",
        help="The server directory. If omitted, use the current directory.",
    )

    spR = sub.add_parser(
        "launch", help="Start the server", description="Start the Gradeflow server."
    )
    spR.add_argument(
        "dir",
        nargs="?",
        help="""The directory containing the filespace to be used by this server.
            If omitted the current directory will be used.""",
    )
    spR.add_argument(
        "--logfile",
        help="""A filename to save the logs.  If its a bare filename it will
            be relative to DIR above, or you can specify a path relative to
            the current working directory.""",
    )
    spR.add_argument(
        "--no-logconsole",
        action="store_false",
        dest="logconsole",
        help="""By default the server echos the logs to stderr.  This disables
            that.  You can still see the logs in the logfile.""",
    )
    return parser


def main():
    parser = get_parser()
    args = parser.parse_args()

    if args.command == "init":
        initialise_server(
            args.dir, port=args.port, name=args.server_name, timezone=args.timezone
        )
    elif args.command == "users":
        processUsers(args.dir, args.username, args.role)
    elif args.command == "launch":
        if args.dir is None:
            args.dir = Path(".")
        check_server_directories(args.dir)
        check_server_fully_configured(args.dir)
        theServer.launch(args.dir, logfile=args.logfile, logconsole=args.logconsole)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Who is calling, and may they do this?

The grading engine trusts whatever identity it is handed; this is the
thin layer in front of it.  Users, their roles and a hash of each
user's access token live in a TOML file such as::

    [users.alice]
    role = "grader"
    token_hash = "$pbkdf2-sha256$29000$..."

Tokens are issued once, by ``gradeflow-server users``, and only their
hashes are kept.
"""

import logging
from pathlib import Path
import sys
import uuid

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib

from passlib.context import CryptContext
import tomlkit


log = logging.getLogger("auth")

roles = ("grader", "admin")


def basic_username_check(username):
    """Sanity check for potential usernames.

    Arguments:
        username (str)

    Returns:
        tuple: (True, "") if valid, (False, msg) otherwise, where msg
            is a string explaining why not.
    """
    if len(username) < 2:
        return False, "Username too short, should be at least 2 chars"
    if not (username.isalnum() and username[0].isalpha()):
        return False, "Username should be alphanumeric and start with a letter"
    return True, ""


class Authority:
    """Token checking and roles for the users of a grading server."""

    def __init__(self, users=None):
        """Set up cryptocontext and the user list.

        Args:
            users (dict/None): keyed by username, each value a dict with
                keys ``"role"`` and ``"token_hash"``.
        """
        self.ctx = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")
        self._users = {}
        for user, info in (users or {}).items():
            self._set_user(user, info["role"], info["token_hash"])

    @classmethod
    def from_toml_file(cls, fname):
        fname = Path(fname)
        if not fname.exists():
            log.warning('No users file "%s": nobody can log in', fname)
            return cls()
        with open(fname, "rb") as f:
            data = tomllib.load(f)
        log.info('Loaded %d users from "%s"', len(data.get("users", {})), fname)
        return cls(data.get("users", {}))

    def save_toml_file(self, fname):
        doc = tomlkit.document()
        doc.add(tomlkit.comment("Gradeflow users: do not edit the hashes by hand"))
        users = tomlkit.table()
        for user, info in sorted(self._users.items()):
            t = tomlkit.table()
            t["role"] = info["role"]
            t["token_hash"] = info["token_hash"]
            users[user] = t
        doc["users"] = users
        with open(fname, "w") as f:
            f.write(tomlkit.dumps(doc))

    def _set_user(self, user, role, token_hash):
        if role not in roles:
            raise ValueError(f'User "{user}": role {role!r} is not one of {roles}')
        self._users[user] = {"role": role, "token_hash": token_hash}

    def create_token(self):
        """A new random token, as a hex string."""
        return uuid.uuid4().hex

    def create_token_hash(self, token):
        return self.ctx.hash(token)

    def add_user(self, user, role="grader"):
        """Add or replace a user, issuing them a fresh token.

        Returns:
            str: the token, which is not stored anywhere.

        Raises:
            ValueError: bad username or role.
        """
        ok, msg = basic_username_check(user)
        if not ok:
            raise ValueError(msg)
        token = self.create_token()
        if user in self._users:
            log.info('Replacing the token of "%s"', user)
        self._set_user(user, role, self.create_token_hash(token))
        return token

    def users(self):
        return sorted(self._users.keys())

    def role(self, user):
        """The role of a user, or None if there is no such user."""
        info = self._users.get(user)
        return info["role"] if info else None

    def is_admin(self, user):
        return self.role(user) == "admin"

    def validate(self, user, token):
        """Check a token against the stored hash for this user.

        Arguments:
            user (str):
            token (str): provided by the client: untrusted input.

        Returns:
            bool: True if validated, False otherwise.
        """
        info = self._users.get(user)
        if info is None:
            log.debug('No such user "%s"', user)
            return False
        if not isinstance(token, str):
            return False
        return self.ctx.verify(token, info["token_hash"])

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""Misc routing utilities"""

import logging
import functools

from aiohttp import web

from gradeflow.grading_exceptions import (
    GradingException,
    GradingNotFound,
    GradingInvalidTransition,
    GradingInvalidState,
    GradingDuplicateAssignment,
    GradingNotAssignedToGrader,
    GradingStoreUnavailable,
)

log = logging.getLogger("routes")


# first match wins, so subclasses before their parents
_http_status_of_error = (
    (GradingNotFound, 404),
    (GradingInvalidTransition, 409),
    (GradingInvalidState, 409),
    (GradingDuplicateAssignment, 409),
    (GradingNotAssignedToGrader, 403),
    (GradingStoreUnavailable, 503),
)


def http_status_of(err):
    """The HTTP status for a grading exception: 400 if nothing more specific."""
    for cls, status in _http_status_of_error:
        if isinstance(err, cls):
            return status
    return 400


def failure_response(err, status=None):
    """JSON describing a failure, for the client to show and to branch on."""
    kind = getattr(err, "kind", type(err).__name__)
    return web.json_response(
        {"outcome": "failure", "kind": kind, "message": str(err)},
        status=status or http_status_of(err),
    )


def validate_required_fields(user_login_info, user_login_required_fields):
    """Check that input dict has (and only has) expected fields.

    Arguments:
        user_login_info (dict): A user's login info.
        user_login_required_fields (iterable): the required fields.

    Returns:
        bool: True iff the fields are present.
    """

    return set(user_login_info.keys()) == set(user_login_required_fields)


def log_request(request_name, request):
    """Logs the requests done by the server.

    Arguments:
        request_name (str): Name of the request function.
        request (aiohttp.web_request.Request): an `aiohttp` request object.
    """
    log.info("{} {} {}".format(request_name, request.method, request.rel_url))


def authenticate_by_token_required_fields(fields):
    """Decorator for field validation, authentication by token, and logging.

    The decorated function returns `web.Response(status=400)` if the
    input request does not contain exactly the fields
    `Union(fields, ["user", "token"])`.

    Example
    -------
    ```
    @authenticate_by_token_required_fields(["bar", "baz"])
    def foo(zelf, data, request):
        return ...
    ```
    Here `data` is the result of `request.json()` and `request` is the
    original request (don't try to take data from it again!)

    Arguments:
        fields (iterable): The fields for this request.  `user` and
            `token` will be added to this list.

    Returns:
        function: the original function wrapped with authentication.
    """

    fields = list(fields) + ["user", "token"]

    def _decorate(f):
        @functools.wraps(f)
        async def wrapped(zelf, request):
            log_request(f.__name__, request)
            try:
                data = await request.json()
            except ValueError:
                raise web.HTTPBadRequest(reason="request body must be JSON") from None
            if not isinstance(data, dict):
                raise web.HTTPBadRequest(reason="request body must be a JSON object")
            log.debug("{} validating fields {}".format(f.__name__, fields))
            if not validate_required_fields(data, fields):
                log.warning(
                    "%s: fields %s do not match expected %s",
                    f.__name__,
                    list(data.keys()),
                    fields,
                )
                raise web.HTTPBadRequest(
                    reason=f"fields {list(data.keys())} do not match expected {fields}"
                )
            if not zelf.server.validate(data["user"], data["token"]):
                log.warning(
                    '%s user "%s": login token could not be validated',
                    f.__name__,
                    data["user"],
                )
                raise web.HTTPUnauthorized(reason="login token could not be validated")
            log.info('%s authenticated "%s" via token', f.__name__, data["user"])
            return f(zelf, data, request)

        return wrapped

    return _decorate


def reports_grading_errors(f):
    """Decorator turning grading exceptions into JSON failure responses.

    The message and kind of the exception go to the client unchanged;
    nothing is retried here.

    Arguments:
        f (function): a routing method taking `data` and `request`.

    Returns:
        function: the original wrapped with error reporting.
    """

    @functools.wraps(f)
    def wrapped(zelf, data, request):
        try:
            return f(zelf, data, request)
        except GradingException as e:
            status = http_status_of(e)
            if status >= 500:
                log.error("%s: %s", f.__name__, e)
            else:
                log.info("%s: %s: %s", f.__name__, e.kind, e)
            return failure_response(e, status)

    return wrapped


def readonly_admin(f):
    """Decorator for requiring an admin account to get something read-only.

    Arguments:
        f (function): a routing method associated with the grading server.

    Returns:
        function: the original wrapped with logging.
    """

    @functools.wraps(f)
    def wrapped(zelf, data, request):
        if not zelf.server.is_admin(data["user"]):
            log.warning(
                '%s user "%s": tried to connect to admin (read-only) feature',
                f.__name__,
                data["user"],
            )
            raise web.HTTPForbidden(reason="Only an administrator can do that")
        log.info('%s we have an admin-read-only user "%s"', f.__name__, data["user"])
        return f(zelf, data, request)

    return wrapped


def write_admin(f):
    """Decorator for requiring an admin account to change the state of the server.

    Arguments:
        f (function): a routing method associated with the grading server.

    Returns:
        function: the original wrapped with logging.
    """

    @functools.wraps(f)
    def wrapped(zelf, data, request):
        if not zelf.server.is_admin(data["user"]):
            log.warning(
                '%s user "%s": tried to connect to admin (write) feature',
                f.__name__,
                data["user"],
            )
            raise web.HTTPForbidden(reason="Only an administrator can do that")
        log.info('%s we have an admin-write user "%s"', f.__name__, data["user"])
        return f(zelf, data, request)

    return wrapped


def int_or_none(data, field):
    """Read an optional non-negative integer field of a request."""
    x = data[field]
    if x is None:
        return None
    if isinstance(x, bool) or not isinstance(x, int) or x < 0:
        raise web.HTTPBadRequest(reason=f"{field} must be a non-negative integer")
    return x

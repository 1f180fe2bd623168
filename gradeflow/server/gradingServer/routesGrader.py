# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from aiohttp import web

from .routeutils import authenticate_by_token_required_fields
from .routeutils import reports_grading_errors, int_or_none


class GraderHandler:
    """The Grader Handler interfaces between the HTTP API and the server itself.

    These routes are a grader's view of their own work: the tasks
    assigned to them, the pool they may pull from, and the state
    changes of a single task.  The acting grader is always the
    authenticated user.
    """

    def __init__(self, gradingServer):
        self.server = gradingServer

    # @routes.get("/GR/tasks")
    @authenticate_by_token_required_fields(["exam"])
    @reports_grading_errors
    def GlistTasks(self, data, request):
        """The pending and claimed tasks of the user, oldest first.

        Args:
            data (dict): user and token, plus `exam` which may be None
                for all exams.
            request (aiohttp.web_request.Request): GET /GR/tasks.

        Returns:
            aiohttp.web_response.Response: JSON list of tasks.
        """
        return web.json_response(
            self.server.listForGrader(data["user"], exam_id=data["exam"])
        )

    # @routes.get("/GR/pool")
    @authenticate_by_token_required_fields(["exam"])
    @reports_grading_errors
    def GlistPool(self, data, request):
        """Unbound tasks the user may claim."""
        return web.json_response(
            self.server.listPool(data["user"], exam_id=data["exam"])
        )

    # @routes.patch("/GR/tasks/{task}")
    @authenticate_by_token_required_fields([])
    @reports_grading_errors
    def GclaimThisTask(self, data, request):
        """Claim a task: start working on it.

        Respond with status 200/403/404/409.

        Returns:
            aiohttp.web_response.Response: the task as JSON.  403 if the
            task belongs to someone else, 404 if no such task, 409 if the
            task is not pending.
        """
        task = request.match_info["task"]
        return web.json_response(self.server.claim(task, data["user"]))

    # @routes.put("/GR/tasks/{task}/progress")
    @authenticate_by_token_required_fields(["score", "feedback"])
    @reports_grading_errors
    def GsaveProgress(self, data, request):
        task = request.match_info["task"]
        return web.json_response(
            self.server.saveProgress(
                task, data["user"], score=data["score"], feedback=data["feedback"]
            )
        )

    # @routes.put("/GR/tasks/{task}")
    @authenticate_by_token_required_fields(["score", "feedback"])
    @reports_grading_errors
    def GcompleteTask(self, data, request):
        """Complete a task with its final score.

        Respond with status 200/400/403/404/409.  A 409 whose kind is
        ``AlreadyCompleted`` means the task was already finished.
        """
        task = request.match_info["task"]
        return web.json_response(
            self.server.complete(task, data["user"], data["score"], data["feedback"])
        )

    # @routes.delete("/GR/tasks/{task}")
    @authenticate_by_token_required_fields(["reason"])
    @reports_grading_errors
    def GabandonTask(self, data, request):
        task = request.match_info["task"]
        return web.json_response(
            self.server.abandon(task, data["user"], reason=data["reason"])
        )

    # @routes.get("/GR/statistics")
    @authenticate_by_token_required_fields(["exam"])
    @reports_grading_errors
    def GgetStatistics(self, data, request):
        return web.json_response(
            self.server.dashboardStatistics(grader=data["user"], exam_id=data["exam"])
        )

    # @routes.get("/GR/history")
    @authenticate_by_token_required_fields(["exam", "start", "end", "offset", "limit"])
    @reports_grading_errors
    def GgetHistory(self, data, request):
        """Tasks the user has completed, newest first.

        Args:
            data (dict): `exam`, `start` and `end` (ISO 8601 strings)
                and `offset` and `limit` for paging, any of which may be
                None.
        """
        try:
            history = self.server.graderHistory(
                data["user"],
                exam_id=data["exam"],
                start=data["start"],
                end=data["end"],
                offset=int_or_none(data, "offset") or 0,
                limit=int_or_none(data, "limit"),
            )
        except (ValueError, TypeError) as e:
            raise web.HTTPBadRequest(reason=f"Cannot understand time range: {e}")
        return web.json_response(history)

    # @routes.get("/GR/maxscore/{exam}/{question}")
    @authenticate_by_token_required_fields([])
    @reports_grading_errors
    def GgetMaxScore(self, data, request):
        """The maximum score of a question.

        Respond with status 200/400/404/416.
        """
        exam = request.match_info["exam"]
        try:
            question = int(request.match_info["question"])
        except (ValueError, TypeError):
            raise web.HTTPBadRequest(reason="question must be integer")
        try:
            return web.json_response(self.server.maxScore(exam, question))
        except ValueError as e:
            raise web.HTTPRequestRangeNotSatisfiable(reason=str(e))

    def setUpRoutes(self, router):
        """Adds the response functions to the router object.

        Args:
            router (aiohttp.web_urldispatcher.UrlDispatcher): Router object
                which we will add the response functions to.
        """
        router.add_get("/GR/tasks", self.GlistTasks)
        router.add_get("/GR/pool", self.GlistPool)
        router.add_patch("/GR/tasks/{task}", self.GclaimThisTask)
        router.add_put("/GR/tasks/{task}/progress", self.GsaveProgress)
        router.add_put("/GR/tasks/{task}", self.GcompleteTask)
        router.add_delete("/GR/tasks/{task}", self.GabandonTask)
        router.add_get("/GR/statistics", self.GgetStatistics)
        router.add_get("/GR/history", self.GgetHistory)
        router.add_get("/GR/maxscore/{exam}/{question}", self.GgetMaxScore)

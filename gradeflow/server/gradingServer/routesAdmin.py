# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from aiohttp import web

from .routeutils import authenticate_by_token_required_fields
from .routeutils import reports_grading_errors, int_or_none
from .routeutils import readonly_admin, write_admin


class AdminHandler:
    """The Admin Handler interfaces between the HTTP API and the server itself.

    These routes plan grading work and report on it.  All require an
    administrator.
    """

    def __init__(self, gradingServer):
        self.server = gradingServer

    # @routes.put("/ADM/assign")
    @authenticate_by_token_required_fields(["exam", "question", "graders"])
    @write_admin
    @reports_grading_errors
    def Aassign(self, data, request):
        """Assign one question of an exam to a list of graders.

        Respond with status 200/400/404/409.

        Args:
            data (dict): `exam`, `question` (int) and `graders`, a list
                of usernames in the order they should receive work.

        Returns:
            aiohttp.web_response.Response: the assignment and the tasks
            it created, as JSON.  400 for no graders, 404 for no such
            exam, 409 if the exam is not being graded or has no such
            question.
        """
        if not isinstance(data["graders"], list):
            raise web.HTTPBadRequest(reason="graders must be a list")
        return web.json_response(
            self.server.assign(
                data["exam"], data["question"], data["graders"], creator=data["user"]
            )
        )

    # @routes.get("/ADM/tasks")
    @authenticate_by_token_required_fields(
        ["exam", "grader", "status", "question", "assignment", "offset", "limit"]
    )
    @readonly_admin
    @reports_grading_errors
    def AlistTasks(self, data, request):
        """Tasks matching all the non-None filters, oldest first, paged by offset and limit."""
        try:
            tasks = self.server.listTasks(
                exam_id=data["exam"],
                grader=data["grader"],
                status=data["status"],
                question=data["question"],
                assignment_key=data["assignment"],
                offset=int_or_none(data, "offset") or 0,
                limit=int_or_none(data, "limit"),
            )
        except ValueError as e:
            raise web.HTTPBadRequest(reason=str(e))
        return web.json_response(tasks)

    # @routes.get("/ADM/tasks/{task}")
    @authenticate_by_token_required_fields([])
    @readonly_admin
    @reports_grading_errors
    def AgetTask(self, data, request):
        return web.json_response(self.server.getTask(request.match_info["task"]))

    # @routes.get("/ADM/tasks/{task}/abandonments")
    @authenticate_by_token_required_fields([])
    @readonly_admin
    @reports_grading_errors
    def AgetAbandonHistory(self, data, request):
        return web.json_response(
            self.server.abandonHistory(request.match_info["task"])
        )

    # @routes.get("/ADM/progress/{exam}")
    @authenticate_by_token_required_fields([])
    @readonly_admin
    @reports_grading_errors
    def AgetProgress(self, data, request):
        return web.json_response(self.server.examProgress(request.match_info["exam"]))

    # @routes.get("/ADM/statistics")
    @authenticate_by_token_required_fields(["grader", "exam"])
    @readonly_admin
    @reports_grading_errors
    def AgetStatistics(self, data, request):
        return web.json_response(
            self.server.dashboardStatistics(grader=data["grader"], exam_id=data["exam"])
        )

    # @routes.get("/ADM/flagged")
    @authenticate_by_token_required_fields([])
    @readonly_admin
    @reports_grading_errors
    def AgetFlagged(self, data, request):
        """Tasks abandoned too often, which may need an administrator's attention."""
        return web.json_response(self.server.flaggedTasks())

    # @routes.get("/ADM/assignments")
    @authenticate_by_token_required_fields(["exam"])
    @readonly_admin
    @reports_grading_errors
    def AlistAssignments(self, data, request):
        return web.json_response(self.server.listAssignments(data["exam"]))

    # @routes.delete("/ADM/assignments/{assignment}")
    @authenticate_by_token_required_fields([])
    @write_admin
    @reports_grading_errors
    def AcancelAssignment(self, data, request):
        """Cancel an assignment: unstarted tasks go back to the pool.

        Respond with status 200/404/409.
        """
        return web.json_response(
            self.server.cancelAssignment(request.match_info["assignment"])
        )

    def setUpRoutes(self, router):
        """Adds the response functions to the router object.

        Args:
            router (aiohttp.web_urldispatcher.UrlDispatcher): Router object
                which we will add the response functions to.
        """
        router.add_put("/ADM/assign", self.Aassign)
        router.add_get("/ADM/tasks", self.AlistTasks)
        router.add_get("/ADM/tasks/{task}", self.AgetTask)
        router.add_get("/ADM/tasks/{task}/abandonments", self.AgetAbandonHistory)
        router.add_get("/ADM/progress/{exam}", self.AgetProgress)
        router.add_get("/ADM/statistics", self.AgetStatistics)
        router.add_get("/ADM/flagged", self.AgetFlagged)
        router.add_get("/ADM/assignments", self.AlistAssignments)
        router.add_delete("/ADM/assignments/{assignment}", self.AcancelAssignment)

"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the GitLab API port and the WatchService. Errors from the API layer are
caught here, logged, and shown to the user.
"""

import logging
from typing import Awaitable, Callable

from mergebot.core.services.watch_service import WatchService
from mergebot.domain.errors import GitlabApiError
from mergebot.domain.interfaces.gitlab_api import GitlabApi
from mergebot.domain.interfaces.user_interface import UserInterface
from mergebot.domain.models.common import MergeRequestIid, ProjectId

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services.

    Every ``handle_*`` coroutine returns True on success and False when the
    command failed (the failure has already been reported to the user).
    """

    def __init__(self, gitlab_api: GitlabApi, watch_service: WatchService, ui: UserInterface):
        self.gitlab_api = gitlab_api
        self.watch_service = watch_service
        self.ui = ui

    async def _guarded(self, command: str, action: Callable[[], Awaitable[None]]) -> bool:
        try:
            await action()
        except GitlabApiError as e:
            logger.error(f"'{command}' command failed: {e}", exc_info=True)
            self.ui.display_error(f"{command} failed: {e}")
            return False
        return True

    async def handle_whoami(self) -> bool:
        logger.info("Handling 'whoami' command")

        async def action() -> None:
            self.ui.display_user(await self.gitlab_api.get_me())

        return await self._guarded("whoami", action)

    async def handle_list(self) -> bool:
        logger.info("Handling 'list' command")

        async def action() -> None:
            self.ui.display_merge_requests(await self.gitlab_api.get_assigned_opened_merge_requests())

        return await self._guarded("list", action)

    async def handle_status(self, project_id: int, iid: int) -> bool:
        logger.info(f"Handling 'status' command for {project_id}!{iid}")

        async def action() -> None:
            await self.watch_service.reconcile(ProjectId(project_id), MergeRequestIid(iid))

        return await self._guarded("status", action)

    async def handle_comment(self, project_id: int, iid: int, body: str) -> bool:
        logger.info(f"Handling 'comment' command for {project_id}!{iid}")
        if not body.strip():
            self.ui.display_error("Comment body must not be empty.")
            return False

        async def action() -> None:
            await self.gitlab_api.create_merge_request_note(ProjectId(project_id), MergeRequestIid(iid), body)
            self.ui.display_info(f"Comment added to {project_id}!{iid}.")

        return await self._guarded("comment", action)

    async def handle_rebase(self, project_id: int, iid: int) -> bool:
        logger.info(f"Handling 'rebase' command for {project_id}!{iid}")

        async def action() -> None:
            await self.gitlab_api.rebase_merge_request(ProjectId(project_id), MergeRequestIid(iid))
            self.ui.display_info(f"Rebase of {project_id}!{iid} requested.")

        return await self._guarded("rebase", action)

    async def handle_watch(self, interval_seconds: float, once: bool = False) -> bool:
        logger.info(f"Handling 'watch' command (interval={interval_seconds}s, once={once})")
        try:
            report = await self.watch_service.run(interval_seconds, once=once)
        except GitlabApiError as e:
            logger.error(f"'watch' command failed: {e}", exc_info=True)
            self.ui.display_error(f"watch failed: {e}")
            return False
        return report.succeeded

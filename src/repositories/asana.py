"""Asana API repository implementation."""

import logging
from typing import Optional, Sequence

import httpx

from ..domain.models import ProjectTask, StorySnapshot, TaskSnapshot
from ..parsers.asana_parser import project_task_from_data, story_from_data, task_from_data

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    "name,assignee.name,assignee.email,due_on,permalink_url,"
    "projects.name,parent.name,notes,completed"
)
STORY_FIELDS = "text,resource_subtype,created_by.name"
PROJECT_TASK_FIELDS = (
    "name,due_on,completed,completed_at,assignee.name,assignee.email,permalink_url"
)

# Event filters registered for every watched project
WEBHOOK_FILTERS = [
    {"resource_type": "task", "action": "added"},
    {"resource_type": "task", "action": "changed"},
    {"resource_type": "task", "action": "deleted"},
    {"resource_type": "story", "action": "added"},
    {"resource_type": "section", "action": "added"},
    {"resource_type": "attachment", "action": "added"},
]


class AsanaRepository:
    """Read-only access to Asana tasks, stories and projects."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://app.asana.com/api/1.0",
        timeout: float = 8.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Asana repository.

        Args:
            access_token: Asana personal access token
            base_url: API base URL
            timeout: Per-request timeout in seconds
            http_client: Optional HTTP client for testing
        """
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_headers(self) -> dict:
        """Get API request headers."""
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client:
            return self._http_client
        return httpx.AsyncClient()

    async def _get_data(self, path: str, params: dict) -> Optional[object]:
        """GET a resource and unwrap its ``data`` member.

        Network errors, timeouts and error statuses all yield None.
        """
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self._base_url}{path}",
                headers=self._get_headers(),
                params=params,
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response.json().get("data")
        except httpx.HTTPError as e:
            logger.warning(f"Asana request {path} failed: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Asana response for {path} is not JSON: {e}")
            return None
        finally:
            if self._owns_client and not self._http_client:
                await client.aclose()

    async def get_task(self, task_id: str) -> Optional[TaskSnapshot]:
        """Fetch a task snapshot.

        Args:
            task_id: Asana task gid

        Returns:
            TaskSnapshot if found, None otherwise
        """
        data = await self._get_data(f"/tasks/{task_id}", {"opt_fields": TASK_FIELDS})
        return task_from_data(data)

    async def get_story(self, story_id: str) -> Optional[StorySnapshot]:
        """Fetch a story snapshot.

        Args:
            story_id: Asana story gid

        Returns:
            StorySnapshot if found, None otherwise
        """
        data = await self._get_data(f"/stories/{story_id}", {"opt_fields": STORY_FIELDS})
        return story_from_data(data)

    async def list_project_tasks(self, project_id: str) -> Sequence[ProjectTask]:
        """List tasks of a project.

        Args:
            project_id: Asana project gid

        Returns:
            Sequence of tasks, empty on failure
        """
        data = await self._get_data(
            f"/projects/{project_id}/tasks",
            {"opt_fields": PROJECT_TASK_FIELDS, "limit": 100},
        )
        if not isinstance(data, list):
            return []
        tasks = []
        for item in data:
            task = project_task_from_data(item)
            if task:
                tasks.append(task)
        return tasks

    async def create_webhook(self, resource_id: str, target: str) -> str:
        """Register a webhook for a project.

        Args:
            resource_id: Project gid to watch
            target: Public URL receiving the events

        Returns:
            Gid of the created webhook

        Raises:
            httpx.HTTPStatusError: If Asana rejects the registration
        """
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self._base_url}/webhooks",
                headers=self._get_headers(),
                json={
                    "data": {
                        "resource": resource_id,
                        "target": target,
                        "filters": WEBHOOK_FILTERS,
                    }
                },
                timeout=30.0,
            )
            response.raise_for_status()
            return str(response.json().get("data", {}).get("gid", ""))
        finally:
            if self._owns_client and not self._http_client:
                await client.aclose()

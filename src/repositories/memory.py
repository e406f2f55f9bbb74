"""In-memory implementation of the entity repository for testing."""

from typing import Optional, Sequence

from src.domain.models import ProjectTask, StorySnapshot, TaskSnapshot


class InMemoryEntityRepository:
    """In-memory implementation of EntityRepository for testing.

    Counts fetches so tests can observe cache behaviour.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, TaskSnapshot] = {}
        self._stories: dict[str, StorySnapshot] = {}
        self._project_tasks: dict[str, list[ProjectTask]] = {}
        self.task_fetches: list[str] = []
        self.story_fetches: list[str] = []

    def add_task(self, task: TaskSnapshot) -> None:
        self._tasks[task.id] = task

    def remove_task(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    def add_story(self, story: StorySnapshot) -> None:
        self._stories[story.id] = story

    def set_project_tasks(self, project_id: str, tasks: Sequence[ProjectTask]) -> None:
        self._project_tasks[project_id] = list(tasks)

    async def get_task(self, task_id: str) -> Optional[TaskSnapshot]:
        """Retrieve a task snapshot by gid."""
        self.task_fetches.append(task_id)
        return self._tasks.get(task_id)

    async def get_story(self, story_id: str) -> Optional[StorySnapshot]:
        """Retrieve a story snapshot by gid."""
        self.story_fetches.append(story_id)
        return self._stories.get(story_id)

    async def list_project_tasks(self, project_id: str) -> Sequence[ProjectTask]:
        """List tasks of a project."""
        return list(self._project_tasks.get(project_id, []))

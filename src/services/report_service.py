"""Scheduled task reports: overdue tasks, deadlines and weekly digest."""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from ..domain.models import ProjectTask
from ..domain.protocols import EntityRepository
from .mention_service import MentionResolver
from .notification_builder import bold, escape, italic, link
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

DIGEST_LIST_LIMIT = 10
SEPARATOR = "─────────────────"

REPORT_STRINGS = {
    "ru": {
        "no_overdue": "✅ <b>Просроченных задач нет!</b>\nВсе задачи в срок.",
        "overdue_title": "🚨 <b>Просроченные задачи ({count})</b>",
        "as_of": "📅 На {date}",
        "due": "⏰ Срок: {date} (<b>просрочено на {days} дн.</b>)",
        "deadlines_title": "📅 <b>Дедлайны на сегодня и завтра</b>",
        "today": "🔴 <b>Сегодня ({date}) — {count} задач:</b>",
        "tomorrow": "🟡 <b>Завтра ({date}) — {count} задач:</b>",
        "weekly_title": "📊 <b>Еженедельный дайджест</b>",
        "completed_count": "✅ Выполнено за неделю: <b>{count}</b>",
        "in_progress_count": "🔄 В работе: <b>{count}</b>",
        "overdue_count": "🚨 Просрочено: <b>{count}</b>",
        "completed_list": "<b>✅ Выполненные задачи:</b>",
        "overdue_list": "<b>🚨 Просроченные:</b>",
        "more": "...и ещё {count}",
        "open": "Открыть",
        "unassigned": "не назначен",
    },
    "en": {
        "no_overdue": "✅ <b>No overdue tasks!</b>\nEverything is on schedule.",
        "overdue_title": "🚨 <b>Overdue tasks ({count})</b>",
        "as_of": "📅 As of {date}",
        "due": "⏰ Due: {date} (<b>{days} day(s) overdue</b>)",
        "deadlines_title": "📅 <b>Deadlines today and tomorrow</b>",
        "today": "🔴 <b>Today ({date}) — {count} task(s):</b>",
        "tomorrow": "🟡 <b>Tomorrow ({date}) — {count} task(s):</b>",
        "weekly_title": "📊 <b>Weekly digest</b>",
        "completed_count": "✅ Completed this week: <b>{count}</b>",
        "in_progress_count": "🔄 In progress: <b>{count}</b>",
        "overdue_count": "🚨 Overdue: <b>{count}</b>",
        "completed_list": "<b>✅ Completed tasks:</b>",
        "overdue_list": "<b>🚨 Overdue:</b>",
        "more": "...and {count} more",
        "open": "Open",
        "unassigned": "unassigned",
    },
}


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "—"
    return value.strftime("%d.%m.%Y")


class ReportService:
    """Builds and sends periodic summaries of project tasks."""

    def __init__(
        self,
        repository: EntityRepository,
        notification_service: NotificationService,
        project_ids: Sequence[str],
        *,
        mentions: Optional[MentionResolver] = None,
        locale: str = "ru",
        timezone: str = "Europe/Moscow",
        today: Optional[Callable[[], date]] = None,
    ):
        """Initialize report service.

        Args:
            repository: Source of project tasks
            notification_service: Service used to deliver reports
            project_ids: Project gids to report on
            mentions: Resolver for assignee handles
            locale: Report language
            timezone: Timezone defining "today"
            today: Override of the current date (for testing)
        """
        self._repo = repository
        self._notifications = notification_service
        self._project_ids = list(project_ids)
        self._mentions = mentions or MentionResolver()
        self._strings = REPORT_STRINGS.get(locale, REPORT_STRINGS["en"])
        self._tz = ZoneInfo(timezone)
        self._today = today or (lambda: datetime.now(self._tz).date())

    async def fetch_tasks(self) -> list[ProjectTask]:
        """Fetch tasks of all configured projects."""
        tasks: list[ProjectTask] = []
        for project_id in self._project_ids:
            project_tasks = await self._repo.list_project_tasks(project_id)
            if not project_tasks:
                logger.warning(f"No tasks fetched for project {project_id}")
            tasks.extend(project_tasks)
        return tasks

    async def send_overdue_report(self) -> Optional[str]:
        """Send the list of overdue tasks.

        Returns:
            The sent message text
        """
        logger.info("Sending overdue report")
        today = self._today()
        tasks = await self.fetch_tasks()

        overdue = [t for t in tasks if self._is_overdue(t, today)]
        if not overdue:
            text = self._strings["no_overdue"]
            await self._notifications.send_text(text)
            return text

        lines = [
            self._strings["overdue_title"].format(count=len(overdue)),
            self._strings["as_of"].format(date=format_date(today)),
            SEPARATOR,
        ]
        for task in overdue:
            days = (today - task.due_on).days
            lines.append("")
            lines.append(f"📋 {bold(escape(task.name))}")
            lines.append(f"👤 {self._assignee(task)}")
            lines.append(self._strings["due"].format(date=format_date(task.due_on), days=days))
            if task.permalink:
                lines.append(link(task.permalink, f"🔗 {self._strings['open']}"))

        text = self._with_mentions("\n".join(lines), overdue)
        await self._notifications.send_text(text)
        return text

    async def send_daily_deadlines(self) -> Optional[str]:
        """Send tasks due today and tomorrow; nothing when there are none.

        Returns:
            The sent message text, or None
        """
        logger.info("Sending daily deadlines")
        today = self._today()
        tomorrow = today + timedelta(days=1)
        tasks = await self.fetch_tasks()

        due_today = [t for t in tasks if not t.completed and t.due_on == today]
        due_tomorrow = [t for t in tasks if not t.completed and t.due_on == tomorrow]

        if not due_today and not due_tomorrow:
            logger.info("No deadlines today or tomorrow")
            return None

        lines = [self._strings["deadlines_title"]]
        for key, day, group in (
            ("today", today, due_today),
            ("tomorrow", tomorrow, due_tomorrow),
        ):
            if not group:
                continue
            lines.append("")
            lines.append(self._strings[key].format(date=format_date(day), count=len(group)))
            for task in group:
                lines.append("")
                lines.append(f"📋 {bold(escape(task.name))}")
                lines.append(f"👤 {self._assignee(task)}")
                if task.permalink:
                    lines.append(link(task.permalink, f"🔗 {self._strings['open']}"))

        text = self._with_mentions("\n".join(lines), due_today + due_tomorrow)
        await self._notifications.send_text(text)
        return text

    async def send_weekly_digest(self) -> Optional[str]:
        """Send the weekly summary of completed, open and overdue tasks.

        Returns:
            The sent message text
        """
        logger.info("Sending weekly digest")
        today = self._today()
        week_start = today - timedelta(days=6)
        week_ago = today - timedelta(days=7)
        tasks = await self.fetch_tasks()

        completed = [
            t for t in tasks
            if t.completed
            and t.completed_at is not None
            and t.completed_at.date() >= week_ago
        ]
        in_progress = [t for t in tasks if not t.completed]
        overdue = [t for t in tasks if self._is_overdue(t, today)]

        lines = [
            self._strings["weekly_title"],
            f"📅 {format_date(week_start)} — {format_date(today)}",
            SEPARATOR,
            "",
            self._strings["completed_count"].format(count=len(completed)),
            self._strings["in_progress_count"].format(count=len(in_progress)),
            self._strings["overdue_count"].format(count=len(overdue)),
        ]

        if completed:
            lines.append("")
            lines.append(self._strings["completed_list"])
            for task in completed[:DIGEST_LIST_LIMIT]:
                lines.append(f"• {escape(task.name)}")
            lines.extend(self._more_line(len(completed)))

        if overdue:
            lines.append("")
            lines.append(self._strings["overdue_list"])
            for task in overdue[:DIGEST_LIST_LIMIT]:
                lines.append(
                    f"• {escape(task.name)} — {self._assignee(task)} ({format_date(task.due_on)})"
                )
            lines.extend(self._more_line(len(overdue)))

        text = "\n".join(lines)
        await self._notifications.send_text(text)
        return text

    @staticmethod
    def _is_overdue(task: ProjectTask, today: date) -> bool:
        return not task.completed and task.due_on is not None and task.due_on < today

    def _assignee(self, task: ProjectTask) -> str:
        if not task.assignee:
            return self._strings["unassigned"]
        handle = self._mentions.resolve(task.assignee)
        if handle:
            return f"{escape(task.assignee)} ({escape(handle)})"
        return escape(task.assignee)

    def _more_line(self, total: int) -> list[str]:
        if total <= DIGEST_LIST_LIMIT:
            return []
        return [f"  {italic(self._strings['more'].format(count=total - DIGEST_LIST_LIMIT))}"]

    def _with_mentions(self, text: str, tasks: Sequence[ProjectTask]) -> str:
        handles = self._mentions.resolve_all(t.assignee for t in tasks)
        if handles:
            text += "\n\n" + " ".join(escape(h) for h in handles)
        return text

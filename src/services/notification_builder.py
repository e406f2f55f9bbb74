"""Rendering of Telegram notification text from entity state.

All functions here are pure: the same inputs always yield the same text.
Output uses the Telegram HTML subset (``<b>``, ``<i>``, ``<s>``,
``<a href>``); every value coming from Asana is escaped before it is
embedded.
"""

import html
from datetime import date
from typing import Iterable, Optional

from src.domain.models import ChangeKind, StorySnapshot, TaskSnapshot
from src.services.mention_service import MentionResolver

ELLIPSIS = "..."

STRINGS = {
    "ru": {
        "task_created": "➕ Новая задача создана",
        "subtask_created": "➕ Новая подзадача создана",
        "task_updated": "✏️ Задача изменена",
        "task_completed": "✅ Задача выполнена",
        "task_deleted": "🗑 Задача удалена",
        "comment_added": "💬 Новый комментарий",
        "section_added": "📂 Новая секция создана",
        "attachment_added": "📎 Файл прикреплён",
        "parent": "Родительская задача",
        "project": "Проект",
        "assignee": "Исполнитель",
        "due": "Срок",
        "description": "Описание",
        "name": "Новое название",
        "custom_fields": "Изменены пользовательские поля",
        "by": "Изменил",
        "open_task": "Открыть задачу",
        "unassigned": "не назначен",
        "not_set": "не указан",
        "file": "файл",
    },
    "en": {
        "task_created": "➕ New task created",
        "subtask_created": "➕ New subtask created",
        "task_updated": "✏️ Task updated",
        "task_completed": "✅ Task completed",
        "task_deleted": "🗑 Task deleted",
        "comment_added": "💬 New comment",
        "section_added": "📂 New section created",
        "attachment_added": "📎 File attached",
        "parent": "Parent task",
        "project": "Project",
        "assignee": "Assignee",
        "due": "Due",
        "description": "Description",
        "name": "New name",
        "custom_fields": "Custom fields changed",
        "by": "By",
        "open_task": "Open task",
        "unassigned": "unassigned",
        "not_set": "not set",
        "file": "file",
    },
}

# Change kinds shown in an "updated" message, in display order
UPDATE_ORDER = (
    ChangeKind.ASSIGNEE,
    ChangeKind.DUE_DATE,
    ChangeKind.DESCRIPTION,
    ChangeKind.NAME,
    ChangeKind.CUSTOM_FIELDS,
)


def escape(text: Optional[str]) -> str:
    """Escape untrusted text for the HTML parse mode."""
    return html.escape(text or "", quote=False)


def bold(text: str) -> str:
    return f"<b>{text}</b>"


def italic(text: str) -> str:
    return f"<i>{text}</i>"


def strike(text: str) -> str:
    return f"<s>{text}</s>"


def link(url: str, text: str) -> str:
    return f'<a href="{html.escape(url, quote=True)}">{text}</a>'


def truncate(text: Optional[str], limit: int) -> str:
    """Cut text to ``limit`` characters, marking the cut with an ellipsis."""
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def is_blank(text: Optional[str]) -> bool:
    return not text or not text.strip()


class NotificationBuilder:
    """Decides what single message, if any, describes a change."""

    def __init__(
        self,
        mentions: Optional[MentionResolver] = None,
        *,
        locale: str = "ru",
        text_limit: int = 400,
    ):
        """Initialize builder.

        Args:
            mentions: Resolver for assignee handles
            locale: Message language, ``ru`` or ``en``
            text_limit: Character limit for free-text fields
        """
        self._mentions = mentions or MentionResolver()
        self._locale = locale if locale in STRINGS else "en"
        self._strings = STRINGS[self._locale]
        self._text_limit = text_limit

    @property
    def locale(self) -> str:
        return self._locale

    def t(self, key: str) -> str:
        """Localized string by key."""
        return self._strings[key]

    def format_date(self, value: Optional[date]) -> str:
        if value is None:
            return self.t("not_set")
        return value.strftime("%d.%m.%Y")

    def format_assignee(self, assignee: Optional[str]) -> str:
        """Assignee name with its mention handle in parentheses when mapped."""
        if not assignee:
            return self.t("unassigned")
        handle = self._mentions.resolve(assignee)
        if handle:
            return f"{escape(assignee)} ({escape(handle)})"
        return escape(assignee)

    def build_task_change(
        self,
        snapshot: Optional[TaskSnapshot],
        change_kinds: Iterable[str],
        actor: Optional[str] = None,
    ) -> Optional[str]:
        """Render a coalesced set of task changes.

        First match wins: unusable snapshot -> None, completed -> "completed",
        creation -> "created", otherwise "updated" with one line per
        recognised change kind.

        Args:
            snapshot: Current task state, None if it could not be fetched
            change_kinds: Union of change kinds of the aggregate
            actor: Last user who changed the task

        Returns:
            Message text, or None when nothing notable remains
        """
        if snapshot is None or is_blank(snapshot.name):
            return None

        kinds = frozenset(change_kinds)

        if snapshot.completed:
            return self._render_completed(snapshot, actor)
        if ChangeKind.ADDED in kinds:
            return self._render_created(snapshot, actor)
        return self._render_updated(snapshot, kinds, actor)

    def build_task_deleted(
        self, name: Optional[str], actor: Optional[str] = None
    ) -> Optional[str]:
        """Render a deletion; None when the task name is unknown."""
        if is_blank(name):
            return None
        lines = [
            bold(self.t("task_deleted")),
            f"📋 {strike(escape(name))}",
        ]
        lines.extend(self._actor_lines(actor))
        return "\n".join(lines)

    def build_comment(
        self, story: Optional[StorySnapshot], task: Optional[TaskSnapshot] = None
    ) -> Optional[str]:
        """Render a new comment; system stories render nothing."""
        if story is None or not story.is_comment:
            return None

        text = escape(truncate(story.text, self._text_limit))
        msg = bold(self.t("comment_added")) + "\n"
        if task is not None and not is_blank(task.name):
            msg += f"📋 {bold(escape(task.name))}\n"
        msg += f"\n{italic(text)}\n\n👤 {escape(story.author_name)}"
        if task is not None and task.permalink:
            msg += "\n" + link(task.permalink, f"🔗 {self.t('open_task')}")
        return msg

    def build_section_added(self, name: Optional[str]) -> str:
        return f"{bold(self.t('section_added'))}\n{escape(name)}"

    def build_attachment_added(
        self, file_name: Optional[str], task: Optional[TaskSnapshot] = None
    ) -> str:
        file_label = escape(file_name) if not is_blank(file_name) else self.t("file")
        msg = f"{bold(self.t('attachment_added'))}\n{file_label}"
        if task is not None and not is_blank(task.name):
            msg += f"\n📋 {escape(task.name)}"
        if task is not None and task.permalink:
            msg += "\n" + link(task.permalink, f"🔗 {self.t('open_task')}")
        return msg

    def _render_completed(self, snapshot: TaskSnapshot, actor: Optional[str]) -> str:
        lines = self._header(self.t("task_completed"), snapshot)
        lines.append(f"👤 {self.t('assignee')}: {self.format_assignee(snapshot.assignee)}")
        lines.extend(self._actor_lines(actor))
        return self._finish(lines, snapshot, mention=True)

    def _render_created(self, snapshot: TaskSnapshot, actor: Optional[str]) -> str:
        is_subtask = bool(snapshot.parent_id)
        header = self.t("subtask_created") if is_subtask else self.t("task_created")
        lines = self._header(header, snapshot)
        lines.append(f"👤 {self.t('assignee')}: {self.format_assignee(snapshot.assignee)}")
        lines.append(f"📅 {self.t('due')}: {self.format_date(snapshot.due_on)}")
        if not is_blank(snapshot.notes):
            lines.append(f"📝 {italic(escape(truncate(snapshot.notes, self._text_limit)))}")
        lines.extend(self._actor_lines(actor))
        return self._finish(lines, snapshot, mention=True)

    def _render_updated(
        self, snapshot: TaskSnapshot, kinds: frozenset, actor: Optional[str]
    ) -> Optional[str]:
        change_lines = []
        for kind in UPDATE_ORDER:
            if kind not in kinds:
                continue
            if kind == ChangeKind.ASSIGNEE:
                change_lines.append(
                    f"👤 {self.t('assignee')}: {self.format_assignee(snapshot.assignee)}"
                )
            elif kind == ChangeKind.DUE_DATE:
                change_lines.append(f"📅 {self.t('due')}: {self.format_date(snapshot.due_on)}")
            elif kind == ChangeKind.DESCRIPTION:
                if is_blank(snapshot.notes):
                    notes = self.t("not_set")
                else:
                    notes = italic(escape(truncate(snapshot.notes, self._text_limit)))
                change_lines.append(f"📝 {self.t('description')}: {notes}")
            elif kind == ChangeKind.NAME:
                change_lines.append(f"🏷 {self.t('name')}: {escape(snapshot.name)}")
            elif kind == ChangeKind.CUSTOM_FIELDS:
                change_lines.append(f"🔧 {self.t('custom_fields')}")

        if not change_lines:
            return None

        lines = self._header(self.t("task_updated"), snapshot)
        lines.extend(change_lines)
        lines.extend(self._actor_lines(actor))
        return self._finish(lines, snapshot, mention=ChangeKind.ASSIGNEE in kinds)

    def _header(self, title: str, snapshot: TaskSnapshot) -> list[str]:
        lines = [bold(title), f"📋 {bold(escape(snapshot.name))}"]
        if snapshot.parent_id and not is_blank(snapshot.parent_name):
            lines.append(f"↳ {self.t('parent')}: {escape(snapshot.parent_name)}")
        if not is_blank(snapshot.project_name):
            lines.append(f"📁 {self.t('project')}: {escape(snapshot.project_name)}")
        return lines

    def _actor_lines(self, actor: Optional[str]) -> list[str]:
        if is_blank(actor):
            return []
        return [f"👁 {self.t('by')}: {escape(actor)}"]

    def _finish(self, lines: list[str], snapshot: TaskSnapshot, mention: bool) -> str:
        msg = "\n".join(lines)
        if snapshot.permalink:
            msg += "\n\n" + link(snapshot.permalink, f"🔗 {self.t('open_task')}")
        if mention:
            handle = self._mentions.resolve(snapshot.assignee)
            if handle:
                msg += f"\n\n{escape(handle)}"
        return msg

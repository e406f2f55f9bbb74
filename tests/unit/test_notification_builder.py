"""Tests for NotificationBuilder."""

import pytest
from dataclasses import replace
from datetime import date

from src.domain.models import ChangeKind, StorySnapshot, TaskSnapshot
from src.services.mention_service import MentionResolver
from src.services.notification_builder import (
    NotificationBuilder,
    escape,
    truncate,
)


class TestHelpers:
    def test_escape(self):
        assert escape("<b>R&D</b>") == "&lt;b&gt;R&amp;D&lt;/b&gt;"
        assert escape(None) == ""

    def test_truncate_short_text(self):
        assert truncate("short", 10) == "short"

    def test_truncate_exact_limit(self):
        assert truncate("a" * 10, 10) == "a" * 10

    def test_truncate_long_text(self):
        assert truncate("a" * 12, 10) == "a" * 10 + "..."


class TestBuildTaskChange:
    """Tests for task change rendering and its precedence rules."""

    def test_missing_snapshot(self, builder):
        assert builder.build_task_change(None, {ChangeKind.ADDED}) is None

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, builder, sample_snapshot, name):
        snapshot = replace(sample_snapshot, name=name)
        assert builder.build_task_change(snapshot, {ChangeKind.ADDED}) is None

    def test_completed_wins_over_everything(self, builder, sample_snapshot):
        """A completed task renders as completed whatever changed."""
        snapshot = replace(sample_snapshot, completed=True)

        text = builder.build_task_change(
            snapshot, {ChangeKind.ADDED, ChangeKind.DESCRIPTION}, "Boris"
        )

        assert text.startswith("<b>✅ Task completed</b>")
        assert "Task updated" not in text
        assert "New task created" not in text

    def test_created(self, builder, sample_snapshot):
        text = builder.build_task_change(
            sample_snapshot, {ChangeKind.ADDED, ChangeKind.ASSIGNEE}, "Boris"
        )

        assert text.startswith("<b>➕ New task created</b>")
        assert "📋 <b>Prepare release</b>" in text
        assert "📁 Project: Backend" in text
        assert "👤 Assignee: Anna (@anna)" in text
        assert "📅 Due: 15.03.2024" in text
        assert "👁 By: Boris" in text
        assert '<a href="https://app.asana.com/0/1/T1">🔗 Open task</a>' in text
        assert text.endswith("\n\n@anna")

    def test_subtask_created(self, builder, sample_snapshot):
        snapshot = replace(sample_snapshot, parent_id="T0", parent_name="Epic")

        text = builder.build_task_change(snapshot, {ChangeKind.ADDED})

        assert text.startswith("<b>➕ New subtask created</b>")
        assert "↳ Parent task: Epic" in text

    def test_created_without_due_date(self, builder, sample_snapshot):
        snapshot = replace(sample_snapshot, due_on=None, assignee=None)

        text = builder.build_task_change(snapshot, {ChangeKind.ADDED})

        assert "📅 Due: not set" in text
        assert "👤 Assignee: unassigned" in text

    def test_updated_lines_in_fixed_order(self, builder, sample_snapshot):
        text = builder.build_task_change(
            sample_snapshot,
            {ChangeKind.NAME, ChangeKind.DUE_DATE, ChangeKind.DESCRIPTION},
        )

        assert text.startswith("<b>✏️ Task updated</b>")
        due = text.index("📅 Due")
        notes = text.index("📝 Description")
        name = text.index("🏷 New name")
        assert due < notes < name

    def test_updated_without_assignee_has_no_mention(self, builder, sample_snapshot):
        text = builder.build_task_change(sample_snapshot, {ChangeKind.DUE_DATE})
        assert "@anna" not in text

    def test_assignee_change_mentions(self, builder, sample_snapshot):
        text = builder.build_task_change(sample_snapshot, {ChangeKind.ASSIGNEE})
        assert text.endswith("\n\n@anna")

    def test_cleared_description(self, builder, sample_snapshot):
        snapshot = replace(sample_snapshot, notes=None)
        text = builder.build_task_change(snapshot, {ChangeKind.DESCRIPTION})
        assert "📝 Description: not set" in text

    def test_custom_fields(self, builder, sample_snapshot):
        text = builder.build_task_change(sample_snapshot, {ChangeKind.CUSTOM_FIELDS})
        assert "🔧 Custom fields changed" in text

    def test_only_unrecognised_kinds(self, builder, sample_snapshot):
        """Should render nothing when no change kind is displayable."""
        assert builder.build_task_change(sample_snapshot, {"start_on"}) is None
        assert builder.build_task_change(sample_snapshot, set()) is None

    def test_uncompleting_is_not_notable(self, builder, sample_snapshot):
        assert builder.build_task_change(sample_snapshot, {ChangeKind.COMPLETED}) is None

    def test_description_truncated(self, sample_snapshot):
        builder = NotificationBuilder(locale="en", text_limit=10)
        snapshot = replace(sample_snapshot, notes="x" * 50)

        text = builder.build_task_change(snapshot, {ChangeKind.DESCRIPTION})

        assert "<i>" + "x" * 10 + "...</i>" in text

    def test_untrusted_text_escaped(self, builder, sample_snapshot):
        snapshot = replace(sample_snapshot, name="<script>", project_name="A & B")

        text = builder.build_task_change(snapshot, {ChangeKind.ADDED}, "<admin>")

        assert "&lt;script&gt;" in text
        assert "A &amp; B" in text
        assert "&lt;admin&gt;" in text
        assert "<script>" not in text

    def test_idempotent(self, builder, sample_snapshot):
        kinds = {ChangeKind.ASSIGNEE, ChangeKind.NAME}
        assert builder.build_task_change(sample_snapshot, kinds, "A") == (
            builder.build_task_change(sample_snapshot, kinds, "A")
        )

    def test_no_link_without_permalink(self, builder, sample_snapshot):
        snapshot = replace(sample_snapshot, permalink="")
        text = builder.build_task_change(snapshot, {ChangeKind.NAME})
        assert "href" not in text


class TestOtherMessages:
    """Tests for deletion, comment, section and attachment messages."""

    def test_deleted(self, builder):
        text = builder.build_task_deleted("Old task", "Anna")

        assert text == "<b>🗑 Task deleted</b>\n📋 <s>Old task</s>\n👁 By: Anna"

    def test_deleted_unknown_name(self, builder):
        assert builder.build_task_deleted(None) is None
        assert builder.build_task_deleted("") is None

    def test_comment(self, builder, sample_comment, sample_snapshot):
        text = builder.build_comment(sample_comment, sample_snapshot)

        assert text.startswith("<b>💬 New comment</b>")
        assert "<i>Looks good to me</i>" in text
        assert "👤 Boris" in text
        assert "🔗 Open task" in text

    def test_comment_truncated(self):
        builder = NotificationBuilder(locale="en", text_limit=400)
        story = StorySnapshot(id="S1", text="y" * 401, subtype="comment_added")

        text = builder.build_comment(story)

        assert "y" * 400 + "..." in text
        assert "y" * 401 not in text

    def test_system_story_ignored(self, builder):
        story = StorySnapshot(id="S1", text="assigned to Anna", subtype="assigned")
        assert builder.build_comment(story) is None

    def test_section(self, builder):
        assert builder.build_section_added("Q3 <plans>") == (
            "<b>📂 New section created</b>\nQ3 &lt;plans&gt;"
        )

    def test_attachment_with_task(self, builder, sample_snapshot):
        text = builder.build_attachment_added("report.pdf", sample_snapshot)

        assert "report.pdf" in text
        assert "📋 Prepare release" in text

    def test_attachment_without_name(self, builder):
        text = builder.build_attachment_added(None)
        assert text == "<b>📎 File attached</b>\nfile"


class TestLocale:
    def test_russian_default(self, sample_snapshot):
        builder = NotificationBuilder()
        text = builder.build_task_change(sample_snapshot, {ChangeKind.ADDED})
        assert "Новая задача создана" in text

    def test_unknown_locale_falls_back_to_english(self):
        assert NotificationBuilder(locale="de").locale == "en"

    def test_email_mention(self, sample_snapshot):
        builder = NotificationBuilder(MentionResolver({"anna@example.com": "@anna"}), locale="en")
        snapshot = replace(sample_snapshot, assignee="anna@example.com")

        text = builder.build_task_change(snapshot, {ChangeKind.ASSIGNEE})

        assert "anna@example.com (@anna)" in text

    def test_format_date(self):
        builder = NotificationBuilder(locale="en")
        assert builder.format_date(date(2024, 1, 5)) == "05.01.2024"
        assert builder.format_date(None) == "not set"

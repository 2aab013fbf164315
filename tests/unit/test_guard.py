"""Tests for bead access control."""

from unittest.mock import AsyncMock

import pytest

from bd_identity.permissions.guard import (
    AccessGuard,
    check_identity_write,
    check_label,
    check_project_write,
    check_task_access,
    check_topic_access,
)
from bd_identity.storage.records import IDENTITY_LABEL, Record
from bd_identity.utils.errors import AuthorizationError, RecordNotFoundError, StoreCommandError


def make_record(bead_id: str = "bd-9", labels=(), parent: str | None = None) -> Record:
    return Record(id=bead_id, title="t", labels=frozenset(labels), parent=parent)


class TestCheckLabel:
    """Tests for check_label."""

    def test_identity_label_refused_everywhere(self):
        assert not check_label(IDENTITY_LABEL).allowed
        assert not check_label(IDENTITY_LABEL, general_path=False).allowed
        assert not check_label(f" {IDENTITY_LABEL} ").allowed

    @pytest.mark.parametrize("label", ["backlog", "ready"])
    def test_stage_labels_refused_on_general_path(self, label: str):
        decision = check_label(label)
        assert not decision.allowed
        assert "task_" in decision.reason
        assert check_label(label, general_path=False).allowed

    def test_ordinary_label_allowed(self):
        assert check_label("urgent").allowed

    @pytest.mark.parametrize("label", ["task", "topic", "trivial"])
    def test_kind_labels_refused_on_general_path(self, label: str):
        assert not check_label(label).allowed
        assert check_label(label, general_path=False).allowed

    def test_agent_labels_refused_on_general_path(self):
        roster = frozenset({"main", "coder", "researcher"})

        decision = check_label("researcher", roster=roster)

        assert not decision.allowed
        assert "task_assign" in decision.reason
        assert check_label("urgent", roster=roster).allowed


class TestOwnershipChecks:
    """Tests for the pure task, topic and identity checks."""

    def test_topic_needs_topic_and_agent_labels(self):
        assert check_topic_access("coder", make_record(labels=["topic", "coder"])).allowed
        assert not check_topic_access("coder", make_record(labels=["topic", "researcher"])).allowed
        assert not check_topic_access("coder", make_record(labels=["coder"])).allowed

    def test_topic_check_refuses_identity_beads(self):
        record = make_record(labels=["topic", "coder", IDENTITY_LABEL])
        assert not check_topic_access("coder", record).allowed

    def test_task_needs_parent_match(self):
        task = make_record(labels=["task", "ready"], parent="bd-1")
        assert check_task_access("bd-1", task).allowed
        assert not check_task_access("bd-2", task).allowed
        assert not check_task_access(None, task).allowed

    def test_task_check_refuses_non_tasks(self):
        assert not check_task_access("bd-1", make_record(labels=["topic"], parent="bd-1")).allowed

    def test_identity_write_only_own_bead(self):
        own = make_record("bd-1", labels=[IDENTITY_LABEL, "coder"])
        assert check_identity_write("bd-1", own).allowed
        assert not check_identity_write("bd-2", own).allowed
        assert not check_identity_write(None, own).allowed

    def test_identity_write_requires_identity_label(self):
        stripped = make_record("bd-1", labels=["coder"])
        assert not check_identity_write("bd-1", stripped).allowed


class TestCheckProjectWrite:
    """Tests for general-path write decisions."""

    @pytest.mark.parametrize("command", ["comment", "edit", "close", "label"])
    def test_identity_beads_refused(self, command: str):
        record = make_record(labels=[IDENTITY_LABEL, "coder"])
        decision = check_project_write(command, record, "coder", "bd-9")
        assert not decision.allowed
        assert "agent_self" in decision.reason

    def test_task_close_refused(self):
        task = make_record(labels=["task", "ready"], parent="bd-1")
        assert not check_project_write("close", task, "coder", "bd-1").allowed

    def test_task_comment_owner_only(self):
        task = make_record(labels=["task", "ready"], parent="bd-1")
        assert check_project_write("comment", task, "coder", "bd-1").allowed
        assert not check_project_write("comment", task, "researcher", "bd-2").allowed

    def test_topic_close_refused_and_edit_owner_only(self):
        topic = make_record(labels=["topic", "coder"])
        assert not check_project_write("close", topic, "coder").allowed
        assert check_project_write("edit", topic, "coder").allowed
        assert not check_project_write("edit", topic, "researcher").allowed

    def test_generic_beads_allowed(self):
        assert check_project_write("close", make_record(labels=["epic"]), "coder").allowed

    def test_topic_label_and_show_owner_only(self):
        topic = make_record(labels=["topic", "coder"])
        for command in ("label", "show"):
            assert check_project_write(command, topic, "coder").allowed
            assert not check_project_write(command, topic, "researcher").allowed

    def test_task_label_and_show_owner_only(self):
        task = make_record(labels=["task", "backlog"], parent="bd-1")
        for command in ("label", "show"):
            assert check_project_write(command, task, "coder", "bd-1").allowed
            assert not check_project_write(command, task, "researcher", "bd-2").allowed
            assert not check_project_write(command, task, "researcher", None).allowed


class TestAccessGuard:
    """Tests for the store-backed AccessGuard."""

    @pytest.mark.asyncio
    async def test_is_identity_record(self, store, identity_for):
        bead_id = identity_for("coder")
        other = store.add("plain")
        guard = AccessGuard(store)

        assert await guard.is_identity_record(bead_id) is True
        assert await guard.is_identity_record(other) is False
        assert await guard.is_identity_record("bd-missing") is False

    @pytest.mark.asyncio
    async def test_is_identity_record_fails_closed(self):
        """A store failure propagates instead of answering 'not identity'."""
        store = AsyncMock()
        store.show.side_effect = StoreCommandError(["show", "bd-1"], 1, "database locked")
        guard = AccessGuard(store)

        with pytest.raises(StoreCommandError):
            await guard.is_identity_record("bd-1")

    @pytest.mark.asyncio
    async def test_require_task_hides_missing_beads(self, store):
        """A missing task is reported like someone else's task."""
        guard = AccessGuard(store)

        with pytest.raises(AuthorizationError, match="not assigned to you"):
            await guard.require_task("bd-missing", "bd-1")

    @pytest.mark.asyncio
    async def test_require_topic_rereads_labels(self, store):
        """Ownership is re-read on every call, so a relabelled topic is refused."""
        topic = store.add("Notes", labels=["topic", "coder"])
        guard = AccessGuard(store)

        await guard.require_topic(topic, "coder")
        await store.label_remove(topic, "coder")

        with pytest.raises(AuthorizationError):
            await guard.require_topic(topic, "coder")

    @pytest.mark.asyncio
    async def test_require_project_access_missing_bead(self, store):
        guard = AccessGuard(store)
        resolve = AsyncMock(return_value=None)

        with pytest.raises(RecordNotFoundError):
            await guard.require_project_access("comment", "bd-missing", "coder", resolve)

    @pytest.mark.asyncio
    async def test_require_project_access_resolves_identity_for_tasks_only(self, store):
        task = store.add("Task", labels=["task", "ready"], parent="bd-100")
        plain = store.add("Plain")
        guard = AccessGuard(store)
        resolve = AsyncMock(return_value="bd-100")

        await guard.require_project_access("comment", plain, "coder", resolve)
        resolve.assert_not_awaited()

        await guard.require_project_access("comment", task, "coder", resolve)
        resolve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_require_project_access_label_on_foreign_topic(self, store):
        topic = store.add("Coder private work", labels=["topic", "coder"])
        guard = AccessGuard(store)
        resolve = AsyncMock(return_value=None)

        with pytest.raises(AuthorizationError, match="not one of your topics"):
            await guard.require_project_access("label", topic, "researcher", resolve)

    @pytest.mark.asyncio
    async def test_require_project_access_resolves_identity_for_task_show(self, store):
        task = store.add("Task", labels=["task", "ready"], parent="bd-100")
        guard = AccessGuard(store)

        with pytest.raises(AuthorizationError):
            await guard.require_project_access(
                "show", task, "researcher", AsyncMock(return_value="bd-200")
            )
        record = await guard.require_project_access(
            "show", task, "coder", AsyncMock(return_value="bd-100")
        )
        assert record.id == task

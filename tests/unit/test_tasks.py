"""Tests for the task lifecycle."""

import pytest

from bd_identity.lifecycle.tasks import parse_hashtags
from bd_identity.storage.records import BACKLOG_LABEL, READY_LABEL
from bd_identity.utils.errors import (
    AuthorizationError,
    InvalidStateError,
    MissingIdentityError,
    ValidationError,
)


def assert_single_stage(record):
    assert not (BACKLOG_LABEL in record.labels and READY_LABEL in record.labels)


class TestParseHashtags:
    """Tests for parse_hashtags."""

    def test_strips_hashtags_from_title(self):
        assert parse_hashtags("Fix bug #urgent") == ("Fix bug", ["urgent"])

    def test_hashtags_anywhere(self):
        assert parse_hashtags("#ready Write   docs #docs") == ("Write docs", ["ready", "docs"])

    def test_duplicates_collapsed(self):
        assert parse_hashtags("x #a #a") == ("x", ["a"])


class TestTaskCreate:
    """Tests for TaskLifecycle.create."""

    @pytest.mark.asyncio
    async def test_default_is_backlog(self, services, store):
        created = await services.tasks.create("Fix bug #urgent")

        assert created.status == "backlog"
        assert created.title == "Fix bug"
        record = await store.show(created.bead_id)
        assert record.labels == {"task", "urgent", "backlog"}
        assert record.parent is None

    @pytest.mark.asyncio
    async def test_ready_hashtag(self, services, store):
        created = await services.tasks.create("Ship it #ready")

        assert created.status == "ready"
        record = await store.show(created.bead_id)
        assert record.labels == {"task", "ready"}

    @pytest.mark.asyncio
    async def test_trivial_reports_status(self, services, store):
        created = await services.tasks.create("Typo #trivial")

        assert created.status == "backlog (trivial)"
        record = await store.show(created.bead_id)
        assert record.labels == {"task", "trivial", "backlog"}

    @pytest.mark.asyncio
    async def test_explicit_backlog_overrides_trivial_status(self, services, store):
        created = await services.tasks.create("Fix #trivial #backlog")

        assert created.status == "backlog"
        record = await store.show(created.bead_id)
        assert record.labels == {"task", "trivial", "backlog"}

    @pytest.mark.asyncio
    async def test_ready_and_backlog_rejected(self, services, store):
        with pytest.raises(ValidationError):
            await services.tasks.create("Confused #ready #backlog")
        assert store.records == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tag", ["agent-identity", "topic"])
    async def test_reserved_hashtags_rejected(self, services, store, tag):
        with pytest.raises(ValidationError):
            await services.tasks.create(f"Sneaky #{tag}")
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_agent_hashtag_rejected(self, services):
        with pytest.raises(ValidationError, match="task_assign"):
            await services.tasks.create("Do it #coder")

    @pytest.mark.asyncio
    async def test_empty_title_rejected(self, services):
        with pytest.raises(ValidationError):
            await services.tasks.create("#ready #urgent")


class TestTaskPromote:
    """Tests for TaskLifecycle.promote."""

    @pytest.mark.asyncio
    async def test_requires_coordinator(self, services, store, coder_ctx):
        task = store.add("Parser", labels=["task", "backlog"], description="see spec parser")

        with pytest.raises(AuthorizationError, match="Only the main agent"):
            await services.tasks.promote(coder_ctx, task)
        assert (await store.show(task)).has(BACKLOG_LABEL)

    @pytest.mark.asyncio
    async def test_without_spec_reference_rejected(self, services, store, main_ctx):
        task = store.add("Refactor parser", labels=["task", "backlog"])

        with pytest.raises(ValidationError, match="spec reference"):
            await services.tasks.promote(main_ctx, task)
        record = await store.show(task)
        assert record.has(BACKLOG_LABEL)
        assert not record.has(READY_LABEL)

    @pytest.mark.asyncio
    async def test_supplied_spec_ref_appended(self, services, store, main_ctx):
        task = store.add("Refactor parser", labels=["task", "backlog"], description="Old notes")

        record = await services.tasks.promote(main_ctx, task, "parser-rewrite")

        assert "parser-rewrite" in record.description
        assert record.description.startswith("Old notes")
        assert record.has(READY_LABEL)
        assert not record.has(BACKLOG_LABEL)

    @pytest.mark.asyncio
    async def test_existing_spec_reference_is_enough(self, services, store, main_ctx):
        task = store.add("Implement SPECS/red-team", labels=["task", "backlog"])

        record = await services.tasks.promote(main_ctx, task)

        assert record.has(READY_LABEL)

    @pytest.mark.asyncio
    async def test_trivial_needs_no_spec(self, services, store, main_ctx):
        task = store.add("Typo", labels=["task", "backlog", "trivial"])

        record = await services.tasks.promote(main_ctx, task)

        assert record.has(READY_LABEL)
        assert_single_stage(record)

    @pytest.mark.asyncio
    async def test_backlog_removed_before_ready_added(self, services, store, main_ctx):
        task = store.add("Typo", labels=["task", "backlog", "trivial"])

        await services.tasks.promote(main_ctx, task)

        label_calls = [c for c in store.calls if c[0].startswith("label_")]
        assert label_calls == [
            ("label_remove", task, "backlog"),
            ("label_add", task, "ready"),
        ]

    @pytest.mark.asyncio
    async def test_already_ready_rejected(self, services, store, main_ctx):
        task = store.add("Done", labels=["task", "ready"])

        with pytest.raises(InvalidStateError):
            await services.tasks.promote(main_ctx, task, "spec")

    @pytest.mark.asyncio
    async def test_non_task_rejected(self, services, store, main_ctx):
        bead = store.add("Epic", labels=["backlog"])

        with pytest.raises(InvalidStateError):
            await services.tasks.promote(main_ctx, bead, "spec")


class TestTaskAssign:
    """Tests for TaskLifecycle.assign."""

    @pytest.mark.asyncio
    async def test_coordinator_assigns(self, services, store, main_ctx, coder_identity):
        task = store.add("Parser", labels=["task", "ready"])

        record = await services.tasks.assign(main_ctx, task, "coder")

        assert record.parent == coder_identity
        assert record.has("coder")

    @pytest.mark.asyncio
    async def test_reassignment_replaces_agent_label(
        self, services, store, main_ctx, coder_identity, researcher_identity
    ):
        task = store.add("Parser", labels=["task", "ready", "coder"], parent=coder_identity)

        record = await services.tasks.assign(main_ctx, task, "researcher")

        assert record.parent == researcher_identity
        assert record.has("researcher")
        assert not record.has("coder")

    @pytest.mark.asyncio
    async def test_worker_takes_unassigned_task(self, services, store, coder_ctx, coder_identity):
        task = store.add("Parser", labels=["task", "ready"])

        record = await services.tasks.assign(coder_ctx, task, "coder")

        assert record.parent == coder_identity

    @pytest.mark.asyncio
    async def test_worker_cannot_assign_others(self, services, store, coder_ctx, researcher_identity):
        task = store.add("Parser", labels=["task", "ready"])

        with pytest.raises(AuthorizationError):
            await services.tasks.assign(coder_ctx, task, "researcher")

    @pytest.mark.asyncio
    async def test_worker_cannot_take_assigned_task(
        self, services, store, coder_ctx, coder_identity, researcher_identity
    ):
        task = store.add("Parser", labels=["task", "ready", "researcher"], parent=researcher_identity)

        with pytest.raises(AuthorizationError):
            await services.tasks.assign(coder_ctx, task, "coder")
        assert (await store.show(task)).parent == researcher_identity

    @pytest.mark.asyncio
    async def test_target_without_identity(self, services, store, main_ctx):
        task = store.add("Parser", labels=["task", "ready"])

        with pytest.raises(MissingIdentityError):
            await services.tasks.assign(main_ctx, task, "coder")

    @pytest.mark.asyncio
    async def test_unknown_agent_rejected(self, services, store, main_ctx):
        task = store.add("Parser", labels=["task", "ready"])

        with pytest.raises(ValidationError, match="Unknown agent"):
            await services.tasks.assign(main_ctx, task, "stranger")

    @pytest.mark.asyncio
    async def test_requires_task_label(self, services, store, main_ctx, coder_identity):
        bead = store.add("Not a task")

        with pytest.raises(InvalidStateError):
            await services.tasks.assign(main_ctx, bead, "coder")


class TestTaskOwnerOperations:
    """Tests for comment, show and close."""

    @pytest.mark.asyncio
    async def test_owner_comments_and_shows(self, services, store, coder_identity):
        task = store.add("Parser", labels=["task", "ready", "coder"], parent=coder_identity)

        await services.tasks.comment(task, coder_identity, "Started")
        record = await services.tasks.show(task, coder_identity)

        assert [c.text for c in record.comments] == ["Started"]

    @pytest.mark.asyncio
    async def test_non_owner_rejected(self, services, store, coder_identity, researcher_identity):
        task = store.add("Parser", labels=["task", "ready", "coder"], parent=coder_identity)

        with pytest.raises(AuthorizationError):
            await services.tasks.comment(task, researcher_identity, "Mine now")
        with pytest.raises(AuthorizationError):
            await services.tasks.show(task, researcher_identity)
        with pytest.raises(AuthorizationError):
            await services.tasks.close("researcher", task, researcher_identity)

        assert (await store.show(task)).is_open

    @pytest.mark.asyncio
    async def test_missing_task_rejected_as_authorization(self, services, coder_identity):
        with pytest.raises(AuthorizationError):
            await services.tasks.close("coder", "bd-missing", coder_identity)

    @pytest.mark.asyncio
    async def test_close_writes_note_before_closing(self, services, store, coder_identity):
        task = store.add("Parser", labels=["task", "ready", "coder"], parent=coder_identity)
        memory = services.memory
        note = f"Task closed: Parser ({task})"
        original_close = store.close

        async def checking_close(bead_id: str) -> None:
            assert note in memory.read_daily("coder", memory.today())
            await original_close(bead_id)

        store.close = checking_close

        result = await services.tasks.close("coder", task, coder_identity)

        assert result == note
        assert not (await store.show(task)).is_open
        assert memory.read_daily("coder", memory.today()).count(note) == 1
        await services.indexer.drain()

    @pytest.mark.asyncio
    async def test_close_twice_rejected(self, services, store, coder_identity):
        task = store.add("Parser", labels=["task", "ready"], parent=coder_identity, status="closed")

        with pytest.raises(InvalidStateError):
            await services.tasks.close("coder", task, coder_identity)
        assert services.memory.read_daily("coder", services.memory.today()) == ""


class TestTaskList:
    """Tests for TaskLifecycle.list."""

    @pytest.fixture
    def seeded(self, store, coder_identity):
        return {
            "backlog": store.add("B", labels=["task", "backlog"]),
            "ready": store.add("R", labels=["task", "ready"]),
            "mine": store.add("M", labels=["task", "ready", "coder", "urgent"], parent=coder_identity),
            "closed": store.add("C", labels=["task", "ready"], status="closed"),
            "topic": store.add("T", labels=["topic", "coder"]),
        }

    @staticmethod
    def ids(records):
        return {r.id for r in records}

    @pytest.mark.asyncio
    async def test_mine_is_default(self, services, seeded, coder_identity):
        assert self.ids(await services.tasks.list(None, coder_identity)) == {seeded["mine"]}

    @pytest.mark.asyncio
    async def test_mine_needs_identity(self, services, seeded):
        with pytest.raises(MissingIdentityError):
            await services.tasks.list("mine", None)

    @pytest.mark.asyncio
    async def test_ready(self, services, seeded):
        assert self.ids(await services.tasks.list("ready", None)) == {seeded["ready"], seeded["mine"]}

    @pytest.mark.asyncio
    async def test_backlog(self, services, seeded):
        assert self.ids(await services.tasks.list("backlog", None)) == {seeded["backlog"]}

    @pytest.mark.asyncio
    async def test_all_excludes_backlog(self, services, seeded):
        assert self.ids(await services.tasks.list("all", None)) == {seeded["ready"], seeded["mine"]}

    @pytest.mark.asyncio
    async def test_unassigned(self, services, seeded):
        assert self.ids(await services.tasks.list("unassigned", None)) == {seeded["ready"]}

    @pytest.mark.asyncio
    async def test_label_mode(self, services, seeded):
        assert self.ids(await services.tasks.list("label:urgent", None)) == {seeded["mine"]}

    @pytest.mark.asyncio
    async def test_unknown_mode(self, services, seeded):
        with pytest.raises(ValidationError):
            await services.tasks.list("everything", None)

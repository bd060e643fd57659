"""
Unit tests for OptimisticMutationCoordinator.

The gateway is an ``AsyncMock`` so every remote outcome can be scripted.
"""

import itertools
from unittest.mock import AsyncMock

import pytest

from app.exceptions.base import NotFoundError, PersistenceFailure, ValidationError
from app.exceptions.sync import TransientNetworkError
from app.kanban.collection import TaskCollection
from app.kanban.coordinator import (
    MutationState,
    OptimisticMutationCoordinator,
    is_temporary_id,
)
from app.kanban.gateway import SyncGateway
from app.kanban.notifications import SYNC_FAILED_MESSAGE, NotificationCenter, NotificationLevel
from app.schemas.task import TaskCreate, TaskRecord, TaskStatus
from app.shared.timestamps import EPOCH
from tests.factories import column


@pytest.fixture
def fake_gateway():
    """Gateway mock whose creates succeed with sequential server ids."""
    gateway = AsyncMock(spec=SyncGateway)
    counter = itertools.count(1)

    async def create_task(request: TaskCreate) -> TaskRecord:
        return TaskRecord.model_validate(
            {**request.model_dump(), "id": f"srv-{next(counter)}", "created_at": EPOCH}
        )

    gateway.create_task.side_effect = create_task
    return gateway


def _coordinator(collection, gateway, notifier, rollback=False):
    return OptimisticMutationCoordinator(collection, gateway, notifier, rollback_on_failure=rollback)


class TestCreateTask:
    """Test cases for optimistic task creation."""

    @pytest.mark.asyncio
    async def test_task_is_visible_before_server_answers(self, collection, fake_gateway, notifier):
        """Test the new task is in the TODO column right after the call."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        mutation = coordinator.create_task("p1", "Write copy")

        todo = collection.by_status("p1")[TaskStatus.TODO]
        assert [t.content for t in todo] == ["Write copy"]
        assert is_temporary_id(todo[0].id)
        assert mutation.state == MutationState.PENDING_LOCAL
        await coordinator.wait_idle()

    @pytest.mark.asyncio
    async def test_server_id_replaces_temporary_id(self, collection, fake_gateway, notifier):
        """Test the temporary id is reconciled as soon as the create returns."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        mutation = coordinator.create_task("p1", "Write copy")
        temp_id = mutation.task_id
        state = await mutation.wait()

        assert state == MutationState.CONFIRMED
        assert mutation.task_id == "srv-1"
        assert collection.find("p1", temp_id) is None
        assert collection.find("p1", "srv-1").created_at == EPOCH
        assert coordinator.current_id(temp_id) == "srv-1"

    @pytest.mark.asyncio
    async def test_appends_to_end_of_column(self, collection, fake_gateway, notifier):
        """Test the optimistic order is the column length."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "a", "b"))
        coordinator = _coordinator(collection, fake_gateway, notifier)

        coordinator.create_task("p1", "Third")
        await coordinator.wait_idle()

        request = fake_gateway.create_task.call_args.args[0]
        assert request.order == 2
        assert collection.find("p1", "srv-1").order == 2

    @pytest.mark.asyncio
    async def test_invalid_content_never_applies(self, collection, fake_gateway, notifier):
        """Test validation fails synchronously with no local change."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        with pytest.raises(ValidationError):
            coordinator.create_task("p1", "   ")

        assert collection.get("p1") == []
        fake_gateway.create_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_dependencies_on_pending_tasks_use_server_ids(self, collection, fake_gateway, notifier):
        """Test a dependency on a just-created task is sent with its server id."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        first = coordinator.create_task("p1", "First")
        coordinator.create_task("p1", "Second", dependencies=[first.task_id])
        await coordinator.wait_idle()

        second_request = fake_gateway.create_task.call_args_list[1].args[0]
        assert second_request.dependencies == ["srv-1"]
        assert collection.find("p1", "srv-2").dependencies == ["srv-1"]

    @pytest.mark.asyncio
    async def test_failed_create_keeps_task_and_notifies(self, collection, fake_gateway, notifier):
        """Test a failed create leaves the local task and shows a toast."""
        fake_gateway.create_task.side_effect = TransientNetworkError()
        coordinator = _coordinator(collection, fake_gateway, notifier)

        mutation = coordinator.create_task("p1", "Offline")
        state = await mutation.wait()

        assert state == MutationState.FAILED_NOTIFIED
        assert len(collection.get("p1")) == 1
        assert notifier.latest.message == SYNC_FAILED_MESSAGE
        assert notifier.latest.level == NotificationLevel.ERROR

    @pytest.mark.asyncio
    async def test_failed_create_rolls_back(self, collection, fake_gateway, notifier):
        """Test rollback removes the optimistic task."""
        fake_gateway.create_task.side_effect = PersistenceFailure()
        coordinator = _coordinator(collection, fake_gateway, notifier, rollback=True)

        state = await coordinator.create_task("p1", "Offline").wait()

        assert state == MutationState.ROLLED_BACK
        assert collection.get("p1") == []


class TestMoveTask:
    """Test cases for optimistic drag-and-drop."""

    @pytest.mark.asyncio
    async def test_move_sends_minimal_patch(self, collection, fake_gateway, notifier):
        """Test only the changed tasks are sent to the server."""
        collection.set_all(
            "p1",
            column("p1", TaskStatus.TODO, "A", "B") + column("p1", TaskStatus.IN_PROGRESS, "X"),
        )
        coordinator = _coordinator(collection, fake_gateway, notifier)

        mutation = coordinator.move_task("p1", "A", "IN_PROGRESS")

        assert collection.find("p1", "A").status == TaskStatus.IN_PROGRESS
        assert collection.find("p1", "A").order == 1
        assert await mutation.wait() == MutationState.CONFIRMED
        updates = {u.id: u for u in fake_gateway.update_tasks.call_args.args[0]}
        assert set(updates) == {"A", "B"}

    @pytest.mark.asyncio
    async def test_noop_move_returns_none(self, collection, fake_gateway, notifier):
        """Test a drop that changes nothing does not hit the server."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A", "B"))
        coordinator = _coordinator(collection, fake_gateway, notifier)

        assert coordinator.move_task("p1", "A", "TODO") is None
        fake_gateway.update_tasks.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_move_rolls_back(self, collection, fake_gateway, notifier):
        """Test rollback restores status and order."""
        collection.set_all(
            "p1",
            column("p1", TaskStatus.TODO, "A", "B") + column("p1", TaskStatus.IN_PROGRESS, "X"),
        )
        fake_gateway.update_tasks.side_effect = TransientNetworkError()
        coordinator = _coordinator(collection, fake_gateway, notifier, rollback=True)

        state = await coordinator.move_to_column("p1", "A", TaskStatus.IN_PROGRESS).wait()

        assert state == MutationState.ROLLED_BACK
        assert collection.find("p1", "A").status == TaskStatus.TODO
        assert collection.find("p1", "A").order == 0
        assert collection.find("p1", "B").order == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rollback", [False, True])
    async def test_failed_create_does_not_hold_back_moves(
        self, collection, fake_gateway, notifier, rollback
    ):
        """Test a later move is synced even though a sibling never reached the server."""
        coordinator = _coordinator(collection, fake_gateway, notifier, rollback=rollback)
        await coordinator.create_task("p1", "Kept").wait()
        fake_gateway.create_task.side_effect = TransientNetworkError()
        await coordinator.create_task("p1", "Lost").wait()
        if rollback:
            # Rollback already dropped the failed task; add an unsynced one by hand
            collection.add("p1", collection.find("p1", "srv-1").updated(id="temp-x", order=1))

        state = await coordinator.move_task("p1", "srv-1", "DONE").wait()

        assert state == MutationState.CONFIRMED
        updates = fake_gateway.update_tasks.call_args.args[0]
        assert [(u.id, u.status, u.order) for u in updates] == [("srv-1", TaskStatus.DONE, 0)]
        assert collection.find("p1", "srv-1").status == TaskStatus.DONE


class TestEditAndDelete:
    """Test cases for inline edits and deletion."""

    @pytest.mark.asyncio
    async def test_edit_applies_locally_then_remotely(self, collection, fake_gateway, notifier):
        """Test an edit patches the task and sends only the edited fields."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A"))
        coordinator = _coordinator(collection, fake_gateway, notifier)

        mutation = coordinator.edit_task("p1", "A", content="Renamed")

        assert collection.find("p1", "A").content == "Renamed"
        await mutation.wait()
        task_id, update = fake_gateway.update_task.call_args.args
        assert task_id == "A"
        assert update.model_dump(exclude_unset=True) == {"content": "Renamed"}

    @pytest.mark.asyncio
    async def test_edit_rejects_self_dependency(self, collection, fake_gateway, notifier):
        """Test a task cannot be made to depend on itself."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A"))
        coordinator = _coordinator(collection, fake_gateway, notifier)

        with pytest.raises(ValidationError):
            coordinator.edit_task("p1", "A", dependencies=["A"])
        with pytest.raises(NotFoundError):
            coordinator.edit_task("p1", "missing", content="x")

    @pytest.mark.asyncio
    async def test_edit_of_pending_task_targets_server_id(self, collection, fake_gateway, notifier):
        """Test an edit issued before reconciliation reaches the server id."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        created = coordinator.create_task("p1", "Draft")
        coordinator.edit_task("p1", created.task_id, content="Final")
        await coordinator.wait_idle()

        assert fake_gateway.update_task.call_args.args[0] == "srv-1"
        assert collection.find("p1", "srv-1").content == "Final"

    @pytest.mark.asyncio
    async def test_failed_edit_rolls_back(self, collection, fake_gateway, notifier):
        """Test rollback restores the previous field values."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A"))
        original = collection.find("p1", "A").content
        fake_gateway.update_task.side_effect = NotFoundError()
        coordinator = _coordinator(collection, fake_gateway, notifier, rollback=True)

        await coordinator.edit_task("p1", "A", content="Renamed").wait()

        assert collection.find("p1", "A").content == original

    @pytest.mark.asyncio
    async def test_delete_keeps_dangling_dependencies(self, collection, fake_gateway, notifier):
        """Test deleting a task leaves references to it in place."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A", "B"))
        collection.patch("p1", "B", {"dependencies": ["A"]})
        coordinator = _coordinator(collection, fake_gateway, notifier)

        await coordinator.delete_task("p1", "A").wait()

        assert collection.find("p1", "A") is None
        assert collection.find("p1", "B").dependencies == ["A"]
        fake_gateway.delete_task.assert_awaited_once_with("A")

    @pytest.mark.asyncio
    async def test_failed_delete_rolls_back_in_place(self, collection, fake_gateway, notifier):
        """Test rollback puts the task back where it was."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A", "B", "C"))
        fake_gateway.delete_task.side_effect = TransientNetworkError()
        coordinator = _coordinator(collection, fake_gateway, notifier, rollback=True)

        state = await coordinator.delete_task("p1", "B").wait()

        assert state == MutationState.ROLLED_BACK
        assert [t.id for t in collection.get("p1")] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_create_after_delete_keeps_orders_dense(self, collection, fake_gateway, notifier):
        """Test deleting closes the gap, so the next create takes a fresh slot."""
        coordinator = _coordinator(collection, fake_gateway, notifier)
        for content in ("a", "b", "c"):
            coordinator.create_task("p1", content)
        await coordinator.wait_idle()

        coordinator.delete_task("p1", "srv-1")
        coordinator.create_task("p1", "d")
        await coordinator.wait_idle()

        todo = collection.by_status("p1")[TaskStatus.TODO]
        assert [(t.content, t.order) for t in todo] == [("b", 0), ("c", 1), ("d", 2)]
        assert fake_gateway.create_task.call_args.args[0].order == 2

    @pytest.mark.asyncio
    async def test_delete_of_unsynced_task_skips_server_delete(self, collection, fake_gateway, notifier):
        """Test removing a task whose create failed only sends the siblings' new orders."""
        coordinator = _coordinator(collection, fake_gateway, notifier)
        lost = coordinator.create_task("p1", "Lost")
        fake_gateway.create_task.side_effect = TransientNetworkError()
        await lost.wait()
        fake_gateway.create_task.side_effect = None
        fake_gateway.create_task.return_value = TaskRecord.model_validate(
            {"id": "srv-9", "project_id": "p1", "content": "Kept", "order": 1, "created_at": EPOCH}
        )
        await coordinator.create_task("p1", "Kept").wait()

        state = await coordinator.delete_task("p1", lost.task_id).wait()

        assert state == MutationState.CONFIRMED
        fake_gateway.delete_task.assert_not_called()
        updates = fake_gateway.update_tasks.call_args.args[0]
        assert [(u.id, u.order) for u in updates] == [("srv-9", 0)]
        assert collection.find("p1", "srv-9").order == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_task(self, collection, fake_gateway, notifier):
        """Test deleting a task that is not loaded."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        with pytest.raises(NotFoundError):
            coordinator.delete_task("p1", "missing")


class TestDispatch:
    """Test cases for dispatch bookkeeping."""

    @pytest.mark.asyncio
    async def test_wait_idle_and_close(self, collection, fake_gateway, notifier):
        """Test in-flight tracking drains to zero."""
        coordinator = _coordinator(collection, fake_gateway, notifier)

        coordinator.create_task("p1", "One")
        coordinator.create_task("p1", "Two")
        assert coordinator.in_flight == 2

        await coordinator.wait_idle()
        assert coordinator.in_flight == 0
        await coordinator.close()

    @pytest.mark.asyncio
    async def test_notifications_reach_subscribers(self, collection, fake_gateway):
        """Test subscribers see sync failures."""
        notifier = NotificationCenter()
        seen = []
        unsubscribe = notifier.subscribe(seen.append)
        fake_gateway.delete_task.side_effect = TransientNetworkError()
        collection.set_all("p1", column("p1", TaskStatus.TODO, "A"))
        coordinator = _coordinator(collection, fake_gateway, notifier)

        await coordinator.delete_task("p1", "A").wait()
        unsubscribe()
        notifier.success("ignored by the old subscriber")

        assert [n.message for n in seen] == [SYNC_FAILED_MESSAGE]

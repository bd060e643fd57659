"""
Unit tests for the in-memory task collection and project registry.
"""

import pytest

from app.exceptions.base import NotFoundError, ValidationError
from app.exceptions.task import DuplicateProjectError, DuplicateTaskError
from app.kanban.collection import TaskCollection
from app.kanban.registry import ProjectRegistry
from app.schemas.task import TaskStatus
from tests.factories import ProjectRecordFactory, TaskRecordFactory, column


class TestTaskCollection:
    """Test cases for TaskCollection."""

    def test_set_all_keeps_only_project_tasks(self, collection: TaskCollection):
        """Test that set_all drops tasks of other projects."""
        mine = TaskRecordFactory(id="a", project_id="p1")
        other = TaskRecordFactory(id="b", project_id="p2")

        collection.set_all("p1", [mine, other])

        assert [t.id for t in collection.get("p1")] == ["a"]
        assert collection.get("p2") == []

    def test_add_and_find(self, collection: TaskCollection):
        """Test adding a task makes it findable."""
        task = TaskRecordFactory(id="a", project_id="p1")

        collection.add("p1", task)

        assert collection.find("p1", "a") == task
        assert collection.find("p1", "missing") is None

    def test_add_duplicate_raises(self, collection: TaskCollection):
        """Test adding the same id twice is rejected."""
        collection.add("p1", TaskRecordFactory(id="a", project_id="p1"))

        with pytest.raises(DuplicateTaskError):
            collection.add("p1", TaskRecordFactory(id="a", project_id="p1"))

    def test_add_wrong_project_raises(self, collection: TaskCollection):
        """Test adding a task under another project id is rejected."""
        with pytest.raises(ValidationError):
            collection.add("p1", TaskRecordFactory(id="a", project_id="p2"))

    def test_patch_merges_fields(self, collection: TaskCollection):
        """Test patching a task merges the given fields."""
        collection.add("p1", TaskRecordFactory(id="a", project_id="p1", content="Old"))

        patched = collection.patch("p1", "a", {"content": "New", "status": TaskStatus.DONE})

        assert patched.content == "New"
        assert patched.status == TaskStatus.DONE
        assert collection.find("p1", "a").content == "New"

    def test_patch_identical_values_is_noop(self, collection: TaskCollection):
        """Test patching with current values keeps the very same record."""
        task = TaskRecordFactory(id="a", project_id="p1", content="Same")
        collection.add("p1", task)
        before = collection.get("p1")

        collection.patch("p1", "a", {"content": "Same", "order": task.order})

        after = collection.get("p1")
        assert after == before
        assert after[0] is before[0]

    def test_patch_missing_task_returns_none(self, collection: TaskCollection):
        """Test patching an unknown task is ignored."""
        assert collection.patch("p1", "missing", {"content": "x"}) is None

    def test_remove_and_insert(self, collection: TaskCollection):
        """Test removing a task and putting it back at its position."""
        collection.set_all("p1", column("p1", TaskStatus.TODO, "a", "b", "c"))

        removed = collection.remove("p1", "b")
        assert [t.id for t in collection.get("p1")] == ["a", "c"]

        collection.insert("p1", 1, removed)
        assert [t.id for t in collection.get("p1")] == ["a", "b", "c"]
        assert collection.position("p1", "c") == 2

    def test_by_status_has_every_column(self, collection: TaskCollection):
        """Test grouping always yields the four columns sorted by order."""
        collection.set_all(
            "p1",
            [
                TaskRecordFactory(id="b", project_id="p1", status=TaskStatus.TODO, order=1),
                TaskRecordFactory(id="a", project_id="p1", status=TaskStatus.TODO, order=0),
                TaskRecordFactory(id="d", project_id="p1", status=TaskStatus.DONE, order=0),
            ],
        )

        columns = collection.by_status("p1")

        assert list(columns) == [
            TaskStatus.GOAL,
            TaskStatus.TODO,
            TaskStatus.IN_PROGRESS,
            TaskStatus.DONE,
        ]
        assert [t.id for t in columns[TaskStatus.TODO]] == ["a", "b"]
        assert columns[TaskStatus.GOAL] == []
        assert [t.id for t in columns[TaskStatus.DONE]] == ["d"]

    def test_by_status_ties_keep_insertion_order(self, collection: TaskCollection):
        """Test tasks sharing an order stay in insertion order."""
        collection.set_all(
            "p1",
            [
                TaskRecordFactory(id="x", project_id="p1", order=0),
                TaskRecordFactory(id="y", project_id="p1", order=0),
            ],
        )

        assert [t.id for t in collection.by_status("p1")[TaskStatus.TODO]] == ["x", "y"]

    def test_reassign_id_updates_dependencies(self, collection: TaskCollection):
        """Test renaming a task rewrites references to it."""
        collection.add("p1", TaskRecordFactory(id="temp-1", project_id="p1"))
        collection.add("p1", TaskRecordFactory(id="b", project_id="p1", dependencies=["temp-1"]))

        collection.reassign_id("p1", "temp-1", "server-1")

        assert collection.find("p1", "temp-1") is None
        assert collection.find("p1", "server-1") is not None
        assert collection.find("p1", "b").dependencies == ["server-1"]

    def test_record_never_depends_on_itself(self):
        """Test a record drops its own id from its dependencies."""
        task = TaskRecordFactory(id="a", dependencies=["a", "b"])

        assert task.dependencies == ["b"]


class TestProjectRegistry:
    """Test cases for ProjectRegistry."""

    def test_set_all_filters_by_owner(self):
        """Test only the active identity's projects are kept."""
        registry = ProjectRegistry("demo_user")
        mine = ProjectRecordFactory(uid="demo_user")
        theirs = ProjectRecordFactory(uid="someone_else")

        registry.set_all([mine, theirs])

        assert registry.get() == [mine]

    def test_add_rejects_foreign_and_duplicate(self):
        """Test adding another user's project or a duplicate fails."""
        registry = ProjectRegistry("demo_user")
        project = ProjectRecordFactory(id="p1")
        registry.add(project)

        with pytest.raises(DuplicateProjectError):
            registry.add(project)
        with pytest.raises(ValidationError):
            registry.add(ProjectRecordFactory(uid="someone_else"))

    def test_patch_project(self):
        """Test patching a project's title."""
        registry = ProjectRegistry("demo_user")
        registry.add(ProjectRecordFactory(id="p1", title="Old"))

        patched = registry.patch("p1", {"title": "New"})

        assert patched.title == "New"
        assert registry.find("p1").title == "New"
        assert registry.patch("missing", {"title": "x"}) is None

    def test_remove_clears_selection_and_tasks(self):
        """Test removing a project drops its tasks and selection."""
        tasks = TaskCollection()
        registry = ProjectRegistry("demo_user", tasks)
        registry.add(ProjectRecordFactory(id="p1"))
        tasks.set_all("p1", column("p1", TaskStatus.TODO, "a", "b"))
        registry.select("p1")

        removed = registry.remove("p1")

        assert removed.id == "p1"
        assert registry.selected is None
        assert tasks.get("p1") == []

    def test_select_unknown_project_raises(self):
        """Test selecting a project that is not loaded."""
        registry = ProjectRegistry("demo_user")

        with pytest.raises(NotFoundError):
            registry.select("missing")
        assert registry.select(None) is None

    def test_set_all_drops_stale_selection(self):
        """Test reloading without the selected project clears the selection."""
        registry = ProjectRegistry("demo_user")
        registry.add(ProjectRecordFactory(id="p1"))
        registry.select("p1")

        registry.set_all([ProjectRecordFactory(id="p2")])

        assert registry.selected is None

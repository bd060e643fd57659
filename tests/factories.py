"""
Test data factories for generating test objects.

This module provides Factory Boy factories for creating board records and
request payloads with realistic default values and easy customization.
"""

import factory

from app.schemas.project import ProjectCategory, ProjectRecord
from app.schemas.task import TaskRecord, TaskStatus
from app.shared.timestamps import utcnow


class ProjectRecordFactory(factory.Factory):
    """Factory for creating ProjectRecord test instances."""

    class Meta:
        model = ProjectRecord

    id = factory.Sequence(lambda n: f"project-{n}")
    uid = "demo_user"
    title = factory.Sequence(lambda n: f"Test Planet {n}")
    category = ProjectCategory.GENERAL
    scale = 5
    summary = factory.Faker("sentence", nb_words=6)
    created_at = factory.LazyFunction(utcnow)


class TaskRecordFactory(factory.Factory):
    """Factory for creating TaskRecord test instances."""

    class Meta:
        model = TaskRecord

    id = factory.Sequence(lambda n: f"task-{n}")
    project_id = "project-1"
    content = factory.Faker("sentence", nb_words=4, variable_nb_words=True)
    description = factory.Faker("text", max_nb_chars=120)
    status = TaskStatus.TODO
    order = 0
    created_at = factory.LazyFunction(utcnow)


class TaskPayloadFactory(factory.DictFactory):
    """Factory for task request bodies as a client would send them."""

    project_id = "project-1"
    content = factory.Faker("sentence", nb_words=4, variable_nb_words=True)
    description = factory.Faker("text", max_nb_chars=120)
    status = "TODO"


class ProjectPayloadFactory(factory.DictFactory):
    """Factory for project launch request bodies."""

    uid = "demo_user"
    title = factory.Sequence(lambda n: f"Launch {n}")
    category = "Software"
    scale = 5


def column(project_id: str, status: TaskStatus, *ids: str) -> list[TaskRecord]:
    """Tasks ``ids`` filling one column with orders 0..n-1."""
    return [
        TaskRecordFactory(id=task_id, project_id=project_id, status=status, order=index)
        for index, task_id in enumerate(ids)
    ]

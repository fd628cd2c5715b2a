"""
Timeline records shared by the parser, the model and the layout engine.

Records are frozen: they are built once per parse pass and filtered views
only ever hold references to them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Task:
    group: str
    name: str
    start: datetime
    end: datetime               # exclusive, already bumped past the last day
    color: str
    style: str = "normal"
    order: int = 0
    url: Optional[str] = None
    commit: Optional[str] = None
    previous_task: Optional["Task"] = None

    kind = "task"

    @property
    def secondary_order(self):
        return self.order

    @property
    def label(self):
        return self.name


@dataclass(frozen=True)
class Person:
    """One person's slice of a task: a row in the people chart, not a roster entry."""

    person_group: str           # the person's display name, used as the row group
    start: datetime
    end: datetime
    display_name: str
    task_group: str
    task_order: int
    color: str
    involvement: int = 100
    order: int = 0
    url: Optional[str] = None
    task: Optional[Task] = None

    kind = "person"

    @property
    def group(self):
        return self.person_group

    @property
    def style(self):
        return "normal"

    @property
    def secondary_order(self):
        return self.task_order

    @property
    def label(self):
        return self.display_name

    @property
    def is_partial(self):
        return self.involvement != 100

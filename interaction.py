import logging
import re
from dataclasses import dataclass
from typing import Optional

from config import AXIS_HEIGHT, BAR_HEIGHT, DRILL_DOWN_OFFSET
from exceptions import InvalidTransitionError
from layout import layout_cycle, options_for

logger = logging.getLogger(__name__)

ENTRY_POINT = "the entry point /"
HTML_SUFFIX = re.compile(r"(\.html)$")

HOVER_TOP = 10
HOVER_BOX_WIDTH = 50
HOVER_TEXT_OFFSET = 40


def short_revision(revision):
    return (revision or "")[:7]


def versioned_path(path, revision):
    """'page.html' -> 'page.<short revision>.html'; other paths are left alone."""
    return HTML_SUFFIX.sub(rf".{short_revision(revision)}\1", path)


# --- Semantic Actions ---

@dataclass(frozen=True)
class ViewState:
    group: Optional[str] = None

    @property
    def is_filtered(self):
        return self.group is not None

    def __str__(self):
        return f"FilteredByGroup({self.group})" if self.is_filtered else "Full"


@dataclass(frozen=True)
class StateDescriptor:
    """What one compare-view pane should show."""

    element_id: str
    revision: str
    resource_path: Optional[str]
    caption: str
    look: str
    subject: str

    @property
    def revision_label(self):
        return short_revision(self.revision)


@dataclass(frozen=True)
class CompareView:
    before: StateDescriptor
    after: StateDescriptor


@dataclass(frozen=True)
class OpenUrl:
    url: str
    new_window: bool = False


@dataclass(frozen=True)
class HoverReadout:
    x: float
    when: object
    label: str
    guide_top: float
    guide_bottom: float
    box_x: float
    box_y: float
    text_y: float


# --- Controller ---

class InteractionController:
    """Full <-> FilteredByGroup state machine for one chart instance.

    Every transition lays the chart out again from the unmodified model and
    returns the new geometry; painting it is up to the render adapter.
    """

    def __init__(self, model, config, options=None, current_revision=None):
        self.model = model
        self.config = config
        self.options = options or options_for(config)
        self.current_revision = current_revision
        self.state = ViewState()
        self.geometry = layout_cycle(model, config, self.options)

    def select_group(self, group, label_top):
        if self.state.is_filtered:
            raise InvalidTransitionError(f"cannot filter on '{group}' while in {self.state}; go back first")
        padding = max(label_top - DRILL_DOWN_OFFSET, 0)
        self.state = ViewState(group)
        self.geometry = layout_cycle(self.model, self.config, self.options,
                                     group=group, drill_down_padding=padding)
        logger.info("Roadmap filtered on group '%s'", group)
        return self.geometry

    def select_back(self):
        if not self.state.is_filtered:
            raise InvalidTransitionError("already showing the full roadmap")
        self.state = ViewState()
        self.geometry = layout_cycle(self.model, self.config, self.options)
        logger.info("Roadmap back to the full view")
        return self.geometry

    def select_label(self, x, y):
        """Click on a group label; only task group labels drill down."""
        box = self.geometry.label_at(x, y)
        if box is None or box.band.kind != "task":
            return None
        return self.select_group(box.band.name, box.label_top)

    def click(self, x, y):
        box = self.geometry.item_at(x, y)
        if box is None:
            return None
        return self.select_link(box)

    def select_link(self, target):
        item = getattr(target, "item", target)
        frames = self.config.compare_frames

        if item.kind == "task":
            if not item.url:
                return None
            if frames is None:
                return OpenUrl(item.url)
            return self._compare_task(item, frames)

        task = item.task
        if task is None or not task.url:
            return None
        if frames is None:
            return OpenUrl(item.url, new_window=True) if item.url else None
        return self._compare_person(item, task, frames)

    def _compare_task(self, task, frames):
        before_frame, after_frame = frames
        if self.current_revision is None:
            logger.debug("No current revision; compare view not offered for '%s'", task.group)
            return None

        previous = task.previous_task
        if previous is None:
            before = StateDescriptor(before_frame, "", None, "Previously", "did not exist", ENTRY_POINT)
        elif not previous.commit:
            logger.debug("Previous task of '%s' has no commit; compare view not offered", task.group)
            return None
        else:
            before = StateDescriptor(before_frame, previous.commit,
                                     f"index.{short_revision(previous.commit)}.html",
                                     "Previously", "looked", ENTRY_POINT)

        after = StateDescriptor(after_frame, self.current_revision, ".", "Now", "looks", ENTRY_POINT)
        return CompareView(before, after)

    def _compare_person(self, person, task, frames):
        before_frame, after_frame = frames
        name = person.person_group
        if self.current_revision is None or not task.commit:
            logger.debug("Missing revision metadata; compare view not offered for '%s'", name)
            return None

        if task.commit == self.current_revision:
            previous = task.previous_task
            if previous is None:
                before = StateDescriptor(before_frame, "", None, "Previously", "did not exist", name)
            elif not previous.commit:
                logger.debug("Previous task of '%s' has no commit; compare view not offered", task.group)
                return None
            else:
                before = StateDescriptor(before_frame, previous.commit,
                                         versioned_path(name, previous.commit),
                                         "The previous version", "will now look", name)
            after_path = name
        else:
            before = StateDescriptor(before_frame, task.commit, f"{task.url}/{name}",
                                     "When published", "looked", name)
            after_path = versioned_path(name, task.commit)

        after = StateDescriptor(after_frame, self.current_revision, after_path, "Now", "looks", "it")
        return CompareView(before, after)

    def hover(self, x, y):
        geometry = self.geometry.pass_at(y) or next(
            (g for g in self.geometry.passes if g.scale is not None), None)
        if geometry is None or geometry.scale is None or x <= geometry.side_padding:
            return None
        when = geometry.scale.invert(x - geometry.side_padding)
        return HoverReadout(
            x=x,
            when=when,
            label=when.strftime(geometry.tick_format),
            guide_top=HOVER_TOP,
            guide_bottom=self.geometry.height - AXIS_HEIGHT,
            box_x=x - HOVER_BOX_WIDTH / 2,
            box_y=y - (BAR_HEIGHT + 8) / 2 + HOVER_TEXT_OFFSET,
            text_y=y + HOVER_TEXT_OFFSET,
        )

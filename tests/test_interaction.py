"""
Unit tests for the interaction module.

Tests cover:
- InteractionController transitions: Full <-> FilteredByGroup
- select_link: external links and compare-view descriptors
- hover: the date readout under the pointer
"""

import pytest
from datetime import datetime
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import ChartConfig
from core_logic import TimelineModel
from exceptions import InvalidTransitionError
from interaction import (ENTRY_POINT, CompareView, InteractionController, OpenUrl,
                         StateDescriptor, versioned_path)
from layout import LayoutOptions
from models import Person, Task

CURRENT = "2222222bbbbbbb"
COLOR = "#1f77b4"

OLD = Task("Site", "v1", datetime(2024, 1, 1), datetime(2024, 1, 8), COLOR,
           url="https://e.org/site", commit="1111111aaaaaaa")
NEW = Task("Site", "v2", datetime(2024, 1, 8), datetime(2024, 1, 15), COLOR,
           url="https://e.org/site", commit=CURRENT, previous_task=OLD)
DOCS = Task("Docs", "", datetime(2024, 1, 3), datetime(2024, 1, 6), COLOR)

ABOUT = Person("about.html", NEW.start, NEW.end, "v2", "Site", 0, COLOR, 40,
               url="https://e.org/people/about", task=NEW)
INDEX = Person("index.html", OLD.start, OLD.end, "v1", "Site", 0, COLOR, task=OLD)
NOTES = Person("notes", DOCS.start, DOCS.end, "Docs", "Docs", 0, COLOR, task=DOCS)


def measure(text, bold=False):
    return 10 * len(text)


def controller(frames=("before", "after"), revision=CURRENT, graph_type="both"):
    model = TimelineModel([OLD, NEW, DOCS], [ABOUT, INDEX, NOTES])
    config = ChartConfig(graph_type=graph_type, web_frames=frames)
    options = LayoutOptions(width=1000, measure_text=measure, now=datetime(2024, 1, 10))
    return InteractionController(model, config, options, revision)


class TestTransitions:
    """Tests for the drill-down state machine."""

    def test_initial_state_is_full(self):
        """A new controller shows every row."""
        ctl = controller()
        assert not ctl.state.is_filtered
        assert str(ctl.state) == "Full"
        assert len(ctl.geometry.items) == 6

    def test_select_group_filters(self):
        """Selecting a group keeps only its tasks and people."""
        ctl = controller()
        geometry = ctl.select_group("Site", 100)
        assert ctl.state.group == "Site"
        assert str(ctl.state) == "FilteredByGroup(Site)"
        assert {box.item.group for box in geometry.passes[0].items} == {"Site"}
        assert {box.item.task_group for box in geometry.passes[1].items} == {"Site"}

    def test_drill_down_padding(self):
        """Padding is the label top minus 150, never negative."""
        ctl = controller()
        assert ctl.select_group("Site", 230).drill_down_padding == 80
        ctl.select_back()
        assert ctl.select_group("Site", 100).drill_down_padding == 0

    def test_back_padding_is_zero(self):
        """Going back drops the drill-down padding and the back link."""
        ctl = controller()
        ctl.select_group("Site", 400)
        geometry = ctl.select_back()
        assert geometry.drill_down_padding == 0
        assert geometry.back_link_y is None

    def test_round_trip_restores_full_view(self):
        """Full -> Filtered -> Full gives back the starting geometry."""
        ctl = controller()
        full = ctl.geometry
        ctl.select_group("Docs", 300)
        assert ctl.select_back() == full
        assert [box.item for box in full.passes[0].items] == [DOCS, OLD, NEW]

    def test_filtered_to_filtered_not_supported(self):
        """A second group selection requires going back first."""
        ctl = controller()
        ctl.select_group("Site", 0)
        with pytest.raises(InvalidTransitionError):
            ctl.select_group("Docs", 0)
        assert ctl.state.group == "Site"

    def test_back_from_full_not_supported(self):
        """There is nothing to go back to from the full view."""
        with pytest.raises(InvalidTransitionError):
            controller().select_back()

    def test_model_untouched(self):
        """Filtering never changes the stored records."""
        ctl = controller()
        ctl.select_group("Docs", 0)
        assert ctl.model.tasks == [OLD, NEW, DOCS]
        assert len(ctl.model.people) == 3

    def test_select_label_on_task_group(self):
        """Clicking a task group label drills down into it."""
        ctl = controller()
        geometry = ctl.select_label(10, 50)
        assert ctl.state.group == "Site"
        assert geometry.back_link_y == 0

    def test_select_label_on_person_group(self):
        """Person group labels do not filter."""
        ctl = controller()
        assert ctl.select_label(10, 112 + 25) is None
        assert not ctl.state.is_filtered


class TestSelectLink:
    """Tests for link and compare-view actions."""

    def test_task_without_url(self):
        """Tasks without a url do nothing."""
        assert controller().select_link(DOCS) is None

    def test_task_url_without_frames(self):
        """Without compare frames a task url is opened in place."""
        assert controller(frames=()).select_link(NEW) == OpenUrl("https://e.org/site")

    def test_task_with_previous(self):
        """The before pane shows the previous task's revision."""
        action = controller().select_link(NEW)
        assert action == CompareView(
            StateDescriptor("before", OLD.commit, "index.1111111.html", "Previously", "looked", ENTRY_POINT),
            StateDescriptor("after", CURRENT, ".", "Now", "looks", ENTRY_POINT),
        )
        assert action.after.revision_label == "2222222"

    def test_task_without_previous(self):
        """A first task did not previously exist."""
        action = controller().select_link(OLD)
        assert action.before == StateDescriptor("before", "", None, "Previously", "did not exist", ENTRY_POINT)
        assert action.after.revision == CURRENT

    def test_previous_without_commit(self):
        """Missing revision metadata means no comparison."""
        bare = Task("Site", "v0", OLD.start, OLD.end, COLOR, url="u")
        task = Task("Site", "v1", NEW.start, NEW.end, COLOR, url="u", commit="x", previous_task=bare)
        assert controller().select_link(task) is None

    def test_no_current_revision(self):
        """Without a current revision no comparison is offered."""
        assert controller(revision=None).select_link(NEW) is None
        assert controller(revision=None).select_link(ABOUT) is None

    def test_person_of_current_task(self):
        """A person on the current task compares against the previous version."""
        action = controller().select_link(ABOUT)
        assert action.before == StateDescriptor(
            "before", OLD.commit, "about.1111111.html", "The previous version", "will now look", "about.html")
        assert action.after == StateDescriptor("after", CURRENT, "about.html", "Now", "looks", "it")

    def test_person_of_published_task(self):
        """A person on an older task compares the published page with today."""
        action = controller().select_link(INDEX)
        assert action.before == StateDescriptor(
            "before", OLD.commit, "https://e.org/site/index.html", "When published", "looked", "index.html")
        assert action.after.resource_path == "index.1111111.html"

    def test_person_without_frames(self):
        """Without frames the person's own url opens in a new window."""
        ctl = controller(frames=())
        assert ctl.select_link(ABOUT) == OpenUrl("https://e.org/people/about", new_window=True)
        assert ctl.select_link(INDEX) is None

    def test_person_of_task_without_url(self):
        """People of tasks without a url do nothing."""
        assert controller().select_link(NOTES) is None

    def test_click_on_bar(self):
        """click resolves the bar under the pointer."""
        ctl = controller(frames=())
        # rows: Docs, Site v1, Site v2; the v2 bar starts half way through the plot
        assert ctl.click(55 + 465 + 5, 20 + 2 * 24 + 5) == OpenUrl("https://e.org/site")
        assert ctl.click(5, 5) is None

    def test_versioned_path(self):
        """Only .html paths get the short revision inserted."""
        assert versioned_path("about.html", "abcdef123") == "about.abcdef1.html"
        assert versioned_path("logo.png", "abcdef123") == "logo.png"


class TestHover:
    """Tests for the pointer readout."""

    def test_inside_plot(self):
        """The readout shows the date under the pointer."""
        readout = controller().hover(55 + 465, 50)
        assert readout.when == datetime(2024, 1, 8)
        assert readout.label == "Jan 08"
        assert readout.box_x == 55 + 465 - 25

    def test_over_labels(self):
        """Nothing is shown over the label column."""
        assert controller().hover(30, 50) is None

from dataclasses import dataclass
from typing import Optional, Tuple

# --- Layout Constants ---

BAR_HEIGHT = 20
ROW_GAP = 4
ROW_BAND = BAR_HEIGHT + ROW_GAP
TOP_PADDING = 20
AXIS_HEIGHT = 20
FIXED_MARGIN = 15       # right-hand margin of the plot area
LABEL_MARGIN = 15       # added to the widest group label
LABEL_X = 10
LABEL_FONT_SIZE = 11
BAR_LABEL_OFFSET = 14
DRILL_DOWN_OFFSET = 150
HATCH_TILE = 8
HATCH_ANGLE = 45

DEFAULT_CONTAINER_WIDTH = 960

# --- Dates ---

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_TICK_FORMAT = "%b %d"

# --- Graph Options ---

GRAPH_TYPES = ("tasks", "people", "both")
TICK_GRANULARITIES = ("week", "month")

# Categorical palette handed out to groups in first-seen order.
CATEGORY20 = [
    '#1f77b4', '#aec7e8', '#ff7f0e', '#ffbb78', '#2ca02c',
    '#98df8a', '#d62728', '#ff9896', '#9467bd', '#c5b0d5',
    '#8c564b', '#c49c94', '#e377c2', '#f7b6d2', '#7f7f7f',
    '#c7c7c7', '#bcbd22', '#dbdb8d', '#17becf', '#9edae5',
]

BAND_COLOR = '#999999'
GRID_COLOR = '#dddddd'
TODAY_COLOR = 'red'


@dataclass(frozen=True)
class ChartConfig:
    """Per-container host configuration."""

    graph_type: str = "both"
    date_format: Optional[str] = None
    ticks: str = "week"
    web_frames: Tuple[str, ...] = ()
    additional_axis: bool = False

    @classmethod
    def from_attributes(cls, attributes):
        graph_type = attributes.get("data-graph-type")
        if graph_type not in GRAPH_TYPES:
            graph_type = "both"

        frames = attributes.get("data-webframes")
        web_frames = tuple(frames.split()) if frames else ()

        return cls(
            graph_type=graph_type,
            date_format=attributes.get("data-graph-date-format") or None,
            ticks="month" if attributes.get("data-graph-ticks") == "month" else "week",
            web_frames=web_frames,
            additional_axis=attributes.get("data-graph-additional-xaxis") == "true",
        )

    @property
    def parse_format(self):
        return self.date_format or DEFAULT_DATE_FORMAT

    @property
    def tick_format(self):
        return self.date_format or DEFAULT_TICK_FORMAT

    @property
    def compare_frames(self):
        # The compare view needs exactly one "before" and one "after" pane.
        if len(self.web_frames) == 2:
            return self.web_frames
        return None

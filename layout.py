"""
Layout engine: turns a list of tasks or people into drawing geometry.

`layout` is a pure function of its items and options. It sorts the items,
collapses them into group bands, allocates hatch patterns for partial
involvement, builds a clamped time scale and the calendar ticks, and
returns absolute pixel boxes for a render adapter to paint.
`layout_cycle` chains the tasks pass and the people pass of one chart the
way they are stacked on the page.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import pandas as pd
from matplotlib.font_manager import FontProperties
from matplotlib.textpath import text_to_path

from config import (AXIS_HEIGHT, BAR_HEIGHT, BAR_LABEL_OFFSET, DEFAULT_CONTAINER_WIDTH,
                    DEFAULT_TICK_FORMAT, FIXED_MARGIN, HATCH_ANGLE, HATCH_TILE, LABEL_FONT_SIZE,
                    LABEL_MARGIN, LABEL_X, ROW_BAND, ROW_GAP, TOP_PADDING)
from core_logic import sort_items

logger = logging.getLogger(__name__)

TICK_FREQUENCIES = {"week": "W-MON", "month": "MS"}


def measure_label_width(text, bold=False):
    """Rendered width of a group label, in pixels at 72 dpi."""
    prop = FontProperties(size=LABEL_FONT_SIZE, weight="bold" if bold else "normal")
    width, _, _ = text_to_path.get_text_width_height_descent(text, prop, ismath=False)
    return width


# --- Scale ---

@dataclass(frozen=True)
class TimeScale:
    """Linear datetime -> pixel scale over [start, end] -> [0, width], clamped at both ends."""

    start: datetime
    end: datetime
    width: float

    def __call__(self, when):
        span = (self.end - self.start).total_seconds()
        if span <= 0:
            return 0.0
        ratio = (when - self.start).total_seconds() / span
        return min(max(ratio, 0.0), 1.0) * self.width

    def invert(self, x):
        if self.width <= 0:
            return self.start
        ratio = min(max(x / self.width, 0.0), 1.0)
        return self.start + (self.end - self.start) * ratio

    def contains(self, when):
        return self.start < when < self.end


# --- Geometry Records ---

@dataclass(frozen=True)
class GroupBand:
    name: str
    kind: str
    start_row: int
    row_count: int
    style: str = "normal"

    @property
    def end_row(self):
        return self.start_row + self.row_count


@dataclass(frozen=True)
class BandBox:
    band: GroupBand
    x: float
    y: float
    width: float
    height: float
    label_x: float
    label_y: float

    @property
    def label_top(self):
        return self.label_y - LABEL_FONT_SIZE


@dataclass(frozen=True)
class HatchPattern:
    pattern_id: str
    hatch_width: int
    color: str
    tile: int = HATCH_TILE
    angle: int = HATCH_ANGLE
    opacity: float = 0.8


@dataclass(frozen=True)
class ItemBox:
    item: object
    row: int
    x: float
    y: float
    width: float
    height: float
    label_x: float
    label_y: float
    pattern_id: Optional[str] = None

    @property
    def label(self):
        return self.item.label

    @property
    def fill(self):
        if self.pattern_id:
            return f"url(#{self.pattern_id})"
        return self.item.color

    def contains(self, x, y):
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


@dataclass(frozen=True)
class Tick:
    when: datetime
    x: float
    label: str


@dataclass(frozen=True)
class LayoutOptions:
    width: float = DEFAULT_CONTAINER_WIDTH
    side_padding: Optional[float] = None
    offset_y: float = 0
    drill_down_padding: float = 0
    ticks: str = "week"
    tick_format: str = DEFAULT_TICK_FORMAT
    additional_axis: bool = False
    now: Optional[datetime] = None
    first_pattern_id: int = 0
    measure_text: Optional[Callable] = None


@dataclass(frozen=True)
class Geometry:
    """One layout pass: a tasks chart or a people chart."""

    items: Tuple[ItemBox, ...]
    bands: Tuple[BandBox, ...]
    patterns: Tuple[HatchPattern, ...]
    ticks: Tuple[Tick, ...]
    scale: Optional[TimeScale]
    side_padding: Optional[float]
    offset_y: float
    top: float
    width: float
    height: float
    axis_y: float
    top_axis_y: Optional[float]
    today_x: Optional[float]
    tick_format: str
    next_pattern_id: int

    @property
    def row_count(self):
        return len(self.items)

    @property
    def grid_top(self):
        return self.top

    @property
    def is_empty(self):
        return not self.items

    def item_at(self, x, y):
        for box in self.items:
            if box.contains(x, y):
                return box
        return None

    def label_at(self, x, y):
        if self.side_padding is None or x > self.side_padding:
            return None
        for box in self.bands:
            if box.y <= y <= box.y + box.height:
                return box
        return None


@dataclass(frozen=True)
class ChartGeometry:
    """All passes of one draw cycle, stacked top to bottom."""

    passes: Tuple[Geometry, ...]
    width: float
    drill_down_padding: float = 0
    back_link_y: Optional[float] = None

    @property
    def height(self):
        return sum(geometry.height for geometry in self.passes)

    @property
    def side_padding(self):
        for geometry in self.passes:
            if geometry.side_padding is not None:
                return geometry.side_padding
        return None

    @property
    def items(self):
        return [box for geometry in self.passes for box in geometry.items]

    def pass_at(self, y):
        for geometry in self.passes:
            if geometry.offset_y <= y < geometry.offset_y + geometry.height:
                return geometry
        return None

    def item_at(self, x, y):
        geometry = self.pass_at(y)
        return geometry.item_at(x, y) if geometry else None

    def label_at(self, x, y):
        geometry = self.pass_at(y)
        return geometry.label_at(x, y) if geometry else None


# --- Layout Steps ---

def compute_group_bands(items):
    """Collapses consecutive runs of the same group into bands. `items` must be sorted."""
    bands: List[GroupBand] = []
    for row, item in enumerate(items):
        if bands and bands[-1].name == item.group:
            last = bands[-1]
            bands[-1] = replace(last, row_count=last.row_count + 1)
        else:
            bands.append(GroupBand(item.group, item.kind, row, 1, item.style))
    return bands


def hatch_width(involvement):
    return math.ceil(involvement * HATCH_TILE / 100)


def allocate_hatch_patterns(items, first_id=0):
    """Returns the allocated patterns and a row -> pattern id mapping."""
    patterns = []
    by_row = {}
    counter = first_id
    for row, item in enumerate(items):
        if item.kind == "person" and item.is_partial:
            pattern = HatchPattern(f"pattern{counter}", hatch_width(item.involvement), item.color)
            patterns.append(pattern)
            by_row[row] = pattern.pattern_id
            counter += 1
    return patterns, by_row


def compute_ticks(scale, side_padding, granularity="week", tick_format=DEFAULT_TICK_FORMAT):
    freq = TICK_FREQUENCIES.get(granularity, TICK_FREQUENCIES["week"])
    dates = pd.date_range(start=scale.start, end=scale.end, freq=freq)
    return [
        Tick(when, side_padding + scale(when), when.strftime(tick_format))
        for when in dates.to_pydatetime()
    ]


def _empty_geometry(options):
    return Geometry(
        items=(), bands=(), patterns=(), ticks=(), scale=None,
        side_padding=options.side_padding,
        offset_y=options.offset_y,
        top=options.offset_y,
        width=options.width,
        height=0,
        axis_y=options.offset_y,
        top_axis_y=None,
        today_x=None,
        tick_format=options.tick_format,
        next_pattern_id=options.first_pattern_id,
    )


def layout(items, options=None):
    options = options or LayoutOptions()
    items = sort_items(items)
    if not items:
        return _empty_geometry(options)

    bands = compute_group_bands(items)
    patterns, pattern_rows = allocate_hatch_patterns(items, options.first_pattern_id)

    side_padding = options.side_padding
    if side_padding is None:
        measure = options.measure_text or measure_label_width
        side_padding = max(measure(band.name, band.style == "bold") for band in bands) + LABEL_MARGIN

    plot_width = max(options.width - side_padding - FIXED_MARGIN, 0)
    scale = TimeScale(min(item.start for item in items), max(item.end for item in items), plot_width)

    top = options.offset_y + options.drill_down_padding + TOP_PADDING
    height = len(items) * ROW_BAND + TOP_PADDING + options.drill_down_padding + AXIS_HEIGHT
    axis_y = options.offset_y + height - AXIS_HEIGHT

    band_boxes = tuple(
        BandBox(
            band=band,
            x=0,
            y=top + band.start_row * ROW_BAND,
            width=options.width,
            height=band.row_count * ROW_BAND - ROW_GAP,
            label_x=LABEL_X,
            label_y=top + band.start_row * ROW_BAND + band.row_count * ROW_BAND / 2 + 2,
        )
        for band in bands
    )

    item_boxes = []
    for row, item in enumerate(items):
        x = side_padding + scale(item.start)
        width = scale(item.end) - scale(item.start)
        y = top + row * ROW_BAND
        item_boxes.append(ItemBox(
            item=item,
            row=row,
            x=x,
            y=y,
            width=width,
            height=BAR_HEIGHT,
            label_x=x + width / 2,
            label_y=y + BAR_LABEL_OFFSET,
            pattern_id=pattern_rows.get(row),
        ))

    now = options.now or datetime.now()
    today_x = side_padding + scale(now) if scale.contains(now) else None

    logger.debug("Layout pass: %d rows in %d groups, side padding %.1f, domain %s..%s",
                 len(items), len(bands), side_padding, scale.start, scale.end)

    return Geometry(
        items=tuple(item_boxes),
        bands=band_boxes,
        patterns=tuple(patterns),
        ticks=tuple(compute_ticks(scale, side_padding, options.ticks, options.tick_format)),
        scale=scale,
        side_padding=side_padding,
        offset_y=options.offset_y,
        top=top,
        width=options.width,
        height=height,
        axis_y=axis_y,
        top_axis_y=options.offset_y if options.additional_axis else None,
        today_x=today_x,
        tick_format=options.tick_format,
        next_pattern_id=options.first_pattern_id + len(patterns),
    )


def options_for(config, width=DEFAULT_CONTAINER_WIDTH, now=None, measure_text=None):
    return LayoutOptions(
        width=width,
        ticks=config.ticks,
        tick_format=config.tick_format,
        additional_axis=config.additional_axis,
        now=now,
        measure_text=measure_text,
    )


def layout_cycle(model, config, options=None, group=None, drill_down_padding=0):
    """Lays out the tasks chart and then the people chart below it.

    The people pass reuses the side padding of the tasks pass, starts where
    the tasks pass ends, and continues its hatch pattern numbering.
    """
    options = replace(options or options_for(config), drill_down_padding=drill_down_padding)
    view = model.filter_by_group(group)
    passes = []

    if model.tasks and config.graph_type != "people":
        geometry = layout(view["tasks"], options)
        passes.append(geometry)
        options = replace(
            options,
            side_padding=geometry.side_padding,
            offset_y=geometry.offset_y + geometry.height,
            drill_down_padding=0,
            first_pattern_id=geometry.next_pattern_id,
        )

    if model.tasks and model.people and config.graph_type != "tasks":
        passes.append(layout(view["people"], options))

    return ChartGeometry(
        passes=tuple(passes),
        width=options.width,
        drill_down_padding=drill_down_padding,
        back_link_y=drill_down_padding if group is not None else None,
    )

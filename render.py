"""
matplotlib render adapter.

Paints a ChartGeometry onto a Figure in pixel coordinates (origin top-left),
the same surface the layout engine computes for. Nothing here feeds back
into the layout: the adapter only reads geometry.
"""

import math

from matplotlib.figure import Figure
from matplotlib.patches import FancyBboxPatch, Rectangle

from config import BAND_COLOR, GRID_COLOR, LABEL_FONT_SIZE, TODAY_COLOR

DPI = 100
BAR_OPACITY = 0.5
BAND_OPACITY = 0.1
TICK_FONT_SIZE = 10
BACK_LINK_TEXT = "← Back to the full roadmap"


def _pt(pixels):
    return pixels * 72 / DPI


def hatch_for(pattern):
    """Denser hatching for wider stripes; None when nothing is filled."""
    if pattern.hatch_width <= 0:
        return None
    return "/" * max(1, math.ceil(pattern.hatch_width / 2))


def _draw_axis(ax, geometry, y, top):
    for tick in geometry.ticks:
        ax.text(tick.x, y + 12, tick.label, ha='center', va='center',
                fontsize=_pt(TICK_FONT_SIZE), color='#000000')
        if not top:
            ax.plot([tick.x, tick.x], [geometry.grid_top, geometry.axis_y],
                    color=GRID_COLOR, linewidth=1, zorder=0)


def draw_geometry(ax, geometry):
    """Paints one layout pass."""
    if geometry.is_empty:
        return

    for box in geometry.bands:
        ax.add_patch(FancyBboxPatch((box.x, box.y), box.width, box.height,
                                    boxstyle="round,pad=0,rounding_size=3",
                                    facecolor=BAND_COLOR, edgecolor='none', alpha=BAND_OPACITY))
        ax.text(box.label_x, box.label_y, box.band.name, ha='left', va='baseline',
                fontsize=_pt(LABEL_FONT_SIZE), fontweight=box.band.style, color='#000000')

    _draw_axis(ax, geometry, geometry.axis_y, top=False)
    if geometry.top_axis_y is not None:
        _draw_axis(ax, geometry, geometry.top_axis_y, top=True)

    if geometry.today_x is not None:
        ax.plot([geometry.today_x, geometry.today_x], [geometry.grid_top, geometry.axis_y],
                color=TODAY_COLOR, alpha=0.5, linestyle='--', linewidth=1)

    patterns = {pattern.pattern_id: pattern for pattern in geometry.patterns}
    for box in geometry.items:
        pattern = patterns.get(box.pattern_id)
        if pattern is None:
            patch = Rectangle((box.x, box.y), box.width, box.height,
                              facecolor=box.item.color, edgecolor='none', alpha=BAR_OPACITY)
        else:
            patch = Rectangle((box.x, box.y), box.width, box.height,
                              facecolor='none', edgecolor=pattern.color, linewidth=0,
                              hatch=hatch_for(pattern), alpha=pattern.opacity)
        ax.add_patch(patch)
        ax.text(box.label_x, box.label_y, box.label, ha='center', va='baseline',
                fontsize=_pt(LABEL_FONT_SIZE), fontweight=box.item.style, color='#000000')


def render_chart(chart, figure=None):
    """Paints every pass of `chart` and returns the figure."""
    width = max(chart.width, 1)
    height = max(chart.height, 1)
    if figure is None:
        figure = Figure(figsize=(width / DPI, height / DPI), dpi=DPI)
    ax = figure.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.axis('off')

    if chart.back_link_y is not None:
        ax.text(width - 5, chart.back_link_y + 5, BACK_LINK_TEXT, ha='right', va='top',
                fontsize=_pt(12), color='#ffffff',
                bbox={'boxstyle': 'round', 'facecolor': BAND_COLOR, 'edgecolor': 'none'})

    for geometry in chart.passes:
        draw_geometry(ax, geometry)
    return figure


def export_chart(chart, filepath):
    figure = render_chart(chart)
    figure.savefig(filepath, dpi=DPI)
    return filepath

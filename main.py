import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from config import DEFAULT_CONTAINER_WIDTH, GRAPH_TYPES, TICK_GRANULARITIES, ChartConfig
from core_logic import GroupPalette
from exceptions import RoadmapError
from importers import import_from_file, parse_payload
from interaction import InteractionController
from layout import options_for
from render import export_chart

logger = logging.getLogger(__name__)

TABLE_EXTENSIONS = ('.csv', '.xls', '.xlsx')


@dataclass
class ChartContainer:
    """A chart placeholder in the host document: its attributes and text content."""

    attributes: dict = field(default_factory=dict)
    text: str = ""
    element_id: Optional[str] = None
    width: float = DEFAULT_CONTAINER_WIDTH


@dataclass
class ChartInstance:
    container: ChartContainer
    config: ChartConfig
    model: object
    controller: InteractionController

    @property
    def geometry(self):
        return self.controller.geometry


def build_instance(container, current_revision=None, now=None, model=None):
    config = ChartConfig.from_attributes(container.attributes)
    if model is None:
        # Each instance gets its own palette so colors never depend on other charts.
        model = parse_payload(container.text, config, GroupPalette())
    options = options_for(config, width=container.width, now=now)
    controller = InteractionController(model, config, options, current_revision)
    return ChartInstance(container, config, model, controller)


class RoadmapRuntime:
    """Process-wide state: binds the document's chart containers at most once."""

    def __init__(self):
        self._instances = None

    @property
    def initialized(self):
        return self._instances is not None

    @property
    def instances(self):
        return list(self._instances or [])

    def initialize_once(self, containers, current_revision=None, now=None):
        if self._instances is not None:
            logger.debug("Roadmap charts already initialized; ignoring repeated ready signal")
            return self.instances

        instances = []
        for index, container in enumerate(containers):
            try:
                instances.append(build_instance(container, current_revision, now))
            except RoadmapError:
                # A broken chart is skipped; the others still render.
                logger.exception("Roadmap chart %s could not be built", container.element_id or index)
        self._instances = instances
        return self.instances


runtime = RoadmapRuntime()


def initialize_once(containers, current_revision=None, now=None):
    return runtime.initialize_once(containers, current_revision, now)


# --- Command Line ---

def _attributes_from_args(args):
    attributes = {
        "data-graph-type": args.type,
        "data-graph-ticks": args.ticks,
        "data-graph-additional-xaxis": "true" if args.additional_axis else "false",
    }
    if args.date_format:
        attributes["data-graph-date-format"] = args.date_format
    return attributes


def _find_band(geometry, group):
    for chart_pass in geometry.passes:
        for box in chart_pass.bands:
            if box.band.kind == "task" and box.band.name == group:
                return box
    return None


def build_parser():
    parser = argparse.ArgumentParser(description="Lay out a roadmap payload and export the chart.")
    parser.add_argument("payload", help="Roadmap text/JSON payload, or a CSV/Excel task table")
    parser.add_argument("--type", choices=GRAPH_TYPES, default="both")
    parser.add_argument("--ticks", choices=TICK_GRANULARITIES, default="week")
    parser.add_argument("--date-format", help="strptime format of the payload dates")
    parser.add_argument("--additional-axis", action="store_true", help="Mirror the date axis at the top")
    parser.add_argument("--width", type=int, default=DEFAULT_CONTAINER_WIDTH)
    parser.add_argument("--group", help="Drill down into one task group")
    parser.add_argument("--revision", default=os.environ.get("SOURCE_COMMIT_SHA"),
                        help="Current build revision (defaults to $SOURCE_COMMIT_SHA)")
    parser.add_argument("--out", default="roadmap.png", help="PNG, SVG or PDF output path")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    container = ChartContainer(_attributes_from_args(args), element_id=args.payload, width=args.width)
    try:
        if args.payload.lower().endswith(TABLE_EXTENSIONS):
            config = ChartConfig.from_attributes(container.attributes)
            instance = build_instance(container, args.revision,
                                      model=import_from_file(args.payload, config, GroupPalette()))
        else:
            with open(args.payload, 'r', encoding='utf-8') as f:
                container.text = f.read()
            instance = build_instance(container, args.revision)
    except (OSError, RoadmapError) as e:
        logger.error("Could not build the chart from %s: %s", args.payload, e)
        return 1

    geometry = instance.geometry
    if args.group:
        band = _find_band(geometry, args.group)
        if band is None:
            logger.error("No task group named '%s'", args.group)
            return 1
        geometry = instance.controller.select_group(args.group, band.label_top)

    export_chart(geometry, args.out)
    logger.info("Chart written to %s", args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())

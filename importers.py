import json
import math
import logging
import re
from datetime import datetime, timedelta

import pandas as pd

from config import ChartConfig
from core_logic import GroupPalette, TimelineModel
from exceptions import LegacyFormatError, PayloadSchemaError, UnknownPersonError
from models import Person, Task

logger = logging.getLogger(__name__)

END_OF_DAY = timedelta(days=1)

PERSON_LINE = re.compile(r"^\s*(\S*)\s*(?:\s+(\d+)%\s*)?(?:,\s*(\S*)\s*)?$")
NOT_DATE_CHARS = re.compile(r"[^0-9\-/]+")
LEADING_INT = re.compile(r"^\s*([-+]?\d+)")
BOLD_MARKER = re.compile(r"^\*\s*")

TABLE_COLUMNS = ("taskName", "subTaskName", "style", "color", "order", "from", "to",
                 "people", "involvement", "url", "commit")


def _to_int(value, default):
    """parseInt-style coercion: ints pass through, strings keep their leading integer."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        match = LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return default


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _display_name(group, name):
    return f"{group} — {name}" if name else group


# --- Structured Grammar ---

def _require(cond, msg, errs):
    if not cond:
        errs.append(msg)


def _check_date(value, date_format, label, errs):
    if not isinstance(value, str):
        errs.append(f"{label} must be a date string")
        return None
    try:
        return datetime.strptime(value.strip(), date_format)
    except ValueError:
        errs.append(f"{label} {value!r} does not match {date_format}")
        return None


def validate_structured(data, date_format):
    """Returns the list of schema problems; an empty list means the payload is usable."""
    errs = []
    if not isinstance(data, dict):
        return ["payload must be an object"]

    tasks = data.get("tasks")
    people = data.get("people", [])
    _require(isinstance(tasks, list), "tasks must be a list", errs)
    _require(isinstance(people, list), "people must be a list", errs)

    if isinstance(people, list):
        for i, person in enumerate(people):
            if not isinstance(person, dict):
                errs.append(f"people[{i}] must be an object")
                continue
            _require(isinstance(person.get("id"), (str, int)) and not isinstance(person.get("id"), bool),
                     f"people[{i}].id must be a string or integer", errs)
            _require(isinstance(person.get("name"), str) and bool(person.get("name")),
                     f"people[{i}].name must be a non-empty string", errs)

    if not isinstance(tasks, list):
        return errs

    for i, task in enumerate(tasks):
        label = f"tasks[{i}]"
        if not isinstance(task, dict):
            errs.append(f"{label} must be an object")
            continue
        _require(isinstance(task.get("taskName"), str) and bool(task.get("taskName")),
                 f"{label}.taskName must be a non-empty string", errs)
        for key in ("subTaskName", "color", "url", "commit"):
            if task.get(key) is not None:
                _require(isinstance(task[key], str), f"{label}.{key} must be a string", errs)
        if task.get("style") is not None:
            _require(task["style"] in ("normal", "bold"), f"{label}.style must be 'normal' or 'bold'", errs)

        start = _check_date(task.get("from"), date_format, f"{label}.from", errs)
        end = _check_date(task.get("to"), date_format, f"{label}.to", errs)
        if start is not None and end is not None:
            _require(end >= start, f"{label}.to is before {label}.from", errs)

        involvement = _to_int(task.get("involvement"), 100)
        _require(0 <= involvement <= 100, f"{label}.involvement must be within 0..100", errs)

        for ref in _as_list(task.get("people")):
            _require(isinstance(ref, (str, int)) and not isinstance(ref, bool),
                     f"{label}.people entries must be ids", errs)
    return errs


def parse_structured(data, config=None, palette=None):
    """Builds the model from an already decoded structured payload.

    Raises PayloadSchemaError when the payload does not follow the schema and
    UnknownPersonError when a task links an undeclared person.
    """
    config = config or ChartConfig()
    palette = palette or GroupPalette()
    date_format = config.parse_format

    problems = validate_structured(data, date_format)
    if problems:
        raise PayloadSchemaError(problems)

    people_by_id = {}
    for person in data.get("people", []):
        people_by_id.setdefault(person["id"], person)

    tasks, people = [], []
    last_by_group = {}
    for entry in data["tasks"]:
        group = entry["taskName"]
        name = entry.get("subTaskName") or ""
        color = entry.get("color") or palette(group)
        order = _to_int(entry.get("order"), 0)
        start = datetime.strptime(entry["from"].strip(), date_format)
        end = datetime.strptime(entry["to"].strip(), date_format) + END_OF_DAY

        task = Task(
            group=group,
            name=name,
            start=start,
            end=end,
            color=color,
            style=entry.get("style") or "normal",
            order=order,
            url=entry.get("url") or None,
            commit=entry.get("commit") or None,
            previous_task=last_by_group.get(group),
        )
        tasks.append(task)
        last_by_group[group] = task

        involvement = _to_int(entry.get("involvement"), 100)
        for person_id in _as_list(entry.get("people")):
            person = people_by_id.get(person_id)
            if person is None:
                raise UnknownPersonError(person_id, group)
            people.append(Person(
                person_group=person["name"],
                start=start,
                end=end,
                display_name=_display_name(group, name),
                task_group=group,
                task_order=order,
                color=color,
                involvement=involvement,
                order=_to_int(person.get("order"), 0),
                task=task,
            ))

    logger.debug("Structured payload: %d tasks, %d people entries", len(tasks), len(people))
    return TimelineModel(tasks, people)


# --- Legacy Line Grammar ---

def _parse_header(line):
    texts = [text.strip() for text in line.split(",")]
    group = texts[0]
    style = "bold" if group.startswith("*") else "normal"
    return {
        "group": BOLD_MARKER.sub("", group),
        "name": texts[1] if len(texts) > 1 else "",
        "url": texts[2] if len(texts) > 2 and texts[2] else None,
        "commit": texts[3] if len(texts) > 3 and texts[3] else None,
        "style": style,
    }


def _parse_date_line(line, date_format, line_number):
    tokens = NOT_DATE_CHARS.sub(" ", line).split()
    if len(tokens) < 2:
        raise LegacyFormatError(f"expected two dates, got {line!r}", line_number)
    try:
        start = datetime.strptime(tokens[0], date_format)
        last_day = datetime.strptime(tokens[1], date_format)
    except ValueError as e:
        raise LegacyFormatError(f"invalid date in {line!r}: {e}", line_number) from e
    if last_day < start:
        raise LegacyFormatError(f"end date before start date in {line!r}", line_number)
    return start, last_day + END_OF_DAY


def _parse_person_line(line, task, line_number):
    match = PERSON_LINE.match(line)
    if not match:
        raise LegacyFormatError(f"cannot read person line {line!r}", line_number)
    name, percent, url = match.groups()
    involvement = int(percent) if percent else 100
    if involvement > 100:
        raise LegacyFormatError(f"involvement {involvement}% is above 100%", line_number)
    return Person(
        person_group=name,
        start=task.start,
        end=task.end,
        display_name=task.name or task.group,
        task_group=task.group,
        task_order=task.order,
        color=task.color,
        involvement=involvement,
        url=url or None,
        task=task,
    )


def parse_legacy_text(text, config=None, palette=None):
    """Parses blank-line separated blocks: header line, date line, then one line per person."""
    config = config or ChartConfig()
    palette = palette or GroupPalette()

    tasks, people = [], []
    last_by_group = {}
    header, header_line, task = None, None, None

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()

        if not line:
            if header is not None and task is None:
                raise LegacyFormatError("task header without a date line", header_line)
            header, task = None, None
            continue

        if header is None:
            header, header_line = _parse_header(line), line_number
            continue

        if task is None:
            start, end = _parse_date_line(line, config.parse_format, line_number)
            group = header["group"]
            task = Task(
                group=group,
                name=header["name"],
                start=start,
                end=end,
                color=palette(group),
                style=header["style"],
                url=header["url"],
                commit=header["commit"],
                previous_task=last_by_group.get(group),
            )
            tasks.append(task)
            last_by_group[group] = task
            continue

        people.append(_parse_person_line(line, task, line_number))

    if header is not None and task is None:
        raise LegacyFormatError("task header without a date line", header_line)

    logger.debug("Legacy payload: %d tasks, %d people entries", len(tasks), len(people))
    return TimelineModel(tasks, people)


# --- Entry Point ---

def parse_payload(text, config=None, palette=None):
    """Structured grammar first, legacy line grammar on decode or schema failure."""
    config = config or ChartConfig()
    palette = palette or GroupPalette()

    logger.debug("Trying structured grammar")
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        logger.info("Payload is not JSON (%s); using the legacy line grammar", e)
        return parse_legacy_text(text, config, palette)

    try:
        return parse_structured(data, config, palette)
    except PayloadSchemaError as e:
        # Structured but malformed input lands here too and may hide authoring mistakes.
        logger.warning("Structured payload rejected (%s); falling back to the legacy line grammar", e)
        return parse_legacy_text(text, config, palette)


# --- Tabular Import ---

def import_from_file(filepath, config=None, palette=None):
    """
    Imports tasks from a CSV or Excel file, one task per row.
    The `people` column holds person names separated by ';'.
    """
    config = config or ChartConfig()
    date_format = config.parse_format

    if filepath.endswith('.csv'):
        df = pd.read_csv(filepath)
    elif filepath.endswith('.xls') or filepath.endswith('.xlsx'):
        df = pd.read_excel(filepath)
    else:
        raise PayloadSchemaError([f"unsupported file type: {filepath}"])

    missing = [column for column in ("taskName", "from", "to") if column not in df.columns]
    if missing:
        raise PayloadSchemaError([f"missing column '{column}'" for column in missing])

    for column in ("from", "to"):
        try:
            if not pd.api.types.is_datetime64_any_dtype(df[column]):
                df[column] = pd.to_datetime(df[column].astype(str).str.strip(), format=date_format)
        except ValueError as e:
            raise PayloadSchemaError([f"column '{column}': {e}"]) from e
        df[column] = df[column].dt.strftime(date_format)

    df = df.fillna("")

    tasks_data, people_names = [], []
    for _, row in df.iterrows():
        task_name = str(row["taskName"]).strip()
        if not task_name:
            continue  # Skip rows where task name is empty

        entry = {"taskName": task_name, "from": row["from"], "to": row["to"]}
        for column in TABLE_COLUMNS:
            if column in entry or column not in df.columns or column == "people":
                continue
            value = str(row[column]).strip()
            if value:
                entry[column] = value

        if "people" in df.columns and str(row["people"]).strip():
            names = [name.strip() for name in str(row["people"]).split(";") if name.strip()]
            entry["people"] = names
            for name in names:
                if name not in people_names:
                    people_names.append(name)

        tasks_data.append(entry)

    payload = {
        "tasks": tasks_data,
        "people": [{"id": name, "name": name} for name in people_names],
    }
    logger.debug("Imported %d rows from %s", len(tasks_data), filepath)
    return parse_structured(payload, config, palette)

"""
Errors raised while building a roadmap chart.

Everything derives from RoadmapError, itself a ValueError, so callers that
only care about "bad input" can keep catching ValueError.
"""


class RoadmapError(ValueError):
    """Base class for roadmap errors."""


class PayloadSchemaError(RoadmapError):
    """A structured payload was decoded but does not follow the task/people schema.

    Not fatal: the parser falls back to the legacy line grammar.
    """

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid structured payload")


class LegacyFormatError(RoadmapError):
    """A block of the legacy line grammar could not be parsed. Fatal for the chart."""

    def __init__(self, message, line_number=None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class UnknownPersonError(RoadmapError):
    """A task links a person id that the payload does not declare. Fatal for the chart."""

    def __init__(self, person_id, task_name):
        self.person_id = person_id
        self.task_name = task_name
        super().__init__(f"Task '{task_name}' references unknown person id {person_id!r}")


class InvalidTransitionError(RoadmapError):
    """The interaction controller was asked for a transition its current state does not allow."""

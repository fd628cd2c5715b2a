from config import CATEGORY20

# --- Colors ---

class GroupPalette:
    """Assigns palette colors to group names in the order the groups are first seen."""

    def __init__(self, colors=None):
        self.colors = list(colors or CATEGORY20)
        self._assigned = {}

    def __call__(self, group):
        if group not in self._assigned:
            self._assigned[group] = self.colors[len(self._assigned) % len(self.colors)]
        return self._assigned[group]

    @property
    def assigned(self):
        return dict(self._assigned)


# --- Ordering ---

def group_orders(items):
    """Group-level order: the lowest `order` of any item in the group."""
    orders = {}
    for item in items:
        current = orders.get(item.group)
        if current is None or item.order < current:
            orders[item.group] = item.order
    return orders


def sort_items(items):
    # Keys are built per group so that equal groups always stay contiguous;
    # sorted() is stable so equal keys keep their input order.
    items = list(items)
    orders = group_orders(items)
    return sorted(
        items,
        key=lambda item: (orders[item.group], item.group, item.secondary_order, item.start),
    )


# --- Model ---

class TimelineModel:
    """Tasks and people of one chart instance. The stored records are never mutated."""

    def __init__(self, tasks=None, people=None):
        self._tasks = tuple(tasks or ())
        self._people = tuple(people or ())

    @property
    def tasks(self):
        return list(self._tasks)

    @property
    def people(self):
        return list(self._people)

    @property
    def groups(self):
        seen = []
        for task in self._tasks:
            if task.group not in seen:
                seen.append(task.group)
        return seen

    def filter_by_group(self, group=None):
        if group is None:
            return {"tasks": list(self._tasks), "people": list(self._people)}
        return {
            "tasks": [t for t in self._tasks if t.group == group],
            "people": [p for p in self._people if p.task_group == group],
        }

    def sorted_view(self, group=None):
        view = self.filter_by_group(group)
        return {"tasks": sort_items(view["tasks"]), "people": sort_items(view["people"])}

    def __len__(self):
        return len(self._tasks) + len(self._people)

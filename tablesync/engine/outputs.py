"""
Output views pushed to the host: all rows, selected rows, changed rows
"""

import copy
import logging
from typing import Any, Callable, List, Sequence

logger = logging.getLogger(__name__)

Subscriber = Callable[[List[Any]], None]


def clone_rows(rows: Sequence[Any]) -> List[Any]:
    """Deep copy of ``rows``; a shallow list when a row cannot be copied"""
    try:
        return copy.deepcopy(list(rows))
    except Exception as e:
        logger.error("Error cloning data: %s", e)
        return list(rows)


class OutputChannel:
    """A write-only sink the host can observe

    Every published value and every read hands out its own copy, so later
    edits never reach a value the host already holds and the host cannot
    reach back into the dataset through it.
    """

    def __init__(self, name: str):
        self.name = name
        self._value: List[Any] = []
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> List[Any]:
        return clone_rows(self._value)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that removes it again"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, rows: Sequence[Any]) -> None:
        self._value = clone_rows(rows)
        for callback in list(self._subscribers):
            try:
                callback(self.value)
            except Exception as e:
                logger.error("Output subscriber for %s failed: %s", self.name, e)


class OutputViews:
    """The three projections exposed to the host"""

    def __init__(self):
        self.selected_rows = OutputChannel("selectedRows")
        self.edited_data = OutputChannel("editedData")
        self.changed_rows = OutputChannel("changedRows")

    def channels(self) -> List[OutputChannel]:
        return [self.selected_rows, self.edited_data, self.changed_rows]

    def reset(self, all_rows: Sequence[Any] = ()) -> None:
        """Back to the freshly loaded state"""
        self.selected_rows.publish([])
        self.edited_data.publish(all_rows)
        self.changed_rows.publish([])

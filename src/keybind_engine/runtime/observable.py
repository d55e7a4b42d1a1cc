"""Synchronous latest-value channels used for outbound notifications."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class ObservableValue(Generic[T]):
    """Holds the most recent value and pushes every update to subscribers.

    Delivery is immediate and in subscription order; there is no queue and no
    history beyond ``value``.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for callback in tuple(self._subscribers):
            callback(value)

    def set_if_changed(self, value: T) -> bool:
        if value == self._value:
            return False
        self.set(value)
        return True

    def subscribe(
        self, callback: Callable[[T], None], *, replay: bool = True
    ) -> Unsubscribe:
        self._subscribers.append(callback)
        if replay:
            callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def __repr__(self) -> str:
        return f"ObservableValue({self._value!r})"


__all__ = ["ObservableValue", "Unsubscribe"]

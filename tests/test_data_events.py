from __future__ import annotations

import pytest

from services.data_events import (
    ALL_DATA_CHANGED,
    BUDGETS_CHANGED,
    EXPENSES_CHANGED,
    INCOMES_CHANGED,
    DataEventBus,
)


def test_specific_topic_also_reaches_all_data_listeners() -> None:
    bus = DataEventBus()
    specific: list[str] = []
    everything: list[str] = []
    bus.subscribe(EXPENSES_CHANGED, lambda _p: specific.append("expenses"))
    bus.subscribe(ALL_DATA_CHANGED, lambda _p: everything.append(bus.last_event))

    bus.emit(EXPENSES_CHANGED)

    assert specific == ["expenses"]
    assert everything == [EXPENSES_CHANGED]


def test_all_data_changed_is_delivered_once() -> None:
    bus = DataEventBus()
    calls: list[str] = []
    bus.subscribe(ALL_DATA_CHANGED, lambda _p: calls.append(bus.last_event))

    bus.emit(ALL_DATA_CHANGED)

    assert calls == [ALL_DATA_CHANGED]


def test_emit_for_type_maps_movement_kinds() -> None:
    bus = DataEventBus()
    calls: list[str] = []
    bus.subscribe(INCOMES_CHANGED, lambda _p: calls.append("income"))

    bus.emit_for_type("income")
    bus.emit_for_type("expense")

    assert calls == ["income"]


def test_unsubscribe_stops_delivery() -> None:
    bus = DataEventBus()
    calls: list[int] = []
    unsubscribe = bus.subscribe(BUDGETS_CHANGED, lambda _p: calls.append(1))

    bus.emit(BUDGETS_CHANGED)
    unsubscribe()
    unsubscribe()
    bus.emit(BUDGETS_CHANGED)

    assert calls == [1]
    assert bus.listener_count(BUDGETS_CHANGED) == 0


def test_listener_may_unsubscribe_while_notified() -> None:
    bus = DataEventBus()
    calls: list[str] = []
    unsubscribers = []

    def once(_payload) -> None:
        calls.append("once")
        unsubscribers[0]()

    unsubscribers.append(bus.subscribe(EXPENSES_CHANGED, once))
    bus.subscribe(EXPENSES_CHANGED, lambda _p: calls.append("other"))

    bus.emit(EXPENSES_CHANGED)
    bus.emit(EXPENSES_CHANGED)

    assert calls == ["once", "other", "other"]


def test_failing_listener_does_not_block_the_rest(caplog) -> None:
    bus = DataEventBus()
    calls: list[str] = []

    def broken(_payload) -> None:
        raise RuntimeError("boom")

    bus.subscribe(EXPENSES_CHANGED, broken)
    bus.subscribe(EXPENSES_CHANGED, lambda _p: calls.append("ok"))

    bus.emit(EXPENSES_CHANGED)

    assert calls == ["ok"]
    assert "Listener for expenses_changed failed" in caplog.text


def test_unknown_topic_is_rejected() -> None:
    bus = DataEventBus()

    with pytest.raises(ValueError):
        bus.subscribe("nope", lambda _p: None)


def test_clear_drops_every_listener() -> None:
    bus = DataEventBus()
    bus.subscribe(EXPENSES_CHANGED, lambda _p: None)
    bus.subscribe(ALL_DATA_CHANGED, lambda _p: None)

    bus.clear()

    assert bus.listener_count(EXPENSES_CHANGED) == 0
    assert bus.listener_count(ALL_DATA_CHANGED) == 0

"""Test event emitter and idempotent subscriptions."""

from ranksync.codes import EventKind
from ranksync.kernel.events import EventEmitter, SubscriptionSet


def test_one_handler_per_kind():
    emitter = EventEmitter()
    calls = []
    emitter.on(EventKind.DIRTY, lambda: calls.append("first"))
    emitter.on(EventKind.DIRTY, lambda: calls.append("second"))

    emitter.fire(EventKind.DIRTY)

    assert calls == ["second"]
    assert emitter.listener_count() == 1


def test_none_removes_handler():
    emitter = EventEmitter()
    emitter.on(EventKind.DIRTY, lambda: None)

    emitter.on(EventKind.DIRTY, None)

    assert not emitter.has_listener(EventKind.DIRTY)
    emitter.fire(EventKind.DIRTY)


def test_fire_passes_arguments():
    emitter = EventEmitter()
    received = []
    emitter.on(EventKind.WIDTH_CHANGED, lambda previous, current: received.append((previous, current)))

    emitter.fire(EventKind.WIDTH_CHANGED, 100, 120)

    assert received == [(100, 120)]


def test_replace_is_idempotent():
    emitter = EventEmitter()
    subscriptions = SubscriptionSet()
    bindings = [(emitter, EventKind.DIRTY, lambda: None), (emitter, EventKind.DIRTY_HEADER, lambda: None)]

    subscriptions.replace(bindings)
    subscriptions.replace(bindings)

    assert len(subscriptions) == 2
    assert emitter.listener_count() == 2


def test_replace_unsubscribes_old_emitters():
    old, new = EventEmitter(), EventEmitter()
    subscriptions = SubscriptionSet()
    subscriptions.replace([(old, EventKind.DIRTY, lambda: None)])

    subscriptions.replace([(new, EventKind.DIRTY, lambda: None)])

    assert old.listener_count() == 0
    assert new.has_listener(EventKind.DIRTY)


def test_clear():
    emitter = EventEmitter()
    subscriptions = SubscriptionSet()
    subscriptions.replace([(emitter, EventKind.DIRTY, lambda: None)])

    subscriptions.clear()

    assert len(subscriptions) == 0
    assert emitter.listener_count() == 0

from soundboard.models.events import ClipSignal
from soundboard.sync.bus import KeyedBus

KEY = ("C1", "A")
STARTED = ClipSignal(event="Started")


class TestKeyedBus:
    def test_last_registrant_wins(self, bus):
        received = []
        for i in range(3):
            bus.register(KEY, lambda s, i=i: received.append(i))

        assert bus.publish(KEY, STARTED) is True
        assert received == [2]
        assert len(bus) == 1

    def test_publish_without_handler_is_dropped(self, bus):
        assert bus.publish(KEY, STARTED) is False

        # not queued for a later registrant
        received = []
        bus.register(KEY, received.append)
        assert received == []

    def test_unregister_missing_key_is_noop(self, bus):
        bus.unregister(KEY)
        assert not bus.is_registered(KEY)

    def test_no_delivery_after_unregister(self, bus):
        received = []
        bus.register(KEY, received.append)
        bus.unregister(KEY)

        bus.publish(KEY, STARTED)
        assert received == []

    def test_keys_are_independent(self, bus):
        a, b = [], []
        bus.register(("C1", "A"), a.append)
        bus.register(("C1", "B"), b.append)

        bus.publish(("C1", "B"), STARTED)
        assert a == []
        assert b == [STARTED]

    def test_delivery_order_per_key(self, bus):
        received = []
        bus.register(KEY, lambda s: received.append(s.event))

        bus.publish(KEY, ClipSignal(event="Started"))
        bus.publish(KEY, ClipSignal(event="Stopped"))
        bus.publish(KEY, ClipSignal(event="Started"))
        assert received == ["Started", "Stopped", "Started"]

    def test_guarded_unregister_keeps_replacement(self, bus):
        old, new = [], []
        old_handler, new_handler = old.append, new.append
        bus.register(KEY, old_handler)
        bus.register(KEY, new_handler)

        # the replaced element tears down late
        bus.unregister(KEY, old_handler)

        bus.publish(KEY, STARTED)
        assert old == []
        assert new == [STARTED]

    def test_guarded_unregister_removes_own_handler(self, bus):
        received = []
        handler = received.append
        bus.register(KEY, handler)
        bus.unregister(KEY, handler)

        assert not bus.is_registered(KEY)

    def test_unregister_from_inside_handler(self):
        bus = KeyedBus()
        received = []

        def handler(signal):
            received.append(signal)
            bus.unregister(KEY)

        bus.register(KEY, handler)
        bus.publish(KEY, STARTED)
        bus.publish(KEY, STARTED)
        assert received == [STARTED]

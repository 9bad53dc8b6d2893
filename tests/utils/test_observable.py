"""Tests for the Observable broadcaster."""

from vpnsync.utils.observable import Observable


class TestObservable:
    def setup_method(self):
        self.observable = Observable("test", initial=0)

    def test_initial_value(self):
        assert self.observable.value == 0

    def test_emit_in_subscription_order(self):
        calls = []
        self.observable.subscribe(lambda v: calls.append(("a", v)))
        self.observable.subscribe(lambda v: calls.append(("b", v)))

        self.observable.emit(1)

        assert calls == [("a", 1), ("b", 1)]
        assert self.observable.value == 1

    def test_every_emit_delivered(self):
        received = []
        self.observable.subscribe(received.append)
        for i in range(3):
            self.observable.emit(i)
        assert received == [0, 1, 2]

    def test_duplicate_subscribe_ignored(self):
        received = []
        self.observable.subscribe(received.append)
        self.observable.subscribe(received.append)
        self.observable.emit(5)
        assert received == [5]
        assert len(self.observable) == 1

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.observable.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        self.observable.emit(1)
        assert received == []

    def test_subscriber_error_isolated(self):
        """A failing subscriber does not stop delivery to the rest."""
        received = []

        def broken(value):
            raise RuntimeError("boom")

        self.observable.subscribe(broken)
        self.observable.subscribe(received.append)

        self.observable.emit(3)

        assert received == [3]
        assert self.observable.get_stats()["total_errors"] == 1

    def test_unsubscribe_during_emit(self):
        received = []
        holder = {}

        def once(value):
            received.append(value)
            holder["unsubscribe"]()

        holder["unsubscribe"] = self.observable.subscribe(once)
        self.observable.emit(1)
        self.observable.emit(2)

        assert received == [1]

    def test_clear_and_stats(self):
        self.observable.subscribe(lambda v: None)
        self.observable.emit(1)
        self.observable.clear()

        stats = self.observable.get_stats()
        assert stats["name"] == "test"
        assert stats["subscriber_count"] == 0
        assert stats["total_emitted"] == 1

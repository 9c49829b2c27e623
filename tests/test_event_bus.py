"""EventBus tests"""

from governance.core.event_bus import MAX_DEPTH, EventBus, GameEvent
from governance.core.event_types import EventTypes


def _standing_event(source: str = "reputation_service") -> GameEvent:
    return GameEvent(
        event_type=EventTypes.STANDING_CHANGED,
        data={"player_id": "p1", "faction_id": "MIL"},
        source=source,
    )


class TestSubscribeEmit:
    def test_handler_receives_payload(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventTypes.STANDING_CHANGED, received.append)
        bus.emit(_standing_event())
        assert len(received) == 1
        assert received[0].data["faction_id"] == "MIL"

    def test_handlers_called_in_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(EventTypes.GUILD_CREATED, lambda e: calls.append("ui"))
        bus.subscribe(EventTypes.GUILD_CREATED, lambda e: calls.append("chat"))
        bus.emit(GameEvent(event_type=EventTypes.GUILD_CREATED, data={}, source="guild_service"))
        assert calls == ["ui", "chat"]

    def test_no_subscribers_is_ignored(self):
        bus = EventBus()
        bus.emit(GameEvent(event_type="nobody_listens", data={}, source="test"))

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        handler = received.append
        bus.subscribe(EventTypes.MEMBER_KICKED, handler)
        bus.unsubscribe(EventTypes.MEMBER_KICKED, handler)
        bus.emit(GameEvent(event_type=EventTypes.MEMBER_KICKED, data={}, source="test"))
        assert received == []

    def test_unsubscribe_unknown_handler_only_warns(self):
        bus = EventBus()
        bus.subscribe(EventTypes.MEMBER_KICKED, lambda e: None)
        bus.unsubscribe(EventTypes.MEMBER_KICKED, lambda e: None)
        assert bus.handler_count == 1


class TestChainGuards:
    def test_depth_is_capped(self):
        bus = EventBus()
        calls = 0

        def relay(event: GameEvent):
            nonlocal calls
            calls += 1
            bus.emit(GameEvent(event_type="relay", data={}, source=f"relay_{calls}"))

        bus.subscribe("relay", relay)
        bus.emit(GameEvent(event_type="relay", data={}, source="origin"))
        assert calls == MAX_DEPTH

    def test_same_source_and_type_blocked_inside_chain(self):
        bus = EventBus()
        calls = 0

        def echo(event: GameEvent):
            nonlocal calls
            calls += 1
            bus.emit(_standing_event())

        bus.subscribe(EventTypes.STANDING_CHANGED, echo)
        bus.emit(_standing_event())
        assert calls == 1

    def test_sequential_emits_from_one_source_all_delivered(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventTypes.STANDING_CHANGED, received.append)
        bus.emit(_standing_event())
        bus.emit(_standing_event())
        assert len(received) == 2

    def test_reset_chain(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventTypes.TICK_PROCESSED, received.append)
        bus.emit(GameEvent(event_type=EventTypes.TICK_PROCESSED, data={}, source="s"))
        bus.reset_chain()
        bus.emit(GameEvent(event_type=EventTypes.TICK_PROCESSED, data={}, source="s"))
        assert len(received) == 2


class TestHandlerError:
    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        results = []

        def broken(e):
            raise RuntimeError("boom")

        bus.subscribe(EventTypes.CONSEQUENCE_EXECUTED, broken)
        bus.subscribe(EventTypes.CONSEQUENCE_EXECUTED, lambda e: results.append("ok"))
        bus.emit(
            GameEvent(event_type=EventTypes.CONSEQUENCE_EXECUTED, data={}, source="test")
        )
        assert results == ["ok"]


class TestClear:
    def test_clear_removes_all(self):
        bus = EventBus()
        bus.subscribe("a", lambda e: None)
        bus.subscribe("b", lambda e: None)
        assert bus.handler_count == 2
        bus.clear()
        assert bus.handler_count == 0

"""
Unit tests for EventDispatcher.

Tests event subscription, emission, and history.
"""

import pytest
from unittest.mock import Mock

from arkham.events import EventDispatcher, StoreEvent, StoreEventType


def _event(event_type=StoreEventType.NODES_CHANGED, version=1, command="test"):
    return StoreEvent(event_type=event_type, command=command, version=version)


class TestEventDispatcherBasics:
    """Tests for basic EventDispatcher functionality."""

    def test_creation(self):
        """Can create an EventDispatcher."""
        dispatcher = EventDispatcher()
        assert dispatcher.handler_count == 0
        assert dispatcher.event_count == 0

    def test_creation_with_history_limit(self):
        """Can create dispatcher with custom history limit."""
        dispatcher = EventDispatcher(max_history=50)
        assert dispatcher._max_history == 50


class TestSubscription:
    """Tests for event subscription."""

    def test_subscribe_to_event_type(self):
        """Can subscribe to specific event type."""
        dispatcher = EventDispatcher()
        handler = Mock()

        sub_id = dispatcher.subscribe(StoreEventType.NODES_CHANGED, handler)

        assert sub_id != ""
        assert dispatcher.handler_count == 1

    def test_subscribe_all(self):
        """Can subscribe to all events."""
        dispatcher = EventDispatcher()
        handler = Mock()

        sub_id = dispatcher.subscribe_all(handler)

        assert sub_id.startswith("sub_all_")
        assert dispatcher.handler_count == 1

    def test_unsubscribe(self):
        """Can unsubscribe from event type."""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, handler)

        result = dispatcher.unsubscribe(StoreEventType.NODES_CHANGED, handler)

        assert result is True
        assert dispatcher.handler_count == 0

    def test_unsubscribe_nonexistent(self):
        """Unsubscribing nonexistent handler returns False."""
        dispatcher = EventDispatcher()

        assert dispatcher.unsubscribe(StoreEventType.NODES_CHANGED, Mock()) is False
        assert dispatcher.unsubscribe_all(Mock()) is False

    def test_no_duplicate_subscriptions(self):
        """Same handler is not subscribed twice."""
        dispatcher = EventDispatcher()
        handler = Mock()

        dispatcher.subscribe(StoreEventType.EDGES_CHANGED, handler)
        sub_id = dispatcher.subscribe(StoreEventType.EDGES_CHANGED, handler)

        assert sub_id == ""
        assert dispatcher.handler_count == 1


class TestEmission:
    """Tests for event emission."""

    def test_emit_to_type_subscriber(self):
        """Events are delivered to type-specific subscribers."""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, handler)

        event = _event()
        dispatcher.emit(event)

        handler.assert_called_once_with(event)

    def test_emit_wrong_type_not_delivered(self):
        """Events of another type are not delivered to type subscribers."""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(StoreEventType.LAYOUT_CHANGED, handler)

        dispatcher.emit(_event(StoreEventType.NODES_CHANGED))

        handler.assert_not_called()

    def test_emit_to_both_subscribers(self):
        """Type handlers and wildcard handlers both receive the event."""
        dispatcher = EventDispatcher()
        type_handler = Mock()
        wildcard_handler = Mock()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, type_handler)
        dispatcher.subscribe_all(wildcard_handler)

        event = _event()
        dispatcher.emit(event)

        type_handler.assert_called_once_with(event)
        wildcard_handler.assert_called_once_with(event)

    def test_emit_many(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.emit_many([_event(version=1), _event(StoreEventType.EDGES_CHANGED, version=2)])

        assert handler.call_count == 2

    def test_handler_exception_doesnt_break_emission(self):
        """Handler exception doesn't prevent other handlers from running."""
        dispatcher = EventDispatcher()
        failing_handler = Mock(side_effect=RuntimeError("Handler failed"))
        success_handler = Mock()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, failing_handler)
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, success_handler)

        dispatcher.emit(_event())

        success_handler.assert_called_once()


class TestPause:
    """Tests for pause/resume functionality."""

    def test_pause_drops_events(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.pause()
        dispatcher.emit(_event())

        handler.assert_not_called()
        assert dispatcher.is_paused is True
        assert dispatcher.event_count == 0

    def test_resume_restores_emission(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.pause()
        dispatcher.resume()
        dispatcher.emit(_event())

        handler.assert_called_once()
        assert dispatcher.is_paused is False


class TestHistory:
    """Tests for event history."""

    def test_history_limit(self):
        """History respects max_history limit."""
        dispatcher = EventDispatcher(max_history=3)

        for i in range(5):
            dispatcher.emit(_event(version=i))

        assert dispatcher.event_count == 3
        history = dispatcher.get_history()
        assert history[0].version == 2
        assert history[-1].version == 4

    def test_history_filter_by_type(self):
        dispatcher = EventDispatcher()

        dispatcher.emit(_event(StoreEventType.NODES_CHANGED))
        dispatcher.emit(_event(StoreEventType.HISTORY_CHANGED))
        dispatcher.emit(_event(StoreEventType.NODES_CHANGED))

        history = dispatcher.get_history(event_type=StoreEventType.NODES_CHANGED)
        assert len(history) == 2

    def test_clear_history(self):
        dispatcher = EventDispatcher()
        dispatcher.emit(_event())

        dispatcher.clear_history()

        assert dispatcher.event_count == 0


class TestClearHandlers:
    """Tests for clearing handlers."""

    def test_clear_handlers_by_type(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, Mock())
        dispatcher.subscribe(StoreEventType.EDGES_CHANGED, Mock())

        dispatcher.clear_handlers(StoreEventType.NODES_CHANGED)

        assert dispatcher.handler_count == 1

    def test_clear_all_handlers(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(StoreEventType.NODES_CHANGED, Mock())
        dispatcher.subscribe_all(Mock())

        dispatcher.clear_handlers()

        assert dispatcher.handler_count == 0


class TestStoreEvent:
    """Tests for the event payload."""

    def test_to_dict(self):
        event = StoreEvent(
            event_type=StoreEventType.LAYOUT_CHANGED,
            command="move_node",
            node_ids=["a"],
            version=7,
        )

        data = event.to_dict()

        assert data["event_type"] == "layout_changed"
        assert data["command"] == "move_node"
        assert data["node_ids"] == ["a"]
        assert data["version"] == 7
        assert data["timestamp"] is not None


class TestMultipleDispatchers:
    """Dispatchers are instance-scoped."""

    def test_dispatchers_are_independent(self):
        dispatcher1 = EventDispatcher()
        dispatcher2 = EventDispatcher()
        handler1 = Mock()
        handler2 = Mock()
        dispatcher1.subscribe_all(handler1)
        dispatcher2.subscribe_all(handler2)

        dispatcher1.emit(_event())

        handler1.assert_called_once()
        handler2.assert_not_called()

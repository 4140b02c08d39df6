import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, equal_to, is_, is_not

from serialhub.support.events import BusyChangedEvent, ErrorReportedEvent, EventSource, PropertyChangedEvent


class EventSourceTest(unittest.TestCase):

    def setUp(self):
        self.sut = EventSource()

    def test_no_handlers(self):
        assert_that(self.sut.handlers, is_(()))
        self.sut.fire(BusyChangedEvent('Shutter-1', True))

    def test_subscribe_and_unsubscribe(self):
        handler = Mock()
        self.sut += handler
        assert_that(self.sut.handlers, is_((handler,)))
        self.sut -= handler
        assert_that(self.sut.handlers, is_(()))
        self.sut.unsubscribe(handler)
        assert_that(self.sut.handlers, is_(()))

    def test_handlers_are_called_in_order(self):
        manager = Mock()
        self.sut += manager.first
        self.sut += manager.second
        event = BusyChangedEvent('Shutter-1', True)
        self.sut.fire(event)
        assert_that(manager.mock_calls, is_([call.first(event), call.second(event)]))

    def test_subscription_by_type(self):
        busy = Mock()
        self.sut.subscribe(busy, BusyChangedEvent)
        self.sut.fire(PropertyChangedEvent('Stage-1', 'Position', 1))
        self.sut.fire(BusyChangedEvent('Stage-1', False))
        busy.assert_called_once_with(BusyChangedEvent('Stage-1', False))

    def test_handler_may_unsubscribe_itself_while_firing(self):
        later = Mock()

        def once(event):
            self.sut.unsubscribe(once)

        self.sut += once
        self.sut += later
        self.sut.fire(1)
        later.assert_called_once_with(1)
        assert_that(self.sut.handlers, is_((later,)))


class HubEventTest(unittest.TestCase):

    def test_equality(self):
        assert_that(PropertyChangedEvent('Stage-1', 'Position', 1),
                    is_(equal_to(PropertyChangedEvent('Stage-1', 'Position', 1))))
        assert_that(PropertyChangedEvent('Stage-1', 'Position', 1),
                    is_not(equal_to(PropertyChangedEvent('Stage-1', 'Position', 2))))
        assert_that(BusyChangedEvent('Shutter-1', True), is_not(equal_to(BusyChangedEvent('Shutter-1', False))))

    def test_repr(self):
        assert_that(repr(ErrorReportedEvent(102, 'lost')), is_("ErrorReportedEvent(102, 'lost')"))
        assert_that(repr(BusyChangedEvent('Shutter-1', True)), is_("BusyChangedEvent('Shutter-1', True)"))

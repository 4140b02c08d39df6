"""
Events posted by the hub, and the sources observers subscribe to.

Handlers are called in subscription order with the event as their only argument. Events fired
by the poller reach the handlers on the poller thread.
"""
from serialhub.support.mixins import ValueEqualityMixin


class EventSource:
    """
    A list of handlers. A handler subscribed with event types only receives events of those types.

        source += handler
        source.subscribe(on_busy, BusyChangedEvent)
    """

    def __init__(self):
        self._subscriptions = []

    def subscribe(self, handler, *event_types):
        self._subscriptions.append((handler, event_types))
        return self

    def unsubscribe(self, handler):
        """ removes every subscription of the handler. Unknown handlers are ignored. """
        self._subscriptions = [s for s in self._subscriptions if s[0] is not handler]
        return self

    __iadd__ = subscribe
    __isub__ = unsubscribe

    @property
    def handlers(self):
        return tuple(s[0] for s in self._subscriptions)

    def fire(self, event):
        for handler, event_types in list(self._subscriptions):
            if not event_types or isinstance(event, event_types):
                handler(event)


class HubEvent(ValueEqualityMixin):

    fields = ()

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join(repr(getattr(self, f)) for f in self.fields))


class PropertyChangedEvent(HubEvent):
    """ A property value was accepted from the controller or set locally. """
    fields = ('device', 'name', 'value')

    def __init__(self, device, name, value):
        self.device = device
        self.name = name
        self.value = value


class BusyChangedEvent(HubEvent):
    fields = ('device', 'busy')

    def __init__(self, device, busy):
        self.device = device
        self.busy = busy


class ErrorReportedEvent(HubEvent):
    """ The last error changed. A reset posts the ok code. """
    fields = ('code', 'description')

    def __init__(self, code, description):
        self.code = code
        self.description = description

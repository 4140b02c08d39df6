"""
Property storage for devices.

A PropertyBag holds named, typed properties. Each property may restrict its value to
an enumeration (strings) or to limits (numbers), and may carry hooks:

- on_get(prop) returns the current value, for properties whose value lives elsewhere
- on_set(prop, value) is called with the validated value before it is stored, and may raise
  to refuse the change
"""
import logging

from serialhub.errors import PropertyError, PropertyValueError
from serialhub.protocol.values import PropertyType, PropertyValue, make_value
from serialhub.support.events import EventSource, PropertyChangedEvent

logger = logging.getLogger(__name__)


class Property:

    def __init__(self, name, value: PropertyValue, read_only=False, pre_init=False, on_get=None, on_set=None):
        self.name = name
        self.value = value
        self.read_only = read_only
        self.pre_init = pre_init
        self.on_get = on_get
        self.on_set = on_set
        self.allowed_values = []
        self.lower_limit = None
        self.upper_limit = None

    @property
    def value_type(self) -> PropertyType:
        return self.value.type

    @property
    def has_limits(self):
        return self.lower_limit is not None and self.upper_limit is not None

    def validate(self, value) -> PropertyValue:
        """
        Converts the value to the property's type and checks it against the enumeration or limits.
        :raises PropertyValueError: when the value is not allowed
        """
        try:
            result = make_value(self.value_type, value)
        except (TypeError, ValueError):
            raise PropertyValueError("%r is not a valid %s value for %s" %
                                     (value, self.value_type.value, self.name)) from None
        if self.allowed_values and result.value not in self.allowed_values:
            raise PropertyValueError("%s is not one of %s for %s" % (result, self.allowed_values, self.name))
        if self.has_limits and not self.lower_limit <= result.value <= self.upper_limit:
            raise PropertyValueError("%s is outside [%s, %s] for %s" %
                                     (result, self.lower_limit, self.upper_limit, self.name))
        return result

    def __repr__(self):
        return "Property(%r, %r)" % (self.name, self.value)


class PropertyBag:
    """
    The properties of one device, in creation order. changed fires a PropertyChangedEvent
    each time a value is set or updated.
    """

    def __init__(self, owner=""):
        self.owner = owner
        self._properties = {}
        self.changed = EventSource()

    def create(self, name, value: PropertyValue, read_only=False, pre_init=False, on_get=None, on_set=None):
        if name in self._properties:
            raise PropertyError("%s already has a property %s" % (self.owner, name))
        prop = Property(name, value, read_only, pre_init, on_get, on_set)
        self._properties[name] = prop
        return prop

    def create_with_limits(self, name, value: PropertyValue, lower_limit, upper_limit, **kwargs):
        prop = self.create(name, value, **kwargs)
        prop.lower_limit = lower_limit
        prop.upper_limit = upper_limit
        return prop

    def create_with_enum(self, name, value: PropertyValue, allowed_values, **kwargs):
        prop = self.create(name, value, **kwargs)
        prop.allowed_values = list(allowed_values)
        return prop

    def has(self, name):
        return name in self._properties

    def names(self):
        return list(self._properties)

    def property(self, name) -> Property:
        try:
            return self._properties[name]
        except KeyError:
            raise PropertyError("%s has no property %s" % (self.owner, name)) from None

    def get(self, name):
        """ :return: the current python value of the property """
        prop = self.property(name)
        if prop.on_get is not None:
            prop.value = prop.on_get(prop)
        return prop.value.value

    def set(self, name, value):
        """
        Validates and stores a new value. The on_set hook sees the value before it is stored.
        :raises PropertyError: when the property is read-only
        :raises PropertyValueError: when the value is not allowed
        """
        prop = self.property(name)
        if prop.read_only:
            raise PropertyError("%s.%s is read-only" % (self.owner, name))
        new_value = prop.validate(value)
        if prop.on_set is not None:
            prop.on_set(prop, new_value)
        self.update(name, new_value)

    def update(self, name, value: PropertyValue):
        """ stores a value without validation or hooks. """
        prop = self.property(name)
        prop.value = value
        self.changed.fire(PropertyChangedEvent(self.owner, name, value))

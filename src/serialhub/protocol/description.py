"""
The device model built from the controller's device list.

A DeviceDescription is built once per discovery block. Invalid descriptions are
kept, so that positions in the registry follow the discovery order, but they never
become operable devices.
"""
from enum import Enum

from serialhub.protocol.values import PropertyType, PropertyValue
from serialhub.support.mixins import FieldsStrMixin, ValueEqualityMixin


class DeviceKind(Enum):
    SHUTTER = "Shutter"
    SELECTOR = "State"
    LINEAR_STAGE = "Stage"
    XY_STAGE = "XYStage"
    GENERIC = "Generic"

    @property
    def label(self):
        return self.value

    @property
    def prefix(self):
        """ the prefix of device names of this kind """
        return self.value

    @classmethod
    def from_name(cls, name):
        """
        Determines the kind of a device from the prefix of its name.
        >>> DeviceKind.from_name('XYStage-2')
        <DeviceKind.XY_STAGE: 'XYStage'>
        >>> DeviceKind.from_name('Laser') is None
        True
        """
        for kind in cls:
            if name.startswith(kind.prefix):
                return kind
        return None


class MethodDescription(ValueEqualityMixin, FieldsStrMixin):
    """ maps a logical method of a device to the wire command the controller understands. """

    def __init__(self, method, command):
        self._method = method
        self._command = command

    @property
    def method(self):
        return self._method

    @property
    def command(self):
        return self._command

    def __repr__(self):
        return "MethodDescription(%r, %r)" % (self._method, self._command)


class PropertyDescription(ValueEqualityMixin, FieldsStrMixin):
    """
    Describes one property of a device, and holds its current value.

    Action properties push changes to the controller with the cmd_action command.
    Passive properties are only cached.
    An empty allowed_values list, or limits of None, leave the value unrestricted.
    """

    def __init__(self, name, value: PropertyValue, is_action=False, is_read_only=False, is_pre_init=False,
                 cmd_action=None, allowed_values=None, lower_limit=None, upper_limit=None):
        self.name = name
        self.value = value
        self.is_action = is_action
        self.is_read_only = is_read_only
        self.is_pre_init = is_pre_init
        self.cmd_action = cmd_action if is_action else None
        self.allowed_values = list(allowed_values) if allowed_values else []
        self.lower_limit = lower_limit
        self.upper_limit = upper_limit

    @property
    def value_type(self) -> PropertyType:
        return self.value.type

    @property
    def has_limits(self):
        return self.lower_limit is not None and self.upper_limit is not None

    def accepts(self, value: PropertyValue):
        """ determines if the value is of the property's type and within its allowed values or limits. """
        if value.type != self.value_type:
            return False
        if value.type == PropertyType.STRING:
            return not self.allowed_values or value.value in self.allowed_values
        if not self.has_limits:
            return True
        return self.lower_limit <= value.value <= self.upper_limit

    def __repr__(self):
        return "PropertyDescription(%r, %r)" % (self.name, self.value)


class DeviceDescription(ValueEqualityMixin, FieldsStrMixin):
    """
    Everything the controller declared about one device.

    timeout is in milliseconds. A timeout of 0 means commands never time out.
    """

    def __init__(self, name="", kind=None, description="", timeout=0.0, methods=None, properties=None):
        self.name = name
        self.kind = kind
        self.description = description
        self.timeout = timeout
        self.methods = list(methods) if methods else []
        self.properties = list(properties) if properties else []
        self.valid = True
        self.invalid_reason = ""

    def invalidate(self, reason):
        self.valid = False
        self.invalid_reason += reason

    def method_command(self, method):
        """ the wire command for a logical method, or None when the method is not described. """
        for m in self.methods:
            if m.method == method:
                return m.command
        return None

    def find_method_by_command(self, command):
        for m in self.methods:
            if m.command == command:
                return m
        return None

    def find_property_by_command(self, command):
        """ :return: the index of the action property using the command, or None """
        for index, p in enumerate(self.properties):
            if p.is_action and p.cmd_action == command:
                return index
        return None

    def property_index(self, name):
        for index, p in enumerate(self.properties):
            if p.name == name:
                return index
        return None

    def property(self, name):
        index = self.property_index(name)
        return self.properties[index] if index is not None else None

    def __repr__(self):
        return "DeviceDescription(%r, %s, valid=%s)" % (self.name, self.kind, self.valid)

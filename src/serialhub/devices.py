"""
The operable devices built from valid device descriptions.

Every device shares one routine for building its properties from the description and for
busy and timeout bookkeeping. The variants add their method set, and the methods whose
confirmation by the controller they accept.
"""
import logging

from serialhub.errors import ErrorCodes, HubError, PropertyError, PropertyValueError
from serialhub.properties import Property, PropertyBag
from serialhub.protocol import reserved
from serialhub.protocol.description import DeviceDescription, DeviceKind, PropertyDescription
from serialhub.protocol.values import PropertyValue, make_value
from serialhub.router import CommandRouter
from serialhub.support.events import BusyChangedEvent

logger = logging.getLogger(__name__)


class Device:
    """
    A device exposes the properties of its description.

    Action properties read their value from the registry, and send new values to the controller.
    The registry value changes once the controller confirms it. Passive properties write the registry directly.
    Pre-initialization properties can only be set before initialize().

    timeout and last_command_time are in the router's clock unit, milliseconds.
    """
    kind = DeviceKind.GENERIC
    confirmed_methods = ()
    # answers to any described method are matched before the properties
    scans_methods = False

    def __init__(self, description: DeviceDescription, router: CommandRouter):
        self.name = description.name
        self.description = description.description
        self.router = router
        self.timeout = description.timeout
        self.last_command_time = 0
        self.initialized = False
        self._busy = False
        self.properties = PropertyBag(self.name)
        for index, pd in enumerate(description.properties):
            self._create_property(index, pd)

    @property
    def busy(self):
        return self._busy

    @busy.setter
    def busy(self, busy):
        changed = self._busy != busy
        self._busy = busy
        if changed:
            self.router.events.fire(BusyChangedEvent(self.name, busy))

    def stamp(self, now=None):
        """ records the time of the last command. """
        self.last_command_time = self.router.now() if now is None else now

    def timed_out(self, now):
        """ a timeout of zero or less never expires. """
        return self.timeout > 0 and now - self.last_command_time > self.timeout

    def initialize(self):
        if not self.initialized:
            self.busy = False
            self.initialized = True
            logger.info("initialized %s %s", self.kind.label, self.name)

    def shutdown(self):
        self.initialized = False

    def get_property(self, name):
        return self.properties.get(name)

    def set_property(self, name, value):
        prop = self.properties.property(name)
        if prop.pre_init and self.initialized:
            raise PropertyError("%s.%s can only be set before initialization" % (self.name, name))
        self.properties.set(name, value)

    def accept_confirmed(self, method, values):
        """
        Accepts values confirmed by the controller for one of the confirmed_methods.
        :return: ErrorCodes.ok, or ErrorCodes.value_not_allowed when the values are not acceptable
        """
        if method not in self.confirmed_methods:
            return ErrorCodes.command_not_recognized
        try:
            return self._confirm(method, values)
        except (IndexError, ValueError):
            return ErrorCodes.value_not_allowed

    def _confirm(self, method, values):
        raise NotImplementedError

    def send(self, method, *values):
        """ sends a logical method to the controller. The device is busy until the controller answers. """
        return self.router.route_outgoing(self.name, method, values)

    def uses_cached(self, method):
        """ determines if the controller declared that the method reads the cached value. """
        return self.router.convert_method_to_command(self.name, method) == reserved.cached

    def property_description(self, name) -> PropertyDescription:
        d = self.router.registry.description(self.name)
        return d.property(name) if d is not None else None

    def _device_index(self):
        return self.router.registry.index_of(self.name)

    def _create_property(self, index, pd: PropertyDescription):
        kwargs = dict(read_only=pd.is_read_only, pre_init=pd.is_pre_init, on_get=self._registry_reader(index))
        if pd.is_action:
            kwargs.update(on_set=self._action_sender(pd))
        else:
            kwargs.update(on_set=self._registry_writer(index))
        if pd.allowed_values:
            self.properties.create_with_enum(pd.name, pd.value, pd.allowed_values, **kwargs)
        elif pd.has_limits:
            self.properties.create_with_limits(pd.name, pd.value, pd.lower_limit, pd.upper_limit, **kwargs)
        else:
            self.properties.create(pd.name, pd.value, **kwargs)

    def _registry_reader(self, property_index):
        def read(prop: Property):
            return self.router.registry.property_value(self._device_index(), property_index)
        return read

    def _registry_writer(self, property_index):
        def write(prop: Property, value: PropertyValue):
            self.router.registry.replace_value(self._device_index(), property_index, value)
            self.router.notify_property_changed(self.name, prop.name, value)
        return write

    def _action_sender(self, pd: PropertyDescription):
        def send(prop: Property, value: PropertyValue):
            code = self.router.send_action(self.name, pd, value)
            if code != ErrorCodes.ok:
                raise HubError("%s.%s was not accepted by the controller" % (self.name, prop.name), code)
        return send

    def _mirror(self, property_name, value):
        """ writes a value confirmed through a method into the property of the same meaning, if there is one. """
        d = self.router.registry.description(self.name)
        index = d.property_index(property_name) if d is not None else None
        if index is None:
            return
        pd = d.properties[index]
        mirrored = make_value(pd.value_type, value)
        self.router.registry.replace_value(self._device_index(), index, mirrored)
        self.properties.update(property_name, mirrored)
        self.router.notify_property_changed(self.name, property_name, mirrored)

    def _limits(self, property_name):
        pd = self.property_description(property_name)
        if pd is None or not pd.has_limits:
            return None
        return pd.lower_limit, pd.upper_limit

    @staticmethod
    def _within(value, limits):
        return limits is None or limits[0] <= value <= limits[1]

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.name)


class Shutter(Device):
    kind = DeviceKind.SHUTTER
    confirmed_methods = (reserved.set_open, reserved.get_open)
    scans_methods = True

    def __init__(self, description, router):
        super().__init__(description, router)
        self._open = False

    def _confirm(self, method, values):
        state = int(values[0])
        if state not in (0, 1):
            return ErrorCodes.value_not_allowed
        self._open = bool(state)
        return ErrorCodes.ok

    def set_open(self, open=True):
        self.send(reserved.set_open, bool(open))
        self._open = bool(open)

    def get_open(self):
        """ :return: the last known state. Unless the controller declared the state cached, it is also requested. """
        if not self.uses_cached(reserved.get_open):
            self.send(reserved.get_open, self._open)
        return self._open

    def fire(self, delta_t):
        self.send(reserved.fire, float(delta_t))


class Selector(Device):
    """ a device with a number of positions, given by the limits of its State property, and optional labels. """
    kind = DeviceKind.SELECTOR

    def number_of_positions(self):
        limits = self._limits(reserved.state)
        return int(limits[1] - limits[0] + 1) if limits else 0

    def labels(self):
        """ :return: the label of each position, from the allowed values of the Label property. """
        limits = self._limits(reserved.state)
        label = self.property_description(reserved.label)
        if not limits or label is None:
            return {}
        first = int(limits[0])
        return {first + i: text for i, text in enumerate(label.allowed_values[:self.number_of_positions()])}

    def set_position(self, position):
        self.set_property(reserved.state, position)

    def get_position(self):
        return self.get_property(reserved.state)

    def set_position_label(self, label):
        for position, text in self.labels().items():
            if text == label:
                return self.set_position(position)
        raise PropertyValueError("%s has no position labelled %s" % (self.name, label))

    def get_position_label(self):
        return self.labels().get(self.get_position())


class LinearStage(Device):
    kind = DeviceKind.LINEAR_STAGE
    confirmed_methods = (reserved.set_position_um, reserved.get_position_um, reserved.home, reserved.stop)
    scans_methods = True

    def __init__(self, description, router):
        super().__init__(description, router)
        pd = description.property(reserved.position)
        self._position = float(pd.value.value) if pd is not None else 0.0

    def limits(self):
        return self._limits(reserved.position)

    def _confirm(self, method, values):
        position = float(values[0])
        if not self._within(position, self.limits()):
            return ErrorCodes.value_not_allowed
        self._position = position
        self._mirror(reserved.position, position)
        return ErrorCodes.ok

    def set_position_um(self, position):
        if not self._within(position, self.limits()):
            raise PropertyValueError("%s is outside the limits %s of %s" % (position, self.limits(), self.name))
        self.send(reserved.set_position_um, float(position))
        self._position = position

    def get_position_um(self):
        if not self.uses_cached(reserved.get_position_um):
            self.send(reserved.get_position_um, float(self._position))
        return self._position

    def home(self):
        self.send(reserved.home, 0)

    def stop(self):
        self.send(reserved.stop, 0)


class XYStage(Device):
    kind = DeviceKind.XY_STAGE
    confirmed_methods = (reserved.set_position_um, reserved.get_position_um, reserved.home, reserved.stop)
    scans_methods = True

    def __init__(self, description, router):
        super().__init__(description, router)
        self._position = tuple(self._initial(description, name) for name in (reserved.position_x, reserved.position_y))

    @staticmethod
    def _initial(description, name):
        pd = description.property(name)
        return float(pd.value.value) if pd is not None else 0.0

    def limits(self):
        """ :return: the limits of the x and y axis. """
        return self._limits(reserved.position_x), self._limits(reserved.position_y)

    def _accepts(self, x, y):
        x_limits, y_limits = self.limits()
        return self._within(x, x_limits) and self._within(y, y_limits)

    def _confirm(self, method, values):
        x, y = float(values[0]), float(values[1])
        if not self._accepts(x, y):
            return ErrorCodes.value_not_allowed
        self._position = (x, y)
        self._mirror(reserved.position_x, x)
        self._mirror(reserved.position_y, y)
        return ErrorCodes.ok

    def set_position_um(self, x, y):
        if not self._accepts(x, y):
            raise PropertyValueError("(%s, %s) is outside the limits %s of %s" % (x, y, self.limits(), self.name))
        self.send(reserved.set_position_um, float(x), float(y))
        self._position = (x, y)

    def get_position_um(self):
        if not self.uses_cached(reserved.get_position_um):
            self.send(reserved.get_position_um, *(float(p) for p in self._position))
        return self._position

    def home(self):
        self.send(reserved.home, 0)

    def stop(self):
        self.send(reserved.stop, 0)


class Generic(Device):
    """ a bank of properties, with no methods of its own. """
    kind = DeviceKind.GENERIC


device_classes = {cls.kind: cls for cls in (Shutter, Selector, LinearStage, XYStage, Generic)}


def create_device(description: DeviceDescription, router: CommandRouter):
    """
    Creates the device for a description.
    :return: the device, or None when the description is not valid
    """
    if not description.valid:
        logger.info("not creating invalid device %s: %s", description.name, description.invalid_reason)
        return None
    return device_classes[description.kind](description, router)

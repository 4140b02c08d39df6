"""
Translates between device operations and wire commands.

Outgoing, a logical method of a device becomes a command line sent to the controller.
Incoming, a command and its values confirmed by the controller are matched against the
device's methods and action properties, validated and written to the registry.
"""
import logging
import time

from serialhub.errors import DeviceNotFoundError, ErrorCodes, ErrorReporter, HubError, NoSuchMethodError, \
    UnsupportedCommandError
from serialhub.protocol import reserved
from serialhub.protocol.description import DeviceDescription, PropertyDescription
from serialhub.protocol.reserved import Separators, default_separators
from serialhub.protocol.response import ResponseHandler
from serialhub.protocol.values import PropertyType, encode_text, parse_value
from serialhub.registry import DeviceRegistry
from serialhub.support.events import EventSource, PropertyChangedEvent

logger = logging.getLogger(__name__)


def monotonic_ms():
    return time.monotonic() * 1000


class CommandRouter:
    """
    Routes commands between the devices and the controller.

    :param registry: the device descriptions
    :param transport: the LineTransport to the controller
    :param reporter: receives every rejected command or value
    :param events: receives PropertyChangedEvent and BusyChangedEvent
    :param clock: a monotonic clock in milliseconds
    :param pre_init_timeout: how long, in seconds, to wait for the answer to a pre-initialization property
    """

    def __init__(self, registry: DeviceRegistry, transport, reporter: ErrorReporter, events: EventSource=None,
                 separators: Separators=default_separators, clock=monotonic_ms, pre_init_timeout=1.0):
        self.registry = registry
        self.transport = transport
        self.reporter = reporter
        self.events = events if events is not None else EventSource()
        self.separators = separators
        self.clock = clock
        self.pre_init_timeout = pre_init_timeout
        self.devices = {}
        self.responses = ResponseHandler(self, separators)

    def now(self):
        return self.clock()

    def device(self, name):
        """ :return: the operable device with the name, or None """
        return self.devices.get(name)

    def add_device(self, device):
        self.devices[device.name] = device

    def clear_devices(self):
        self.devices = {}

    def busy_devices(self):
        """ the initialized busy devices, in registry order. """
        result = []
        for d in self.registry:
            device = self.devices.get(d.name)
            if device is not None and device.initialized and device.busy and device not in result:
                result.append(device)
        return result

    def operable_description(self, device_name) -> DeviceDescription:
        """ :return: the valid description of the named device, or None """
        d = self.registry.description(device_name)
        return d if d is not None and d.valid else None

    def route_incoming(self, device_name, command, values):
        """
        Accepts a command and values confirmed by the controller.
        :return: ErrorCodes.ok when the values were accepted, otherwise the reported error code
        """
        description = self.operable_description(device_name)
        if description is None:
            return self.reporter.report_for_device(device_name, command, values, ErrorCodes.device_not_recognized)

        if command == reserved.timeout:
            return self._accept_timeout(device_name, command, values)

        method = description.find_method_by_command(command)
        device = self.device(device_name)
        if method is not None and device is not None and device.scans_methods:
            if method.method not in device.confirmed_methods:
                return ErrorCodes.ok
            code = device.accept_confirmed(method.method, values)
            if code != ErrorCodes.ok:
                return self.reporter.report_for_device(device_name, command, values, code)
            return code

        index = description.find_property_by_command(command)
        if index is not None:
            return self._accept_property(device_name, index, command, values)

        return self.reporter.report_for_device(device_name, command, values, ErrorCodes.command_not_recognized)

    def _accept_timeout(self, device_name, command, values):
        device = self.device(device_name)
        if device is None:
            return self.reporter.report_for_device(device_name, command, values, ErrorCodes.device_not_recognized)
        if values:
            try:
                device.timeout = float(values[0]) * 1000
            except ValueError:
                return self.reporter.report_for_device(device_name, command, values, ErrorCodes.value_not_allowed)
        device.stamp(self.now())
        return ErrorCodes.ok

    def _accept_property(self, device_name, property_index, command, values):
        device_index = self.registry.index_of(device_name)
        pd = self.registry[device_index].properties[property_index]
        try:
            value = parse_value(pd.value_type, values[0]) if values else None
        except ValueError:
            value = None
        # a confirmed string must be one of the listed values
        unlisted = value is not None and value.type == PropertyType.STRING and not pd.allowed_values
        if value is None or unlisted or not pd.accepts(value):
            return self.reporter.report_for_device(device_name, command, values, ErrorCodes.value_not_allowed)
        self.registry.replace_value(device_index, property_index, value)
        self.notify_property_changed(device_name, pd.name, value)
        return ErrorCodes.ok

    def notify_property_changed(self, device_name, property_name, value):
        self.events.fire(PropertyChangedEvent(device_name, property_name, value))

    def convert_method_to_command(self, device_name, method):
        """
        Looks up the wire command for a logical method of a device.
        :raises DeviceNotFoundError: when there is no valid device with the name
        :raises NoSuchMethodError: when the device does not describe the method
        :raises UnsupportedCommandError: when the controller declared the method unsupported
        """
        description = self.operable_description(device_name)
        if description is None:
            raise DeviceNotFoundError("no device named %s" % device_name)
        command = description.method_command(method)
        if command is None:
            raise NoSuchMethodError("%s has no method %s" % (device_name, method))
        if command == reserved.not_supported:
            raise UnsupportedCommandError("%s does not support %s" % (device_name, method))
        return command

    def format_command(self, device_name, command, values=()):
        """
        >>> CommandRouter(DeviceRegistry(), None, None).format_command('XYStage-1', 'MV', [1.5, 2])
        'XYStage-1,MV,1.5,2'
        >>> CommandRouter(DeviceRegistry(), None, None).format_command('Stage-1', 'HM')
        'Stage-1,HM'
        """
        line = device_name + self.separators.outbound + command
        if values:
            line += self.separators.outbound + self.separators.within.join(encode_text(v) for v in values)
        return line

    def route_outgoing(self, device_name, method, values=()):
        """
        Sends a logical method of a device to the controller. The device is busy until the controller answers.
        :return: the line sent
        """
        try:
            command = self.convert_method_to_command(device_name, method)
        except HubError as e:
            self.reporter.report_for_device(device_name, method, values, e.code)
            raise
        line = self.format_command(device_name, command, values)
        self._send_and_mark_busy(device_name, line)
        return line

    def send_action(self, device_name, pd: PropertyDescription, value):
        """
        Sends a new value of an action property to the controller.
        Pre-initialization properties wait for the controller's answer, and leave the busy state alone.
        Answers of other devices arriving meanwhile are handled as usual.
        :return: ErrorCodes.ok, or the error code of the answer
        """
        line = self.format_command(device_name, pd.cmd_action, [value])
        if not pd.is_pre_init:
            self._send_and_mark_busy(device_name, line)
            return ErrorCodes.ok
        self.transport.send_line(line)
        deadline = self.transport.clock() + self.pre_init_timeout
        while True:
            answer = self.transport.receive_and_wait(max(deadline - self.transport.clock(), 0))
            if answer is None:
                return self.reporter.report_timeout(device_name)
            if self._answers(answer, device_name, pd.cmd_action):
                return self.responses.handle(answer, update_busy=False)
            self.responses.handle(answer)

    def _answers(self, line, device_name, command):
        fields = line.split(self.separators.inbound, 2)
        return len(fields) >= 2 and fields[0] == device_name and fields[1] == command

    def _send_and_mark_busy(self, device_name, line):
        self.transport.send_line(line)
        device = self.device(device_name)
        if device is not None:
            device.busy = True
            device.stamp(self.now())

"""
The hub talks to one controller over a serial line, discovers the devices it describes,
and keeps their state in step with the controller's answers.

    hub = SerialHub.open(load_settings())
    hub.initialize()
    shutter = hub.device('Shutter-1')
    shutter.initialize()
    shutter.set_open(True)
    ...
    hub.shutdown()
"""
import logging
import time

from serialhub.conduit.serial_conduit import open_serial_conduit
from serialhub.config.settings import HubSettings
from serialhub.devices import create_device
from serialhub.errors import DeviceNotFoundError, ErrorReporter, HubNotInitializedError, PortChangeError
from serialhub.poller import BusyPoller
from serialhub.protocol.parser import DescriptionParser
from serialhub.protocol.reserved import Separators, default_separators
from serialhub.protocol.transport import LineTransport
from serialhub.registry import DeviceRegistry
from serialhub.router import CommandRouter, monotonic_ms
from serialhub.support.events import EventSource

logger = logging.getLogger(__name__)


class SerialHub:
    """
    Owns the transport, the registry, the router and the poller of one controller.

    :param transport: the LineTransport to the controller. Its lock is shared with the registry.
    :param settings: the HubSettings, by default the built-in defaults
    :param clock: a monotonic clock in milliseconds
    """

    def __init__(self, transport: LineTransport, settings: HubSettings=None, clock=monotonic_ms,
                 separators: Separators=default_separators):
        self.settings = settings if settings is not None else HubSettings()
        self.transport = transport
        self.events = EventSource()
        self.reporter = ErrorReporter(self.events)
        self.registry = DeviceRegistry(transport.lock)
        self.parser = DescriptionParser(separators)
        self.router = CommandRouter(self.registry, transport, self.reporter, self.events, separators, clock,
                                    self.settings.protocol.pre_init_timeout)
        self.poller = None
        self.initialized = False
        self.sleep = time.sleep

    @classmethod
    def open(cls, settings: HubSettings=None):
        """ opens the serial port given by the settings, and creates a hub for it. """
        settings = settings if settings is not None else HubSettings()
        serial = settings.serial
        conduit = open_serial_conduit(serial.port, serial.baud, serial.read_timeout)
        return cls(LineTransport(conduit), settings)

    @property
    def port(self):
        return self.settings.serial.port

    @port.setter
    def port(self, port):
        if self.initialized:
            raise PortChangeError("the port cannot be changed once the hub is initialized")
        self.settings.serial.port = port

    def initialize(self):
        """
        Discovers the devices, creates the operable ones and starts polling the controller.
        Calling initialize again has no effect.
        """
        if self.initialized:
            return
        self.sleep(self.settings.discovery.settle_time)
        self.transport.purge()
        self.create_device_descriptions()
        for description in self.registry:
            device = create_device(description, self.router)
            if device is not None:
                self.router.add_device(device)
        poller = self.settings.poller
        self.poller = BusyPoller(self.router, self.reporter, poller.tick_interval, poller.keep_alive_interval,
                                 poller.read_timeout)
        self.poller.start()
        self.initialized = True
        logger.info("hub initialized with devices %s", ", ".join(d.name for d in self.devices))

    def shutdown(self):
        """ stops the poller, waiting for its last tick, and forgets the devices. """
        if self.poller is not None:
            self.poller.stop()
            self.poller = None
        for device in self.devices:
            device.shutdown()
        self.router.clear_devices()
        self.registry.clear()
        self.initialized = False

    def close(self):
        self.shutdown()
        self.transport.close()

    def create_device_descriptions(self):
        """ runs discovery, replacing the registry contents.
        :return: the descriptions, valid and invalid """
        return self.registry.populate(self.transport, self.parser, self.settings.discovery.line_timeout)

    def report_to_device(self, device_name, command, values):
        """ routes values confirmed by the controller into the named device. """
        return self.router.route_incoming(device_name, command, values)

    def convert_method_to_command(self, device_name, method):
        return self.router.convert_method_to_command(device_name, method)

    def send_command(self, line):
        self.transport.send_line(line)

    def receive_answer(self, timeout=None):
        """ :return: the next line from the controller, or None when none arrives within timeout seconds """
        return self.transport.receive_and_wait(timeout if timeout is not None else
                                               self.settings.discovery.line_timeout)

    def device(self, name):
        if not self.initialized:
            raise HubNotInitializedError("devices are available once the hub is initialized")
        device = self.router.device(name)
        if device is None:
            raise DeviceNotFoundError("no device named %s" % name)
        return device

    @property
    def devices(self):
        """ the operable devices, in discovery order. """
        return [self.router.devices[d.name] for d in self.registry if d.valid and d.name in self.router.devices]

    @property
    def error(self):
        return self.reporter.last_error

    @property
    def error_description(self):
        return self.reporter.description

    def reset_error(self):
        self.reporter.reset()

"""
The ordered table of device descriptions discovered from the controller.
"""
import logging
import threading

from serialhub.protocol import reserved
from serialhub.protocol.description import DeviceDescription
from serialhub.protocol.parser import DescriptionParser

logger = logging.getLogger(__name__)


def read_device_list(transport, line_timeout):
    """
    Runs the discovery exchange with the controller, yielding each description line.
    The exchange ends at the end marker, or when the controller sends nothing within line_timeout seconds.
    """
    transport.send_line(reserved.device_list_start)
    line = transport.receive_and_wait(line_timeout)
    while line is not None and line != reserved.device_list_end:
        yield line
        transport.send_line(reserved.device_list_continue)
        line = transport.receive_and_wait(line_timeout)
    if line is None:
        logger.warning("device list ended without %s", reserved.device_list_end)


class DeviceRegistry:
    """
    Holds the device descriptions in discovery order.

    Invalid descriptions keep their position. Once populated, only the values of properties
    change; the list itself is replaced as a whole by the next discovery.
    """

    def __init__(self, lock=None):
        self.lock = lock if lock is not None else threading.RLock()
        self._descriptions = []

    def __getitem__(self, index) -> DeviceDescription:
        return self._descriptions[index]

    def __len__(self):
        return len(self._descriptions)

    def __iter__(self):
        return iter(self._descriptions)

    def index_of(self, name):
        """ :return: the index of the first description with the name, or None """
        for index, d in enumerate(self._descriptions):
            if d.name == name:
                return index
        return None

    def description(self, name) -> DeviceDescription:
        index = self.index_of(name)
        return self._descriptions[index] if index is not None else None

    def kind_of(self, name):
        """ :return: the kind label of the named device, or None when there is no such device. """
        d = self.description(name)
        return d.kind.label if d is not None and d.kind is not None else None

    def property_value(self, device_index, property_index):
        with self.lock:
            return self._descriptions[device_index].properties[property_index].value

    def replace_value(self, device_index, property_index, value):
        with self.lock:
            self._descriptions[device_index].properties[property_index].value = value

    def replace(self, descriptions):
        """ swaps in a new list of descriptions. Later descriptions re-using a name are invalidated. """
        descriptions = list(descriptions)
        seen = set()
        for d in descriptions:
            if d.name in seen and d.valid:
                d.invalidate("Duplicate device name %s" % d.name)
                logger.warning("ignoring duplicate device %s", d.name)
            seen.add(d.name)
        with self.lock:
            self._descriptions = descriptions

    def clear(self):
        self.replace([])

    def populate(self, transport, parser: DescriptionParser, line_timeout):
        """
        Discovers the devices from the controller and replaces the registry contents with them.
        :return: the descriptions, valid and invalid
        """
        descriptions = parser.parse_all(read_device_list(transport, line_timeout))
        self.replace(descriptions)
        logger.info("discovered %d devices, %d valid", len(descriptions), sum(1 for d in descriptions if d.valid))
        for d in descriptions:
            if not d.valid:
                logger.warning("device description %s is invalid: %s", d.name, d.invalid_reason)
        return descriptions

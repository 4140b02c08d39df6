"""
The serial port conduit, and detection of the port a controller is plugged into.
"""
import logging

import serial
from serial.tools import list_ports

from serialhub.conduit.base import Conduit

logger = logging.getLogger(__name__)

# USB (vendor id, product id) of the boards controllers are built on
known_boards = {
    (0x2341, 0x0010): "Arduino Mega2560",
    (0x2341, 0x0042): "Arduino Mega2560 R3",
    (0x2341, 0x0043): "Arduino Uno",
    (0x2341, 0x003D): "Arduino Due",
    (0x2341, 0x8036): "Arduino Leonardo",
    (0x16C0, 0x0483): "Teensy",
}


class SerialConduit(Conduit):
    """
    A conduit over an open serial.Serial. Its read timeout bounds each read attempt of the hub.
    """

    def __init__(self, ser: serial.Serial):
        self.ser = ser
        # flushing locks up when the device is unplugged mid-flush
        ser.flush = self._skip_flush

    def _skip_flush(self, *args, **kwargs):
        pass

    @property
    def input(self):
        return self.ser

    @property
    def output(self):
        return self.ser

    @property
    def port(self):
        return self.ser.port

    @property
    def is_open(self) -> bool:
        return self.ser.is_open

    def close(self):
        self.ser.close()

    def discard_input(self):
        self.ser.reset_input_buffer()


def open_serial_conduit(port, baud, read_timeout):
    """
    Opens a serial port.
    :param port: the port name, or "auto" for the first port with a known board
    :param baud: the baud rate
    :param read_timeout: the longest a single read waits for data, in seconds
    """
    device = detect_port(port)
    logger.info("opening serial port %s at %d baud", device, baud)
    return SerialConduit(serial.Serial(device, baudrate=baud, timeout=read_timeout))


def board_name(info):
    """ :return: the name of the known board behind a port, or None """
    return known_boards.get((info.vid, info.pid))


def recognised_ports(ports=None):
    """ the ports, by default all available ports, that have a known board attached. """
    if ports is None:
        ports = list_ports.comports()
    return [p for p in ports if board_name(p) is not None]


def detect_port(port):
    """
    Resolves "auto" to the device name of the first port with a known board.
    Any other port name is returned unchanged.
    :raises ValueError: when no known board is attached
    """
    if port != "auto":
        return port
    available = list_ports.comports()
    found = recognised_ports(available)
    if not found:
        raise ValueError("no known controller board among the serial ports %s" %
                         ", ".join(p.device for p in available))
    logger.info("found %s on %s", board_name(found[0]), found[0].device)
    return found[0].device

"""
Sends and receives terminated text lines over a conduit.
"""
import logging
import threading
import time

from serialhub.conduit.base import Conduit
from serialhub.protocol.reserved import Separators, default_separators

logger = logging.getLogger(__name__)


class LineTransport:
    """
    Line-oriented access to a conduit.

    The lock is held for one send, or one receive attempt, and never across a wait. Pass the same
    lock to the registry so that the poller and foreground calls are serialized.
    A receive attempt reads until the terminator, or until the conduit's input produces no more data
    within its own read timeout. Partial lines are kept until the rest of the line arrives.
    """

    def __init__(self, conduit: Conduit, separators: Separators=default_separators, lock=None,
                 clock=time.monotonic, encoding='ascii'):
        self.conduit = conduit
        self.terminator = separators.end
        self.lock = lock if lock is not None else threading.RLock()
        self.clock = clock
        self.encoding = encoding
        self._pending = ""

    def send_line(self, text):
        """ writes the text followed by the terminator. """
        data = (text + self.terminator).encode(self.encoding)
        with self.lock:
            output = self.conduit.output
            output.write(data)
            output.flush()
        logger.debug("sent %r", text)

    def receive_line(self):
        """
        Makes one attempt to read a complete line.
        :return: the line without its terminator, or None when no complete line was available.
        """
        with self.lock:
            line = self._read_attempt()
        if line is not None:
            logger.debug("received %r", line)
        return line

    def receive_and_wait(self, timeout):
        """
        Reads the next line, waiting for it for at most timeout seconds.
        :return: the line without its terminator, or None when no line arrived in time.
        """
        deadline = self.clock() + timeout
        while True:
            line = self.receive_line()
            if line is not None or self.clock() >= deadline:
                return line
            time.sleep(0)

    def purge(self):
        """ discards any partially received line and any input not yet read. """
        with self.lock:
            self._pending = ""
            self.conduit.discard_input()

    def close(self):
        with self.lock:
            self.conduit.close()

    def _read_attempt(self):
        read = self.conduit.input.read
        data = read(1)
        while data:
            c = data.decode(self.encoding, errors='replace')
            if c == self.terminator:
                line, self._pending = self._pending, ""
                return line.rstrip('\r')
            self._pending += c
            data = read(1)
        return None

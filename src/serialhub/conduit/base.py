"""
Byte streams to and from the controller.
"""
from abc import ABC, abstractmethod
from io import IOBase


class Conduit(ABC):
    """
    The two byte streams connecting the hub to a controller.

    read(n) on the input may return fewer than n bytes, or none, when nothing arrives within
    the conduit's own read timeout. The hub builds lines from those partial reads.
    """

    @property
    @abstractmethod
    def input(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError

    @property
    def port(self):
        """ a name for the other end, used in log messages """
        return type(self).__name__

    def discard_input(self):
        """ drops input that has arrived but has not been read. Conduits without an input buffer do nothing. """

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, self.port)


class StreamConduit(Conduit):
    """ a conduit over file-like objects. A single stream serves as both input and output. """

    def __init__(self, read, write=None, port="stream"):
        self._input = read
        self._output = write if write is not None else read
        self._port = port
        self._closed = False

    @property
    def input(self):
        return self._input

    @property
    def output(self):
        return self._output

    @property
    def port(self):
        return self._port

    @property
    def is_open(self):
        return not self._closed

    def close(self):
        if self._closed:
            return
        self._closed = True
        for stream in {id(s): s for s in (self._input, self._output)}.values():
            stream.close()

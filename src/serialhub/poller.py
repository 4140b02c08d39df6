"""
Reconciles the asynchronous answers of the controller with the busy state of the devices.
"""
import logging

from serialhub.errors import ErrorReporter
from serialhub.protocol.background import PeriodicWorker
from serialhub.router import CommandRouter
from serialhub.support.interval import PeriodicInterval

logger = logging.getLogger(__name__)


class BusyPoller(PeriodicWorker):
    """
    Once per tick, reads a line from the controller when a device is busy, or when the keep-alive
    interval has passed since the last read. When no line arrives, the first busy device past its
    timeout is released and reported as lost.

    :param tick_interval: seconds between ticks
    :param keep_alive_interval: seconds between reads while no device is busy
    :param read_timeout: seconds to wait for a line on each read
    """

    def __init__(self, router: CommandRouter, reporter: ErrorReporter, tick_interval=0.5,
                 keep_alive_interval=300.0, read_timeout=0.1):
        super().__init__(tick_interval, name="serialhub-poller")
        self.router = router
        self.transport = router.transport
        self.reporter = reporter
        self.read_timeout = read_timeout
        self.keep_alive = PeriodicInterval(keep_alive_interval * 1000, router.now())

    def work(self):
        self.tick()

    def tick(self):
        """
        Runs one poll.
        :return: the line handled, or None
        """
        busy = self.router.busy_devices()
        now = self.router.now()
        if not busy and self.keep_alive(now) > 0:
            return None
        self.keep_alive.restart(now)
        line = self.transport.receive_and_wait(self.read_timeout)
        if line is None:
            self.check_timeouts(busy, self.router.now())
        else:
            self.router.responses.handle(line)
        return line

    def check_timeouts(self, busy, now):
        """
        Releases the first device that has timed out.
        :return: the device timed out, or None
        """
        for device in busy:
            if device.timed_out(now):
                logger.info("%s timed out after %d ms", device.name, now - device.last_command_time)
                device.busy = False
                self.reporter.report_timeout(device.name)
                return device
        return None

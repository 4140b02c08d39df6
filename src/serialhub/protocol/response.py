"""
Interprets the lines the controller sends back, solicited or not.

A response line has three fields, <device>,<command>,<status>[,<value>...].
The status is one of the ErrorCodes: ok and busy update the busy flag of the device,
anything else is an error reported by the controller.
"""
import logging

from serialhub.errors import ErrorCodes
from serialhub.protocol.reserved import Separators, default_separators

logger = logging.getLogger(__name__)


class ResponseHandler:
    """
    Dispatches response lines to the router.
    :param router: the CommandRouter that owns the devices and accepts the values
    """

    def __init__(self, router, separators: Separators=default_separators):
        self.router = router
        self.separators = separators

    @property
    def reporter(self):
        return self.router.reporter

    def handle(self, line, update_busy=True):
        """
        Handles one line received from the controller.
        :param line: the line, without its terminator
        :param update_busy: when False, the busy state of the device is left unchanged
        :return: the outcome, as an ErrorCodes value
        """
        fields = line.split(self.separators.inbound, 2)
        if len(fields) != 3:
            return self.reporter.report(ErrorCodes.string_not_recognized, line)
        device_name, command, rest = fields
        device = self.router.device(device_name)
        if device is None:
            return self.reporter.report(ErrorCodes.device_not_recognized, line)

        status_text, *values = rest.split(self.separators.within)
        try:
            status = int(status_text)
        except ValueError:
            return self.reporter.report(ErrorCodes.string_not_recognized, line)

        if status == ErrorCodes.ok:
            if update_busy:
                device.busy = False
        elif status == ErrorCodes.busy:
            if update_busy:
                device.busy = True
                device.stamp(self.router.now())
        else:
            if update_busy:
                device.busy = False
            return self.reporter.report(status, line)

        if values:
            return self.router.route_incoming(device_name, command, values)
        return ErrorCodes.ok

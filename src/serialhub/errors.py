"""
Error codes, exceptions and the last-error reporter shared by the hub components.

Wire-level outcomes are integer codes, so that codes reported by the controller
and codes detected locally live in one space. Failures of caller-initiated
operations are raised as HubError subclasses carrying the same codes.
"""
import logging
import threading

from serialhub.support.events import ErrorReportedEvent, EventSource

logger = logging.getLogger(__name__)


class ErrorCodes:
    """ status codes used on the wire and reported locally. """
    ok = 0
    busy = 1

    # reported by the controller
    controller_device_not_recognized = 2
    controller_command_not_recognized = 3
    controller_value_not_allowed = 4
    controller_timeout = 5

    # detected by the hub
    version_mismatch = 101
    lost_communication = 102
    string_not_recognized = 103
    device_not_recognized = 104
    command_not_recognized = 105
    value_not_allowed = 106
    no_such_method = 107
    unsupported_command = 108


error_templates = {
    ErrorCodes.version_mismatch: "Version number specified by the controller is not supported",
    ErrorCodes.lost_communication: "Lost communication with the controller",
    ErrorCodes.string_not_recognized: "Unable to parse string returned by the controller",
    ErrorCodes.device_not_recognized: "Device was not recognized",
    ErrorCodes.command_not_recognized: "Device command was not recognized",
    ErrorCodes.value_not_allowed: "Device command value was not recognized",
    ErrorCodes.no_such_method: "Device does not define the method",
    ErrorCodes.unsupported_command: "Device does not support the method",
    ErrorCodes.controller_device_not_recognized: "Device was not recognized by the controller",
    ErrorCodes.controller_command_not_recognized: "Device command was not recognized by the controller",
    ErrorCodes.controller_value_not_allowed: "Device command value not allowed by the controller",
    ErrorCodes.controller_timeout: "Controller reported timeout",
}

no_error_description = "none"


def describe_error(code, context):
    """
    >>> describe_error(102, 'Shutter-1')
    'Serial hub error: Lost communication with the controller (Shutter-1); error code 102'
    >>> describe_error(77, 'x')
    'Serial hub error: Unknown error (x); error code 77'
    """
    template = error_templates.get(code, "Unknown error")
    return "Serial hub error: %s (%s); error code %d" % (template, context, code)


def device_context(device_name, command, values):
    """ renders the originating device, command and values of a rejected update.
    >>> device_context('Stage-1', 'Move', ['1', '2'])
    'Stage-1,Move,1,2'
    """
    return ",".join([device_name, command] + [str(v) for v in values])


class HubError(Exception):
    """ Indicates an error condition with the hub or one of its devices. """
    code = None

    def __init__(self, message=None, code=None):
        super().__init__(message)
        if code is not None:
            self.code = code


class HubNotInitializedError(HubError):
    """ The hub has not discovered its devices yet. """


class PortChangeError(HubError):
    """ The serial port cannot be changed once the hub is initialized. """


class DeviceNotFoundError(HubError):
    """ No operable device exists with the given name. """
    code = ErrorCodes.device_not_recognized


class NoSuchMethodError(HubError):
    """ The device description does not map the method to a wire command. """
    code = ErrorCodes.no_such_method


class UnsupportedCommandError(HubError):
    """ The controller declared the method as unsupported for the device. """
    code = ErrorCodes.unsupported_command


class PropertyError(HubError):
    """ The property does not exist or cannot be changed. """


class PropertyValueError(PropertyError, ValueError):
    """ The value is not allowed for the property. """
    code = ErrorCodes.value_not_allowed


class ErrorReporter:
    """
    Keeps the last error code and its description, logs each report and notifies
    observers with an ErrorReportedEvent.
    """

    def __init__(self, events: EventSource=None, log=logger):
        self.events = events if events is not None else EventSource()
        self.logger = log
        self._lock = threading.Lock()
        self._last_error = ErrorCodes.ok
        self._description = no_error_description

    @property
    def last_error(self):
        return self._last_error

    @property
    def description(self):
        return self._description

    def report(self, code, context):
        """
        Records an error.
        :param code: the error code
        :param context: text identifying what the error relates to
        :return: the code, unchanged
        """
        description = describe_error(code, context)
        self.logger.error(description)
        with self._lock:
            self._last_error = code
            self._description = description
        self.events.fire(ErrorReportedEvent(code, description))
        return code

    def report_for_device(self, device_name, command, values, code):
        return self.report(code, device_context(device_name, command, values))

    def report_timeout(self, device_name):
        return self.report(ErrorCodes.lost_communication, device_name)

    def reset(self):
        """ clears the last error. """
        with self._lock:
            self._last_error = ErrorCodes.ok
            self._description = no_error_description
        self.events.fire(ErrorReportedEvent(ErrorCodes.ok, no_error_description))

import unittest
from unittest.mock import Mock

from hamcrest import assert_that, calling, contains_string, equal_to, has_item, is_, raises

from serialhub.devices import create_device
from serialhub.errors import DeviceNotFoundError, ErrorCodes, ErrorReporter, NoSuchMethodError, \
    UnsupportedCommandError
from serialhub.protocol.parser import DescriptionParser
from serialhub.protocol.parser_test import device_list, shutter_lines
from serialhub.protocol.transport import LineTransport
from serialhub.protocol.transport_test import FakeControllerConduit
from serialhub.protocol.values import FloatValue, IntegerValue, StringValue
from serialhub.registry import DeviceRegistry
from serialhub.router import CommandRouter
from serialhub.support.events import BusyChangedEvent, EventSource, PropertyChangedEvent


class FakeClock:
    """ a clock in milliseconds that only moves when told to. """

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


def build_router(lines=device_list, clock=None, pre_init_timeout=0.01):
    """ builds a router with the devices described by the lines, talking to a fake controller. """
    conduit = FakeControllerConduit()
    transport = LineTransport(conduit)
    registry = DeviceRegistry(transport.lock)
    registry.replace(DescriptionParser().parse_all(lines))
    events = EventSource()
    router = CommandRouter(registry, transport, ErrorReporter(events), events,
                           clock=clock if clock is not None else FakeClock(), pre_init_timeout=pre_init_timeout)
    for description in registry:
        device = create_device(description, router)
        if device is not None:
            router.add_device(device)
    router.conduit = conduit
    return router


def property_values(registry):
    return [[p.value for p in d.properties] for d in registry]


class RouteIncomingTest(unittest.TestCase):

    def setUp(self):
        self.sut = build_router()
        self.registry = self.sut.registry
        self.listener = Mock()
        self.sut.events += self.listener

    def value(self, device, name):
        return self.registry.description(device).property(name).value

    def test_integer_boundaries(self):
        for value in ("0", "10"):
            assert_that(self.sut.route_incoming("Shutter-1", "PW", [value]), is_(ErrorCodes.ok))
            assert_that(self.value("Shutter-1", "Power"), is_(IntegerValue(int(value))))
        for value in ("-1", "11"):
            assert_that(self.sut.route_incoming("Shutter-1", "PW", [value]), is_(ErrorCodes.value_not_allowed))
            assert_that(self.value("Shutter-1", "Power"), is_(IntegerValue(10)))

    def test_same_value_twice_gives_the_same_outcome(self):
        first = self.sut.route_incoming("Stage-1", "SP", ["2.5"])
        stored = self.value("Stage-1", "Speed")
        second = self.sut.route_incoming("Stage-1", "SP", ["2.5"])
        assert_that((first, second), is_((ErrorCodes.ok, ErrorCodes.ok)))
        assert_that(self.value("Stage-1", "Speed"), is_(stored))
        assert_that(stored, is_(FloatValue(2.5)))

    def test_unparsable_number_is_not_allowed(self):
        assert_that(self.sut.route_incoming("Shutter-1", "PW", ["5.5"]), is_(ErrorCodes.value_not_allowed))
        assert_that(self.sut.route_incoming("Stage-1", "SP", ["fast"]), is_(ErrorCodes.value_not_allowed))

    def test_missing_value_is_not_allowed(self):
        assert_that(self.sut.route_incoming("Shutter-1", "PW", []), is_(ErrorCodes.value_not_allowed))

    def test_string_must_be_allowed(self):
        assert_that(self.sut.route_incoming("State-1", "LB", ["Green"]), is_(ErrorCodes.ok))
        assert_that(self.value("State-1", "Label"), is_(StringValue("Green")))
        assert_that(self.sut.route_incoming("State-1", "LB", ["Purple"]), is_(ErrorCodes.value_not_allowed))

    def test_accepted_value_is_notified(self):
        self.sut.route_incoming("Generic-1", "GN", ["4"])
        self.listener.assert_called_once_with(PropertyChangedEvent("Generic-1", "Gain", IntegerValue(4)))

    def test_unknown_command_leaves_registry_unchanged(self):
        before = property_values(self.registry)
        assert_that(self.sut.route_incoming("Shutter-1", "ZZZ", ["1"]), is_(ErrorCodes.command_not_recognized))
        assert_that(property_values(self.registry), is_(equal_to(before)))
        assert_that(self.sut.reporter.description, contains_string("(Shutter-1,ZZZ,1)"))

    def test_rejected_value_reports_device_command_and_values(self):
        self.sut.route_incoming("XYStage-1", "MV", ["10", "99"])
        assert_that(self.sut.reporter.last_error, is_(ErrorCodes.value_not_allowed))
        assert_that(self.sut.reporter.description, contains_string("(XYStage-1,MV,10,99)"))

    def test_unknown_device(self):
        assert_that(self.sut.route_incoming("Shutter-9", "SO", ["1"]), is_(ErrorCodes.device_not_recognized))

    def test_timeout_command_updates_timeout_and_stamp(self):
        self.sut.clock.advance(500)
        assert_that(self.sut.route_incoming("Shutter-1", "Timeout", ["3.5"]), is_(ErrorCodes.ok))
        device = self.sut.device("Shutter-1")
        assert_that(device.timeout, is_(3500.0))
        assert_that(device.last_command_time, is_(1500.0))

    def test_timeout_command_bypasses_validation(self):
        assert_that(self.sut.route_incoming("State-1", "Timeout", ["-1"]), is_(ErrorCodes.ok))

    def test_timeout_command_with_bad_value(self):
        assert_that(self.sut.route_incoming("State-1", "Timeout", ["soon"]), is_(ErrorCodes.value_not_allowed))

    def test_confirmed_method_updates_device(self):
        assert_that(self.sut.route_incoming("Stage-1", "Move", ["12.5"]), is_(ErrorCodes.ok))
        assert_that(self.value("Stage-1", "Position"), is_(FloatValue(12.5)))
        assert_that(self.sut.device("Stage-1").get_position_um(), is_(12.5))
        self.listener.assert_called_once_with(PropertyChangedEvent("Stage-1", "Position", FloatValue(12.5)))

    def test_confirmed_method_value_outside_limits(self):
        assert_that(self.sut.route_incoming("Stage-1", "Move", ["101"]), is_(ErrorCodes.value_not_allowed))
        assert_that(self.value("Stage-1", "Position"), is_(FloatValue(0.0)))

    def test_confirmed_shutter_state(self):
        assert_that(self.sut.route_incoming("Shutter-1", "SO", ["1"]), is_(ErrorCodes.ok))
        assert_that(self.sut.device("Shutter-1").get_open(), is_(True))
        assert_that(self.sut.route_incoming("Shutter-1", "SO", ["2"]), is_(ErrorCodes.value_not_allowed))

    def test_answer_to_method_without_confirmed_value(self):
        sut = build_router(lines=[line.replace("fire,unsupported", "fire,FI") for line in shutter_lines])
        shutter = sut.device("Shutter-1")
        shutter.fire(0.5)
        assert_that(sut.conduit.written_lines(), is_(["Shutter-1,FI,0.5"]))
        assert_that(sut.responses.handle("Shutter-1,FI,0,0.5"), is_(ErrorCodes.ok))
        assert_that(sut.reporter.last_error, is_(ErrorCodes.ok))
        assert_that(shutter.busy, is_(False))

    def test_selector_methods_are_not_matched(self):
        sut = build_router(lines=["Name=State-1", "Cmd=reset,RS", "PropIntAct=State,0,false,ST,false,0|3"])
        assert_that(sut.route_incoming("State-1", "RS", ["0"]), is_(ErrorCodes.command_not_recognized))

    def test_unlisted_string_is_not_allowed(self):
        sut = build_router(lines=["Name=Generic-1", "PropStrAct=Label,,false,LB,false,"])
        assert_that(sut.route_incoming("Generic-1", "LB", ["anything"]), is_(ErrorCodes.value_not_allowed))
        assert_that(sut.registry.description("Generic-1").property("Label").value, is_(StringValue("")))


class RouteOutgoingTest(unittest.TestCase):

    def setUp(self):
        self.sut = build_router()
        self.conduit = self.sut.conduit
        self.listener = Mock()
        self.sut.events += self.listener

    def test_sends_line_and_marks_busy(self):
        self.sut.clock.advance(250)
        line = self.sut.route_outgoing("XYStage-1", "set-position-um", [1.5, -2.0])
        assert_that(line, is_("XYStage-1,MV,1.5,-2.0"))
        assert_that(self.conduit.written_lines(), is_(["XYStage-1,MV,1.5,-2.0"]))
        device = self.sut.device("XYStage-1")
        assert_that(device.busy, is_(True))
        assert_that(device.last_command_time, is_(1250.0))
        self.listener.assert_called_once_with(BusyChangedEvent("XYStage-1", True))

    def test_no_such_method(self):
        assert_that(calling(self.sut.route_outgoing).with_args("State-1", "home", [0]), raises(NoSuchMethodError))
        assert_that(self.sut.reporter.last_error, is_(ErrorCodes.no_such_method))
        assert_that(self.conduit.written(), is_(""))

    def test_unsupported(self):
        assert_that(calling(self.sut.route_outgoing).with_args("XYStage-1", "stop", [0]),
                    raises(UnsupportedCommandError))
        assert_that(self.sut.device("XYStage-1").busy, is_(False))

    def test_unknown_device(self):
        assert_that(calling(self.sut.route_outgoing).with_args("Laser-1", "fire", [1]), raises(DeviceNotFoundError))

    def test_convert_method_to_command(self):
        assert_that(self.sut.convert_method_to_command("Shutter-1", "set-open"), is_("SO"))
        assert_that(self.sut.convert_method_to_command("Shutter-1", "get-open"), is_("cached"))

    def test_format_command_uses_separators(self):
        assert_that(self.sut.format_command("Shutter-1", "SO", [True]), is_("Shutter-1,SO,1"))

    def test_busy_devices_in_registry_order(self):
        for name in ("XYStage-1", "Shutter-1"):
            self.sut.device(name).initialize()
        self.sut.route_outgoing("XYStage-1", "home", [0])
        self.sut.route_outgoing("Shutter-1", "set-open", [True])
        assert_that([d.name for d in self.sut.busy_devices()], is_(["Shutter-1", "XYStage-1"]))

    def test_busy_devices_are_initialized(self):
        self.sut.device("Shutter-1").initialize()
        self.sut.route_outgoing("XYStage-1", "home", [0])
        self.sut.route_outgoing("Shutter-1", "set-open", [True])
        assert_that([d.name for d in self.sut.busy_devices()], is_(["Shutter-1"]))


class SendActionTest(unittest.TestCase):

    def setUp(self):
        self.sut = build_router()
        self.conduit = self.sut.conduit
        self.description = self.sut.registry.description("Stage-1")

    def test_action_marks_busy(self):
        code = self.sut.send_action("Stage-1", self.description.property("Speed"), FloatValue(3.0))
        assert_that(code, is_(ErrorCodes.ok))
        assert_that(self.conduit.written_lines(), is_(["Stage-1,SP,3.0"]))
        assert_that(self.sut.device("Stage-1").busy, is_(True))

    def test_pre_init_waits_for_answer_and_leaves_busy_alone(self):
        self.conduit.feed("Stage-1,UN,0,mm")
        code = self.sut.send_action("Stage-1", self.description.property("Units"), StringValue("mm"))
        assert_that(code, is_(ErrorCodes.ok))
        assert_that(self.conduit.written_lines(), has_item("Stage-1,UN,mm"))
        assert_that(self.description.property("Units").value, is_(StringValue("mm")))
        assert_that(self.sut.device("Stage-1").busy, is_(False))

    def test_pre_init_without_answer_is_lost_communication(self):
        code = self.sut.send_action("Stage-1", self.description.property("Units"), StringValue("mm"))
        assert_that(code, is_(ErrorCodes.lost_communication))

    def test_pre_init_error_answer(self):
        self.conduit.feed("Stage-1,UN,4")
        code = self.sut.send_action("Stage-1", self.description.property("Units"), StringValue("mm"))
        assert_that(code, is_(ErrorCodes.controller_value_not_allowed))

    def test_pre_init_skips_answers_of_other_devices(self):
        self.sut.route_outgoing("XYStage-1", "set-position-um", [1.0, 2.0])
        self.conduit.feed("XYStage-1,MV,0,1.0,2.0", "Stage-1,UN,4")
        code = self.sut.send_action("Stage-1", self.description.property("Units"), StringValue("mm"))
        assert_that(code, is_(ErrorCodes.controller_value_not_allowed))
        xy_stage = self.sut.device("XYStage-1")
        assert_that(xy_stage.busy, is_(False))
        assert_that(xy_stage.get_position_um(), is_((1.0, 2.0)))
        assert_that(self.description.property("Units").value, is_(StringValue("um")))

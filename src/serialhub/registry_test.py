import unittest
from unittest.mock import MagicMock

from hamcrest import assert_that, contains_string, is_, none

from serialhub.protocol.parser import DescriptionParser
from serialhub.protocol.parser_test import device_list, generic_lines, shutter_lines
from serialhub.protocol.transport import LineTransport
from serialhub.protocol.transport_test import FakeControllerConduit
from serialhub.protocol.values import IntegerValue
from serialhub.registry import DeviceRegistry, read_device_list


class ReadDeviceListTest(unittest.TestCase):

    def setUp(self):
        self.conduit = FakeControllerConduit()
        self.transport = LineTransport(self.conduit)

    def test_exchange(self):
        self.conduit.feed(*(generic_lines + ["DeviceListEnd"]))
        assert_that(list(read_device_list(self.transport, 0.01)), is_(generic_lines))
        assert_that(self.conduit.written_lines(), is_(["DeviceListStart"] + ["DeviceListContinue"] * 3))

    def test_ends_when_controller_is_silent(self):
        self.conduit.feed(*generic_lines)
        assert_that(list(read_device_list(self.transport, 0.01)), is_(generic_lines))

    def test_nothing_to_discover(self):
        assert_that(list(read_device_list(self.transport, 0.01)), is_([]))
        assert_that(self.conduit.written_lines(), is_(["DeviceListStart"]))


class DeviceRegistryTest(unittest.TestCase):

    def setUp(self):
        self.parser = DescriptionParser()
        self.sut = DeviceRegistry()

    def test_populate(self):
        conduit = FakeControllerConduit()
        conduit.feed(*(device_list + ["DeviceListEnd"]))
        result = self.sut.populate(LineTransport(conduit), self.parser, 0.01)
        assert_that([d.name for d in result], is_(["Shutter-1", "Stage-1", "XYStage-1", "State-1", "Generic-1"]))
        assert_that(len(self.sut), is_(5))
        assert_that(self.sut.index_of("XYStage-1"), is_(2))

    def test_populate_empty(self):
        result = self.sut.populate(LineTransport(FakeControllerConduit()), self.parser, 0.01)
        assert_that(result, is_([]))
        assert_that(len(self.sut), is_(0))

    def test_invalid_descriptions_keep_their_position(self):
        self.sut.replace(self.parser.parse_all(["Name=Camera-1"] + generic_lines))
        assert_that(self.sut.index_of("Generic-1"), is_(1))
        assert_that(self.sut[0].valid, is_(False))

    def test_duplicate_names(self):
        self.sut.replace(self.parser.parse_all(shutter_lines + shutter_lines))
        assert_that([d.valid for d in self.sut], is_([True, False]))
        assert_that(self.sut[1].invalid_reason, contains_string("Duplicate device name"))
        assert_that(self.sut.description("Shutter-1").valid, is_(True))

    def test_kind_of(self):
        self.sut.replace(self.parser.parse_all(device_list))
        assert_that(self.sut.kind_of("XYStage-1"), is_("XYStage"))
        assert_that(self.sut.kind_of("State-1"), is_("State"))
        assert_that(self.sut.kind_of("Laser-1"), is_(none()))

    def test_replace_value(self):
        self.sut.replace(self.parser.parse_all(device_list))
        self.sut.replace_value(0, 0, IntegerValue(7))
        assert_that(self.sut.property_value(0, 0), is_(IntegerValue(7)))

    def test_value_access_holds_the_lock(self):
        lock = MagicMock()
        sut = DeviceRegistry(lock)
        sut.replace(self.parser.parse_all(generic_lines))
        sut.property_value(0, 0)
        assert_that(lock.__enter__.call_count, is_(2))

    def test_clear(self):
        self.sut.replace(self.parser.parse_all(device_list))
        self.sut.clear()
        assert_that(list(self.sut), is_([]))

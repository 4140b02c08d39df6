"""
Parses the device list sent by the controller into DeviceDescription instances.

Each device is described by a block of lines, starting with its Name line:

    Name=Shutter-1
    Description=Laser shutter
    Timeout=2
    Cmd=set-open,SO
    PropIntAct=Power,5,false,PW,false,0|10
    PropStr=Mode,fast,false,fast|slow

A passive property has the words [key, name, value, read-only, limits].
An action property has [key, name, value, read-only, command, pre-init, limits].
The limits word holds the allowed values of a string property, or the lower and
upper limit of a numeric property. It is ignored for read-only properties.

Any error ends the parsing of the block, and the description is marked invalid
with the reason.
"""
import logging

from serialhub.protocol import reserved
from serialhub.protocol.description import DeviceDescription, DeviceKind, MethodDescription, PropertyDescription
from serialhub.protocol.reserved import Separators, default_separators
from serialhub.protocol.values import PropertyType, parse_value

logger = logging.getLogger(__name__)

property_types = {
    reserved.prop_str: (PropertyType.STRING, False),
    reserved.prop_int: (PropertyType.INTEGER, False),
    reserved.prop_float: (PropertyType.FLOAT, False),
    reserved.prop_str_act: (PropertyType.STRING, True),
    reserved.prop_int_act: (PropertyType.INTEGER, True),
    reserved.prop_float_act: (PropertyType.FLOAT, True),
}

property_keys = {v: k for k, v in property_types.items()}


class DescriptionError(ValueError):
    """ raised when a description line cannot be interpreted. """


def split_words(line, sep):
    """
    >>> split_words('a,b,,c', ',')
    ['a', 'b', '', 'c']
    >>> split_words('abc', ',')
    ['abc']
    """
    return line.split(sep)


def split_setup_line(line, separators: Separators=default_separators):
    """
    Splits a description line into its key followed by its words.
    >>> split_setup_line('Cmd=home,H')
    ['Cmd', 'home', 'H']
    >>> split_setup_line('garbage')
    ['garbage']
    """
    key, sep, rest = line.partition(separators.key)
    if not sep:
        return [line]
    return [key] + split_words(rest, separators.setup)


def is_name_line(line, separators: Separators=default_separators):
    return split_setup_line(line, separators)[0] == reserved.name


def group_blocks(lines, separators: Separators=default_separators):
    """
    Groups a sequence of description lines into one block per device. A block starts at each Name line.
    >>> list(group_blocks(['Name=Shutter-1', 'Timeout=1', 'Name=Generic-1']))
    [['Name=Shutter-1', 'Timeout=1'], ['Name=Generic-1']]
    """
    block = []
    for line in lines:
        if block and is_name_line(line, separators):
            yield block
            block = []
        block.append(line)
    if block:
        yield block


class DescriptionParser:
    """
    Builds DeviceDescription instances from blocks of description lines.
    """

    def __init__(self, separators: Separators=default_separators):
        self.separators = separators

    def parse_all(self, lines):
        """ parses a flat sequence of lines holding any number of device blocks. """
        return [self.parse(block) for block in group_blocks(lines, self.separators)]

    def parse(self, lines) -> DeviceDescription:
        """
        Parses the lines describing one device.
        :return: the description. When the lines are not valid, the description is marked invalid.
        """
        result = DeviceDescription()
        try:
            for line in lines:
                self._parse_line(result, line)
            if not result.name:
                raise DescriptionError("Missing device name")
        except DescriptionError as e:
            result.invalidate(str(e))
            logger.warning("invalid description for device '%s': %s", result.name, e)
        return result

    def _parse_line(self, result: DeviceDescription, line):
        words = split_setup_line(line, self.separators)
        if len(words) < 2:
            raise DescriptionError("Invalid string: %s" % line)
        key = words[0]
        if key == reserved.name:
            result.name = words[1]
            result.kind = DeviceKind.from_name(words[1])
            if result.kind is None:
                raise DescriptionError("Unable to determine device type for %s" % line)
        elif key == reserved.description:
            result.description = self.separators.setup.join(words[1:])
        elif key == reserved.timeout:
            result.timeout = self._parse_number(float, words[1], line) * 1000
        elif key == reserved.cmd:
            if len(words) != 3:
                raise DescriptionError("Invalid command: %s" % line)
            result.methods.append(MethodDescription(words[1], words[2]))
        elif key.startswith(reserved.prop):
            result.properties.append(self._parse_property(words, line))
        else:
            logger.debug("ignoring description line %s", line)

    def _parse_property(self, words, line) -> PropertyDescription:
        is_action = reserved.act in words[0]
        expected = 7 if is_action else 5
        if len(words) != expected:
            raise DescriptionError("Invalid property: %s" % line)
        try:
            value_type, _ = property_types[words[0]]
        except KeyError:
            raise DescriptionError("Unable to determine property type: %s" % line) from None

        name, initial, read_only = words[1], words[2], words[3]
        cmd_action = words[4] if is_action else None
        pre_init = self._parse_flag(words[5], "pre-initialization", line) if is_action else False
        extra = words[-1]

        is_read_only = self._parse_flag(read_only, "read-only", line)
        value = self._parse_number(lambda text: parse_value(value_type, text), initial, line)
        pd = PropertyDescription(name, value, is_action=is_action, is_read_only=is_read_only,
                                 is_pre_init=pre_init, cmd_action=cmd_action)
        if not is_read_only:
            limits = split_words(extra, self.separators.limits)
            if value_type == PropertyType.STRING:
                pd.allowed_values = limits if extra else []
            else:
                if len(limits) != 2:
                    raise DescriptionError("Unable to determine property limits: %s" % line)
                convert = int if value_type == PropertyType.INTEGER else float
                pd.lower_limit = self._parse_number(convert, limits[0], line)
                pd.upper_limit = self._parse_number(convert, limits[1], line)
            if not pd.accepts(value):
                raise DescriptionError("Initial value not allowed: %s" % line)
        return pd

    @staticmethod
    def _parse_flag(word, what, line):
        if word == reserved.wtrue:
            return True
        if word == reserved.wfalse:
            return False
        raise DescriptionError("Unable to determine %s status: %s" % (what, line))

    @staticmethod
    def _parse_number(convert, text, line):
        try:
            return convert(text)
        except ValueError:
            raise DescriptionError("Unable to parse number '%s': %s" % (text, line)) from None


class DescriptionWriter:
    """
    Writes a DeviceDescription as description lines. Parsing the lines gives back an equal description.
    """

    def __init__(self, separators: Separators=default_separators):
        self.separators = separators

    def lines(self, description: DeviceDescription):
        result = [self._line(reserved.name, description.name)]
        if description.description:
            result.append(self._line(reserved.description, description.description))
        if description.timeout:
            result.append(self._line(reserved.timeout, repr(description.timeout / 1000)))
        for m in description.methods:
            result.append(self._line(reserved.cmd, m.method, m.command))
        for p in description.properties:
            result.append(self._property_line(p))
        return result

    def _property_line(self, p: PropertyDescription):
        key = property_keys[(p.value_type, p.is_action)]
        words = [p.name, p.value.encode(), self._flag(p.is_read_only)]
        if p.is_action:
            words += [p.cmd_action, self._flag(p.is_pre_init)]
        words.append(self._limits(p))
        return self._line(key, *words)

    def _limits(self, p: PropertyDescription):
        if p.is_read_only:
            return ""
        if p.value_type == PropertyType.STRING:
            return self.separators.limits.join(p.allowed_values)
        return self.separators.limits.join(str(limit) for limit in (p.lower_limit, p.upper_limit))

    @staticmethod
    def _flag(value):
        return reserved.wtrue if value else reserved.wfalse

    def _line(self, key, *words):
        return key + self.separators.key + self.separators.setup.join(words)

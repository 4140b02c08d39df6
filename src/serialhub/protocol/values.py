"""
Typed property values.

A PropertyValue carries exactly one payload, of the type given by its variant.
encode() is the one canonical text form of a value, used on the wire, in
device descriptions and in log messages.
"""
from enum import Enum


class PropertyType(Enum):
    STRING = "String"
    INTEGER = "Integer"
    FLOAT = "Float"


class PropertyValue:
    type = None

    def __init__(self, value):
        self._value = self._coerce(value)

    @property
    def value(self):
        return self._value

    @classmethod
    def parse(cls, text: str) -> 'PropertyValue':
        """ parses the canonical text form. Raises ValueError when the text is not valid for the type. """
        raise NotImplementedError

    def encode(self) -> str:
        raise NotImplementedError

    def _coerce(self, value):
        return value

    def __eq__(self, other):
        return isinstance(other, PropertyValue) and self.type == other.type and self._value == other._value

    def __hash__(self):
        return hash((self.type, self._value))

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self._value)

    def __str__(self):
        return self.encode()


class StringValue(PropertyValue):
    type = PropertyType.STRING

    @classmethod
    def parse(cls, text):
        return cls(text)

    def encode(self):
        return self._value

    def _coerce(self, value):
        return str(value)


class IntegerValue(PropertyValue):
    """
    >>> IntegerValue.parse(' 12 ').encode()
    '12'
    """
    type = PropertyType.INTEGER

    @classmethod
    def parse(cls, text):
        return cls(int(text))

    def encode(self):
        return str(self._value)

    def _coerce(self, value):
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("%r is not an integer" % value)
        return int(value)


class FloatValue(PropertyValue):
    """
    >>> FloatValue.parse('12.5').encode()
    '12.5'
    >>> FloatValue(3).encode()
    '3.0'
    """
    type = PropertyType.FLOAT

    @classmethod
    def parse(cls, text):
        return cls(float(text))

    def encode(self):
        return repr(self._value)

    def _coerce(self, value):
        return float(value)


value_classes = {cls.type: cls for cls in (StringValue, IntegerValue, FloatValue)}


def value_class(value_type: PropertyType):
    return value_classes[value_type]


def parse_value(value_type: PropertyType, text: str) -> PropertyValue:
    """
    >>> parse_value(PropertyType.INTEGER, '10')
    IntegerValue(10)
    """
    return value_class(value_type).parse(text)


def make_value(value_type: PropertyType, value) -> PropertyValue:
    """ builds a value of the given type from text or a python value. """
    if isinstance(value, PropertyValue):
        value = value.value
    if isinstance(value, str) and value_type != PropertyType.STRING:
        return parse_value(value_type, value)
    return value_class(value_type)(value)


def encode_text(value) -> str:
    """ encodes a property value or plain python value for the wire.
    >>> encode_text(True)
    '1'
    >>> encode_text(2.5)
    '2.5'
    >>> encode_text(IntegerValue(4))
    '4'
    """
    if isinstance(value, PropertyValue):
        return value.encode()
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, int):
        return IntegerValue(value).encode()
    if isinstance(value, float):
        return FloatValue(value).encode()
    return str(value)

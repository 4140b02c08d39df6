"""
Mixins for plain value objects: equality and a readable str() from the instance attributes.
"""


class ValueEqualityMixin:
    """ instances of the same class are equal when their attributes are equal. Such objects are not hashable. """

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)

    __hash__ = None


class FieldsStrMixin:
    """ str() lists the attributes, with leading underscores dropped, in name order. """

    def __str__(self):
        fields = ", ".join("%s=%r" % (name.lstrip('_'), value) for name, value in sorted(vars(self).items()))
        return "%s(%s)" % (type(self).__name__, fields)

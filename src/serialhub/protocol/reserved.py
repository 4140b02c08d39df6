"""
Reserved words of the controller protocol.
"""


class Separators:
    """
    The separator characters, one per role. Each is a single character.

    :param key: separates the key of a description line from its words
    :param setup: separates the words of a description line
    :param limits: separates the limits or enumerated values of a property
    :param inbound: separates the fields of a line sent by the controller
    :param outbound: separates the fields of a line sent to the controller
    :param within: separates the values within the last field of a command line
    :param end: terminates every line
    """

    def __init__(self, key='=', setup=',', limits='|', inbound=',', outbound=',', within=',', end='\n'):
        self.key = key
        self.setup = setup
        self.limits = limits
        self.inbound = inbound
        self.outbound = outbound
        self.within = within
        self.end = end
        for role, value in self.__dict__.items():
            if len(value) != 1:
                raise ValueError("the %s separator must be a single character, not %r" % (role, value))

    def __repr__(self):
        return "Separators(%s)" % ", ".join("%s=%r" % item for item in sorted(self.__dict__.items()))


default_separators = Separators()

# description keys
name = "Name"
description = "Description"
timeout = "Timeout"
cmd = "Cmd"

# property keys
prop = "Prop"
act = "Act"
prop_str = "PropStr"
prop_int = "PropInt"
prop_float = "PropFloat"
prop_str_act = "PropStrAct"
prop_int_act = "PropIntAct"
prop_float_act = "PropFloatAct"

wtrue = "true"
wfalse = "false"

# method command sentinels
not_supported = "unsupported"
cached = "cached"

# discovery
device_list_start = "DeviceListStart"
device_list_continue = "DeviceListContinue"
device_list_end = "DeviceListEnd"

# logical methods
set_open = "set-open"
get_open = "get-open"
fire = "fire"
set_position_um = "set-position-um"
get_position_um = "get-position-um"
home = "home"
stop = "stop"

# properties with a meaning to the device kinds
state = "State"
label = "Label"
position = "Position"
position_x = "PositionX"
position_y = "PositionY"

"""
Talks to a serial-connected controller that describes its own devices.

At initialization the controller sends a list of device descriptions. Each device is one
of five shapes, a Shutter, a Selector, a LinearStage, an XYStage or a Generic property
bank, and exposes typed properties that a client reads and writes. Changes are sent to the
controller as command lines, and the controller confirms them asynchronously.

- hub: SerialHub, the entry point
- devices, properties: the operable devices and their properties
- registry, router, poller: discovery, command routing and busy tracking
- errors: error codes, exceptions and the last-error reporter
- protocol: the line protocol
- conduit, config: serial port access and configuration
"""

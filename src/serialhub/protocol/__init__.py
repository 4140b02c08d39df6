"""
The line protocol spoken with the controller.

- reserved: the reserved words and separator characters of the protocol
- values: typed property values and their canonical text encoding
- description: the device/property model built from discovery
- parser: turns discovery lines into device descriptions, and back
- transport: sends and receives terminated lines over a conduit
- response: interprets lines pushed by the controller
- background: runs a function repeatedly on a background thread
"""

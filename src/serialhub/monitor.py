"""
A helper for manual testing: discovers the devices of a controller and logs everything it reports.

    python -m serialhub.monitor [config directory]
"""
import logging
import sys
import time

from serialhub.config.settings import load_settings
from serialhub.hub import SerialHub

logger = logging.getLogger(__name__)


def log_hub_events(event):
    logger.info(event)


def describe(hub: SerialHub):
    for d in hub.registry:
        if d.valid:
            logger.info("%s (%s): %s", d.name, d.kind.label, d.description)
            for p in d.properties:
                logger.info("    %s = %s", p.name, p.value)
        else:
            logger.info("%s is invalid: %s", d.name, d.invalid_reason)


def monitor(directory=None):
    """ logs the devices of the controller, then the events of the hub. """
    logging.root.setLevel(logging.INFO)
    logging.root.addHandler(logging.StreamHandler())

    hub = SerialHub.open(load_settings(directory))
    hub.events += log_hub_events
    hub.initialize()
    describe(hub)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("stopping")
    finally:
        hub.close()


if __name__ == '__main__':
    monitor(sys.argv[1] if len(sys.argv) > 1 else None)

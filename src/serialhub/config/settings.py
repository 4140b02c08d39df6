"""
The settings of a hub, with their defaults. load_settings() overrides them from configuration files.
"""
import os

from serialhub.config.config import apply_section, load_config

config_name = 'serialhub'
schema_directory = os.path.dirname(__file__)


class SerialSettings:
    port = 'auto'
    baud = 115200
    read_timeout = 0.05


class DiscoverySettings:
    line_timeout = 1.0
    settle_time = 1.0


class PollerSettings:
    tick_interval = 0.5
    keep_alive_interval = 300.0
    read_timeout = 0.1


class ProtocolSettings:
    pre_init_timeout = 1.0


class HubSettings:
    sections = ('serial', 'discovery', 'poller', 'protocol')

    def __init__(self):
        self.serial = SerialSettings()
        self.discovery = DiscoverySettings()
        self.poller = PollerSettings()
        self.protocol = ProtocolSettings()

    def apply(self, conf):
        """ overrides the settings from the sections of a configuration. """
        for section in self.sections:
            apply_section(conf, [section], getattr(self, section))
        return self


def load_settings(directory=None) -> HubSettings:
    """
    Loads the hub settings from the configuration files in a directory.
    :param directory: the directory holding the configuration files, by default the current directory
    """
    conf = load_config(config_name, directory or os.getcwd(), schema_directory)
    return HubSettings().apply(conf)

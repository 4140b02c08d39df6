"""
Layered configuration files, loaded with configobj and validated against a schema.

For a configuration named "name" in a directory, these layers are merged, each overriding
the ones before it:

- name.default.cfg
- name.<os>.cfg, where os is windows, linux or osx
- ~/name.cfg
- name.cfg

The merged configuration is validated against name.schema.cfg, which also supplies the defaults.
Missing layers are skipped.
"""
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

extension = '.cfg'

os_names = {'darwin': 'osx'}


class ConfigValidationError(ConfigObjError):
    """ The merged configuration does not satisfy its schema. """

    def __init__(self, name, errors):
        self.errors = errors
        super().__init__("configuration %s is not valid: %s" % (name, "; ".join(errors)))


def os_name(system=None):
    """
    >>> os_name('Darwin')
    'osx'
    >>> os_name('Windows')
    'windows'
    """
    system = (system or platform.system()).lower()
    return os_names.get(system, system)


def user_config_file(name):
    return os.path.join(os.path.expanduser('~'), name + extension)


def layer_files(name, directory):
    """ the files making up a configuration, lowest precedence first. """
    local = os.path.join(directory, name)
    return [local + '.default' + extension,
            local + '.' + os_name() + extension,
            user_config_file(name),
            local + extension]


def read_layer(path):
    """
    Reads one configuration file. A missing file reads as an empty configuration.
    :raises ConfigObjError: when the file cannot be parsed. The message names the file.
    """
    if not os.path.exists(path):
        return ConfigObj()
    try:
        return ConfigObj(path, interpolation='Template')
    except ConfigObjError as e:
        raise type(e)("%s in %s" % (e, path)) from e


def describe_errors(config, result):
    """ turns the result of ConfigObj.validate() into one message per failed value. """
    errors = []
    for sections, key, error in flatten_errors(config, result):
        where = '/'.join(sections + [key if key is not None else ''])
        errors.append("%s: %s" % (where, error if error is not False else 'missing'))
    return errors or ['no values']


def load_config(name, directory, schema_directory=None) -> ConfigObj:
    """
    Merges the layers of a configuration and validates the result.
    :param directory: where the configuration files are
    :param schema_directory: where name.schema.cfg is, when not in directory
    :return: the merged configuration, with values converted to the types of the schema.
        Without a schema, values are left as text.
    :raises ConfigValidationError: when a value does not satisfy the schema
    """
    schema = os.path.join(schema_directory or directory, name + '.schema' + extension)
    config = ConfigObj(configspec=schema if os.path.exists(schema) else None)
    for path in layer_files(name, directory):
        config.merge(read_layer(path))
    if config.configspec is not None:
        result = config.validate(Validator(), preserve_errors=True)
        if result is not True:
            raise ConfigValidationError(name, describe_errors(config, result))
    return config


def apply_section(conf: Section, path, target):
    """
    Copies the values of a nested section onto the attributes of a target object.
    Only attributes the target already has are set. A missing section changes nothing.
    :param path: the names of the sections leading to the values
    """
    for name in path:
        conf = conf.get(name) if conf is not None else None
    if not conf:
        return target
    for key, value in conf.items():
        if hasattr(target, key):
            setattr(target, key, value)
    return target

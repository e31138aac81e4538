# This file is part of the TileArchive project.
# Copyright (C) 2026 TileArchive contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Loading of the archive configuration.
"""

import json
from collections import namedtuple

from tilearchive.config.validator import validate
from tilearchive.util.yaml import load_yaml_file, YAMLError

import logging
log = logging.getLogger('tilearchive.config')


class ConfigurationError(Exception):
    pass


_aliases = {
    'minZoom': 'min_zoom',
    'maxZoom': 'max_zoom',
    'minzoom': 'min_zoom',
    'maxzoom': 'max_zoom',
}

_defaults = dict(
    name='TileArchive',
    center=None,
    format='png',
    type='baselayer',
    attribution='',
    description='',
    version='1.1.0',
    author=None,
    batch_size=500,
    concurrency=4,
    timeout=30,
    retries=2,
    retry_delay=0,
    headers=None,
    user_agent=None,
)

_fields = ('scheme', 'bounds', 'min_zoom', 'max_zoom') + tuple(_defaults)


class ArchiveConfiguration(namedtuple('ArchiveConfiguration', _fields)):
    """
    Options of a single archive. Only `scheme`, `bounds`, `min_zoom`
    and `max_zoom` are required.
    """
    __slots__ = ()

    def __new__(cls, scheme, bounds, min_zoom, max_zoom, **kw):
        values = dict(_defaults)
        values.update(kw)
        return super(ArchiveConfiguration, cls).__new__(
            cls, scheme, bounds, min_zoom, max_zoom, **values)

    @classmethod
    def from_dict(cls, conf_dict):
        """
        Validate `conf_dict` and create a configuration from it.
        """
        conf_dict = normalize_keys(conf_dict)
        errors = validate(conf_dict)
        for error in errors:
            log.error(error)
        if errors:
            raise ConfigurationError('invalid configuration: %s' % '; '.join(errors))
        values = dict(conf_dict)
        for key in ('min_zoom', 'max_zoom', 'batch_size', 'concurrency', 'retries'):
            if key in values:
                values[key] = int(values[key])
        if isinstance(values['bounds'], str):
            values['bounds'] = _split_bounds(values['bounds'])
        return cls(**values)


def _split_bounds(bounds):
    """
    >>> _split_bounds('-27, 62, -11, 67.5')
    [-27.0, 62.0, -11.0, 67.5]
    """
    try:
        return [float(v) for v in bounds.split(',')]
    except ValueError:
        msg = 'bounds must be 4 comma separated numbers in root.bounds, got %r' % (bounds, )
        log.error(msg)
        raise ConfigurationError('invalid configuration: ' + msg)


def normalize_keys(conf_dict):
    """
    Return `conf_dict` with the camel case zoom keys renamed.

    >>> normalize_keys({'minZoom': 1, 'maxzoom': 4})
    {'min_zoom': 1, 'max_zoom': 4}
    """
    result = {}
    for key, value in conf_dict.items():
        key = _aliases.get(key, key)
        if key in result:
            raise ConfigurationError('duplicate configuration option %s' % key)
        result[key] = value
    return result


def load_configuration(filename, overrides=None):
    """
    Load the archive configuration from the YAML file `filename`.

    Values from `overrides` (e.g. command line options) replace values
    from the file; ``None`` values are ignored.
    """
    log.info('reading: %s', filename)
    try:
        conf_dict = load_yaml_file(filename)
    except (IOError, OSError) as ex:
        raise ConfigurationError('unable to read %s: %s' % (filename, ex))
    except YAMLError as ex:
        raise ConfigurationError(ex)
    conf_dict = normalize_keys(conf_dict)
    if overrides:
        conf_dict.update((k, v) for k, v in normalize_keys(overrides).items() if v is not None)
    log.debug('Loaded configuration file: %s', json.dumps(conf_dict, indent=2, default=str))
    return ArchiveConfiguration.from_dict(conf_dict)

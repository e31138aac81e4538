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
MBTiles archive metadata.
"""

from numbers import Real

from shapely.geometry import box

from tilearchive.client.http import auth_data_from_url
from tilearchive.coords import (
    CoordinateError,
    LatLng,
    latlng_bounds,
    validate_zoom,
)

import logging
log = logging.getLogger(__name__)

LAYER_TYPES = ('baselayer', 'overlay')
FORMATS = ('png', 'jpg')

DEFAULT_VERSION = '1.1.0'


class MetadataError(ValueError):
    pass


def _error(message):
    log.error(message)
    return MetadataError(message)


def format_number(value):
    """
    >>> format_number(62.0)
    '62'
    >>> format_number(-18.7)
    '-18.7'
    """
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return repr(value)


def bounds_to_center(bounds, zoom=None):
    """
    Centroid of the `bounds` as ``(lng, lat)`` or ``(lng, lat, zoom)``.

    >>> [round(v, 6) for v in bounds_to_center([-27, 62, -11, 67.5])]
    [-19.0, 64.75]
    """
    bounds = latlng_bounds(bounds)
    centroid = box(*bounds).centroid
    if zoom is None:
        return (centroid.x, centroid.y)
    return (centroid.x, centroid.y, validate_zoom(zoom))


def stringify_center(center):
    """
    Serialize a ``(lng, lat[, zoom])`` center for the metadata table.

    >>> stringify_center([-18.7, 65, 7])
    '-18.7,65,7'
    """
    if isinstance(center, str):
        try:
            center = [float(v) for v in center.split(',')]
        except ValueError:
            raise _error('metadata <center> must contain 2 or 3 numbers')
    center = list(center)
    if len(center) < 2 or len(center) > 3:
        raise _error('metadata <center> must contain 2 or 3 numbers')
    for value in center:
        if isinstance(value, bool) or not isinstance(value, Real):
            raise _error('metadata <center> must contain 2 or 3 numbers')
    try:
        LatLng(center[1], center[0], center[2] if len(center) == 3 else None)
    except CoordinateError as ex:
        raise _error('metadata <center> %s' % ex)
    return ','.join(format_number(v) for v in center)


def stringify_bounds(bounds):
    """
    Serialize ``(min_lng, min_lat, max_lng, max_lat)`` for the metadata table.

    >>> stringify_bounds([-27, 62, -11, 67.5])
    '-27,62,-11,67.5'
    """
    try:
        bounds = latlng_bounds(bounds)
    except CoordinateError as ex:
        raise _error('metadata <bounds> %s' % ex)
    return ','.join(format_number(v) for v in bounds)


class Metadata(object):
    """
    Metadata of a tile archive.

    `center` is computed from `bounds` when it is not given.
    """
    def __init__(self, name, bounds, min_zoom, max_zoom, center=None,
                 format='png', type='baselayer', version=DEFAULT_VERSION,
                 attribution='', description='', scheme=None, author=None):
        self.name = name
        self.bounds = bounds
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._center = center
        self.format = format
        self.type = type
        self.version = version
        self.attribution = attribution
        self.description = description
        self.scheme = scheme
        self.author = author

    @classmethod
    def from_config(cls, conf):
        return cls(
            name=conf.name, bounds=conf.bounds, center=conf.center,
            min_zoom=conf.min_zoom, max_zoom=conf.max_zoom,
            format=conf.format, type=conf.type, version=conf.version,
            attribution=conf.attribution, description=conf.description,
            scheme=conf.scheme, author=conf.author,
        )

    @property
    def center(self):
        if self._center is not None:
            return self._center
        return bounds_to_center(self.bounds)

    @property
    def public_scheme(self):
        """
        `scheme` without basic auth credentials.
        """
        url, (username, _) = auth_data_from_url(self.scheme)
        if username is None:
            return self.scheme
        return url

    def validate(self):
        """
        Raise :class:`MetadataError` naming the first invalid field.
        """
        for field in ('name', 'type', 'format', 'bounds', 'description', 'version'):
            if getattr(self, field) is None:
                raise _error('metadata <%s> is required' % field)
        for field in ('name', 'version'):
            value = getattr(self, field)
            if not isinstance(value, str) or not value:
                raise _error('metadata <%s> must be a non-empty string' % field)
        for field in ('attribution', 'description', 'scheme', 'author'):
            value = getattr(self, field)
            if value is not None and not isinstance(value, str):
                raise _error('metadata <%s> must be a string' % field)
        if self.type not in LAYER_TYPES:
            raise _error('metadata <type> must be one of %s' % ', '.join(LAYER_TYPES))
        if self.format not in FORMATS:
            raise _error('metadata <format> must be one of %s' % ', '.join(FORMATS))
        for field in ('min_zoom', 'max_zoom'):
            try:
                validate_zoom(getattr(self, field), name=field)
            except CoordinateError as ex:
                raise _error('metadata <%s> %s' % (field, ex))
        if self.min_zoom > self.max_zoom:
            raise _error('metadata <min_zoom> must be lower or equal to <max_zoom>')
        stringify_bounds(self.bounds)
        stringify_center(self.center)

    def rows(self):
        """
        Validated metadata as ``(name, value)`` rows. `scheme` and `author`
        are only included when set.
        """
        self.validate()
        rows = [
            ('name', self.name),
            ('type', self.type),
            ('version', self.version),
            ('attribution', self.attribution or ''),
            ('description', self.description),
            ('bounds', stringify_bounds(self.bounds)),
            ('center', stringify_center(self.center)),
            ('minzoom', str(int(self.min_zoom))),
            ('maxzoom', str(int(self.max_zoom))),
            ('format', self.format),
        ]
        if self.scheme:
            rows.append(('scheme', self.public_scheme))
        if self.author:
            rows.append(('author', self.author))
        return rows

    def __repr__(self):
        return '%s(%r, %r, %r, %r)' % (self.__class__.__name__, self.name,
                                       self.bounds, self.min_zoom, self.max_zoom)

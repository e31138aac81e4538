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
Coordinate value types.

All types are immutable tuples, so they unpack like the plain ``(x, y, z)``
tile coordinates used elsewhere::

    >>> tx, ty, zoom = Tile(2389, 5245, 13)
    >>> Google(2389, 2946, 13).y
    2946

Construction validates the domain constraints and raises
:class:`CoordinateError` naming the offending field.
"""

import math
from collections import namedtuple
from numbers import Integral, Real

import logging
log = logging.getLogger(__name__)

MIN_ZOOM = 0
MAX_ZOOM = 23

#: Latitude limit of the square spherical mercator world.
MAX_LATITUDE = 85.0511287798

EARTH_RADIUS = 6378137
#: Half the projected world circumference in meters.
ORIGIN_SHIFT = 2 * math.pi * EARTH_RADIUS / 2.0

# coordinates off by less than this are clamped without a warning
# (rounding noise at the world edges)
_CLAMP_TOLERANCE = 1e-6


class CoordinateError(ValueError):
    pass


class QuadKeyError(CoordinateError):
    pass


def _error(message, exc_class=CoordinateError):
    log.error(message)
    return exc_class(message)


def _number(name, value):
    if isinstance(value, bool) or not isinstance(value, Real):
        raise _error('[%s] must be a number, got %r' % (name, value))
    if math.isnan(value):
        raise _error('[%s] must be a number, got NaN' % name)
    return value


def validate_zoom(zoom, name='zoom'):
    """
    >>> validate_zoom(13)
    13
    >>> validate_zoom(24)
    Traceback (most recent call last):
    ...
    tilearchive.coords.CoordinateError: [zoom] must be within 0 to 23
    """
    if isinstance(zoom, bool) or not isinstance(zoom, Integral):
        if isinstance(zoom, Real) and float(zoom).is_integer():
            zoom = int(zoom)
        else:
            raise _error('[%s] must be an integer, got %r' % (name, zoom))
    if zoom < MIN_ZOOM or zoom > MAX_ZOOM:
        raise _error('[%s] must be within %d to %d' % (name, MIN_ZOOM, MAX_ZOOM))
    return int(zoom)


def _optional_zoom(zoom):
    if zoom is None:
        return None
    return validate_zoom(zoom)


def _tile_index(name, value, zoom):
    if isinstance(value, bool) or not isinstance(value, Integral):
        if isinstance(value, Real) and float(value).is_integer():
            value = int(value)
        else:
            raise _error('[%s] must be an integer, got %r' % (name, value))
    if value < 0 or value >= 2 ** zoom:
        raise _error('Illegal parameters for tile: [%s] %d outside of zoom level %d'
                     % (name, value, zoom))
    return int(value)


class LatLng(namedtuple('LatLng', 'lat lng zoom')):
    """
    Geographic point in WGS84 degrees with an optional zoom level.
    """
    __slots__ = ()

    def __new__(cls, lat, lng, zoom=None):
        lat = _number('lat', lat)
        lng = _number('lng', lng)
        if lat < -90 or lat > 90:
            raise _error('LatLng [lat] must be within -90 to 90 degrees')
        if lng < -180 or lng > 180:
            raise _error('LatLng [lng] must be within -180 to 180 degrees')
        return super(LatLng, cls).__new__(cls, lat, lng, _optional_zoom(zoom))

    def clamped(self):
        """
        Return this point with the latitude limited to the mercator
        band (+/- MAX_LATITUDE).
        """
        if -MAX_LATITUDE <= self.lat <= MAX_LATITUDE:
            return self
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, self.lat))
        log.warning('latitude %r outside of mercator range, clamped to %r', self.lat, lat)
        return self._replace(lat=lat)


class Meters(namedtuple('Meters', 'mx my zoom')):
    """
    Spherical mercator (EPSG:3857) point, clamped to the projected world.
    """
    __slots__ = ()

    def __new__(cls, mx, my, zoom=None):
        mx = _clamp_meters('mx', _number('mx', mx))
        my = _clamp_meters('my', _number('my', my))
        return super(Meters, cls).__new__(cls, mx, my, _optional_zoom(zoom))


def _clamp_meters(name, value):
    if -ORIGIN_SHIFT <= value <= ORIGIN_SHIFT:
        return value
    clamped = math.copysign(ORIGIN_SHIFT, value)
    if abs(value - clamped) > _CLAMP_TOLERANCE:
        log.warning('[%s] %r outside of the projected world, clamped to %r', name, value, clamped)
    return clamped


class Pixels(namedtuple('Pixels', 'px py zoom')):
    """
    Pixel coordinate within the pyramid of a zoom level.

    Values computed by the projection keep their fractional part, use
    :meth:`from_address` for integral pixel addresses.
    """
    __slots__ = ()

    def __new__(cls, px, py, zoom=None):
        return super(Pixels, cls).__new__(
            cls, _number('px', px), _number('py', py), _optional_zoom(zoom))

    @classmethod
    def from_address(cls, px, py, zoom=None):
        """
        Create an integral pixel address. Fractional values are floored.

        >>> Pixels.from_address(10.7, 3, 2)
        Pixels(px=10, py=3, zoom=2)
        """
        values = []
        for name, value in (('px', px), ('py', py)):
            value = _number(name, value)
            floored = int(math.floor(value))
            if floored != value:
                log.warning('[%s] %r is not an integral pixel, floored to %d', name, value, floored)
            values.append(floored)
        return cls(values[0], values[1], zoom)


class Tile(namedtuple('Tile', 'tx ty zoom')):
    """
    TMS tile address, the origin is bottom-left.
    """
    __slots__ = ()

    def __new__(cls, tx, ty, zoom):
        zoom = validate_zoom(zoom)
        return super(Tile, cls).__new__(
            cls, _tile_index('tx', tx, zoom), _tile_index('ty', ty, zoom), zoom)


class Google(namedtuple('Google', 'x y zoom')):
    """
    Google/XYZ tile address, the origin is top-left.
    """
    __slots__ = ()

    def __new__(cls, x, y, zoom):
        zoom = validate_zoom(zoom)
        return super(Google, cls).__new__(
            cls, _tile_index('x', x, zoom), _tile_index('y', y, zoom), zoom)


class Bounds(namedtuple('Bounds', 'min_lng min_lat max_lng max_lat')):
    """
    Geographic bounding box ``[minLng, minLat, maxLng, maxLat]``.
    Both corners are validated as :class:`LatLng`.
    """
    __slots__ = ()

    def __new__(cls, min_lng, min_lat, max_lng, max_lat):
        sw = LatLng(min_lat, min_lng)
        ne = LatLng(max_lat, max_lng)
        return super(Bounds, cls).__new__(cls, sw.lng, sw.lat, ne.lng, ne.lat)

    @property
    def corners(self):
        return (LatLng(self.min_lat, self.min_lng), LatLng(self.max_lat, self.max_lng))

    def clamped(self):
        """
        Return bounds with both latitudes limited to the mercator band.
        """
        sw, ne = (c.clamped() for c in self.corners)
        return Bounds(sw.lng, sw.lat, ne.lng, ne.lat)


def validate_bounds(bounds):
    """
    Check that `bounds` has exactly four numbers and return them as tuple.
    Strings are split at commas.

    >>> validate_bounds('20,-30,40,-10')
    (20.0, -30.0, 40.0, -10.0)
    >>> validate_bounds([1, 2, 3])
    Traceback (most recent call last):
    ...
    tilearchive.coords.CoordinateError: [bounds] must be an array with 4 numbers
    """
    if bounds is None:
        raise _error('[bounds] is required')
    if isinstance(bounds, str):
        try:
            bounds = [float(v) for v in bounds.split(',')]
        except ValueError:
            raise _error('[bounds] must be an array with 4 numbers')
    bounds = tuple(bounds)
    if len(bounds) != 4:
        raise _error('[bounds] must be an array with 4 numbers')
    return tuple(_number('bounds', v) for v in bounds)


def latlng_bounds(bounds):
    """
    Validate `bounds` and both of its corners.

    >>> latlng_bounds([-75, 44, -74, 45])
    Bounds(min_lng=-75, min_lat=44, max_lng=-74, max_lat=45)
    """
    if isinstance(bounds, Bounds):
        return bounds
    return Bounds(*validate_bounds(bounds))

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
Global (spherical) mercator projection and tile pyramid math.

Converts between WGS84 lat/lng, EPSG:3857 meters, pyramid pixels and
TMS/Google tile addresses and encodes Microsoft QuadKeys. TMS tiles have
their origin in the bottom-left corner, Google tiles in the top-left.

The order of the transformations (lat/lng -> meters -> pixels -> tile)
matters for the floating point results; the compositions below keep it.
"""

import math

from tilearchive.coords import (
    EARTH_RADIUS,
    MAX_LATITUDE,
    CoordinateError,
    QuadKeyError,
    LatLng,
    Meters,
    Pixels,
    Tile,
    Google,
    _error,
)

import logging
log = logging.getLogger(__name__)

WORLD_LATLNG_BOUNDS = (-180.0, -MAX_LATITUDE, 180.0, MAX_LATITUDE)


def _as(cls, value):
    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        return cls(**value)
    return cls(*value)


def _required_zoom(point):
    if point.zoom is None:
        raise _error('[zoom] required for %s' % type(point).__name__)
    return point.zoom


class GlobalMercator(object):
    """
    TMS Global Mercator pyramid.

    >>> mercator = GlobalMercator()
    >>> '%.5f' % mercator.resolution(0)
    '156543.03393'
    >>> mercator.tile_to_quadkey(Tile(2389, 5245, 13))
    '0302321010121'
    """

    def __init__(self, tile_size=256):
        self.tile_size = tile_size
        self.initial_resolution = 2 * math.pi * EARTH_RADIUS / self.tile_size
        self.origin_shift = 2 * math.pi * EARTH_RADIUS / 2.0

    def __repr__(self):
        return '%s(tile_size=%r)' % (self.__class__.__name__, self.tile_size)

    def resolution(self, zoom):
        """
        Resolution (meters/pixel) of `zoom`, measured at the equator.
        """
        return self.initial_resolution / math.pow(2, zoom)

    def lat_lng_to_meters(self, latlng):
        """
        Convert a WGS84 lat/lng to spherical mercator meters.
        Latitudes outside of the mercator band are clamped.
        """
        lat, lng, zoom = _as(LatLng, latlng).clamped()
        mx = lng * self.origin_shift / 180.0
        my = math.log(math.tan((90 + lat) * math.pi / 360.0)) / (math.pi / 180.0)
        my = my * self.origin_shift / 180.0
        return Meters(mx, my, zoom)

    def meters_to_lat_lng(self, meters):
        mx, my, zoom = _as(Meters, meters)
        lng = (mx / self.origin_shift) * 180.0
        lat = (my / self.origin_shift) * 180.0
        lat = 180 / math.pi * (2 * math.atan(math.exp(lat * math.pi / 180.0)) - math.pi / 2.0)
        return LatLng(lat, lng, zoom)

    def meters_to_pixels(self, meters):
        meters = _as(Meters, meters)
        zoom = _required_zoom(meters)
        res = self.resolution(zoom)
        px = (meters.mx + self.origin_shift) / res
        py = (meters.my + self.origin_shift) / res
        return Pixels(px, py, zoom)

    def pixels_to_meters(self, pixels):
        pixels = _as(Pixels, pixels)
        zoom = _required_zoom(pixels)
        res = self.resolution(zoom)
        mx = pixels.px * res - self.origin_shift
        my = pixels.py * res - self.origin_shift
        return Meters(mx, my, zoom)

    def pixels_to_tile(self, pixels):
        """
        Return the TMS tile covering the pixel. Tiles outside of the
        pyramid are limited to the first/last tile of the zoom level.
        """
        pixels = _as(Pixels, pixels)
        zoom = _required_zoom(pixels)
        if zoom == 0:
            return Tile(0, 0, 0)
        tx = int(math.ceil(pixels.px / float(self.tile_size))) - 1
        ty = int(math.ceil(pixels.py / float(self.tile_size))) - 1
        return Tile(self._limit(tx, zoom), self._limit(ty, zoom), zoom)

    def _limit(self, t, zoom):
        limit = 2 ** zoom - 1
        if t < 0:
            return 0
        if t > limit:
            return limit
        return t

    def meters_to_tile(self, meters):
        meters = _as(Meters, meters)
        if _required_zoom(meters) == 0:
            return Tile(0, 0, 0)
        return self.pixels_to_tile(self.meters_to_pixels(meters))

    def lat_lng_to_tile(self, latlng):
        latlng = _as(LatLng, latlng)
        if _required_zoom(latlng) == 0:
            return Tile(0, 0, 0)
        return self.pixels_to_tile(self.meters_to_pixels(self.lat_lng_to_meters(latlng)))

    def lat_lng_to_google(self, latlng):
        latlng = _as(LatLng, latlng)
        if _required_zoom(latlng) == 0:
            return Google(0, 0, 0)
        return self.tile_to_google(self.lat_lng_to_tile(latlng))

    def tile_to_bounds(self, tile):
        """
        Return the bounds of the TMS tile in mercator meters
        as ``(minx, miny, maxx, maxy)``.

        >>> bounds = GlobalMercator().tile_to_bounds(Tile(1, 1, 1))
        >>> [round(x, 2) for x in bounds]
        [0.0, 0.0, 20037508.34, 20037508.34]
        """
        tx, ty, zoom = _as(Tile, tile)
        ll = self.pixels_to_meters(
            Pixels.from_address(tx * self.tile_size, ty * self.tile_size, zoom))
        ur = self.pixels_to_meters(
            Pixels.from_address((tx + 1) * self.tile_size, (ty + 1) * self.tile_size, zoom))
        return (ll.mx, ll.my, ur.mx, ur.my)

    def tile_to_lat_lng_bounds(self, tile):
        """
        Return the bounds of the TMS tile in WGS84 degrees
        as ``(min_lng, min_lat, max_lng, max_lat)``.
        """
        tile = _as(Tile, tile)
        if tile.zoom == 0:
            return WORLD_LATLNG_BOUNDS
        mx1, my1, mx2, my2 = self.tile_to_bounds(tile)
        sw = self.meters_to_lat_lng(Meters(mx1, my1, tile.zoom))
        ne = self.meters_to_lat_lng(Meters(mx2, my2, tile.zoom))
        return (sw.lng, sw.lat, ne.lng, ne.lat)

    def google_bounds(self, google):
        return self.tile_to_bounds(self.google_to_tile(google))

    def google_lat_lng_bounds(self, google):
        return self.tile_to_lat_lng_bounds(self.google_to_tile(google))

    def tile_to_google(self, tile):
        """
        Flip a TMS tile to Google tile coordinates.

        >>> GlobalMercator().tile_to_google(Tile(2389, 5245, 13))
        Google(x=2389, y=2946, zoom=13)
        """
        tx, ty, zoom = _as(Tile, tile)
        if zoom == 0:
            return Google(0, 0, 0)
        return Google(tx, (2 ** zoom - 1) - ty, zoom)

    def google_to_tile(self, google):
        x, y, zoom = _as(Google, google)
        if zoom == 0:
            return Tile(0, 0, 0)
        return Tile(x, 2 ** zoom - y - 1, zoom)

    def tile_to_quadkey(self, tile):
        """
        Convert a TMS tile to a Microsoft QuadKey. Zoom 0 has no quadkey.
        """
        tile = _as(Tile, tile)
        if tile.zoom == 0:
            return ''
        return quadkey(self.tile_to_google(tile))

    def google_to_quadkey(self, google):
        return self.tile_to_quadkey(self.google_to_tile(google))

    def quadkey_to_google(self, key):
        """
        >>> GlobalMercator().quadkey_to_google('0302321010121')
        Google(x=2389, y=2946, zoom=13)
        """
        if not isinstance(key, str):
            raise _error('[quadkey] must be string', QuadKeyError)
        x = y = 0
        zoom = len(key)
        for i, digit in zip(range(zoom, 0, -1), key):
            mask = 1 << (i - 1)
            if digit == '0':
                pass
            elif digit == '1':
                x += mask
            elif digit == '2':
                y += mask
            elif digit == '3':
                x += mask
                y += mask
            else:
                raise _error('Invalid QuadKey digit sequence: invalid quadkey digit %r in %r'
                             % (digit, key), QuadKeyError)
        try:
            return Google(x, y, zoom)
        except CoordinateError:
            raise _error('Invalid QuadKey %r: more than 23 levels' % key, QuadKeyError)

    def quadkey_to_tile(self, key):
        return self.google_to_tile(self.quadkey_to_google(key))


def quadkey(google):
    """
    Encode Google/XYZ tile coordinates as QuadKey.

    >>> quadkey((0, 0, 1))
    '0'
    >>> quadkey((1, 0, 1))
    '1'
    >>> quadkey((1, 2, 2))
    '21'
    """
    x, y, z = google
    key = ''
    for i in range(z, 0, -1):
        digit = 0
        mask = 1 << (i - 1)
        if (x & mask) != 0:
            digit += 1
        if (y & mask) != 0:
            digit += 2
        key += str(digit)
    return key

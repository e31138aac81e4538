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
Enumeration of all tiles that cover a bounding box over a range of zoom levels.
"""

from collections import namedtuple
from itertools import islice

from tilearchive.coords import LatLng, MIN_ZOOM, MAX_ZOOM, latlng_bounds
from tilearchive.mercator import GlobalMercator
from tilearchive.tile import TileRecord

import logging
log = logging.getLogger(__name__)


class GridError(ValueError):
    pass


def _error(message):
    log.error(message)
    return GridError(message)


class GridLevel(namedtuple('GridLevel', 'zoom tile_rows tile_columns')):
    """
    Tile row (TMS) and column ranges of a single zoom level. Both ranges
    are ``(min, max)`` with inclusive ends.
    """
    __slots__ = ()

    @property
    def count(self):
        (min_row, max_row), (min_col, max_col) = self.tile_rows, self.tile_columns
        return (max_row - min_row + 1) * (max_col - min_col + 1)


def validate_grid(bounds, min_zoom, max_zoom, scheme):
    """
    Check the grid parameters and return them normalized.

    >>> validate_grid([-75, 44, -74, 45], 5, 3, 'http://a/{z}/{x}/{y}.png')
    Traceback (most recent call last):
    ...
    tilearchive.grid.GridError: Grid [min_zoom] must be lower or equal to [max_zoom]
    """
    for name, value in (('bounds', bounds), ('min_zoom', min_zoom),
                        ('max_zoom', max_zoom), ('scheme', scheme)):
        if value is None:
            raise _error('Grid [%s] is required' % name)
    for name, value in (('min_zoom', min_zoom), ('max_zoom', max_zoom)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise _error('Grid [%s] must be an integer, got %r' % (name, value))
    if min_zoom < MIN_ZOOM:
        raise _error('Grid [min_zoom] must be greater or equal to %d' % MIN_ZOOM)
    if max_zoom > MAX_ZOOM:
        raise _error('Grid [max_zoom] must be lower or equal to %d' % MAX_ZOOM)
    if min_zoom > max_zoom:
        raise _error('Grid [min_zoom] must be lower or equal to [max_zoom]')
    if not isinstance(scheme, str) or not scheme:
        raise _error('Grid [scheme] must be a non-empty URL template')
    return latlng_bounds(bounds), min_zoom, max_zoom, scheme


def build_grid_levels(bounds, min_zoom, max_zoom, mercator=None):
    """
    Return a :class:`GridLevel` for each zoom level from `min_zoom` to
    `max_zoom` (inclusive). Latitudes outside of the mercator band are
    clamped.

    >>> levels = build_grid_levels([-66.633234, 45.446628, -66.052350, 45.891202], 4, 5)
    >>> levels[0]
    GridLevel(zoom=4, tile_rows=(10, 10), tile_columns=(5, 5))
    """
    if mercator is None:
        mercator = GlobalMercator()
    sw, ne = latlng_bounds(bounds).clamped().corners
    levels = []
    for zoom in range(min_zoom, max_zoom + 1):
        t1 = mercator.lat_lng_to_tile(LatLng(sw.lat, sw.lng, zoom))
        t2 = mercator.lat_lng_to_tile(LatLng(ne.lat, ne.lng, zoom))
        levels.append(GridLevel(
            zoom,
            (min(t1.ty, t2.ty), max(t1.ty, t2.ty)),
            (min(t1.tx, t2.tx), max(t1.tx, t2.tx)),
        ))
    return levels


def count_grid(levels):
    """
    Total number of tiles in all `levels`.
    """
    return sum(level.count for level in levels)


def iter_grid(levels, scheme):
    """
    Yield a :class:`TileRecord` for each tile of the `levels`. Zoom levels,
    rows and columns are ascending, columns vary fastest.
    """
    total = count_grid(levels)
    if levels:
        log.info('grid started: %d tiles from zoom %d to %d',
                 total, levels[0].zoom, levels[-1].zoom)
    produced = 0
    for level in levels:
        min_row, max_row = level.tile_rows
        min_col, max_col = level.tile_columns
        for row in range(min_row, max_row + 1):
            for col in range(min_col, max_col + 1):
                produced += 1
                yield TileRecord.create(scheme, col, row, level.zoom)
    log.info('grid finished: %d tiles', produced)


def iter_grid_bulk(tiles, size):
    """
    Group `tiles` into lists of `size` tiles. The last list holds the
    remaining tiles and might be shorter.

    >>> [len(b) for b in iter_grid_bulk(range(7), 3)]
    [3, 3, 1]
    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise _error('Grid bulk size must be a positive integer, got %r' % (size, ))
    tiles = iter(tiles)
    while True:
        batch = list(islice(tiles, size))
        if not batch:
            return
        yield batch


class Grid(object):
    """
    Tiles of `bounds` from `min_zoom` to `max_zoom` for the tile URL `scheme`.

    The parameters are validated on construction. :meth:`tiles` and
    :meth:`tiles_bulk` return a new lazy enumeration on every call.

    >>> grid = Grid([-66.633234, 45.446628, -66.052350, 45.891202], 4, 7,
    ...             'http://tile.example.org/{z}/{x}/{y}.png')
    >>> grid.count == len(list(grid.tiles()))
    True
    """
    def __init__(self, bounds, min_zoom, max_zoom, scheme, tile_size=256, bulk=50000):
        self.bounds, self.min_zoom, self.max_zoom, self.scheme = validate_grid(
            bounds, min_zoom, max_zoom, scheme)
        self.mercator = GlobalMercator(tile_size=tile_size)
        self.bulk = bulk
        self.levels = build_grid_levels(self.bounds, self.min_zoom, self.max_zoom,
                                        mercator=self.mercator)
        self.count = count_grid(self.levels)

    def tiles(self):
        return iter_grid(self.levels, self.scheme)

    def tiles_bulk(self, size=None):
        return iter_grid_bulk(self.tiles(), size or self.bulk)

    def __len__(self):
        return self.count

    def __repr__(self):
        return '%s(%r, %d, %d, %r)' % (self.__class__.__name__, list(self.bounds),
                                       self.min_zoom, self.max_zoom, self.scheme)

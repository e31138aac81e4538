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
Tile archive in the MBTiles 1.1 layout.

Tiles are stored in two tables, ``map`` with the tile addresses and
``images`` with the tile data, both keyed by the tile id. The ``tiles``
view joins both tables.
"""

import os

from tilearchive.cache.sqlite import SQLiteStorage

import logging
log = logging.getLogger(__name__)

METADATA_COLUMNS = (
    ('name', 'TEXT PRIMARY KEY UNIQUE'),
    ('value', 'TEXT NOT NULL'),
)
MAP_COLUMNS = (
    ('tile_id', 'TEXT PRIMARY KEY UNIQUE'),
    ('zoom_level', 'INTEGER'),
    ('tile_column', 'INTEGER'),
    ('tile_row', 'INTEGER'),
)
IMAGES_COLUMNS = (
    ('tile_id', 'TEXT PRIMARY KEY UNIQUE'),
    ('tile_data', 'BLOB'),
)

UNIQUE_INDEXES = (
    ('metadata_name', 'metadata', ('name', )),
    ('map_tile_id', 'map', ('tile_id', )),
    ('map_tile', 'map', ('tile_row', 'tile_column', 'zoom_level')),
    ('images_tile_id', 'images', ('tile_id', )),
)

TILES_VIEW = """
    SELECT
        map.zoom_level AS zoom_level,
        map.tile_column AS tile_column,
        map.tile_row AS tile_row,
        images.tile_data AS tile_data
    FROM map
    JOIN images ON images.tile_id = map.tile_id
"""


class MBTilesArchive(object):
    """
    Read and write an MBTiles archive through a row `storage`
    (:class:`~tilearchive.cache.base.TileStorageBase`). A
    :class:`~tilearchive.cache.sqlite.SQLiteStorage` for `filename` is
    used when no storage is given.
    """
    def __init__(self, filename, storage=None, timeout=30, wal=False):
        self.filename = filename
        if storage is None:
            storage = SQLiteStorage(filename, timeout=timeout, wal=wal)
        self.storage = storage

    def ensure_tables(self):
        if not os.path.exists(self.filename):
            log.info('initializing MBTiles file %s', self.filename)
        self.storage.create_table('metadata', METADATA_COLUMNS)
        self.storage.create_table('map', MAP_COLUMNS)
        self.storage.create_table('images', IMAGES_COLUMNS)

    def build_indexes(self):
        """
        Create the unique indexes and the ``tiles`` view. Existing indexes,
        views and rows are kept.
        """
        self.ensure_tables()
        for name, table, columns in UNIQUE_INDEXES:
            self.storage.ensure_unique_index(table, columns, name=name)
        self.storage.create_view('tiles', TILES_VIEW)

    def update_metadata(self, rows):
        """
        Replace all metadata with `rows` (``(name, value)`` pairs).
        """
        self.ensure_tables()
        self.storage.replace_rows('metadata', [
            {'name': name, 'value': str(value)} for name, value in rows
        ])

    def metadata(self):
        return dict(
            (row['name'], row['value'])
            for row in self.storage.find_rows('metadata', columns=('name', 'value'))
        )

    def existing_tile_ids(self, tile_ids):
        """
        Return the subset of `tile_ids` with stored tile data.
        """
        tile_ids = list(tile_ids)
        if not tile_ids:
            return set()
        rows = self.storage.find_rows('images', {'tile_id': tile_ids}, columns=('tile_id', ))
        return set(row['tile_id'] for row in rows)

    def write_map(self, tiles):
        """
        Insert the ``map`` rows of the :class:`~tilearchive.tile.TileRecord`
        `tiles`.
        """
        return self.storage.bulk_insert('map', [_map_record(t) for t in tiles], replace=True)

    def store_tiles(self, tiles):
        """
        Store the ``(tile, data)`` pairs in ``images`` and ``map``.
        """
        tiles = list(tiles)
        if not tiles:
            return 0
        self.storage.bulk_insert('images', [
            {'tile_id': tile.tile_id, 'tile_data': data} for tile, data in tiles
        ], replace=True)
        self.write_map(tile for tile, _ in tiles)
        return len(tiles)

    def get_tile(self, zoom_level, tile_column, tile_row):
        """
        Return the data of the TMS tile or ``None``.
        """
        rows = self.storage.find_rows('tiles', {
            'zoom_level': zoom_level, 'tile_column': tile_column, 'tile_row': tile_row,
        }, columns=('tile_data', ))
        if not rows:
            return None
        return rows[0]['tile_data']

    def count_tiles(self):
        return self.storage.count_rows('images')

    def cleanup(self):
        self.storage.cleanup()

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.filename)


def _map_record(tile):
    return {
        'tile_id': tile.tile_id,
        'zoom_level': tile.zoom_level,
        'tile_column': tile.tile_column,
        'tile_row': tile.tile_row,
    }

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

import sqlite3

import pytest

from tilearchive.cache.base import StorageError
from tilearchive.cache.mbtiles import MBTilesArchive
from tilearchive.cache.sqlite import SQLiteStorage, _split_where
from tilearchive.tile import TileRecord

SCHEME = 'http://tiles.example.org/{z}/{x}/{y}.png'


def tile(col, row, zoom, scheme=SCHEME):
    return TileRecord.create(scheme, col, row, zoom)


def sqlite_master(filename, type):
    conn = sqlite3.connect(filename)
    try:
        cur = conn.execute('SELECT name FROM sqlite_master WHERE type = ?', (type, ))
        return set(row[0] for row in cur.fetchall())
    finally:
        conn.close()


class TestMBTilesArchive(object):
    @pytest.fixture
    def archive(self, tmp_path):
        archive = MBTilesArchive(str(tmp_path / 'archive' / 'tiles.mbtiles'))
        yield archive
        archive.cleanup()

    def test_tables_indexes_and_view(self, archive):
        archive.build_indexes()
        assert sqlite_master(archive.filename, 'table') == set(['metadata', 'map', 'images'])
        assert set(['metadata_name', 'map_tile_id', 'map_tile', 'images_tile_id']) <= \
            sqlite_master(archive.filename, 'index')
        assert sqlite_master(archive.filename, 'view') == set(['tiles'])

    def test_build_indexes_twice(self, archive):
        archive.build_indexes()
        archive.store_tiles([(tile(0, 0, 0), b'foo')])
        archive.build_indexes()
        assert archive.get_tile(0, 0, 0) == b'foo'

    def test_update_metadata(self, archive):
        archive.update_metadata([('name', 'foo'), ('minzoom', 1), ('format', 'png')])
        assert archive.metadata() == {'name': 'foo', 'minzoom': '1', 'format': 'png'}
        archive.update_metadata([('name', 'bar')])
        assert archive.metadata() == {'name': 'bar'}

    def test_update_metadata_failure_keeps_old_rows(self, archive):
        archive.build_indexes()
        archive.update_metadata([('name', 'foo')])
        with pytest.raises(StorageError):
            archive.update_metadata([('name', 'bar'), ('name', 'baz')])
        assert archive.metadata() == {'name': 'foo'}

    def test_store_and_get_tiles(self, archive):
        archive.build_indexes()
        assert archive.store_tiles([]) == 0
        n = archive.store_tiles([
            (tile(0, 0, 1), b'a'),
            (tile(1, 0, 1), b'b'),
            (tile(1, 1, 1), b'c'),
        ])
        assert n == 3
        assert archive.count_tiles() == 3
        assert archive.get_tile(1, 1, 0) == b'b'
        assert archive.get_tile(1, 1, 1) == b'c'
        assert archive.get_tile(1, 0, 1) is None

    def test_store_replaces(self, archive):
        archive.build_indexes()
        archive.store_tiles([(tile(0, 0, 1), b'a')])
        archive.store_tiles([(tile(0, 0, 1), b'b')])
        assert archive.count_tiles() == 1
        assert archive.get_tile(1, 0, 0) == b'b'

    def test_map_position_unique(self, archive):
        archive.build_indexes()
        archive.store_tiles([(tile(0, 0, 1, scheme='http://a/'), b'a')])
        archive.store_tiles([(tile(0, 0, 1, scheme='http://b/'), b'b')])
        assert archive.storage.count_rows('map') == 1
        assert archive.get_tile(1, 0, 0) == b'b'

    def test_existing_tile_ids(self, archive):
        archive.build_indexes()
        stored = [tile(x, 0, 11) for x in range(0, 2010, 2)]
        archive.store_tiles((t, b'x') for t in stored)
        candidates = [tile(x, 0, 11).tile_id for x in range(2010)]
        existing = archive.existing_tile_ids(candidates)
        assert existing == set(t.tile_id for t in stored)
        assert archive.existing_tile_ids([]) == set()

    def test_write_map(self, archive):
        archive.build_indexes()
        assert archive.write_map([tile(0, 0, 0)]) == 1
        assert archive.storage.find_rows('map') == [{
            'tile_id': tile(0, 0, 0).tile_id, 'zoom_level': 0,
            'tile_column': 0, 'tile_row': 0,
        }]
        # no image data yet
        assert archive.get_tile(0, 0, 0) is None

    def test_directory_as_file(self, tmp_path):
        archive = MBTilesArchive(str(tmp_path))
        with pytest.raises(StorageError):
            archive.build_indexes()
        archive.cleanup()


class TestSQLiteStorage(object):
    @pytest.fixture
    def storage(self, tmp_path):
        storage = SQLiteStorage(str(tmp_path / 'rows.sqlite'))
        storage.create_table('rows', [('id', 'INTEGER PRIMARY KEY'), ('name', 'TEXT')])
        yield storage
        storage.cleanup()

    def test_find_rows(self, storage):
        storage.bulk_insert('rows', [{'id': i, 'name': 'n%d' % (i % 3)} for i in range(10)])
        assert len(storage.find_rows('rows')) == 10
        assert [r['id'] for r in storage.find_rows('rows', {'name': 'n1'})] == [1, 4, 7]
        assert storage.find_rows('rows', {'id': [2, 3]}, columns=['name']) == [
            {'name': 'n2'}, {'name': 'n0'},
        ]
        assert storage.find_rows('rows', {'id': []}) == []
        assert storage.count_rows('rows', {'name': 'n0'}) == 4

    def test_delete_rows(self, storage):
        storage.bulk_insert('rows', [{'id': i, 'name': 'foo'} for i in range(5)])
        assert storage.delete_rows('rows', {'id': [0, 1]}) == 2
        assert storage.count_rows('rows') == 3
        assert storage.delete_rows('rows') == 3
        assert storage.count_rows('rows') == 0

    def test_insert_row(self, storage):
        storage.insert_row('rows', {'id': 1, 'name': 'foo'})
        with pytest.raises(StorageError):
            storage.insert_row('rows', {'id': 1, 'name': 'bar'})
        storage.insert_row('rows', {'id': 1, 'name': 'bar'}, replace=True)
        assert storage.find_rows('rows') == [{'id': 1, 'name': 'bar'}]

    def test_replace_rows(self, storage):
        storage.bulk_insert('rows', [{'id': i, 'name': 'foo'} for i in range(3)])
        assert storage.replace_rows('rows', [{'id': 7, 'name': 'bar'}]) == 1
        assert storage.find_rows('rows') == [{'id': 7, 'name': 'bar'}]
        assert storage.replace_rows('rows', []) == 0
        assert storage.count_rows('rows') == 0

    def test_replace_rows_rollback(self, storage, caplog):
        storage.bulk_insert('rows', [{'id': i, 'name': 'foo'} for i in range(3)])
        with pytest.raises(StorageError):
            storage.replace_rows('rows', [{'id': 1, 'missing': 'bar'}])
        assert storage.count_rows('rows') == 3
        assert 'sqlite error' in caplog.text

    def test_unknown_table(self, storage):
        with pytest.raises(StorageError):
            storage.find_rows('missing')

    def test_invalid_identifier(self, storage):
        with pytest.raises(StorageError, match='invalid SQL identifier'):
            storage.find_rows('rows; DROP TABLE rows')

    def test_split_where(self):
        chunks = list(_split_where({'id': list(range(2000)), 'name': 'foo'}))
        assert [len(c['id']) for c in chunks] == [998, 998, 4]
        assert all(c['name'] == 'foo' for c in chunks)
        assert list(_split_where({'id': []})) == []
        assert list(_split_where(None)) == [None]

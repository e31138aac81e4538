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
Row storage in an embedded SQLite database.
"""

import os
import re
import sqlite3
import threading

from tilearchive.cache.base import TileStorageBase, StorageError

import logging
log = logging.getLogger(__name__)

# SQLite is limited to 999 host parameters per statement
MAX_SQL_PARAMS = 999

_identifier_re = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _ident(name):
    if not isinstance(name, str) or not _identifier_re.match(name):
        raise StorageError('invalid SQL identifier: %r' % (name, ))
    return name


def _where_clause(where):
    """
    >>> _where_clause({'name': 'foo', 'tile_id': ['a', 'b']})
    ('name = ? AND tile_id IN (?,?)', ['foo', 'a', 'b'])
    >>> _where_clause(None)
    ('', [])
    """
    if not where:
        return '', []
    conditions = []
    args = []
    for column, value in where.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            value = list(value)
            conditions.append('%s IN (%s)' % (_ident(column), ','.join('?' * len(value))))
            args.extend(value)
        else:
            conditions.append('%s = ?' % _ident(column))
            args.append(value)
    return ' AND '.join(conditions), args


def _split_where(where):
    """
    Split a condition with a long IN list into multiple conditions
    within the parameter limit of SQLite.
    """
    if not where:
        yield where
        return
    list_columns = [c for c, v in where.items() if isinstance(v, (list, tuple, set, frozenset))]
    if len(list_columns) != 1:
        yield where
        return
    column = list_columns[0]
    values = list(where[column])
    chunk_size = MAX_SQL_PARAMS - (len(where) - 1)
    if not values:
        return
    while values:
        chunk = dict(where)
        chunk[column] = values[:chunk_size]
        yield chunk
        values = values[chunk_size:]


class SQLiteStorage(TileStorageBase):
    """
    :class:`TileStorageBase` for a SQLite file. Each thread uses its
    own connection.
    """
    def __init__(self, filename, timeout=30, wal=False):
        self.filename = filename
        self.timeout = timeout
        self.wal = wal
        self._db_conn_cache = threading.local()

    @property
    def db(self):
        if not getattr(self._db_conn_cache, 'db', None):
            dirname = os.path.dirname(self.filename)
            if dirname:
                os.makedirs(dirname, exist_ok=True)
            try:
                db = sqlite3.connect(self.filename, self.timeout)
                if self.wal:
                    db.execute('PRAGMA journal_mode=wal')
            except sqlite3.Error as ex:
                raise StorageError('unable to open %s: %s' % (self.filename, ex))
            self._db_conn_cache.db = db
        return self._db_conn_cache.db

    def cleanup(self):
        """
        Close all open connection and remove them from cache.
        """
        if getattr(self._db_conn_cache, 'db', None):
            self._db_conn_cache.db.close()
        self._db_conn_cache.db = None

    def _execute(self, stmt, args=(), many=False):
        db = self.db
        try:
            with db:
                if many:
                    return db.executemany(stmt, args)
                return db.execute(stmt, args)
        except sqlite3.Error as ex:
            log.error('sqlite error in %s: %s', self.filename, ex)
            raise StorageError('%s: %s' % (self.filename, ex))

    def _query(self, stmt, args=()):
        try:
            cursor = self.db.execute(stmt, args)
            names = [d[0] for d in cursor.description]
            rows = [dict(zip(names, row)) for row in cursor.fetchall()]
            cursor.close()
        except sqlite3.Error as ex:
            log.error('sqlite error in %s: %s', self.filename, ex)
            raise StorageError('%s: %s' % (self.filename, ex))
        return rows

    def create_table(self, name, columns):
        stmt = 'CREATE TABLE IF NOT EXISTS %s (%s)' % (
            _ident(name), ', '.join('%s %s' % (_ident(c), t) for c, t in columns))
        self._execute(stmt)

    def ensure_unique_index(self, table, columns, name=None):
        if name is None:
            name = '%s_%s' % (table, '_'.join(columns))
        stmt = 'CREATE UNIQUE INDEX IF NOT EXISTS %s ON %s (%s)' % (
            _ident(name), _ident(table), ', '.join(_ident(c) for c in columns))
        self._execute(stmt)

    def create_view(self, name, select):
        self._execute('CREATE VIEW IF NOT EXISTS %s AS %s' % (_ident(name), select))

    def find_rows(self, table, where=None, columns=None):
        if columns:
            column_sql = ', '.join(_ident(c) for c in columns)
        else:
            column_sql = '*'
        rows = []
        for cur_where in _split_where(where):
            clause, args = _where_clause(cur_where)
            stmt = 'SELECT %s FROM %s' % (column_sql, _ident(table))
            if clause:
                stmt += ' WHERE ' + clause
            rows.extend(self._query(stmt, args))
        return rows

    def count_rows(self, table, where=None):
        count = 0
        for cur_where in _split_where(where):
            clause, args = _where_clause(cur_where)
            stmt = 'SELECT COUNT(*) AS count FROM %s' % _ident(table)
            if clause:
                stmt += ' WHERE ' + clause
            count += self._query(stmt, args)[0]['count']
        return count

    def _insert_stmt(self, table, columns, replace=False):
        return '%s INTO %s (%s) VALUES (%s)' % (
            'INSERT OR REPLACE' if replace else 'INSERT',
            _ident(table),
            ', '.join(_ident(c) for c in columns),
            ','.join('?' * len(columns)),
        )

    def bulk_insert(self, table, records, replace=False):
        records = list(records)
        if not records:
            return 0
        columns = list(records[0].keys())
        stmt = self._insert_stmt(table, columns, replace=replace)
        self._execute(stmt, [tuple(r[c] for c in columns) for r in records], many=True)
        return len(records)

    def replace_rows(self, table, records):
        """
        Delete all rows of `table` and insert `records` in a single
        transaction. The old rows are kept if the insert fails.
        """
        records = list(records)
        db = self.db
        try:
            with db:
                db.execute('DELETE FROM %s' % _ident(table))
                if records:
                    columns = list(records[0].keys())
                    db.executemany(self._insert_stmt(table, columns),
                        [tuple(r[c] for c in columns) for r in records])
        except sqlite3.Error as ex:
            log.error('sqlite error in %s: %s', self.filename, ex)
            raise StorageError('%s: %s' % (self.filename, ex))
        return len(records)

    def delete_rows(self, table, where=None):
        removed = 0
        for cur_where in _split_where(where):
            clause, args = _where_clause(cur_where)
            stmt = 'DELETE FROM %s' % _ident(table)
            if clause:
                stmt += ' WHERE ' + clause
            removed += self._execute(stmt, args).rowcount
        return removed

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.filename)

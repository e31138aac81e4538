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

from abc import ABC, abstractmethod


class StorageError(Exception):
    pass


class TileStorageBase(ABC):
    """
    Row store interface used by the archive.

    Tables are created from ``(column, type)`` pairs. `where` arguments
    are dicts of column names and values; list or tuple values match
    any of their items.
    """

    @abstractmethod
    def create_table(self, name, columns):
        pass

    @abstractmethod
    def ensure_unique_index(self, table, columns, name=None):
        pass

    @abstractmethod
    def create_view(self, name, select):
        pass

    @abstractmethod
    def find_rows(self, table, where=None, columns=None):
        """
        Return matching rows as dicts.
        """
        pass

    def count_rows(self, table, where=None):
        return len(self.find_rows(table, where))

    @abstractmethod
    def bulk_insert(self, table, records, replace=False):
        """
        Insert all `records` (dicts) in one transaction. Existing rows with
        the same unique keys are replaced if `replace` is true.
        """
        pass

    def insert_row(self, table, record, replace=False):
        return self.bulk_insert(table, [record], replace=replace)

    @abstractmethod
    def delete_rows(self, table, where=None):
        pass

    def replace_rows(self, table, records):
        """
        Replace the whole content of `table` with `records`.
        """
        self.delete_rows(table)
        return self.bulk_insert(table, records)

    def cleanup(self):
        """
        Close open connections.
        """
        pass

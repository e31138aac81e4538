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
Download the tiles of a grid into an MBTiles archive.
"""

import time

from tilearchive.client.http import HTTPClientError, auth_data_from_url
from tilearchive.grid import Grid
from tilearchive.tile import TileURLTemplate
from tilearchive.util.async_ import ThreadPool
from tilearchive.seed.util import backoff_seconds, format_size

import logging
log = logging.getLogger(__name__)


class SaveResult(object):
    """
    Number of tiles downloaded, skipped (already in the archive) and
    failed (still missing after all attempts).
    """
    def __init__(self, total=0, downloaded=0, skipped=0, failed=0):
        self.total = total
        self.downloaded = downloaded
        self.skipped = skipped
        self.failed = failed

    @property
    def processed(self):
        return self.downloaded + self.skipped + self.failed

    @property
    def ok(self):
        return self.failed == 0

    def __add__(self, other):
        return SaveResult(
            total=self.total + other.total,
            downloaded=self.downloaded + other.downloaded,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
        )

    def __eq__(self, other):
        if not isinstance(other, SaveResult):
            return NotImplemented
        return (self.total, self.downloaded, self.skipped, self.failed) == (
            other.total, other.downloaded, other.skipped, other.failed)

    def __repr__(self):
        return '<SaveResult total=%d downloaded=%d skipped=%d failed=%d>' % (
            self.total, self.downloaded, self.skipped, self.failed)


class ArchiveWriter(object):
    """
    Fills an :class:`~tilearchive.cache.mbtiles.MBTilesArchive` with the
    tiles of a :class:`~tilearchive.metadata.Metadata` description.

    Tiles are downloaded with `concurrency` threads, one batch of
    `batch_size` tiles at a time. Tiles already in the archive are not
    downloaded again. Failed downloads are retried up to `retries` times
    within the same batch, waiting ``retry_delay * 2**n`` seconds before
    retry ``n``. All writes happen in the calling thread.
    """
    def __init__(self, archive, http_client, concurrency=4, batch_size=500,
                 retries=2, retry_delay=0, timeout=None, progress_logger=None,
                 tile_size=256, sleep=time.sleep):
        self.archive = archive
        self.http_client = http_client
        self.concurrency = concurrency
        self.batch_size = batch_size
        self.retries = retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.progress_logger = progress_logger
        self.tile_size = tile_size
        self.sleep = sleep
        self.url_template = None

    def write_metadata(self, meta):
        """
        Validate `meta` and replace the metadata of the archive.
        """
        rows = meta.rows()
        log.info('writing metadata of %s to %s', meta.name, self.archive.filename)
        self.archive.update_metadata(rows)
        self.url_template = TileURLTemplate(meta.scheme) if meta.scheme else None

    def build_indexes(self):
        log.info('building indexes of %s', self.archive.filename)
        self.archive.build_indexes()

    def download_and_store(self, tiles):
        """
        Download and store all `tiles` that are not in the archive yet.
        Returns a :class:`SaveResult` for these tiles.
        """
        if self.url_template is None:
            raise ValueError('metadata with a tile URL scheme required before downloading')
        tiles = _unique(tiles)
        existing = self.archive.existing_tile_ids([t.tile_id for t in tiles])
        remaining = [t for t in tiles if t.tile_id not in existing]
        result = SaveResult(total=len(tiles), skipped=len(tiles) - len(remaining))
        if existing:
            log.debug('skipping %d tiles already in the archive', len(existing))

        attempt = 0
        while remaining:
            if attempt:
                wait_for = backoff_seconds(attempt - 1, self.retry_delay)
                log.info('retrying %d tiles (attempt %d of %d)',
                         len(remaining), attempt + 1, self.retries + 1)
                if wait_for:
                    self.sleep(wait_for)
            stored, remaining = self._download(remaining)
            self.archive.store_tiles(stored)
            result.downloaded += len(stored)
            if attempt >= self.retries:
                break
            attempt += 1

        for tile in remaining:
            log.error('unable to download tile %s (zoom %d, column %d, row %d)',
                      self._url(tile), tile.zoom_level, tile.tile_column, tile.tile_row)
        result.failed = len(remaining)
        return result

    def _url(self, tile):
        url, _ = auth_data_from_url(self.url_template.substitute(tile))
        return url

    def _fetch(self, tile):
        url = self._url(tile)
        data = self.http_client.fetch_bytes(url, timeout=self.timeout)
        log.debug('downloaded %s (%s)', url, format_size(len(data)))
        return data

    def _download(self, tiles):
        pool = ThreadPool(min(self.concurrency, len(tiles)))
        stored = []
        failed = []
        for tile, res in zip(tiles, pool.imap(self._fetch, tiles, use_result_objects=True)):
            if res.ok:
                stored.append((tile, res.result))
                continue
            exc_class, exc, tb = res.exception
            if not isinstance(exc, HTTPClientError):
                raise exc.with_traceback(tb)
            log.warning('failed to download tile (zoom %d, column %d, row %d): %s',
                        tile.zoom_level, tile.tile_column, tile.tile_row, exc)
            failed.append(tile)
        return stored, failed

    def save(self, meta):
        """
        Write metadata and indexes, then download all tiles of `meta`.

        Invalid metadata or grid parameters raise before any tile
        is requested.
        """
        meta.validate()
        grid = Grid(meta.bounds, meta.min_zoom, meta.max_zoom, meta.public_scheme,
                    tile_size=self.tile_size)
        self.write_metadata(meta)
        self.build_indexes()
        log.info('downloading %d tiles of %s', grid.count, meta.name)

        result = SaveResult()
        for batch in grid.tiles_bulk(self.batch_size):
            result = result + self.download_and_store(batch)
            if self.progress_logger:
                self.progress_logger.log_progress(result.processed, grid.count,
                                                  batch[-1].zoom_level)
        log.info('finished %s: %d downloaded, %d skipped, %d failed',
                 meta.name, result.downloaded, result.skipped, result.failed)
        return result


def _unique(tiles):
    seen = set()
    unique = []
    for tile in tiles:
        if tile.tile_id not in seen:
            seen.add(tile.tile_id)
            unique.append(tile)
    return unique

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
Progress output and helpers of the archive writer.
"""

import sys
import time
from datetime import datetime


class ProgressLog(object):
    """
    Writes the download progress to `out` (stdout by default), at most
    every second (every 30 seconds if not `verbose`). The final
    progress line is always written.
    """
    def __init__(self, out=None, silent=False, verbose=True):
        self.out = out or sys.stdout
        self.silent = silent
        self.verbose = verbose
        self.interval = 1 if verbose else 30
        self._last_write = 0

    def _write(self, line):
        self.out.write('[%s] %s\n' % (timestamp(), line))
        self.out.flush()

    def log_message(self, msg):
        if not self.silent:
            self._write(msg)

    def log_progress(self, done, total, level=None):
        if self.silent:
            return
        progress = float(done) / total if total else 1.0
        now = time.time()
        if progress < 1.0 and now < self._last_write + self.interval:
            return
        self._last_write = now
        self._write('%2s %6.2f%% (%d/%d tiles)' % (
            '' if level is None else level, progress * 100, done, total))


def timestamp():
    return datetime.now().strftime('%H:%M:%S')


def format_bbox(bbox):
    return ', '.join('%.5f' % v for v in bbox)


def format_size(size):
    """
    Human readable size of `size` bytes.

    >>> format_size(512)
    '512'
    >>> format_size(12900)
    '12.6K'
    >>> format_size(3 * 1024 * 1024)
    '3M'
    """
    for unit in ('', 'K', 'M', 'G'):
        if size < 1024 or unit == 'G':
            break
        size /= 1024.0
    if not unit:
        return '%d' % size
    value = '%.1f' % size
    if value.endswith('.0'):
        value = value[:-2]
    return value + unit


def backoff_seconds(attempt, start_backoff_sec, max_backoff=60):
    """
    Wait time before retry number `attempt` (starting at 0).

    >>> [backoff_seconds(n, 2) for n in range(7)]
    [2, 4, 8, 16, 32, 60, 60]
    >>> backoff_seconds(3, 0)
    0
    """
    return min(start_backoff_sec * 2 ** attempt, max_backoff)


def format_archive_task(metadata, grid, filename):
    return "\n".join([
        "  %s:" % (metadata.name, ),
        "    Archiving '%s' into %s" % (grid.scheme, filename),
        '    Bounds: %s (EPSG:4326)' % (format_bbox(grid.bounds), ),
        '    Levels: %s' % (list(range(grid.min_zoom, grid.max_zoom + 1)), ),
        '    Tiles: %d' % (grid.count, ),
    ])

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
One log line per tile request::

    GET http://tiles.example.org/3/4/2.png 200 12.3 85

Method, URL, status, size in KiB and duration in milliseconds. Unknown
values are logged as ``-``.
"""

import logging
logger = logging.getLogger('tilearchive.source.request')


def _kib(size):
    if not size:
        return '-'
    return '%.1f' % (int(size) / 1024.0)


def _millis(seconds):
    if not seconds:
        return '-'
    return '%d' % (seconds * 1000)


def log_request(url, status, result=None, size=None, method='GET', duration=None):
    if not logger.isEnabledFor(logging.INFO):
        return
    if size is None and result is not None:
        size = result.headers.get('Content-Length')
    logger.info('%s %s %s %s %s', method, url.replace(' ', ''), status or '-',
                _kib(size), _millis(duration))

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
Tile identity and tile URL resolution.
"""

import base64
import binascii
import random
import re
from collections import namedtuple

from tilearchive.coords import Google, Tile, _error, validate_zoom
from tilearchive.mercator import quadkey as google_quadkey

import logging
log = logging.getLogger(__name__)


class TileIdError(ValueError):
    pass


_switch_re = re.compile(r'{switch:([^}]*)}', re.IGNORECASE)

_TILE_ID_FIELDS = ('zoom_level', 'tile_column', 'tile_row', 'scheme')


def parse_switch(url, choice=random.choice):
    """
    Replace ``{switch:a,b,c}`` with one randomly chosen value.

    >>> parse_switch('http://tile-{switch:a}.example.org/{z}.png')
    'http://tile-a.example.org/{z}.png'
    >>> parse_switch('http://tile.example.org/{z}.png')
    'http://tile.example.org/{z}.png'
    """
    match = _switch_re.search(url)
    if not match:
        return url
    value = choice(match.group(1).split(','))
    return url[:match.start()] + value + url[match.end():]


def resolve_url(scheme, google, quadkey=None, choice=random.choice):
    """
    Substitute the Google tile coordinates of `google` into the URL `scheme`.

    Supported placeholders are ``{zoom}``, ``{z}``, ``{x}``, ``{y}``,
    ``{quadkey}`` and ``{switch:a,b,c}``. Each placeholder is replaced once.

    >>> resolve_url('http://tile.example.org/{zoom}/{x}/{y}.png', (2389, 2946, 13))
    'http://tile.example.org/13/2389/2946.png'
    >>> resolve_url('http://tiles.example.org/{quadkey}.jpeg', (2389, 2946, 13))
    'http://tiles.example.org/0302321010121.jpeg'
    """
    x, y, zoom = google
    url = scheme
    url = url.replace('{zoom}', str(zoom), 1)
    url = url.replace('{z}', str(zoom), 1)
    url = url.replace('{x}', str(x), 1)
    url = url.replace('{y}', str(y), 1)
    if '{quadkey}' in url:
        if quadkey is None:
            quadkey = google_quadkey((x, y, zoom))
        url = url.replace('{quadkey}', quadkey, 1)
    return parse_switch(url, choice=choice)


def validate_google_tile(google):
    """
    Check that the Google tile lies within its zoom level.

    >>> validate_google_tile((2, 1, 1))
    Traceback (most recent call last):
    ...
    tilearchive.coords.CoordinateError: Illegal parameters for tile: [x] 2 outside of zoom level 1
    """
    return Google(*google)


def encode_tile_id(scheme, tile_column, tile_row, zoom_level):
    """
    Encode the tile identity as reversible, deterministic string.

    >>> encode_tile_id('http://a/{z}/{x}/{y}.png', 1, 2, 3)
    'em9vbV9sZXZlbD0zO3RpbGVfY29sdW1uPTE7dGlsZV9yb3c9MjtzY2hlbWU9aHR0cDovL2Eve3p9L3t4fS97eX0ucG5n'
    """
    values = dict(scheme=scheme, tile_column=tile_column, tile_row=tile_row,
                  zoom_level=zoom_level)
    for field in _TILE_ID_FIELDS:
        if values[field] is None:
            raise _error('tile id missing field <%s>' % field, TileIdError)
    canonical = 'zoom_level=%d;tile_column=%d;tile_row=%d;scheme=%s' % (
        zoom_level, tile_column, tile_row, scheme)
    return base64.urlsafe_b64encode(canonical.encode('utf-8')).decode('ascii')


def decode_tile_id(tile_id):
    """
    Return the :class:`TileRecord` encoded in `tile_id`.
    """
    try:
        canonical = base64.urlsafe_b64decode(tile_id.encode('ascii')).decode('utf-8')
    except (binascii.Error, UnicodeError, AttributeError, ValueError):
        raise _error('unable to decode tile id %r' % (tile_id, ), TileIdError)

    # scheme is the last field and may itself contain ';' or '='
    parts = canonical.split(';', len(_TILE_ID_FIELDS) - 1)
    values = {}
    for field, part in zip(_TILE_ID_FIELDS, parts):
        key, sep, value = part.partition('=')
        if key != field or not sep:
            raise _error('invalid tile id %r, expected field <%s>' % (tile_id, field), TileIdError)
        values[field] = value
    if len(values) != len(_TILE_ID_FIELDS):
        raise _error('invalid tile id %r, missing fields' % (tile_id, ), TileIdError)
    try:
        return TileRecord(
            scheme=values['scheme'],
            tile_column=int(values['tile_column']),
            tile_row=int(values['tile_row']),
            zoom_level=int(values['zoom_level']),
            tile_id=tile_id,
        )
    except ValueError:
        raise _error('invalid tile id %r, numeric fields expected' % (tile_id, ), TileIdError)


class TileRecord(namedtuple('TileRecord', 'scheme tile_column tile_row zoom_level tile_id')):
    """
    An enumerated tile. `tile_row` follows the TMS convention.
    """
    __slots__ = ()

    @classmethod
    def create(cls, scheme, tile_column, tile_row, zoom_level):
        tile_id = encode_tile_id(scheme, tile_column, tile_row, zoom_level)
        return cls(scheme, tile_column, tile_row, zoom_level, tile_id)

    @property
    def coord(self):
        return (self.tile_column, self.tile_row, self.zoom_level)

    @property
    def tms(self):
        return Tile(self.tile_column, self.tile_row, self.zoom_level)

    @property
    def google(self):
        zoom = validate_zoom(self.zoom_level)
        return Google(self.tile_column, (2 ** zoom - 1) - self.tile_row, zoom)

    @property
    def quadkey(self):
        return google_quadkey(self.google)


class TileURLTemplate(object):
    """
    URL template for a tile server.

    >>> t = TileURLTemplate('http://foo/tiles/{z}/{x}/{y}.png')
    >>> t.substitute(TileRecord.create(t.template, 7, 4, 3))
    'http://foo/tiles/3/7/3.png'
    """
    def __init__(self, template, choice=random.choice):
        self.template = template
        self.choice = choice
        self.with_quadkey = '{quadkey}' in template

    def substitute(self, record):
        google = record.google
        quadkey = record.quadkey if self.with_quadkey else None
        return resolve_url(self.template, google, quadkey, choice=self.choice)

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.template)

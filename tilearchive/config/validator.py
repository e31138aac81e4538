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
Schema validation of archive configurations.
"""

import json
import os.path
from typing import Iterable, Iterator

from jsonschema.exceptions import ValidationError
from jsonschema.validators import Draft202012Validator

SCHEMA_FILE = os.path.join(os.path.dirname(__file__), 'archive-schema.json')

with open(SCHEMA_FILE) as f:
    schema = json.load(f)

_validator = Draft202012Validator(schema)


def _messages(errors: Iterable[ValidationError]) -> Iterator[str]:
    for error in sorted(errors, key=lambda e: [str(p) for p in e.absolute_path]):
        yield '%s in %s' % (error.message, 'root' + error.json_path[1:])
        # errors of oneOf/anyOf alternatives
        if error.context:
            yield from _messages(error.context)


def get_error_messages(errors: Iterable[ValidationError]) -> list[str]:
    """
    Format schema errors as ``<message> in root.<path>``.
    """
    return list(_messages(errors))


def validate(conf_dict: dict) -> list[str]:
    """
    Return all errors of the archive configuration `conf_dict`.
    An empty list means the configuration is valid.
    """
    errors = get_error_messages(_validator.iter_errors(conf_dict))
    min_zoom = conf_dict.get('min_zoom')
    max_zoom = conf_dict.get('max_zoom')
    if isinstance(min_zoom, int) and isinstance(max_zoom, int) and min_zoom > max_zoom:
        errors.append('min_zoom must be lower or equal to max_zoom in root')
    return errors

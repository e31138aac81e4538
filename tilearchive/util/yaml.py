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
YAML loading for configuration files.
"""

import yaml

# the libyaml loader is much faster for large documents
_Loader = getattr(yaml, 'CSafeLoader', yaml.SafeLoader)


class YAMLError(Exception):
    pass


def load_yaml_file(file_or_filename):
    """
    Load a YAML mapping from a filename or an open file.
    """
    if not isinstance(file_or_filename, str):
        return load_yaml(file_or_filename)
    with open(file_or_filename, 'rb') as f:
        return load_yaml(f)


def load_yaml(doc):
    """
    Load a YAML mapping from a string or an open file.

    >>> load_yaml('min_zoom: 1')
    {'min_zoom': 1}
    """
    try:
        data = yaml.load(doc, Loader=_Loader)
    except yaml.YAMLError as ex:
        raise YAMLError(str(ex))
    if not isinstance(data, dict):
        raise YAMLError('configuration not a YAML dictionary')
    return data

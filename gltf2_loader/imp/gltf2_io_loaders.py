# Copyright 2018-2021 The glTF-Blender-IO authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# Resource loaders: callables mapping a uri to bytes, or raising
# FileNotFoundError. The loader core only ever calls these, it never opens
# files itself.

import urllib.parse
from os.path import join, normpath


def uri_to_path(uri):
    uri = urllib.parse.unquote(uri)
    return normpath(uri)


class FileLoader:
    """Reads uris relative to a base directory (the directory of the .gltf file)."""

    def __init__(self, base_dir):
        self.base_dir = base_dir

    def __call__(self, uri):
        path = join(self.base_dir, uri_to_path(uri))
        with open(path, 'rb') as f_:
            return f_.read()


class DictLoader:
    """Serves uris from an in-memory mapping."""

    def __init__(self, resources):
        self.resources = dict(resources)

    def __call__(self, uri):
        try:
            return self.resources[uri]
        except KeyError:
            raise FileNotFoundError("No resource for uri '%s'" % uri)

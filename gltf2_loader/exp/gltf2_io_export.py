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

#
# Imports
#

import json
import struct
from collections import OrderedDict

from ..com.gltf2_io_constants import GLB_MAGIC, GLB_VERSION, CHUNK_TYPE_JSON, CHUNK_TYPE_BIN

#
# Globals
#

SORT_ORDER = [
    "asset",
    "extensionsUsed",
    "extensionsRequired",
    "extensions",
    "extras",
    "scene",
    "scenes",
    "nodes",
    "cameras",
    "animations",
    "materials",
    "meshes",
    "textures",
    "images",
    "skins",
    "accessors",
    "bufferViews",
    "samplers",
    "buffers"
]

#
# Functions
#


def gltf_to_json(gltf, glb=True):
    """Encode a document dict; compact for GLB, indented otherwise."""
    indent = None
    separators = (',', ':')

    if not glb:
        indent = 4
        # The comma is typically followed by a newline, so no trailing whitespace is needed on it.
        separators = (',', ' : ')

    def key(item):
        return SORT_ORDER.index(item[0]) if item[0] in SORT_ORDER else len(SORT_ORDER)

    gltf_ordered = OrderedDict(sorted(gltf.items(), key=key))
    return json.dumps(gltf_ordered, indent=indent, separators=separators, allow_nan=False)


def glb_to_bytes(gltf, binary=b''):
    """
    Pack a document dict (or already encoded JSON bytes) and a binary blob
    into a .glb file.
    """
    if isinstance(gltf, (bytes, bytearray)):
        gltf_data = bytes(gltf)
    else:
        gltf_data = gltf_to_json(gltf).encode()
    binary = bytes(binary or b'')

    length_gltf = len(gltf_data)
    spaces_gltf = (4 - (length_gltf & 3)) & 3
    length_gltf += spaces_gltf

    length_bin = len(binary)
    zeros_bin = (4 - (length_bin & 3)) & 3
    length_bin += zeros_bin

    length = 12 + 8 + length_gltf
    if length_bin > 0:
        length += 8 + length_bin

    out = bytearray()

    # Header (Version 2)
    out += GLB_MAGIC
    out += struct.pack("<I", GLB_VERSION)
    out += struct.pack("<I", length)

    # Chunk 0 (JSON)
    out += struct.pack("<I", length_gltf)
    out += CHUNK_TYPE_JSON
    out += gltf_data
    out += b' ' * spaces_gltf

    # Chunk 1 (BIN)
    if length_bin > 0:
        out += struct.pack("<I", length_bin)
        out += CHUNK_TYPE_BIN
        out += binary
        out += b'\0' * zeros_bin

    return bytes(out)

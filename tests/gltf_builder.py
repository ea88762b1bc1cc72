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

# In-memory fixtures for the tests: documents are assembled here and packed
# with the package's own GLB writer.

import base64
import copy
import json
import struct

import numpy as np

from gltf2_loader.com.gltf2_io_constants import ComponentType
from gltf2_loader.exp.gltf2_io_export import glb_to_bytes


def raw_glb(chunks, version=2, length=None, extra=b''):
    """Hand-framed GLB: chunks is a list of (type tag, payload); no padding is added."""
    body = b''
    for type_, payload in chunks:
        body += struct.pack('<I', len(payload)) + type_ + payload
    total = 12 + len(body) if length is None else length
    return b'glTF' + struct.pack('<II', version, total) + body + extra


class DocumentBuilder:
    """Lays buffer views and accessors out over a single binary blob (buffer 0)."""

    def __init__(self):
        self.blob = bytearray()
        self.gltf = {
            'asset': {'version': '2.0'},
            'bufferViews': [],
            'accessors': [],
        }

    def add_view(self, data, byte_stride=None):
        while len(self.blob) % 4:
            self.blob += b'\0'
        view = {'buffer': 0, 'byteOffset': len(self.blob), 'byteLength': len(data)}
        if byte_stride is not None:
            view['byteStride'] = byte_stride
        self.blob += data
        self.gltf['bufferViews'].append(view)
        return len(self.gltf['bufferViews']) - 1

    def add_accessor(self, buffer_view, component_type, type_, count, **fields):
        accessor = {'componentType': int(component_type), 'type': type_, 'count': count}
        if buffer_view is not None:
            accessor['bufferView'] = buffer_view
        accessor.update(fields)
        self.gltf['accessors'].append(accessor)
        return len(self.gltf['accessors']) - 1

    def add_array(self, values, component_type, type_, **fields):
        """Pack values tightly with the component type, and add a view and an accessor over them."""
        array = np.asarray(values, dtype=ComponentType.to_numpy_dtype(component_type))
        view = self.add_view(array.tobytes())
        count = len(array)
        return self.add_accessor(view, component_type, type_, count, **fields)

    def add_sparse(self, accessor_idx, indices, values, index_type=ComponentType.UnsignedInt,
                   value_type=ComponentType.Float):
        indices_view = self.add_view(np.asarray(indices, dtype=ComponentType.to_numpy_dtype(index_type)).tobytes())
        values_view = self.add_view(np.asarray(values, dtype=ComponentType.to_numpy_dtype(value_type)).tobytes())
        self.gltf['accessors'][accessor_idx]['sparse'] = {
            'count': len(indices),
            'indices': {'bufferView': indices_view, 'componentType': int(index_type)},
            'values': {'bufferView': values_view},
        }

    def to_dict(self):
        gltf = copy.deepcopy(self.gltf)
        if self.blob:
            gltf['buffers'] = [{'byteLength': len(self.blob)}]
        for key in ('bufferViews', 'accessors'):
            if not gltf[key]:
                del gltf[key]
        return gltf

    def to_glb(self):
        return glb_to_bytes(self.to_dict(), bytes(self.blob))

    def to_gltf(self):
        """Plain .gltf JSON with buffer 0 embedded as a data uri."""
        gltf = self.to_dict()
        if self.blob:
            gltf['buffers'][0]['uri'] = 'data:application/octet-stream;base64,' + \
                base64.b64encode(bytes(self.blob)).decode('ascii')
        return json.dumps(gltf).encode('utf-8')


def gltf_json(gltf):
    return json.dumps(gltf).encode('utf-8')

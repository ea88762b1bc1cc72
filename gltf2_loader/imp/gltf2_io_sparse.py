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

import numpy as np

from ..com.gltf2_io_accessor import element_layout, decode_elements, finish
from ..com.gltf2_io_constants import ComponentType, DataType
from ..com.gltf2_io_errors import AccessorError


class SparseOverlay:
    """
    Overrides of a sparse accessor: element indices[i] takes values[i].

    indices is strictly increasing. values holds the final (normalized or
    widened) values and values_raw the components as stored.
    """

    def __init__(self, accessor_idx, indices, values_raw, values):
        self.accessor_idx = accessor_idx
        self.indices = indices
        self.values_raw = values_raw
        self.values = values

    def __len__(self):
        return len(self.indices)

    @staticmethod
    def read_indices(document, accessor, accessor_idx):
        """Decode the indices sub-view as int64."""
        sparse = accessor.sparse
        field = 'accessors[%d].sparse.indices' % accessor_idx
        component_type = sparse.indices.component_type
        if not ComponentType.is_unsigned_int(component_type):
            raise AccessorError(
                'InvalidSparseIndexType',
                "Sparse indices must be an unsigned integer type, got %d" % component_type,
                index=accessor_idx, field=field + '.componentType',
            )

        data = document.buffers.get_buffer_view(sparse.indices.buffer_view)
        offset = sparse.indices.byte_offset or 0
        size = ComponentType.get_size(component_type)
        if offset + sparse.count * size > len(data):
            raise AccessorError(
                'AccessorOutOfBounds',
                "%d sparse indices at byte %d overrun bufferView %d (%d bytes)" % (
                    sparse.count, offset, sparse.indices.buffer_view, len(data)),
                index=accessor_idx, field=field,
            )

        raw = decode_elements(data, offset, sparse.count, size, component_type, DataType.Scalar)
        return raw.astype(np.int64)

    @staticmethod
    def validate_indices(indices, accessor_count, accessor_idx):
        """Indices must strictly increase and stay below the accessor count."""
        field = 'accessors[%d].sparse.indices' % accessor_idx
        steps = np.diff(indices)
        bad = np.nonzero(steps <= 0)[0]
        if len(bad):
            pos = int(bad[0]) + 1
            if steps[bad[0]] == 0:
                raise AccessorError(
                    'SparseIndicesDuplicate',
                    "Sparse index %d repeated at position %d" % (indices[pos], pos),
                    index=accessor_idx, field=field,
                )
            raise AccessorError(
                'SparseIndicesNotSorted',
                "Sparse index %d at position %d does not increase (previous is %d)" % (
                    indices[pos], pos, indices[pos - 1]),
                index=accessor_idx, field=field,
            )

        if len(indices) and indices[-1] >= accessor_count:
            raise AccessorError(
                'SparseIndexOutOfBounds',
                "Sparse index %d out of range for %d elements" % (indices[-1], accessor_count),
                index=accessor_idx, field=field,
            )

    @staticmethod
    def read_values(document, accessor, accessor_idx):
        """Decode the values sub-view with the owning accessor's type, as stored."""
        sparse = accessor.sparse
        field = 'accessors[%d].sparse.values' % accessor_idx
        element_size, _, _ = element_layout(accessor.component_type, accessor.type)

        buffer_view = document.gltf.buffer_views[sparse.values.buffer_view]
        if buffer_view.byte_stride and buffer_view.byte_stride != element_size:
            raise AccessorError(
                'ShapeMismatch',
                "Sparse values are %d-byte %s elements, bufferView %d has a stride of %d" % (
                    element_size, accessor.type, sparse.values.buffer_view, buffer_view.byte_stride),
                index=accessor_idx, field=field,
            )

        data = document.buffers.get_buffer_view(sparse.values.buffer_view)
        offset = sparse.values.byte_offset or 0
        if offset + sparse.count * element_size > len(data):
            raise AccessorError(
                'AccessorOutOfBounds',
                "%d sparse values at byte %d overrun bufferView %d (%d bytes)" % (
                    sparse.count, offset, sparse.values.buffer_view, len(data)),
                index=accessor_idx, field=field,
            )

        return decode_elements(data, offset, sparse.count, element_size, accessor.component_type, accessor.type)

    @classmethod
    def from_accessor(cls, document, accessor, accessor_idx):
        indices = cls.read_indices(document, accessor, accessor_idx)
        cls.validate_indices(indices, accessor.count, accessor_idx)
        values_raw = cls.read_values(document, accessor, accessor_idx)
        values = finish(values_raw, accessor.component_type, accessor.normalized)
        return cls(accessor_idx, indices, values_raw, values)

    def apply(self, array, start=0, raw=False):
        """
        Return array with the overrides applied; array holds the elements
        [start, start + len(array)) of the accessor. The input is left untouched,
        so applying twice gives the same result as once.
        """
        lo = np.searchsorted(self.indices, start, side='left')
        hi = np.searchsorted(self.indices, start + len(array), side='left')
        if lo == hi:
            return array

        values = self.values_raw if raw else self.values
        result = array.copy()
        result[self.indices[lo:hi] - start] = values[lo:hi]
        return result

    def lookup(self, element_idx, raw=False):
        """Override of one element, or None."""
        pos = np.searchsorted(self.indices, element_idx, side='left')
        if pos < len(self.indices) and self.indices[pos] == element_idx:
            return (self.values_raw if raw else self.values)[pos]
        return None

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

from ..com.gltf2_io_accessor import element_layout, decode_elements, zero_elements, finish, to_element
from ..com.gltf2_io_constants import ComponentType, DataType
from ..com.gltf2_io_errors import AccessorError, InvalidIndexError
from .gltf2_io_sparse import SparseOverlay
from .gltf2_io_image import get_image_data

# Elements decoded at once while iterating
ITER_BLOCK_SIZE = 4096


class AccessorView:
    """
    Typed elements of an accessor.

    Building the view checks the accessor once (component type, element type,
    last element window, sparse overlay); elements are then decoded on demand.
    The view is a restartable sequence: len(), indexing and iteration all
    decode from the underlying bytes, nothing is kept but the sparse overrides.
    """

    def __init__(self, document, accessor_idx):
        accessors = document.gltf.accessors or []
        if not 0 <= accessor_idx < len(accessors):
            raise InvalidIndexError(
                "Accessor index %d out of range (%d accessors)" % (accessor_idx, len(accessors)),
                index=accessor_idx, target='accessors',
            )

        self.document = document
        self.index = accessor_idx
        self.accessor = accessor = accessors[accessor_idx]
        field = 'accessors[%d]' % accessor_idx

        if not ComponentType.is_valid(accessor.component_type):
            raise AccessorError('UnsupportedComponentType',
                                "Unknown component type: %d" % accessor.component_type,
                                index=accessor_idx, field=field + '.componentType')
        if not DataType.is_valid(accessor.type):
            raise AccessorError('UnsupportedAccessorType', "Unknown accessor type: %s" % accessor.type,
                                index=accessor_idx, field=field + '.type')

        self.component_type = ComponentType(accessor.component_type)
        self.type = accessor.type
        self.count = accessor.count
        self.normalized = bool(accessor.normalized)
        self.element_byte_size, self.element_shape, _ = element_layout(self.component_type, self.type)

        if accessor.buffer_view is not None:
            buffer_view = document.gltf.buffer_views[accessor.buffer_view]
            self.data = document.buffers.get_buffer_view(accessor.buffer_view)
            self.byte_offset = accessor.byte_offset or 0
            self.stride = buffer_view.byte_stride or self.element_byte_size

            # Stride is constant, so checking the last element covers all of them
            end = self.byte_offset + (self.count - 1) * self.stride + self.element_byte_size
            if end > len(self.data):
                raise AccessorError(
                    'AccessorOutOfBounds',
                    "Element %d of accessor %d ends at byte %d, bufferView %d has %d bytes" % (
                        self.count - 1, accessor_idx, end, accessor.buffer_view, len(self.data)),
                    index=accessor_idx, field=field,
                )
        else:
            # No buffer view; every element starts as zero
            self.data = None
            self.byte_offset = 0
            self.stride = self.element_byte_size

        self.sparse = None
        if accessor.sparse is not None:
            self.sparse = SparseOverlay.from_accessor(document, accessor, accessor_idx)

    def __len__(self):
        return self.count

    def __repr__(self):
        return "<AccessorView %d: %d x %s of %s%s>" % (
            self.index, self.count, self.type, self.component_type.name,
            ", normalized" if self.normalized else "")

    def _decode(self, start, count, raw=False):
        if self.data is None:
            block = zero_elements(count, self.component_type, self.type)
        else:
            block = decode_elements(self.data, self.byte_offset + start * self.stride, count, self.stride,
                                    self.component_type, self.type)
        if not raw:
            block = finish(block, self.component_type, self.normalized)
        if self.sparse is not None:
            block = self.sparse.apply(block, start, raw=raw)
        return block

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return [self[i] for i in range(*idx.indices(self.count))]
        if idx < 0:
            idx += self.count
        if not 0 <= idx < self.count:
            raise IndexError("accessor %d has %d elements, no element %d" % (self.index, self.count, idx))

        if self.sparse is not None:
            value = self.sparse.lookup(idx)
            if value is not None:
                return to_element(value)
        return to_element(self._decode(idx, 1)[0])

    def __iter__(self):
        for start in range(0, self.count, ITER_BLOCK_SIZE):
            block = self._decode(start, min(ITER_BLOCK_SIZE, self.count - start))
            for value in block:
                yield to_element(value)

    def to_array(self, raw=False):
        """
        All elements as a new numpy array shaped (count,), (count, n) or
        (count, columns, rows). raw=True skips normalization and widening.
        """
        return self._decode(0, self.count, raw=raw)

    def to_list(self):
        return list(self)

    def out_of_range(self):
        """
        Indices of the elements outside the declared min/max.

        min and max are advisory: decoding never enforces them. Comparison is
        done on the stored values, after the sparse overrides.
        """
        accessor = self.accessor
        if accessor.min is None and accessor.max is None:
            return []

        values = self.to_array(raw=True).reshape(self.count, -1)
        outside = np.zeros(self.count, dtype=bool)
        dtype = values.dtype
        if accessor.min is not None and len(accessor.min) == values.shape[1]:
            outside |= (values < np.array(accessor.min).astype(dtype)).any(axis=1)
        if accessor.max is not None and len(accessor.max) == values.shape[1]:
            outside |= (values > np.array(accessor.max).astype(dtype)).any(axis=1)
        return np.nonzero(outside)[0].tolist()


class BinaryData():
    """Binary reader."""
    def __new__(cls, *args, **kwargs):
        raise RuntimeError("%s should not be instantiated" % cls)

    @staticmethod
    def get_buffer_view(document, buffer_view_idx):
        """Get binary data for buffer view."""
        return document.buffers.get_buffer_view(buffer_view_idx)

    @staticmethod
    def get_data_from_accessor(document, accessor_idx):
        """Get all the elements of an accessor as a numpy array."""
        return AccessorView(document, accessor_idx).to_array()

    @staticmethod
    def get_image_data(document, img_idx):
        """Get the (undecoded) bytes of an image."""
        return get_image_data(document, img_idx)

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

from .gltf2_io_constants import ComponentType, DataType


def element_layout(component_type, data_type):
    """
    Byte layout of one element.

    Return (element byte size, element shape, element strides). Matrix
    columns start on 4-byte boundaries, so MAT2 of 1-byte components and
    MAT3 of 1 or 2-byte components carry padding after each column; see the
    section about data alignment in the glTF 2.0 spec.
    """
    component_size = ComponentType.get_size(component_type)
    columns = DataType.num_columns(data_type)
    if columns:
        column_stride = (columns * component_size + 3) & ~3
        return columns * column_stride, (columns, columns), (column_stride, component_size)

    component_nb = DataType.num_elements(data_type)
    if component_nb == 1:
        return component_size, (), ()
    return component_nb * component_size, (component_nb,), (component_size,)


def decode_elements(data, offset, count, stride, component_type, data_type):
    """
    Decode count little-endian elements starting at byte offset of data,
    stride bytes apart. The caller has checked that the last element fits.

    Return a new array shaped (count,) + element shape, of the raw component type.
    """
    _, shape, strides = element_layout(component_type, data_type)
    dtype = ComponentType.to_numpy_dtype(component_type)
    if count == 0:
        return np.zeros((0,) + shape, dtype=dtype)

    view = np.ndarray(
        shape=(count,) + shape,
        dtype=dtype,
        buffer=data,
        offset=offset,
        strides=(stride,) + strides,
    )
    return view.copy()


def zero_elements(count, component_type, data_type):
    _, shape, _ = element_layout(component_type, data_type)
    return np.zeros((count,) + shape, dtype=ComponentType.to_numpy_dtype(component_type))


def normalize(array, component_type):
    """
    Map integer components to floats.

    Unsigned types divide by their maximum value; signed types divide by their
    maximum positive value and clamp to -1.0, so the most negative value and
    the one above it both map to -1.0.
    """
    divisor = ComponentType.normalization_divisor(component_type)
    if divisor is None:
        return array.astype(np.float32)
    result = array.astype(np.float64) / divisor
    if ComponentType.is_signed(component_type):
        result = np.maximum(result, -1.0)
    return result.astype(np.float32)


def widen(array, component_type):
    """Float components stay float32, integers widen to int64."""
    if component_type == ComponentType.Float:
        return array.astype(np.float32)
    return array.astype(np.int64)


def finish(array, component_type, normalized):
    """Raw decoded components to the values handed out to callers."""
    if normalized:
        return normalize(array, component_type)
    return widen(array, component_type)


def to_element(value):
    """One decoded element to a Python number, tuple, or tuple of column tuples."""
    if value.ndim == 0:
        return value.item()
    if value.ndim == 1:
        return tuple(value.tolist())
    return tuple(tuple(column) for column in value.tolist())

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

from enum import IntEnum

import numpy as np


GLB_MAGIC = b'glTF'
GLB_VERSION = 2
GLB_HEADER_SIZE = 12
GLB_CHUNK_HEADER_SIZE = 8

CHUNK_TYPE_JSON = b'JSON'
CHUNK_TYPE_BIN = b'BIN\0'


class ComponentType(IntEnum):
    Byte = 5120
    UnsignedByte = 5121
    Short = 5122
    UnsignedShort = 5123
    UnsignedInt = 5125
    Float = 5126

    @classmethod
    def is_valid(cls, component_type):
        return component_type in cls._value2member_map_

    @classmethod
    def to_numpy_dtype(cls, component_type):
        # Buffer bytes are always little-endian, whatever the host is.
        return {
            ComponentType.Byte: np.dtype('<i1'),
            ComponentType.UnsignedByte: np.dtype('<u1'),
            ComponentType.Short: np.dtype('<i2'),
            ComponentType.UnsignedShort: np.dtype('<u2'),
            ComponentType.UnsignedInt: np.dtype('<u4'),
            ComponentType.Float: np.dtype('<f4'),
        }[component_type]

    @classmethod
    def get_size(cls, component_type):
        return {
            ComponentType.Byte: 1,
            ComponentType.UnsignedByte: 1,
            ComponentType.Short: 2,
            ComponentType.UnsignedShort: 2,
            ComponentType.UnsignedInt: 4,
            ComponentType.Float: 4
        }[component_type]

    @classmethod
    def normalization_divisor(cls, component_type):
        """Largest positive value of an integer component type, None for floats."""
        return {
            ComponentType.Byte: 127.0,
            ComponentType.UnsignedByte: 255.0,
            ComponentType.Short: 32767.0,
            ComponentType.UnsignedShort: 65535.0,
            ComponentType.UnsignedInt: 4294967295.0,
            ComponentType.Float: None
        }[component_type]

    @classmethod
    def is_signed(cls, component_type):
        return component_type in (ComponentType.Byte, ComponentType.Short)

    @classmethod
    def is_unsigned_int(cls, component_type):
        return component_type in (
            ComponentType.UnsignedByte,
            ComponentType.UnsignedShort,
            ComponentType.UnsignedInt,
        )


class DataType:
    Scalar = "SCALAR"
    Vec2 = "VEC2"
    Vec3 = "VEC3"
    Vec4 = "VEC4"
    Mat2 = "MAT2"
    Mat3 = "MAT3"
    Mat4 = "MAT4"

    def __new__(cls, *args, **kwargs):
        raise RuntimeError("{} should not be instantiated".format(cls.__name__))

    @classmethod
    def is_valid(cls, data_type):
        return data_type in (
            DataType.Scalar, DataType.Vec2, DataType.Vec3, DataType.Vec4,
            DataType.Mat2, DataType.Mat3, DataType.Mat4,
        )

    @classmethod
    def num_elements(cls, data_type):
        return {
            DataType.Scalar: 1,
            DataType.Vec2: 2,
            DataType.Vec3: 3,
            DataType.Vec4: 4,
            DataType.Mat2: 4,
            DataType.Mat3: 9,
            DataType.Mat4: 16
        }[data_type]

    @classmethod
    def num_columns(cls, data_type):
        """Number of matrix columns, or 0 for scalar and vector types."""
        return {
            DataType.Mat2: 2,
            DataType.Mat3: 3,
            DataType.Mat4: 4,
        }.get(data_type, 0)


# Byte stride bounds for vertex buffer views
BYTE_STRIDE_MIN = 4
BYTE_STRIDE_MAX = 252

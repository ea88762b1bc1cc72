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

import struct

from ..com.gltf2_io_constants import (GLB_MAGIC, GLB_VERSION, GLB_HEADER_SIZE, GLB_CHUNK_HEADER_SIZE,
                                      CHUNK_TYPE_JSON, CHUNK_TYPE_BIN)
from ..com.gltf2_io_errors import ContainerError

TRAILING_DATA_POLICIES = ('ERROR', 'IGNORE')


class Glb:
    """Chunks of a binary glTF file."""

    def __init__(self, version, length, json, bin, chunk_types):
        self.version = version
        self.length = length
        self.json = json                # bytes, space padding stripped
        self.bin = bin                  # memoryview or None, zero padding kept
        self.chunk_types = chunk_types  # chunk type tags, in file order


def is_glb(content):
    return bytes(content[:4]) == GLB_MAGIC


class GlbReader():
    """GLB container reader."""
    def __new__(cls, *args, **kwargs):
        raise RuntimeError("%s should not be instantiated" % cls)

    @staticmethod
    def read(content, trailing_data='ERROR', log=None):
        """
        Split a .glb file into its JSON chunk and optional BIN chunk.

        No length field is trusted before it is checked against the bytes
        actually available. trailing_data is 'ERROR' or 'IGNORE' and applies
        to bytes past the declared file length, and to leftover bytes after
        the last chunk that are too few to hold a chunk header.
        """
        if trailing_data not in TRAILING_DATA_POLICIES:
            raise ValueError("trailing_data must be one of %s, got %r" % (TRAILING_DATA_POLICIES, trailing_data))

        content = memoryview(content).cast('B')

        if not is_glb(content):
            raise ContainerError('NotGlb', "This file is not a glb file (magic %r)" % bytes(content[:4]))

        if len(content) < GLB_HEADER_SIZE:
            raise ContainerError('LengthMismatch', "Bad GLB: header truncated to %d bytes" % len(content))

        version, file_size = struct.unpack_from('<II', content, offset=4)
        if version != GLB_VERSION:
            raise ContainerError('UnsupportedVersion', "GLB version must be %d; got %d" % (GLB_VERSION, version))

        if file_size > len(content) or file_size < GLB_HEADER_SIZE:
            raise ContainerError(
                'LengthMismatch',
                "Bad GLB: header declares %d bytes, file has %d" % (file_size, len(content)),
            )
        if file_size < len(content):
            GlbReader._trailing_data(
                trailing_data, log,
                "%d bytes after the declared file length of %d" % (len(content) - file_size, file_size),
            )
            content = content[:file_size]

        json_bytes = None
        glb_buffer = None
        chunk_types = []
        offset = GLB_HEADER_SIZE

        while offset < len(content):
            if len(content) - offset < GLB_CHUNK_HEADER_SIZE:
                GlbReader._trailing_data(
                    trailing_data, log,
                    "%d bytes after the last chunk" % (len(content) - offset),
                )
                break

            chunk_idx = len(chunk_types)
            type_, len_, data, offset = GlbReader.load_chunk(content, offset, chunk_idx)

            if type_ == CHUNK_TYPE_JSON:
                if chunk_idx != 0:
                    raise ContainerError('UnexpectedChunk', "Bad GLB: JSON chunk must be the first and only one",
                                         index=chunk_idx)
                json_bytes = bytes(data).rstrip(b' ')

            elif chunk_idx == 0:
                raise ContainerError('UnexpectedChunk', "Bad GLB: first chunk not JSON (%r)" % type_, index=0)

            elif type_ == CHUNK_TYPE_BIN:
                if chunk_idx != 1:
                    raise ContainerError('UnexpectedChunk',
                                         "Bad GLB: BIN chunk must appear once, right after the JSON chunk",
                                         index=chunk_idx)
                if len_ % 4 != 0:
                    raise ContainerError('ChunkAlignment',
                                         "Bad GLB: BIN chunk length %d is not a multiple of 4" % len_,
                                         index=chunk_idx)
                glb_buffer = data

            else:
                if log is not None:
                    log.debug("Skipping unknown GLB chunk %r (%d bytes)" % (type_, len_))

            chunk_types.append(type_)

        if json_bytes is None:
            raise ContainerError('MissingJsonChunk', "Bad GLB: no JSON chunk")

        if log is not None:
            log.info("GLB: %d chunk(s), JSON %d bytes, BIN %s" % (
                len(chunk_types), len(json_bytes),
                "%d bytes" % len(glb_buffer) if glb_buffer is not None else "absent",
            ))

        return Glb(version, file_size, json_bytes, glb_buffer, chunk_types)

    @staticmethod
    def load_chunk(content, offset, chunk_idx=0):
        """Load chunk."""
        data_length, data_type = struct.unpack_from('<I4s', content, offset)
        start = offset + GLB_CHUNK_HEADER_SIZE
        if data_length > len(content) - start:
            raise ContainerError(
                'ChunkOverrun',
                "Bad GLB: chunk %r declares %d bytes, only %d left" % (data_type, data_length, len(content) - start),
                index=chunk_idx,
            )
        data = content[start:start + data_length]

        return data_type, data_length, data, start + data_length

    @staticmethod
    def _trailing_data(policy, log, what):
        if policy == 'ERROR':
            raise ContainerError('TrailingData', "Bad GLB: %s" % what)
        if log is not None:
            log.warning("Ignoring trailing GLB data: %s" % what, popup=True)


def read_container(content, trailing_data='ERROR', log=None):
    """
    Return (json bytes, BIN chunk or None).

    Input that does not start with the GLB magic is taken as plain .gltf JSON.
    """
    try:
        glb = GlbReader.read(content, trailing_data, log)
    except ContainerError as e:
        if e.kind != 'NotGlb':
            raise
        return bytes(content), None
    return glb.json, glb.bin

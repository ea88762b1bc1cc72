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

import base64
import binascii
import threading

from ..com.gltf2_io_errors import BufferDataError, InvalidIndexError

SOURCE_BIN = 'BIN'
SOURCE_DATA_URI = 'DATA_URI'
SOURCE_EXTERNAL = 'EXTERNAL'


def is_data_uri(uri):
    return uri.startswith('data:')


def decode_data_uri(uri):
    """
    Decode a data:<mime>;base64,<payload> URI.

    Return (mime type, bytes). Only base64 payloads are supported.
    """
    sep = uri.find(',')
    if not is_data_uri(uri) or sep == -1:
        raise BufferDataError('InvalidDataUri', "Malformed data uri: %s..." % uri[:32])

    header = uri[len('data:'):sep]
    if not header.endswith(';base64'):
        raise BufferDataError('InvalidDataUri', "Only base64 data uris are supported, got 'data:%s'" % header)
    mime_type = header[:-len(';base64')]

    try:
        data = base64.b64decode(uri[sep + 1:], validate=True)
    except (binascii.Error, ValueError) as e:
        raise BufferDataError('InvalidDataUri', "Bad base64 payload in data uri: %s" % e)

    return mime_type, data


def load_uri(uri, loader):
    """
    Resolve a uri to bytes: data uris are decoded, anything else goes through
    the injected loader (uri -> bytes). Missing resources raise ResourceNotFound.
    """
    if is_data_uri(uri):
        return decode_data_uri(uri)[1]

    if loader is None:
        raise BufferDataError('ResourceNotFound', "Missing resource, '%s': no loader for external uris" % uri)
    try:
        data = loader(uri)
    except OSError as e:
        raise BufferDataError('ResourceNotFound', "Missing resource, '%s': %s" % (uri, e))
    if data is None:
        raise BufferDataError('ResourceNotFound', "Missing resource, '%s'." % uri)
    return data


class BufferStore:
    """
    Byte contents of the buffers of a document, by index.

    Each buffer is materialized once, on first access or through
    materialize_all(), and is read only afterwards. A lock per buffer keeps
    concurrent first accesses from loading the same buffer twice.
    """

    def __init__(self, gltf, glb_buffer=None, loader=None, log=None):
        self.gltf = gltf
        self.glb_buffer = glb_buffer
        self.loader = loader
        self.log = log

        count = len(gltf.buffers or [])
        self.__data = [None] * count
        self.__locks = [threading.Lock() for _ in range(count)]

    def __len__(self):
        return len(self.__data)

    def _buffer(self, buffer_idx):
        if not 0 <= buffer_idx < len(self.__data):
            raise InvalidIndexError("Buffer index %d out of range (%d buffers)" % (buffer_idx, len(self.__data)),
                                    index=buffer_idx, target='buffers')
        return self.gltf.buffers[buffer_idx]

    def source_kind(self, buffer_idx):
        uri = self._buffer(buffer_idx).uri
        if uri is None:
            return SOURCE_BIN
        if is_data_uri(uri):
            return SOURCE_DATA_URI
        return SOURCE_EXTERNAL

    def is_loaded(self, buffer_idx):
        return self.__data[buffer_idx] is not None

    def get(self, buffer_idx):
        """Return the bytes of a buffer as a read only memoryview."""
        self._buffer(buffer_idx)
        data = self.__data[buffer_idx]
        if data is not None:
            return data

        with self.__locks[buffer_idx]:
            if self.__data[buffer_idx] is None:
                self.__data[buffer_idx] = self.load_buffer(buffer_idx)
            return self.__data[buffer_idx]

    def materialize_all(self):
        for buffer_idx in range(len(self.__data)):
            self.get(buffer_idx)

    def load_buffer(self, buffer_idx):
        """Load buffer."""
        buffer = self._buffer(buffer_idx)

        if buffer.uri is not None:
            data = load_uri(buffer.uri, self.loader)
            if len(data) != buffer.byte_length:
                raise BufferDataError(
                    'BufferLengthMismatch',
                    "Buffer %d declares %d bytes, its uri holds %d" % (buffer_idx, buffer.byte_length, len(data)),
                    index=buffer_idx, field="buffers[%d].byteLength" % buffer_idx,
                )

        else:
            # GLB-stored buffer
            if buffer_idx != 0:
                raise BufferDataError(
                    'MissingBinaryChunk',
                    "Buffer %d has no uri; only buffer 0 can refer to the GLB BIN chunk" % buffer_idx,
                    index=buffer_idx, field="buffers[%d].uri" % buffer_idx,
                )
            if self.glb_buffer is None:
                raise BufferDataError(
                    'MissingBinaryChunk', "Buffer 0 has no uri and there is no GLB BIN chunk",
                    index=buffer_idx, field="buffers[0].uri",
                )
            # The BIN chunk may hold up to 3 bytes of padding after the buffer
            padding = len(self.glb_buffer) - buffer.byte_length
            if not 0 <= padding <= 3:
                raise BufferDataError(
                    'BufferLengthMismatch',
                    "Buffer 0 declares %d bytes, the BIN chunk holds %d" % (buffer.byte_length, len(self.glb_buffer)),
                    index=buffer_idx, field="buffers[0].byteLength",
                )
            data = self.glb_buffer[:buffer.byte_length]

        if self.log is not None:
            self.log.debug("Buffer %d loaded from %s: %d bytes" % (buffer_idx, self.source_kind(buffer_idx), len(data)))

        return memoryview(bytes(data))

    def get_buffer_view(self, buffer_view_idx):
        """Get binary data for buffer view."""
        buffer_views = self.gltf.buffer_views or []
        if not 0 <= buffer_view_idx < len(buffer_views):
            raise InvalidIndexError(
                "BufferView index %d out of range (%d bufferViews)" % (buffer_view_idx, len(buffer_views)),
                index=buffer_view_idx, target='bufferViews',
            )
        buffer_view = buffer_views[buffer_view_idx]
        buffer = self.get(buffer_view.buffer)

        byte_offset = buffer_view.byte_offset or 0
        if byte_offset + buffer_view.byte_length > len(buffer):
            raise BufferDataError(
                'BufferViewOutOfBounds',
                "BufferView %d spans [%d, %d), buffer %d has %d bytes" % (
                    buffer_view_idx, byte_offset, byte_offset + buffer_view.byte_length,
                    buffer_view.buffer, len(buffer)),
                index=buffer_view_idx, field="bufferViews[%d]" % buffer_view_idx,
            )

        return buffer[byte_offset:byte_offset + buffer_view.byte_length]

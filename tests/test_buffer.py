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

import os
import tempfile
import threading
import time
import unittest

from gltf2_loader import BufferDataError, DictLoader, FileLoader, load
from gltf2_loader.com.gltf2_io import gltf_from_dict
from gltf2_loader.exp.gltf2_io_export import glb_to_bytes
from gltf2_loader.imp.gltf2_io_binary import BinaryData
from gltf2_loader.imp.gltf2_io_buffer import (BufferStore, decode_data_uri, SOURCE_BIN, SOURCE_DATA_URI,
                                              SOURCE_EXTERNAL)

from gltf_builder import gltf_json

ASSET = {'version': '2.0'}


def external(uri='data.bin', byte_length=4):
    return gltf_json({'asset': ASSET, 'buffers': [{'byteLength': byte_length, 'uri': uri}]})


class TestDataUri(unittest.TestCase):

    def test_decode(self):
        mime_type, data = decode_data_uri('data:application/octet-stream;base64,AAECAw==')
        self.assertEqual(mime_type, 'application/octet-stream')
        self.assertEqual(data, b'\x00\x01\x02\x03')

    def test_bad_base64(self):
        with self.assertRaises(BufferDataError) as ctx:
            decode_data_uri('data:application/octet-stream;base64,AA@@')
        self.assertEqual(ctx.exception.kind, 'InvalidDataUri')

    def test_not_base64(self):
        with self.assertRaises(BufferDataError) as ctx:
            decode_data_uri('data:text/plain,abcd')
        self.assertEqual(ctx.exception.kind, 'InvalidDataUri')

    def test_no_payload(self):
        with self.assertRaises(BufferDataError) as ctx:
            decode_data_uri('data:application/octet-stream;base64')
        self.assertEqual(ctx.exception.kind, 'InvalidDataUri')

    def test_invalid_data_uri_is_fatal(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(external('data:application/octet-stream;base64,!!!!'))
        self.assertEqual(ctx.exception.kind, 'InvalidDataUri')


class TestBufferSources(unittest.TestCase):

    def test_bin_chunk(self):
        content = glb_to_bytes({'asset': ASSET, 'buffers': [{'byteLength': 8}]}, bytes(range(8)))
        document = load(content)
        self.assertEqual(bytes(document.buffer_data(0)), bytes(range(8)))
        self.assertEqual(document.buffers.source_kind(0), SOURCE_BIN)

    def test_bin_chunk_padding_stripped(self):
        content = glb_to_bytes({'asset': ASSET, 'buffers': [{'byteLength': 5}]}, b'12345')
        self.assertEqual(bytes(load(content).buffer_data(0)), b'12345')

    def test_missing_binary_chunk(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(glb_to_bytes({'asset': ASSET, 'buffers': [{'byteLength': 4}]}))
        self.assertEqual(ctx.exception.kind, 'MissingBinaryChunk')

    def test_only_buffer_zero_uses_bin_chunk(self):
        gltf = {'asset': ASSET, 'buffers': [{'byteLength': 4}, {'byteLength': 4}]}
        with self.assertRaises(BufferDataError) as ctx:
            load(glb_to_bytes(gltf, b'abcd'))
        self.assertEqual(ctx.exception.kind, 'MissingBinaryChunk')
        self.assertEqual(ctx.exception.index, 1)

    def test_bin_chunk_too_long(self):
        content = glb_to_bytes({'asset': ASSET, 'buffers': [{'byteLength': 4}]}, b'abcdefgh')
        with self.assertRaises(BufferDataError) as ctx:
            load(content)
        self.assertEqual(ctx.exception.kind, 'BufferLengthMismatch')

    def test_data_uri(self):
        document = load(external('data:application/octet-stream;base64,AAECAw=='))
        self.assertEqual(bytes(document.buffer_data(0)), b'\x00\x01\x02\x03')
        self.assertEqual(document.buffers.source_kind(0), SOURCE_DATA_URI)

    def test_external(self):
        document = load(external(), loader=DictLoader({'data.bin': b'wxyz'}))
        self.assertEqual(bytes(document.buffer_data(0)), b'wxyz')
        self.assertEqual(document.buffers.source_kind(0), SOURCE_EXTERNAL)

    def test_external_not_found(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(external(), loader=DictLoader({}))
        self.assertEqual(ctx.exception.kind, 'ResourceNotFound')

    def test_external_without_loader(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(external())
        self.assertEqual(ctx.exception.kind, 'ResourceNotFound')

    def test_external_loader_returns_none(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(external(), loader=lambda uri: None)
        self.assertEqual(ctx.exception.kind, 'ResourceNotFound')

    def test_length_mismatch(self):
        with self.assertRaises(BufferDataError) as ctx:
            load(external(), loader=DictLoader({'data.bin': b'abc'}))
        self.assertEqual(ctx.exception.kind, 'BufferLengthMismatch')
        self.assertEqual(ctx.exception.field, 'buffers[0].byteLength')

    def test_file_loader(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(os.path.join(tmpdir, 'my data.bin'), 'wb') as f:
                f.write(b'1234')
            self.assertEqual(FileLoader(tmpdir)('my%20data.bin'), b'1234')
            with self.assertRaises(FileNotFoundError):
                FileLoader(tmpdir)('other.bin')


class TestBufferViews(unittest.TestCase):

    def test_slice(self):
        gltf = {
            'asset': ASSET,
            'buffers': [{'byteLength': 8}],
            'bufferViews': [{'buffer': 0, 'byteOffset': 2, 'byteLength': 4}],
        }
        document = load(glb_to_bytes(gltf, b'abcdefgh'))
        self.assertEqual(bytes(document.buffer_view_data(0)), b'cdef')
        self.assertEqual(bytes(BinaryData.get_buffer_view(document, 0)), b'cdef')

    def test_view_outside_buffer(self):
        gltf = {
            'asset': ASSET,
            'buffers': [{'byteLength': 8}],
            'bufferViews': [{'buffer': 0, 'byteOffset': 6, 'byteLength': 4}],
        }
        with self.assertRaises(BufferDataError) as ctx:
            load(glb_to_bytes(gltf, b'abcdefgh'))
        self.assertEqual(ctx.exception.kind, 'BufferViewOutOfBounds')
        self.assertEqual(ctx.exception.index, 0)


class TestLazyBuffers(unittest.TestCase):

    def test_errors_surface_on_first_access(self):
        document = load(external(), {'lazy_buffers': True}, loader=DictLoader({}))
        self.assertFalse(document.buffers.is_loaded(0))
        with self.assertRaises(BufferDataError) as ctx:
            document.buffer_data(0)
        self.assertEqual(ctx.exception.kind, 'ResourceNotFound')

    def test_materialized_once(self):
        calls = []

        def slow_loader(uri):
            calls.append(uri)
            time.sleep(0.05)
            return b'wxyz'

        document = load(external(), {'lazy_buffers': True}, loader=slow_loader)
        results = []
        threads = [threading.Thread(target=lambda: results.append(document.buffer_data(0))) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(calls, ['data.bin'])
        self.assertEqual(len(results), 8)
        self.assertTrue(all(result is results[0] for result in results))

    def test_store_without_document(self):
        gltf = gltf_from_dict({'asset': ASSET, 'buffers': [{'byteLength': 4, 'uri': 'a.bin'}]})
        store = BufferStore(gltf, loader=DictLoader({'a.bin': b'abcd'}))
        self.assertEqual(len(store), 1)
        self.assertFalse(store.is_loaded(0))
        store.materialize_all()
        self.assertTrue(store.is_loaded(0))
        self.assertEqual(bytes(store.get(0)), b'abcd')


if __name__ == '__main__':
    unittest.main()

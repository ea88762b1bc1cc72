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

from os.path import splitext

from ..com.gltf2_io_errors import InvalidIndexError
from .gltf2_io_buffer import is_data_uri, decode_data_uri, load_uri, SOURCE_DATA_URI, SOURCE_EXTERNAL
from .gltf2_io_loaders import uri_to_path

SOURCE_BUFFER_VIEW = 'BUFFER_VIEW'

MIME_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
}


# Note that image bytes are never decoded here
class ImageSource:
    """Encoded bytes of an image and where they came from."""

    def __init__(self, index, data, mime_type, source_kind):
        self.index = index
        self.data = data
        self.mime_type = mime_type
        self.source_kind = source_kind

    def __repr__(self):
        return "<ImageSource %d: %d bytes, %s, from %s>" % (
            self.index, len(self.data), self.mime_type, self.source_kind)


def guess_mime_type(uri):
    return MIME_TYPES.get(splitext(uri_to_path(uri))[1].lower())


def get_image_data(document, img_idx):
    """Get data from image."""
    images = document.gltf.images or []
    if not 0 <= img_idx < len(images):
        raise InvalidIndexError("Image index %d out of range (%d images)" % (img_idx, len(images)),
                                index=img_idx, target='images')
    pyimage = images[img_idx]

    if pyimage.buffer_view is not None:
        data = document.buffers.get_buffer_view(pyimage.buffer_view)
        return ImageSource(img_idx, data, pyimage.mime_type, SOURCE_BUFFER_VIEW)

    if is_data_uri(pyimage.uri):
        mime_type, data = decode_data_uri(pyimage.uri)
        return ImageSource(img_idx, memoryview(data), pyimage.mime_type or mime_type or None, SOURCE_DATA_URI)

    data = load_uri(pyimage.uri, document.loader)
    mime_type = pyimage.mime_type or guess_mime_type(pyimage.uri)
    return ImageSource(img_idx, memoryview(data), mime_type, SOURCE_EXTERNAL)

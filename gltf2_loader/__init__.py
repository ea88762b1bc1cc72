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

from .com.gltf2_io_errors import (GltfImportError, ContainerError, JsonError, InvalidIndexError,
                                  BufferDataError, AccessorError, ExtensionError)
from .imp.gltf2_io_binary import AccessorView
from .imp.gltf2_io_gltf import glTFLoader, Document, load, load_file
from .imp.gltf2_io_loaders import FileLoader, DictLoader

__version__ = '1.0.0'

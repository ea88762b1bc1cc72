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

import json
import logging
import re
from os.path import dirname, abspath

from ..com.gltf2_io import gltf_from_dict
from ..com.gltf2_io_debug import Log
from ..com.gltf2_io_errors import JsonError, AccessorError, BufferDataError, ExtensionError
from ..com.gltf2_io_extensions import ExtensionRegistry, EXTENSION_TEXTURES, is_recognized
from ..exp.gltf2_io_export import glb_to_bytes
from .gltf2_io_binary import AccessorView
from .gltf2_io_buffer import BufferStore, SOURCE_BIN
from .gltf2_io_glb import read_container
from .gltf2_io_image import get_image_data
from .gltf2_io_loaders import FileLoader
from .gltf2_io_resolve import IndexResolver, MATERIAL_TEXTURES
from .gltf2_io_sparse import SparseOverlay

DEFAULT_IMPORT_SETTINGS = {
    'loglevel': logging.ERROR,
    'strict': False,
    'glb_trailing_data': 'ERROR',
    'lazy_buffers': False,
}

# Kind of entity held by each top level array, as seen by extension decoders
ENTITY_KINDS = (
    ('accessors', 'accessor'),
    ('animations', 'animation'),
    ('buffers', 'buffer'),
    ('buffer_views', 'bufferView'),
    ('cameras', 'camera'),
    ('images', 'image'),
    ('materials', 'material'),
    ('meshes', 'mesh'),
    ('nodes', 'node'),
    ('samplers', 'sampler'),
    ('scenes', 'scene'),
    ('skins', 'skin'),
    ('textures', 'texture'),
)

ARRAY_NAMES = {
    'buffer_views': 'bufferViews',
}

_VERSION_RE = re.compile(r'^(\d+)\.(\d+)$')


class Document:
    """
    A loaded glTF document.

    Read only once built: accessor views and image sources are computed from
    the buffers on request, and can be used from several threads at once.
    """

    def __init__(self, gltf, buffers, counts, extensions, extension_errors, loader=None):
        self.gltf = gltf
        self.buffers = buffers
        self.counts = counts
        self.extensions = extensions
        self.extension_errors = extension_errors
        self.loader = loader
        self.messages = []

    def accessor(self, accessor_idx):
        """Typed, lazily decoded elements of an accessor (AccessorView)."""
        return AccessorView(self, accessor_idx)

    def accessor_data(self, accessor_idx):
        """All elements of an accessor as a numpy array."""
        return AccessorView(self, accessor_idx).to_array()

    def buffer_data(self, buffer_idx):
        return self.buffers.get(buffer_idx)

    def buffer_view_data(self, buffer_view_idx):
        return self.buffers.get_buffer_view(buffer_view_idx)

    def image_data(self, img_idx):
        """Encoded bytes of an image (ImageSource); decoding is up to the caller."""
        return get_image_data(self, img_idx)

    def extension(self, path, name):
        """Decoded extension name of the entity at path ('' for the root), or None."""
        return self.extensions.get(path, {}).get(name)

    def to_dict(self):
        return self.gltf.to_dict()

    def to_glb(self):
        """Re-serialize as a .glb; buffer 0 goes back to the BIN chunk if it came from there."""
        binary = b''
        if len(self.buffers) and self.buffers.source_kind(0) == SOURCE_BIN:
            binary = self.buffers.get(0)
        return glb_to_bytes(self.to_dict(), binary)


class glTFLoader():
    """glTF Loader class."""

    def __init__(self, content, import_settings=None, loader=None):
        """initialization."""
        self.content = content
        self.import_settings = dict(import_settings or {})
        self.loader = loader
        self.glb_buffer = None
        self.data = None

        for key, value in DEFAULT_IMPORT_SETTINGS.items():
            if key not in self.import_settings.keys():
                self.import_settings[key] = value

        log = Log(self.import_settings['loglevel'])
        self.log = log.logger
        self.log_handler = log

    @staticmethod
    def load_json(content):
        def bad_constant(val):
            raise JsonError('InvalidJson', 'Bad glTF: json contained %s' % val)
        try:
            text = str(content, encoding='utf-8')
        except UnicodeDecodeError as e:
            raise JsonError('InvalidUtf8', 'Bad glTF: json is not utf-8: %s' % e)
        try:
            return json.loads(text, parse_constant=bad_constant)
        except ValueError as e:
            raise JsonError('InvalidJson', 'Bad glTF: json error: %s' % e.args[0])

    @staticmethod
    def check_version(gltf):
        """Check version. This is done *before* gltf_from_dict."""
        if not isinstance(gltf, dict) or not isinstance(gltf.get('asset'), dict):
            raise JsonError('SchemaViolation', "Bad glTF: no asset in json", field='asset')
        if 'version' not in gltf['asset']:
            raise JsonError('SchemaViolation', "Bad glTF: no version", field='asset.version')

        version = _parse_version(gltf['asset']['version'])
        if version is None or version[0] != 2:
            raise JsonError('UnsupportedAssetVersion',
                            "glTF version must be 2.x; got %s" % gltf['asset']['version'], field='asset.version')
        if 'minVersion' in gltf['asset']:
            min_version = _parse_version(gltf['asset']['minVersion'])
            if min_version is None or min_version > (2, 0):
                raise JsonError('UnsupportedAssetVersion',
                                "glTF minVersion %s is not supported" % gltf['asset']['minVersion'],
                                field='asset.minVersion')

    def checks(self):
        """Some checks."""
        extensions_used = self.data.extensions_used or []
        for extension in self.data.extensions_required or []:
            if extension not in extensions_used:
                raise JsonError('SchemaViolation', "Extension required must be in Extension Used too (%s)" % extension,
                                field='extensionsRequired')
            if not is_recognized(extension):
                if self.import_settings['strict']:
                    raise ExtensionError(extension, "required extension is not supported",
                                         field='extensionsRequired')
                # Non blocking: data of the unknown extension is kept opaque
                self.log_handler.warning("Extension %s is required but not supported" % extension, popup=True)

    def read(self):
        """Read content, return the Document."""
        try:
            return self._read()
        finally:
            self.log_handler.flush()

    def _read(self):
        json_bytes, self.glb_buffer = read_container(
            self.content, self.import_settings['glb_trailing_data'], self.log_handler)

        gltf = glTFLoader.load_json(json_bytes)
        glTFLoader.check_version(gltf)

        try:
            self.data = gltf_from_dict(gltf)
        except AssertionError as e:
            raise JsonError('SchemaViolation', "Couldn't parse glTF: %s" % e)

        self.checks()

        registry = ExtensionRegistry(self.data.extensions_required, self.import_settings['strict'], self.log_handler)
        extensions = self.decode_extensions(registry)

        counts = IndexResolver(self.data, extensions).resolve()

        buffers = BufferStore(self.data, self.glb_buffer, self.loader, self.log_handler)
        document = Document(self.data, buffers, counts, extensions, registry.errors, self.loader)

        # Lazy buffers are left untouched, except those behind sparse indices
        if not self.import_settings['lazy_buffers']:
            buffers.materialize_all()
        self.check_sparse(document)

        self.log_handler.info("glTF loaded: %d buffers, %d bufferViews, %d accessors" % (
            counts['buffers'], counts['bufferViews'], counts['accessors']))
        document.messages = self.log_handler.messages()
        return document

    def decode_extensions(self, registry):
        """Decode the extensions of every entity, keyed by entity path ('' for the root)."""
        decoded = {}

        def visit(path, obj, entity):
            extensions = obj.get('extensions') if isinstance(obj, dict) else getattr(obj, 'extensions', None)
            if extensions is None:
                return
            if not isinstance(extensions, dict):
                raise JsonError('SchemaViolation', "extensions must be an object", field=path + '.extensions')
            result = registry.decode_all(path, extensions, entity)
            if result:
                decoded[path] = result

        visit('', self.data, 'root')
        for attr, entity in ENTITY_KINDS:
            name = ARRAY_NAMES.get(attr, attr)
            for idx, obj in enumerate(getattr(self.data, attr) or []):
                path = '%s[%d]' % (name, idx)
                visit(path, obj, entity)

                if entity == 'mesh' and isinstance(obj.get('primitives'), list):
                    for prim_idx, prim in enumerate(obj['primitives']):
                        visit('%s.primitives[%d]' % (path, prim_idx), prim, 'primitive')

                elif entity == 'material':
                    for parent, key in MATERIAL_TEXTURES:
                        owner, owner_path = obj, path
                        if parent is not None:
                            owner, owner_path = obj.get(parent), '%s.%s' % (path, parent)
                        if isinstance(owner, dict) and isinstance(owner.get(key), dict):
                            visit('%s.%s' % (owner_path, key), owner[key], 'textureInfo')

                    # Texture infos of material extensions, once their payload decoded
                    for name, extension in decoded.get(path, {}).items():
                        if not extension.recognized:
                            continue
                        for key in EXTENSION_TEXTURES.get(name, ()):
                            info = extension.extension.get(key)
                            if isinstance(info, dict):
                                visit('%s.extensions.%s.%s' % (path, name, key), info, 'textureInfo')

        return decoded

    def check_sparse(self, document):
        """
        Sparse indices ordering and bounds are checked now, whether the
        accessor is ever read or not. Other accessor errors wait for the read,
        and so do buffer errors of lazy buffers.
        """
        for accessor_idx, accessor in enumerate(self.data.accessors or []):
            if accessor.sparse is None:
                continue
            try:
                indices = SparseOverlay.read_indices(document, accessor, accessor_idx)
            except (AccessorError, BufferDataError) as e:
                self.log_handler.debug("Accessor %d: deferred error: %s" % (accessor_idx, e))
                continue
            SparseOverlay.validate_indices(indices, accessor.count, accessor_idx)


def _parse_version(version):
    if not isinstance(version, str):
        return None
    match = _VERSION_RE.match(version)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def load(content, import_settings=None, loader=None):
    """
    Load a .glb or .gltf from bytes.

    loader maps external uris to bytes; without one, only embedded and data
    uri resources can be resolved.
    """
    return glTFLoader(content, import_settings, loader).read()


def load_file(filename, import_settings=None):
    """Load a .glb or .gltf file; external uris are read relative to its directory."""
    with open(filename, 'rb') as f:
        content = f.read()
    return load(content, import_settings, FileLoader(dirname(abspath(filename))))

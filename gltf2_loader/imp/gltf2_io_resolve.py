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

from ..com.gltf2_io_constants import BYTE_STRIDE_MIN, BYTE_STRIDE_MAX
from ..com.gltf2_io_errors import InvalidIndexError, JsonError, BufferDataError

# Texture infos of a core material, relative to the material
MATERIAL_TEXTURES = (
    ('pbrMetallicRoughness', 'baseColorTexture'),
    ('pbrMetallicRoughness', 'metallicRoughnessTexture'),
    (None, 'normalTexture'),
    (None, 'occlusionTexture'),
    (None, 'emissiveTexture'),
)

# Arrays declared by root extensions, that node or primitive extensions index
ROOT_EXTENSION_ARRAYS = (
    ('KHR_lights_punctual', 'lights'),
    ('KHR_materials_variants', 'variants'),
)


def _schema_error(message, field):
    return JsonError('SchemaViolation', message, field=field)


def _items(obj, key, path):
    """obj[key] as a list ([] when absent)."""
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _schema_error("expected an array", "%s.%s" % (path, key))
    return value


def _object(obj, key, path):
    """obj[key] as a dict (None when absent)."""
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise _schema_error("expected an object", "%s.%s" % (path, key))
    return value


class IndexResolver:
    """
    Bounds check of every cross-reference of a document.

    References are plain indices into the top level arrays, so this is a
    single pass over the tree with no graph traversal. Nothing is built
    except counts, the length of each array references can point into.
    """

    def __init__(self, gltf, extensions=None):
        self.gltf = gltf
        self.extensions = extensions or {}
        self.counts = {}
        self.unchecked = set()

    def resolve(self):
        gltf = self.gltf

        self.counts = {
            'accessors': len(gltf.accessors or []),
            'animations': len(gltf.animations or []),
            'buffers': len(gltf.buffers or []),
            'bufferViews': len(gltf.buffer_views or []),
            'cameras': len(gltf.cameras or []),
            'images': len(gltf.images or []),
            'materials': len(gltf.materials or []),
            'meshes': len(gltf.meshes or []),
            'nodes': len(gltf.nodes or []),
            'samplers': len(gltf.samplers or []),
            'scenes': len(gltf.scenes or []),
            'skins': len(gltf.skins or []),
            'textures': len(gltf.textures or []),
        }
        # Arrays declared by root extensions. A malformed root payload has no
        # count: references into it are left unchecked.
        root = self.extensions.get('', {})
        for name, key in ROOT_EXTENSION_ARRAYS:
            extension = root.get(name)
            if extension is None:
                continue
            target = '%s.%s' % (name, key)
            if extension.recognized:
                self.counts[target] = len(extension[key])
            else:
                self.unchecked.add(target)

        self.check(gltf.scene, 'scenes', 'scene')
        self.resolve_scenes()
        self.resolve_nodes()
        self.resolve_meshes()
        self.resolve_skins()
        self.resolve_animations()
        self.resolve_materials()
        self.resolve_textures()
        self.resolve_images()
        self.resolve_buffer_views()
        self.resolve_accessors()
        self.resolve_extensions()

        return self.counts

    def check(self, index, target, field, count=None):
        """Raise unless index is None or lies within the target array."""
        if index is None:
            return
        if not isinstance(index, int) or isinstance(index, bool):
            raise _schema_error("expected an index into %s, got %r" % (target, index), field)
        if count is None:
            count = self.counts.get(target, 0)
        if not 0 <= index < count:
            raise InvalidIndexError(
                "Index %d out of range for %s (%d items)" % (index, target, count),
                index=index, field=field, target=target,
            )

    def resolve_scenes(self):
        for scene_idx, scene in enumerate(self.gltf.scenes or []):
            path = 'scenes[%d]' % scene_idx
            for i, node in enumerate(_items(scene, 'nodes', path)):
                self.check(node, 'nodes', '%s.nodes[%d]' % (path, i))

    def resolve_nodes(self):
        for node_idx, node in enumerate(self.gltf.nodes or []):
            path = 'nodes[%d]' % node_idx
            for i, child in enumerate(_items(node, 'children', path)):
                self.check(child, 'nodes', '%s.children[%d]' % (path, i))
            self.check(node.get('mesh'), 'meshes', path + '.mesh')
            self.check(node.get('skin'), 'skins', path + '.skin')
            self.check(node.get('camera'), 'cameras', path + '.camera')

    def resolve_meshes(self):
        for mesh_idx, mesh in enumerate(self.gltf.meshes or []):
            path = 'meshes[%d]' % mesh_idx
            for prim_idx, prim in enumerate(_items(mesh, 'primitives', path)):
                prim_path = '%s.primitives[%d]' % (path, prim_idx)
                if not isinstance(prim, dict):
                    raise _schema_error("expected an object", prim_path)
                attributes = _object(prim, 'attributes', prim_path) or {}
                for semantic, accessor in attributes.items():
                    self.check(accessor, 'accessors', '%s.attributes.%s' % (prim_path, semantic))
                self.check(prim.get('indices'), 'accessors', prim_path + '.indices')
                self.check(prim.get('material'), 'materials', prim_path + '.material')
                for target_idx, target in enumerate(_items(prim, 'targets', prim_path)):
                    if not isinstance(target, dict):
                        raise _schema_error("expected an object", '%s.targets[%d]' % (prim_path, target_idx))
                    for semantic, accessor in target.items():
                        self.check(accessor, 'accessors', '%s.targets[%d].%s' % (prim_path, target_idx, semantic))

    def resolve_skins(self):
        for skin_idx, skin in enumerate(self.gltf.skins or []):
            path = 'skins[%d]' % skin_idx
            self.check(skin.get('inverseBindMatrices'), 'accessors', path + '.inverseBindMatrices')
            self.check(skin.get('skeleton'), 'nodes', path + '.skeleton')
            for i, joint in enumerate(_items(skin, 'joints', path)):
                self.check(joint, 'nodes', '%s.joints[%d]' % (path, i))

    def resolve_animations(self):
        for anim_idx, anim in enumerate(self.gltf.animations or []):
            path = 'animations[%d]' % anim_idx
            samplers = _items(anim, 'samplers', path)
            for i, sampler in enumerate(samplers):
                sampler_path = '%s.samplers[%d]' % (path, i)
                if not isinstance(sampler, dict):
                    raise _schema_error("expected an object", sampler_path)
                self.check(sampler.get('input'), 'accessors', sampler_path + '.input')
                self.check(sampler.get('output'), 'accessors', sampler_path + '.output')
            for i, channel in enumerate(_items(anim, 'channels', path)):
                channel_path = '%s.channels[%d]' % (path, i)
                if not isinstance(channel, dict):
                    raise _schema_error("expected an object", channel_path)
                # Channel samplers index the animation's own samplers
                self.check(channel.get('sampler'), '%s.samplers' % path, channel_path + '.sampler',
                           count=len(samplers))
                target = _object(channel, 'target', channel_path) or {}
                self.check(target.get('node'), 'nodes', channel_path + '.target.node')

    def resolve_materials(self):
        for mat_idx, material in enumerate(self.gltf.materials or []):
            path = 'materials[%d]' % mat_idx
            for parent, key in MATERIAL_TEXTURES:
                owner, owner_path = material, path
                if parent is not None:
                    owner = _object(material, parent, path)
                    owner_path = '%s.%s' % (path, parent)
                    if owner is None:
                        continue
                info = _object(owner, key, owner_path)
                if info is not None:
                    self.check(info.get('index'), 'textures', '%s.%s.index' % (owner_path, key))

    def resolve_textures(self):
        for tex_idx, texture in enumerate(self.gltf.textures or []):
            path = 'textures[%d]' % tex_idx
            self.check(texture.get('sampler'), 'samplers', path + '.sampler')
            self.check(texture.get('source'), 'images', path + '.source')

    def resolve_images(self):
        for img_idx, image in enumerate(self.gltf.images or []):
            self.check(image.buffer_view, 'bufferViews', 'images[%d].bufferView' % img_idx)

    def resolve_buffer_views(self):
        for view_idx, buffer_view in enumerate(self.gltf.buffer_views or []):
            path = 'bufferViews[%d]' % view_idx
            self.check(buffer_view.buffer, 'buffers', path + '.buffer')

            stride = buffer_view.byte_stride
            if stride is not None and (stride < BYTE_STRIDE_MIN or stride > BYTE_STRIDE_MAX or stride % 4 != 0):
                raise _schema_error(
                    "byteStride must be a multiple of 4 in [%d, %d], got %d" % (BYTE_STRIDE_MIN, BYTE_STRIDE_MAX, stride),
                    path + '.byteStride',
                )

            buffer = self.gltf.buffers[buffer_view.buffer]
            end = (buffer_view.byte_offset or 0) + buffer_view.byte_length
            if end > buffer.byte_length:
                raise BufferDataError(
                    'BufferViewOutOfBounds',
                    "BufferView %d ends at byte %d, buffer %d has %d bytes" % (
                        view_idx, end, buffer_view.buffer, buffer.byte_length),
                    index=view_idx, field=path,
                )

    def resolve_accessors(self):
        for acc_idx, accessor in enumerate(self.gltf.accessors or []):
            path = 'accessors[%d]' % acc_idx
            self.check(accessor.buffer_view, 'bufferViews', path + '.bufferView')
            if accessor.sparse is not None:
                self.check(accessor.sparse.indices.buffer_view, 'bufferViews', path + '.sparse.indices.bufferView')
                self.check(accessor.sparse.values.buffer_view, 'bufferViews', path + '.sparse.values.bufferView')

    def resolve_extensions(self):
        for path, extensions in self.extensions.items():
            for name, extension in extensions.items():
                prefix = '%s.extensions.%s.' % (path, name) if path else 'extensions.%s.' % name
                for field, target, index in extension.references:
                    if target in self.unchecked:
                        continue
                    self.check(index, target, prefix + field)

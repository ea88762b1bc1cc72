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

# Object model of the parts of a glTF 2.0 document that carry binary data.
# Scene graph arrays are kept as plain parsed JSON.
#
# Every from_* helper raises AssertionError on a type violation; the loader
# turns those into JsonError with the path of the offending property.


def _expect(condition, message):
    if not condition:
        raise AssertionError(message)


def from_int(x):
    _expect(isinstance(x, int) and not isinstance(x, bool), "expected an integer, got %r" % (x,))
    return x


def from_index(x):
    _expect(isinstance(x, int) and not isinstance(x, bool) and x >= 0, "expected an index, got %r" % (x,))
    return x


def from_positive_int(x):
    _expect(isinstance(x, int) and not isinstance(x, bool) and x >= 1, "expected an integer >= 1, got %r" % (x,))
    return x


def from_none(x):
    _expect(x is None, "expected nothing, got %r" % (x,))
    return x


def from_union(fs, x):
    messages = []
    for f in fs:
        try:
            return f(x)
        except AssertionError as e:
            messages.append(str(e))
    raise AssertionError(" or ".join(messages))


def from_dict(f, x):
    _expect(isinstance(x, dict), "expected an object, got %r" % (x,))
    return {k: f(v) for (k, v) in x.items()}


def from_list(f, x):
    _expect(isinstance(x, list), "expected an array, got %r" % (x,))
    return [f(y) for y in x]


def from_float(x):
    _expect(isinstance(x, (float, int)) and not isinstance(x, bool), "expected a number, got %r" % (x,))
    return x


def from_str(x):
    _expect(isinstance(x, str), "expected a string, got %r" % (x,))
    return x


def from_bool(x):
    _expect(isinstance(x, bool), "expected a boolean, got %r" % (x,))
    return x


def from_extensions(x):
    return from_union([lambda x: from_dict(lambda x: x, x), from_none], x)


def from_key(obj, key, f):
    """Read obj[key] through f, prefixing any violation with the property name."""
    try:
        return f(obj.get(key))
    except AssertionError as e:
        raise AssertionError("%s: %s" % (key, e))


def to_class(c, x):
    _expect(isinstance(x, c), "expected %s" % c.__name__)
    return x.to_dict()


def _put(result, key, value):
    if value is not None:
        result[key] = value


class Asset:
    """Metadata about the glTF asset."""

    def __init__(self, copyright, extensions, extras, generator, min_version, version):
        self.copyright = copyright
        self.extensions = extensions
        self.extras = extras
        self.generator = generator
        self.min_version = min_version
        self.version = version

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        copyright = from_key(obj, "copyright", lambda x: from_union([from_str, from_none], x))
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        generator = from_key(obj, "generator", lambda x: from_union([from_str, from_none], x))
        min_version = from_key(obj, "minVersion", lambda x: from_union([from_str, from_none], x))
        version = from_key(obj, "version", from_str)
        return Asset(copyright, extensions, extras, generator, min_version, version)

    def to_dict(self):
        result = {}
        _put(result, "copyright", self.copyright)
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "generator", self.generator)
        _put(result, "minVersion", self.min_version)
        result["version"] = self.version
        return result


class Buffer:
    """A buffer points to binary geometry, animation, or skins."""

    def __init__(self, byte_length, extensions, extras, name, uri):
        self.byte_length = byte_length
        self.extensions = extensions
        self.extras = extras
        self.name = name
        self.uri = uri

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        byte_length = from_key(obj, "byteLength", from_positive_int)
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        name = from_key(obj, "name", lambda x: from_union([from_str, from_none], x))
        uri = from_key(obj, "uri", lambda x: from_union([from_str, from_none], x))
        return Buffer(byte_length, extensions, extras, name, uri)

    def to_dict(self):
        result = {}
        result["byteLength"] = self.byte_length
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "name", self.name)
        _put(result, "uri", self.uri)
        return result


class BufferView:
    """A view into a buffer generally representing a subset of the buffer."""

    def __init__(self, buffer, byte_length, byte_offset, byte_stride, extensions, extras, name, target):
        self.buffer = buffer
        self.byte_length = byte_length
        self.byte_offset = byte_offset
        self.byte_stride = byte_stride
        self.extensions = extensions
        self.extras = extras
        self.name = name
        self.target = target

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        buffer = from_key(obj, "buffer", from_index)
        byte_length = from_key(obj, "byteLength", from_positive_int)
        byte_offset = from_key(obj, "byteOffset", lambda x: from_union([from_index, from_none], x))
        byte_stride = from_key(obj, "byteStride", lambda x: from_union([from_int, from_none], x))
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        name = from_key(obj, "name", lambda x: from_union([from_str, from_none], x))
        target = from_key(obj, "target", lambda x: from_union([from_int, from_none], x))
        return BufferView(buffer, byte_length, byte_offset, byte_stride, extensions, extras, name, target)

    def to_dict(self):
        result = {}
        result["buffer"] = self.buffer
        result["byteLength"] = self.byte_length
        _put(result, "byteOffset", self.byte_offset)
        _put(result, "byteStride", self.byte_stride)
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "name", self.name)
        _put(result, "target", self.target)
        return result


class AccessorSparseIndices:
    """
    Index array of size count that points to those accessor attributes that deviate from
    their initialization value. Indices must strictly increase.
    """

    def __init__(self, buffer_view, byte_offset, component_type, extensions, extras):
        self.buffer_view = buffer_view
        self.byte_offset = byte_offset
        self.component_type = component_type
        self.extensions = extensions
        self.extras = extras

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        buffer_view = from_key(obj, "bufferView", from_index)
        byte_offset = from_key(obj, "byteOffset", lambda x: from_union([from_index, from_none], x))
        component_type = from_key(obj, "componentType", from_int)
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        return AccessorSparseIndices(buffer_view, byte_offset, component_type, extensions, extras)

    def to_dict(self):
        result = {}
        result["bufferView"] = self.buffer_view
        _put(result, "byteOffset", self.byte_offset)
        result["componentType"] = self.component_type
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        return result


class AccessorSparseValues:
    """
    Array of size count times number of components, storing the displaced accessor
    attributes pointed by accessor.sparse.indices.
    """

    def __init__(self, buffer_view, byte_offset, extensions, extras):
        self.buffer_view = buffer_view
        self.byte_offset = byte_offset
        self.extensions = extensions
        self.extras = extras

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        buffer_view = from_key(obj, "bufferView", from_index)
        byte_offset = from_key(obj, "byteOffset", lambda x: from_union([from_index, from_none], x))
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        return AccessorSparseValues(buffer_view, byte_offset, extensions, extras)

    def to_dict(self):
        result = {}
        result["bufferView"] = self.buffer_view
        _put(result, "byteOffset", self.byte_offset)
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        return result


class AccessorSparse:
    """Sparse storage of attributes that deviate from their initialization value."""

    def __init__(self, count, extensions, extras, indices, values):
        self.count = count
        self.extensions = extensions
        self.extras = extras
        self.indices = indices
        self.values = values

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        count = from_key(obj, "count", from_positive_int)
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        indices = from_key(obj, "indices", AccessorSparseIndices.from_dict)
        values = from_key(obj, "values", AccessorSparseValues.from_dict)
        return AccessorSparse(count, extensions, extras, indices, values)

    def to_dict(self):
        result = {}
        result["count"] = self.count
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        result["indices"] = to_class(AccessorSparseIndices, self.indices)
        result["values"] = to_class(AccessorSparseValues, self.values)
        return result


class Accessor:
    """A typed view into a bufferView."""

    def __init__(self, buffer_view, byte_offset, component_type, count, extensions, extras, max, min, name,
                 normalized, sparse, type):
        self.buffer_view = buffer_view
        self.byte_offset = byte_offset
        self.component_type = component_type
        self.count = count
        self.extensions = extensions
        self.extras = extras
        self.max = max
        self.min = min
        self.name = name
        self.normalized = normalized
        self.sparse = sparse
        self.type = type

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        buffer_view = from_key(obj, "bufferView", lambda x: from_union([from_index, from_none], x))
        byte_offset = from_key(obj, "byteOffset", lambda x: from_union([from_index, from_none], x))
        # componentType and type are checked when the accessor is read
        component_type = from_key(obj, "componentType", from_int)
        count = from_key(obj, "count", from_positive_int)
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        max = from_key(obj, "max", lambda x: from_union([lambda x: from_list(from_float, x), from_none], x))
        min = from_key(obj, "min", lambda x: from_union([lambda x: from_list(from_float, x), from_none], x))
        name = from_key(obj, "name", lambda x: from_union([from_str, from_none], x))
        normalized = from_key(obj, "normalized", lambda x: from_union([from_bool, from_none], x))
        sparse = from_key(obj, "sparse", lambda x: from_union([AccessorSparse.from_dict, from_none], x))
        type = from_key(obj, "type", from_str)
        return Accessor(buffer_view, byte_offset, component_type, count, extensions, extras, max, min, name,
                        normalized, sparse, type)

    def to_dict(self):
        result = {}
        _put(result, "bufferView", self.buffer_view)
        _put(result, "byteOffset", self.byte_offset)
        result["componentType"] = self.component_type
        result["count"] = self.count
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "max", self.max)
        _put(result, "min", self.min)
        _put(result, "name", self.name)
        _put(result, "normalized", self.normalized)
        if self.sparse is not None:
            result["sparse"] = to_class(AccessorSparse, self.sparse)
        result["type"] = self.type
        return result


class Image:
    """
    Image data used to create a texture. Image can be referenced by URI or bufferView
    index. mimeType is required in the latter case.
    """

    def __init__(self, buffer_view, extensions, extras, mime_type, name, uri):
        self.buffer_view = buffer_view
        self.extensions = extensions
        self.extras = extras
        self.mime_type = mime_type
        self.name = name
        self.uri = uri

    @staticmethod
    def from_dict(obj):
        _expect(isinstance(obj, dict), "expected an object")
        buffer_view = from_key(obj, "bufferView", lambda x: from_union([from_index, from_none], x))
        extensions = from_key(obj, "extensions", from_extensions)
        extras = obj.get("extras")
        mime_type = from_key(obj, "mimeType", lambda x: from_union([from_str, from_none], x))
        name = from_key(obj, "name", lambda x: from_union([from_str, from_none], x))
        uri = from_key(obj, "uri", lambda x: from_union([from_str, from_none], x))
        _expect(not (uri is not None and buffer_view is not None), "uri and bufferView are mutually exclusive")
        _expect(uri is not None or buffer_view is not None, "one of uri or bufferView is required")
        _expect(buffer_view is None or mime_type is not None, "mimeType is required with bufferView")
        return Image(buffer_view, extensions, extras, mime_type, name, uri)

    def to_dict(self):
        result = {}
        _put(result, "bufferView", self.buffer_view)
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "mimeType", self.mime_type)
        _put(result, "name", self.name)
        _put(result, "uri", self.uri)
        return result


# Top level arrays kept as parsed JSON, in document order
RAW_ARRAYS = (
    ("animations", "animations"),
    ("cameras", "cameras"),
    ("materials", "materials"),
    ("meshes", "meshes"),
    ("nodes", "nodes"),
    ("samplers", "samplers"),
    ("scenes", "scenes"),
    ("skins", "skins"),
    ("textures", "textures"),
)

TYPED_ARRAYS = (
    ("accessors", "accessors", Accessor),
    ("buffers", "buffers", Buffer),
    ("bufferViews", "buffer_views", BufferView),
    ("images", "images", Image),
)


class Gltf:
    """The root object for a glTF asset."""

    def __init__(self, accessors, animations, asset, buffers, buffer_views, cameras, extensions,
                 extensions_required, extensions_used, extras, images, materials, meshes, nodes,
                 samplers, scene, scenes, skins, textures):
        self.accessors = accessors
        self.animations = animations
        self.asset = asset
        self.buffers = buffers
        self.buffer_views = buffer_views
        self.cameras = cameras
        self.extensions = extensions
        self.extensions_required = extensions_required
        self.extensions_used = extensions_used
        self.extras = extras
        self.images = images
        self.materials = materials
        self.meshes = meshes
        self.nodes = nodes
        self.samplers = samplers
        self.scene = scene
        self.scenes = scenes
        self.skins = skins
        self.textures = textures

    def to_dict(self):
        result = {}
        result["asset"] = to_class(Asset, self.asset)
        _put(result, "extensionsUsed", self.extensions_used)
        _put(result, "extensionsRequired", self.extensions_required)
        _put(result, "extensions", self.extensions)
        _put(result, "extras", self.extras)
        _put(result, "scene", self.scene)
        for key, attr in RAW_ARRAYS:
            _put(result, key, getattr(self, attr))
        for key, attr, cls in TYPED_ARRAYS:
            items = getattr(self, attr)
            if items is not None:
                result[key] = [to_class(cls, x) for x in items]
        return result


def gltf_from_dict(obj):
    """
    Build the object model from a parsed document.

    Raises AssertionError whose message starts with the JSON path of the
    offending property (e.g. "accessors[2].count: expected an integer >= 1").
    """
    _expect(isinstance(obj, dict), "expected an object at the document root")

    def array(key, f):
        items = obj.get(key)
        if items is None:
            return None
        _expect(isinstance(items, list), "%s: expected an array" % key)
        result = []
        for i, item in enumerate(items):
            try:
                result.append(f(item))
            except AssertionError as e:
                raise AssertionError("%s[%d].%s" % (key, i, e))
        return result

    def raw(item):
        _expect(isinstance(item, dict), "expected an object")
        return item

    try:
        asset = Asset.from_dict(obj.get("asset"))
    except AssertionError as e:
        raise AssertionError("asset.%s" % e)

    typed = {attr: array(key, cls.from_dict) for key, attr, cls in TYPED_ARRAYS}
    raws = {attr: array(key, raw) for key, attr in RAW_ARRAYS}

    extensions = from_key(obj, "extensions", from_extensions)
    extensions_required = from_key(obj, "extensionsRequired",
                                   lambda x: from_union([lambda x: from_list(from_str, x), from_none], x))
    extensions_used = from_key(obj, "extensionsUsed",
                               lambda x: from_union([lambda x: from_list(from_str, x), from_none], x))
    scene = from_key(obj, "scene", lambda x: from_union([from_index, from_none], x))

    return Gltf(
        accessors=typed["accessors"],
        animations=raws["animations"],
        asset=asset,
        buffers=typed["buffers"],
        buffer_views=typed["buffer_views"],
        cameras=raws["cameras"],
        extensions=extensions,
        extensions_required=extensions_required,
        extensions_used=extensions_used,
        extras=obj.get("extras"),
        images=typed["images"],
        materials=raws["materials"],
        meshes=raws["meshes"],
        nodes=raws["nodes"],
        samplers=raws["samplers"],
        scene=scene,
        scenes=raws["scenes"],
        skins=raws["skins"],
        textures=raws["textures"],
    )

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

from math import pi
from typing import List, Dict, Any, Tuple

from .gltf2_io import (from_key, from_union, from_list, from_dict, from_float, from_index, from_str,
                       from_none, _expect)
from .gltf2_io_errors import ExtensionError


class Extension:
    """
    Recognized extension attached to an entity.

    extension is the payload exactly as found in the document; fields holds the
    decoded values with defaults applied; references lists the indices the
    payload points to as (field, target array, index).
    """
    recognized = True

    def __init__(self, name: str, extension: Dict[str, Any], fields: Dict[str, Any] = None,
                 references: List[Tuple[str, str, int]] = None, required: bool = False):
        self.name = name
        self.extension = extension
        self.fields = fields if fields is not None else {}
        self.references = references if references is not None else []
        self.required = required

    def __getitem__(self, key):
        return self.fields[key]

    def get(self, key, default=None):
        return self.fields.get(key, default)

    def to_dict(self):
        return self.extension


class OpaqueExtension(Extension):
    """Extension kept as is, either unknown or malformed (error is set then)."""
    recognized = False

    def __init__(self, name: str, extension: Any, error: ExtensionError = None, required: bool = False):
        super().__init__(name, extension, required=required)
        self.error = error


#
# Payload helpers
#

def _optional(f):
    return lambda x: from_union([f, from_none], x)


def _vec(n):
    def f(x):
        values = from_list(from_float, x)
        _expect(len(values) == n, "expected %d numbers, got %d" % (n, len(values)))
        return values
    return f


def _number_in(low, high, low_open=False):
    def f(x):
        from_float(x)
        if low_open:
            _expect(low < x <= high, "expected a number in ]%s, %s], got %r" % (low, high, x))
        else:
            _expect(low <= x <= high, "expected a number in [%s, %s], got %r" % (low, high, x))
        return x
    return f


def _object(x):
    return from_dict(lambda v: v, x)


def _texture_info(obj, key, references, path=''):
    info = from_key(obj, key, _optional(_object))
    if info is None:
        return None
    try:
        index = from_key(info, "index", from_index)
        from_key(info, "texCoord", _optional(from_index))
    except AssertionError as e:
        raise AssertionError("%s.%s" % (key, e))
    references.append((path + key + ".index", "textures", index))
    return info


def _read(obj, key, f, default=None):
    value = from_key(obj, key, _optional(f))
    return default if value is None else value


#
# Decoders of the recognized extensions
#

_INFINITY = float('inf')

LIGHT_TYPES = ('directional', 'point', 'spot')


def _decode_lights_punctual(payload, entity, references):
    if entity == 'node':
        light = from_key(payload, "light", from_index)
        references.append(("light", "KHR_lights_punctual.lights", light))
        return {'light': light}

    lights = []
    for i, light in enumerate(from_key(payload, "lights", lambda x: from_list(_object, x))):
        try:
            type_ = from_key(light, "type", from_str)
            _expect(type_ in LIGHT_TYPES, "type: unknown light type %r" % type_)
            spot = None
            if type_ == 'spot':
                spot = from_key(light, "spot", _object)
                inner = _read(spot, "innerConeAngle", _number_in(0.0, pi / 2), 0.0)
                outer = _read(spot, "outerConeAngle", _number_in(0.0, pi / 2, low_open=True), pi / 4.0)
                _expect(inner < outer, "spot: innerConeAngle must be less than outerConeAngle")
                spot = {'innerConeAngle': inner, 'outerConeAngle': outer}
            lights.append({
                'name': _read(light, "name", from_str),
                'type': type_,
                'color': _read(light, "color", _vec(3), [1.0, 1.0, 1.0]),
                'intensity': _read(light, "intensity", from_float, 1.0),
                'range': _read(light, "range", _number_in(0.0, _INFINITY, low_open=True)),
                'spot': spot,
            })
        except AssertionError as e:
            raise AssertionError("lights[%d].%s" % (i, e))
    return {'lights': lights}


def _decode_unlit(payload, entity, references):
    return {}


def _decode_mesh_quantization(payload, entity, references):
    return {}


def _decode_pbr_specular_glossiness(payload, entity, references):
    return {
        'diffuseFactor': _read(payload, "diffuseFactor", _vec(4), [1.0, 1.0, 1.0, 1.0]),
        'diffuseTexture': _texture_info(payload, "diffuseTexture", references),
        'specularFactor': _read(payload, "specularFactor", _vec(3), [1.0, 1.0, 1.0]),
        'glossinessFactor': _read(payload, "glossinessFactor", _number_in(0.0, 1.0), 1.0),
        'specularGlossinessTexture': _texture_info(payload, "specularGlossinessTexture", references),
    }


def _decode_texture_transform(payload, entity, references):
    return {
        'offset': _read(payload, "offset", _vec(2), [0.0, 0.0]),
        'rotation': _read(payload, "rotation", from_float, 0.0),
        'scale': _read(payload, "scale", _vec(2), [1.0, 1.0]),
        'texCoord': _read(payload, "texCoord", from_index),
    }


def _decode_transmission(payload, entity, references):
    return {
        'transmissionFactor': _read(payload, "transmissionFactor", _number_in(0.0, 1.0), 0.0),
        'transmissionTexture': _texture_info(payload, "transmissionTexture", references),
    }


def _decode_ior(payload, entity, references):
    ior = _read(payload, "ior", from_float, 1.5)
    _expect(ior == 0 or ior >= 1.0, "ior: expected 0 or a number >= 1, got %r" % ior)
    return {'ior': ior}


def _decode_volume(payload, entity, references):
    return {
        'thicknessFactor': _read(payload, "thicknessFactor", _number_in(0.0, _INFINITY), 0.0),
        'thicknessTexture': _texture_info(payload, "thicknessTexture", references),
        'attenuationDistance': _read(payload, "attenuationDistance", _number_in(0.0, _INFINITY, low_open=True),
                                     _INFINITY),
        'attenuationColor': _read(payload, "attenuationColor", _vec(3), [1.0, 1.0, 1.0]),
    }


def _decode_specular(payload, entity, references):
    return {
        'specularFactor': _read(payload, "specularFactor", _number_in(0.0, 1.0), 1.0),
        'specularTexture': _texture_info(payload, "specularTexture", references),
        'specularColorFactor': _read(payload, "specularColorFactor", _vec(3), [1.0, 1.0, 1.0]),
        'specularColorTexture': _texture_info(payload, "specularColorTexture", references),
    }


def _decode_emissive_strength(payload, entity, references):
    return {
        'emissiveStrength': _read(payload, "emissiveStrength", _number_in(0.0, _INFINITY), 1.0),
    }


def _decode_variants(payload, entity, references):
    if entity == 'primitive':
        mappings = []
        for i, mapping in enumerate(from_key(payload, "mappings", lambda x: from_list(_object, x))):
            try:
                material = from_key(mapping, "material", from_index)
                variants = from_key(mapping, "variants", lambda x: from_list(from_index, x))
            except AssertionError as e:
                raise AssertionError("mappings[%d].%s" % (i, e))
            references.append(("mappings[%d].material" % i, "materials", material))
            for j, variant in enumerate(variants):
                references.append(("mappings[%d].variants[%d]" % (i, j), "KHR_materials_variants.variants", variant))
            mappings.append({'material': material, 'variants': variants, 'name': mapping.get('name')})
        return {'mappings': mappings}

    variants = []
    for i, variant in enumerate(from_key(payload, "variants", lambda x: from_list(_object, x))):
        try:
            variants.append({'name': from_key(variant, "name", from_str)})
        except AssertionError as e:
            raise AssertionError("variants[%d].%s" % (i, e))
    return {'variants': variants}


# Static mapping of the extensions this loader understands
EXTENSION_DECODERS = {
    'KHR_lights_punctual': _decode_lights_punctual,
    'KHR_materials_unlit': _decode_unlit,
    'KHR_materials_pbrSpecularGlossiness': _decode_pbr_specular_glossiness,
    'KHR_texture_transform': _decode_texture_transform,
    'KHR_materials_transmission': _decode_transmission,
    'KHR_materials_ior': _decode_ior,
    'KHR_materials_volume': _decode_volume,
    'KHR_materials_specular': _decode_specular,
    'KHR_materials_emissive_strength': _decode_emissive_strength,
    'KHR_materials_variants': _decode_variants,
    'KHR_mesh_quantization': _decode_mesh_quantization,
}


# Texture infos held by material extension payloads
EXTENSION_TEXTURES = {
    'KHR_materials_pbrSpecularGlossiness': ('diffuseTexture', 'specularGlossinessTexture'),
    'KHR_materials_transmission': ('transmissionTexture',),
    'KHR_materials_volume': ('thicknessTexture',),
    'KHR_materials_specular': ('specularTexture', 'specularColorTexture'),
}


def is_recognized(name):
    return name in EXTENSION_DECODERS


def decode_extension(name, payload, entity='root', required=False):
    """
    Decode one extension payload.

    Return an Extension for recognized names and an OpaqueExtension for the
    others. Raise ExtensionError when a recognized payload is malformed.
    """
    decoder = EXTENSION_DECODERS.get(name)
    if decoder is None:
        return OpaqueExtension(name, payload, required=required)

    references = []
    try:
        _expect(isinstance(payload, dict), "expected an object, got %r" % (payload,))
        fields = decoder(payload, entity, references)
    except AssertionError as e:
        raise ExtensionError(name, str(e))
    return Extension(name, payload, fields, references, required=required)


class ExtensionRegistry:
    """Decodes the extensions of a document entity by entity."""

    def __init__(self, extensions_required=None, strict=False, log=None):
        self.extensions_required = set(extensions_required or [])
        self.strict = strict
        self.log = log
        self.errors = []

    def decode_all(self, path, extensions, entity='root'):
        """
        Decode the extensions dict found at path (e.g. 'materials[0]').

        Malformed recognized payloads raise when strict; otherwise they are
        kept as OpaqueExtension carrying the error, and reported.
        """
        decoded = {}
        if not extensions:
            return decoded

        for name, payload in extensions.items():
            required = name in self.extensions_required
            try:
                decoded[name] = decode_extension(name, payload, entity, required)
            except ExtensionError as e:
                e.field = (path + "." if path else "") + "extensions." + name
                if self.strict:
                    raise
                self.errors.append(e)
                if self.log is not None:
                    self.log.report(e, "Ignoring malformed extension:")
                decoded[name] = OpaqueExtension(name, payload, error=e, required=required)

        return decoded

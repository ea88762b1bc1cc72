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

import math
import unittest

from gltf2_loader import ExtensionError, InvalidIndexError, JsonError, load
from gltf2_loader.com.gltf2_io_extensions import decode_extension, is_recognized, ExtensionRegistry

from gltf_builder import gltf_json


def document(**fields):
    gltf = {'asset': {'version': '2.0'}}
    gltf.update(fields)
    return gltf_json(gltf)


LIGHTS = {'lights': [{'type': 'point', 'color': [1.0, 0.5, 0.0]}, {'type': 'spot', 'spot': {}}]}


class TestDecoders(unittest.TestCase):

    def test_lights_defaults(self):
        ext = decode_extension('KHR_lights_punctual', LIGHTS)
        self.assertTrue(ext.recognized)
        point, spot = ext['lights']
        self.assertEqual(point['color'], [1.0, 0.5, 0.0])
        self.assertEqual(point['intensity'], 1.0)
        self.assertIsNone(point['range'])
        self.assertEqual(spot['spot']['innerConeAngle'], 0.0)
        self.assertAlmostEqual(spot['spot']['outerConeAngle'], math.pi / 4)

    def test_node_light_reference(self):
        ext = decode_extension('KHR_lights_punctual', {'light': 1}, entity='node')
        self.assertEqual(ext['light'], 1)
        self.assertEqual(ext.references, [('light', 'KHR_lights_punctual.lights', 1)])

    def test_malformed(self):
        with self.assertRaises(ExtensionError) as ctx:
            decode_extension('KHR_lights_punctual', {'lights': [{'type': 'laser'}]})
        self.assertEqual(ctx.exception.kind, 'MalformedExtension')
        self.assertEqual(ctx.exception.name, 'KHR_lights_punctual')

    def test_payload_not_an_object(self):
        with self.assertRaises(ExtensionError):
            decode_extension('KHR_materials_unlit', [])

    def test_unknown_is_opaque(self):
        payload = {'anything': [1, 2, {'x': None}]}
        ext = decode_extension('EXT_made_up', payload)
        self.assertFalse(ext.recognized)
        self.assertIsNone(ext.error)
        self.assertEqual(ext.to_dict(), payload)
        self.assertFalse(is_recognized('EXT_made_up'))

    def test_texture_references(self):
        ext = decode_extension('KHR_materials_pbrSpecularGlossiness', {
            'diffuseTexture': {'index': 2},
            'glossinessFactor': 0.5,
        }, entity='material')
        self.assertEqual(ext['glossinessFactor'], 0.5)
        self.assertEqual(ext['specularFactor'], [1.0, 1.0, 1.0])
        self.assertEqual(ext.references, [('diffuseTexture.index', 'textures', 2)])

    def test_out_of_range_factor(self):
        with self.assertRaises(ExtensionError):
            decode_extension('KHR_materials_transmission', {'transmissionFactor': 2.0})

    def test_registry_collects_errors(self):
        registry = ExtensionRegistry()
        decoded = registry.decode_all('materials[3]', {'KHR_materials_ior': {'ior': 0.5}})
        self.assertFalse(decoded['KHR_materials_ior'].recognized)
        self.assertEqual(registry.errors[0].field, 'materials[3].extensions.KHR_materials_ior')


class TestDocumentExtensions(unittest.TestCase):

    def test_lights(self):
        doc = load(document(
            extensionsUsed=['KHR_lights_punctual'],
            extensions={'KHR_lights_punctual': LIGHTS},
            nodes=[{'extensions': {'KHR_lights_punctual': {'light': 1}}}],
        ))
        self.assertEqual(len(doc.extension('', 'KHR_lights_punctual')['lights']), 2)
        self.assertEqual(doc.extension('nodes[0]', 'KHR_lights_punctual')['light'], 1)
        self.assertEqual(doc.counts['KHR_lights_punctual.lights'], 2)

    def test_light_reference_out_of_range(self):
        with self.assertRaises(InvalidIndexError) as ctx:
            load(document(
                extensions={'KHR_lights_punctual': LIGHTS},
                nodes=[{'extensions': {'KHR_lights_punctual': {'light': 2}}}],
            ))
        self.assertEqual(ctx.exception.field, 'nodes[0].extensions.KHR_lights_punctual.light')
        self.assertEqual(ctx.exception.target, 'KHR_lights_punctual.lights')

    def test_material_texture_reference_out_of_range(self):
        with self.assertRaises(InvalidIndexError) as ctx:
            load(document(materials=[{'extensions': {'KHR_materials_transmission': {
                'transmissionTexture': {'index': 0},
            }}}]))
        self.assertEqual(ctx.exception.field,
                         'materials[0].extensions.KHR_materials_transmission.transmissionTexture.index')

    def test_texture_transform_on_texture_info(self):
        doc = load(document(
            materials=[{'pbrMetallicRoughness': {'baseColorTexture': {
                'index': 0,
                'extensions': {'KHR_texture_transform': {'offset': [0.5, 0.0]}},
            }}}],
            textures=[{}],
        ))
        ext = doc.extension('materials[0].pbrMetallicRoughness.baseColorTexture', 'KHR_texture_transform')
        self.assertEqual(ext['offset'], [0.5, 0.0])
        self.assertEqual(ext['scale'], [1.0, 1.0])

    def test_variants(self):
        mappings = {'mappings': [{'material': 0, 'variants': [0, 1]}]}
        doc = load(document(
            extensions={'KHR_materials_variants': {'variants': [{'name': 'red'}, {'name': 'blue'}]}},
            materials=[{}],
            meshes=[{'primitives': [{'attributes': {}, 'extensions': {'KHR_materials_variants': mappings}}]}],
        ))
        ext = doc.extension('meshes[0].primitives[0]', 'KHR_materials_variants')
        self.assertEqual(ext['mappings'][0]['variants'], [0, 1])

    def test_variant_reference_out_of_range(self):
        mappings = {'mappings': [{'material': 0, 'variants': [3]}]}
        with self.assertRaises(InvalidIndexError) as ctx:
            load(document(
                extensions={'KHR_materials_variants': {'variants': [{'name': 'red'}]}},
                materials=[{}],
                meshes=[{'primitives': [{'attributes': {}, 'extensions': {'KHR_materials_variants': mappings}}]}],
            ))
        self.assertEqual(ctx.exception.target, 'KHR_materials_variants.variants')

    def test_malformed_is_recoverable(self):
        doc = load(document(materials=[{'extensions': {'KHR_materials_ior': {'ior': 0.5}}}]))
        ext = doc.extension('materials[0]', 'KHR_materials_ior')
        self.assertFalse(ext.recognized)
        self.assertEqual(ext.error.kind, 'MalformedExtension')
        self.assertEqual(len(doc.extension_errors), 1)
        self.assertEqual(doc.extension_errors[0].field, 'materials[0].extensions.KHR_materials_ior')
        self.assertEqual(doc.messages[0][0], 'WARNING')

    def test_malformed_root_field(self):
        doc = load(document(extensions={'KHR_lights_punctual': {'lights': 'none'}}))
        self.assertEqual(doc.extension_errors[0].field, 'extensions.KHR_lights_punctual')

    def test_malformed_root_lights_with_node_reference(self):
        doc = load(document(
            extensions={'KHR_lights_punctual': {'lights': [{'type': 'laser'}]}},
            nodes=[{'extensions': {'KHR_lights_punctual': {'light': 0}}}],
        ))
        self.assertEqual(len(doc.extension_errors), 1)
        self.assertEqual(doc.extension_errors[0].field, 'extensions.KHR_lights_punctual')
        self.assertFalse(doc.extension('', 'KHR_lights_punctual').recognized)
        self.assertEqual(doc.extension('nodes[0]', 'KHR_lights_punctual')['light'], 0)
        self.assertNotIn('KHR_lights_punctual.lights', doc.counts)

    def test_malformed_root_variants_with_mappings(self):
        mappings = {'mappings': [{'material': 0, 'variants': [0]}]}
        doc = load(document(
            extensions={'KHR_materials_variants': {'variants': [{}]}},
            materials=[{}],
            meshes=[{'primitives': [{'attributes': {}, 'extensions': {'KHR_materials_variants': mappings}}]}],
        ))
        self.assertEqual(len(doc.extension_errors), 1)
        self.assertEqual(doc.extension('meshes[0].primitives[0]', 'KHR_materials_variants')['mappings'][0]['variants'],
                         [0])

    def test_malformed_root_lights_strict(self):
        with self.assertRaises(ExtensionError):
            load(document(
                extensions={'KHR_lights_punctual': {'lights': [{'type': 'laser'}]}},
                nodes=[{'extensions': {'KHR_lights_punctual': {'light': 0}}}],
            ), {'strict': True})

    def test_node_light_without_root_lights(self):
        with self.assertRaises(InvalidIndexError):
            load(document(nodes=[{'extensions': {'KHR_lights_punctual': {'light': 0}}}]))

    def test_texture_transform_in_material_extension(self):
        doc = load(document(
            materials=[{'extensions': {'KHR_materials_specular': {'specularTexture': {
                'index': 0,
                'extensions': {'KHR_texture_transform': {'rotation': 1.5}},
            }}}}],
            textures=[{}],
        ))
        ext = doc.extension('materials[0].extensions.KHR_materials_specular.specularTexture', 'KHR_texture_transform')
        self.assertEqual(ext['rotation'], 1.5)
        self.assertEqual(ext['offset'], [0.0, 0.0])

    def test_malformed_texture_transform_in_material_extension(self):
        doc = load(document(
            materials=[{'extensions': {'KHR_materials_transmission': {'transmissionTexture': {
                'index': 0,
                'extensions': {'KHR_texture_transform': {'scale': [1.0]}},
            }}}}],
            textures=[{}],
        ))
        self.assertEqual(len(doc.extension_errors), 1)
        self.assertEqual(
            doc.extension_errors[0].field,
            'materials[0].extensions.KHR_materials_transmission.transmissionTexture.extensions.KHR_texture_transform')

    def test_strict_mode(self):
        with self.assertRaises(ExtensionError) as ctx:
            load(document(materials=[{'extensions': {'KHR_materials_ior': {'ior': 0.5}}}]), {'strict': True})
        self.assertEqual(ctx.exception.field, 'materials[0].extensions.KHR_materials_ior')

    def test_unknown_preserved(self):
        payload = {'data': [1, 2, 3]}
        doc = load(document(extensions={'EXT_custom': payload}, nodes=[{'extensions': {'EXT_custom': {}}}]))
        self.assertFalse(doc.extension('', 'EXT_custom').recognized)
        self.assertEqual(doc.to_dict()['extensions'], {'EXT_custom': payload})
        self.assertEqual(doc.to_dict()['nodes'][0]['extensions'], {'EXT_custom': {}})


class TestRequired(unittest.TestCase):

    def test_required_must_be_used(self):
        with self.assertRaises(JsonError) as ctx:
            load(document(extensionsRequired=['KHR_materials_unlit']))
        self.assertEqual(ctx.exception.field, 'extensionsRequired')

    def test_unsupported_required_warns(self):
        doc = load(document(extensionsUsed=['EXT_made_up'], extensionsRequired=['EXT_made_up']))
        self.assertIn('EXT_made_up', doc.messages[0][1])

    def test_unsupported_required_strict(self):
        with self.assertRaises(ExtensionError):
            load(document(extensionsUsed=['EXT_made_up'], extensionsRequired=['EXT_made_up']), {'strict': True})

    def test_required_flag(self):
        doc = load(document(
            extensionsUsed=['KHR_materials_unlit'], extensionsRequired=['KHR_materials_unlit'],
            materials=[{'extensions': {'KHR_materials_unlit': {}}}],
        ))
        self.assertTrue(doc.extension('materials[0]', 'KHR_materials_unlit').required)


if __name__ == '__main__':
    unittest.main()

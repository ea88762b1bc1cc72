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


# Raise one of these errors to have the loader report an error message.
class GltfImportError(RuntimeError):
    """
    Base class of every loading error.

    kind is a stable, machine readable name for the failure (e.g. 'NotGlb'),
    index and field locate the offending entity when there is one.
    """

    def __init__(self, kind, message, index=None, field=None):
        self.kind = kind
        self.index = index
        self.field = field
        super().__init__(message)

    def __str__(self):
        text = "%s: %s" % (self.kind, self.args[0])
        if self.field is not None:
            text += " (at %s)" % self.field
        return text


class ContainerError(GltfImportError):
    """Bad GLB framing: magic, version, length or chunks."""
    pass


class JsonError(GltfImportError):
    """Malformed JSON, or a document that violates the glTF schema."""
    pass


class InvalidIndexError(GltfImportError):
    """A cross-reference points outside of its target array."""

    def __init__(self, message, index=None, field=None, target=None):
        self.target = target
        super().__init__('IndexOutOfRange', message, index=index, field=field)


class BufferDataError(GltfImportError):
    """A declared buffer could not be materialized."""
    pass


class AccessorError(GltfImportError):
    """An accessor's elements cannot be decoded."""
    pass


class ExtensionError(GltfImportError):
    """A recognized extension carries a payload that does not decode."""

    def __init__(self, name, message, field=None):
        self.name = name
        super().__init__('MalformedExtension', "%s: %s" % (name, message), field=field)

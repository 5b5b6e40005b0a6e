"""
automock: generate programmable mocks from the shape of real components.

:func:`get_metadata` captures the shape of a component (a callable, a record, a
sequence, a pattern, a primitive or a collection) into a tree of
:class:`MockMetadata`. :func:`generate_from_metadata` turns such a tree back
into a structurally equivalent component whose callables are
:class:`MockFunction` instances. Those record every invocation and can be
programmed with canned return values or substitute implementations.

Example
=======

.. code-block:: python

    from automock import generate_from_metadata, get_metadata

    class Greeter:
        greeting = "hello"

        def greet(self, name: str) -> str:
            return f"{self.greeting} {name}"

    MockGreeter = generate_from_metadata(get_metadata(Greeter))
    MockGreeter.prototype.greet.mock_return_value("hi")

    greeter = MockGreeter.new()
    greeter.greet("world")  # "hi"
    greeter.greet.mock.calls  # [Call(args=("world",), kwargs={})]

Public API
==========

Extraction and generation:
    - :func:`get_metadata`
    - :func:`generate_from_metadata`
    - :func:`get_mock_function` (alias :func:`get_mock_fn`)
    - :func:`is_mock_function`

Serialization:
    - :func:`dump_metadata` / :func:`load_metadata`
    - :func:`dump_metadata_file` / :func:`load_metadata_file`
"""

from __future__ import annotations

from automock._classifier import UNDEFINED as UNDEFINED
from automock._classifier import Category as Category
from automock._classifier import classify as classify
from automock._generator import UnrecognizedTypeError as UnrecognizedTypeError
from automock._generator import generate_from_metadata as generate_from_metadata
from automock._generator import get_mock_fn as get_mock_fn
from automock._generator import get_mock_function as get_mock_function
from automock._members import enumerate_members as enumerate_members
from automock._metadata import MockMetadata as MockMetadata
from automock._metadata import get_metadata as get_metadata
from automock._runtime import BoundMockFunction as BoundMockFunction
from automock._runtime import Call as Call
from automock._runtime import MockFunction as MockFunction
from automock._runtime import MockFunctionRecord as MockFunctionRecord
from automock._runtime import MockInstance as MockInstance
from automock._runtime import is_mock_function as is_mock_function
from automock._serialization import MetadataFormat as MetadataFormat
from automock._serialization import dump_metadata as dump_metadata
from automock._serialization import dump_metadata_file as dump_metadata_file
from automock._serialization import load_metadata as load_metadata
from automock._serialization import load_metadata_file as load_metadata_file

"""
Mock generation: rebuild a component graph from a metadata tree.

Generation runs in two passes, like the two-phase construction of scopes:

1. every node is built into a shell and registered under its ``ref_id`` before
   its members are built, while back-reference members are only queued;
2. the queued back-references are assigned once every id is resolvable.

Self-referential and mutually referential graphs therefore come back with the
same identity sharing, without unbounded recursion.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, final

from automock._classifier import Category, classify
from automock._members import TEMPLATE_MEMBER_NAME, TEMPLATE_OWNER_NAME
from automock._metadata import MockMetadata
from automock._naming import synthesize_label
from automock._runtime import CONFIGURATION_SURFACE, MockFunction

logger = logging.getLogger(__name__)


class UnrecognizedTypeError(ValueError):
    """Raised when a metadata node carries a type outside :class:`Category`."""

    def __init__(self, type_name: object) -> None:
        super().__init__(f"Unrecognized type {type_name}")
        self.type_name = type_name


def _make_mock_function(metadata: MockMetadata) -> MockFunction:
    template = (metadata.members or {}).get(TEMPLATE_MEMBER_NAME)
    template_members = template.members if template is not None else None
    function = MockFunction(
        label=synthesize_label(metadata.name),
        template_members=template_members,
    )
    if metadata.mock_impl is not None:
        function.mock_implementation(metadata.mock_impl)
    return function


def _assign(shell: Any, name: str, value: Any) -> None:
    """Set a member on a shell. Members of a mock never replace its runtime names."""
    if isinstance(shell, MockFunction):
        if name in CONFIGURATION_SURFACE:
            logger.debug(
                "Skipping member %r of %r: the name is reserved by the mock runtime",
                name,
                shell,
            )
            return
        vars(shell)[name] = value
    else:
        setattr(shell, name, value)


def _make_component(metadata: MockMetadata) -> Any:
    """Build the empty shell of a node, or return the captured value of a leaf."""
    try:
        category = Category(metadata.type)
    except ValueError:
        raise UnrecognizedTypeError(metadata.type or "undefined type") from None

    match category:
        case Category.OBJECT:
            return SimpleNamespace()
        case Category.ARRAY:
            return []
        case Category.REGEXP:
            return re.compile("")
        case Category.FUNCTION:
            return _make_mock_function(metadata)
        case Category.CONSTANT | Category.COLLECTION | Category.NULL | Category.UNDEFINED:
            return metadata.value


@final
@dataclass(kw_only=True, slots=True, eq=False)
class _Generation:
    """State of one :func:`generate_from_metadata` call."""

    components: dict[int, Any] = field(default_factory=dict)
    """Shells by ``ref_id``."""

    deferred: list[tuple[Any, str, int]] = field(default_factory=list)
    """Back-reference assignments ``(shell, member name, ref)`` in enqueue order."""

    def build(self, metadata: MockMetadata) -> Any:
        shell = _make_component(metadata)
        if metadata.ref_id is not None:
            self.components[metadata.ref_id] = shell

        for name, member in (metadata.members or {}).items():
            if member.is_reference:
                assert member.ref is not None
                self.deferred.append((shell, name, member.ref))
                continue
            try:
                _assign(shell, name, self.build(member))
            except BaseException as error:
                error.add_note(f"While generating member {name!r}...")
                raise

        if isinstance(shell, MockFunction):
            template = vars(shell).get(TEMPLATE_MEMBER_NAME)
            if classify(template) is Category.OBJECT:
                setattr(template, TEMPLATE_OWNER_NAME, shell)
        return shell

    def rewire(self) -> None:
        for shell, name, ref in self.deferred:
            try:
                target = self.components[ref]
            except KeyError as error:
                error.add_note(f"While resolving back-reference {ref} of member {name!r}...")
                raise
            _assign(shell, name, target)


def generate_from_metadata(metadata: MockMetadata) -> Any:
    """
    Generate a mock from metadata returned by :func:`automock.get_metadata`.

    Constants, collections, ``None`` and :data:`UNDEFINED` are reused as they
    are. Objects become :class:`types.SimpleNamespace`, arrays become empty
    lists, patterns become empty patterns and functions become
    :class:`MockFunction` instances.

    :raises UnrecognizedTypeError: If a node has an unknown type.
    """
    generation = _Generation()
    component = generation.build(metadata)
    logger.debug("Rewiring %d deferred back-references", len(generation.deferred))
    generation.rewire()
    return component


def get_mock_function() -> MockFunction:
    """Generate a bare mock function with no captured shape."""
    return _make_component(MockMetadata(type=Category.FUNCTION.value))


get_mock_fn = get_mock_function

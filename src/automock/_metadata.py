"""
Metadata extraction: capture the shape of a component graph as a tree.

Shared and cyclic references are broken with back-reference nodes. The first
visit of a component assigns it a dense ``ref_id``, and every later occurrence
becomes ``MockMetadata(ref=ref_id)``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Final, Self, TypeAlias, final

from automock._classifier import LEAF_CATEGORIES, UNDEFINED, Category, classify
from automock._members import (
    TEMPLATE_MEMBER_NAME,
    behavior_template,
    enumerate_members,
    module_exports,
    own_namespace,
)
from automock._runtime import CONFIGURATION_SURFACE, is_mock_function

logger = logging.getLogger(__name__)

JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonScalar | list["JsonValue"] | dict[str, "JsonValue"]

_VALUE_TYPES: Final = frozenset(
    {Category.CONSTANT.value, Category.COLLECTION.value, Category.NULL.value}
)
"""Types whose ``value`` travels on the wire. ``undefined`` has nothing to carry."""


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class MockMetadata:
    """
    Serializable description of the shape of one component.

    A node is either a back-reference (only :attr:`ref` is set) or a typed node
    (:attr:`type` is set). Which other fields are present depends on the type.
    """

    type: str | None = None
    """One of the :class:`Category` values. ``None`` for back-references."""

    ref: int | None = None
    """The ``ref_id`` of a previously visited node, on back-references only."""

    ref_id: int | None = None
    """Identity of this node within one extraction pass."""

    name: str | None = None
    """Captured display name of a function."""

    value: Any = None
    """The captured component itself, for constants, collections, null and undefined."""

    members: Mapping[str, MockMetadata] | None = None
    """Child nodes by member name. ``None`` when no supported member was found."""

    mock_impl: Callable[..., object] | None = None
    """Persistent implementation of a captured mock, carried over to the new mock."""

    @property
    def is_reference(self) -> bool:
        return self.ref is not None

    def to_dict(self) -> dict[str, JsonValue]:
        """Convert to the wire form, omitting absent fields."""
        data: dict[str, Any] = {}
        if self.type is not None:
            data["type"] = self.type
        if self.ref is not None:
            data["ref"] = self.ref
        if self.ref_id is not None:
            data["refID"] = self.ref_id
        if self.name is not None:
            data["name"] = self.name
        if self.type in _VALUE_TYPES:
            data["value"] = self.value
        if self.members is not None:
            data["members"] = {
                member_name: member.to_dict()
                for member_name, member in self.members.items()
            }
        if self.mock_impl is not None:
            data["mockImpl"] = self.mock_impl
        return data

    @classmethod
    def from_dict(cls, data: object) -> Self:
        """
        Parse the wire form produced by :meth:`to_dict`.

        Unknown ``type`` strings are accepted here. They are rejected when the
        node is generated.

        :raises ValueError: If the data is not shaped like a metadata node.
        """
        if not isinstance(data, Mapping):
            raise ValueError(
                f"Metadata node must be a mapping, got {type(data).__name__}"
            )

        node_type = data.get("type")
        if node_type is not None and not isinstance(node_type, str):
            raise ValueError(
                f"Metadata type must be a string, got {type(node_type).__name__}"
            )
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValueError(f"Metadata name must be a string, got {type(name).__name__}")

        members: dict[str, MockMetadata] | None = None
        members_data = data.get("members")
        if members_data is not None:
            if not isinstance(members_data, Mapping):
                raise ValueError(
                    f"Metadata members must be a mapping, got {type(members_data).__name__}"
                )
            members = {}
            for member_name, member_data in members_data.items():
                if not isinstance(member_name, str):
                    raise ValueError(
                        f"Member name must be a string, got {type(member_name).__name__}: {member_name!r}"
                    )
                try:
                    members[member_name] = MockMetadata.from_dict(member_data)
                except BaseException as error:
                    error.add_note(f"While parsing member {member_name!r}...")
                    raise

        if node_type == Category.UNDEFINED.value:
            value = UNDEFINED
        else:
            value = data.get("value")

        return cls(
            type=node_type,
            ref=_optional_index(data, "ref"),
            ref_id=_optional_index(data, "refID"),
            name=name,
            value=value,
            members=members,
            mock_impl=data.get("mockImpl"),
        )


def _optional_index(data: Mapping[str, object], key: str) -> int | None:
    index = data.get(key)
    if index is None:
        return None
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValueError(f"Metadata {key} must be an integer, got {index!r}")
    return index


@final
@dataclass(kw_only=True, slots=True, eq=False)
class IdentityArena:
    """
    Dense identity table of one extraction pass.

    Components are keyed by :func:`id`. Every registered component is kept
    alive until the arena is dropped, so no id can be recycled mid-pass.
    """

    _indices: dict[int, int] = field(default_factory=dict, init=False)
    _components: list[object] = field(default_factory=list, init=False)

    def lookup(self, component: object) -> int | None:
        return self._indices.get(id(component))

    def register(self, component: object) -> int:
        index = len(self._components)
        self._components.append(component)
        self._indices[id(component)] = index
        return index

    def __len__(self) -> int:
        return len(self._components)


def _is_own_member(
    component: object, category: Category, name: str, value: object
) -> bool:
    """
    Whether a member belongs to the component itself rather than to what it
    delegates to.

    Records also keep inherited members whose value differs from the one found
    on :class:`object`.
    """
    namespace = own_namespace(component)
    if namespace is None:
        return value is not UNDEFINED
    if name in namespace:
        return True
    if isinstance(component, ModuleType) and name in module_exports(component):
        return True
    return category is Category.OBJECT and value is not getattr(object, name, UNDEFINED)


def extract(component: object, arena: IdentityArena) -> MockMetadata | None:
    """
    Capture the shape of ``component``.

    :param component: Any value.
    :param arena: Identity table shared by the whole extraction pass.
    :return: The metadata, or ``None`` when the component is not recognized and
        must be left out by the caller.
    """
    ref = arena.lookup(component)
    if ref is not None:
        return MockMetadata(ref=ref)

    category = classify(component)
    if category is None:
        return None
    if category in LEAF_CATEGORIES:
        return MockMetadata(type=category.value, value=component)

    name: str | None = None
    mock_impl: Callable[..., object] | None = None
    if category is Category.FUNCTION:
        captured_name = getattr(component, "__name__", "")
        name = captured_name if isinstance(captured_name, str) else ""
        if is_mock_function(component):
            mock_impl = component.get_mock_implementation()  # type: ignore[attr-defined]

    ref_id = arena.register(component)

    members: dict[str, MockMetadata] = {}
    if category is not Category.ARRAY:
        for member_name in enumerate_members(component):
            if category is Category.FUNCTION and member_name in CONFIGURATION_SURFACE:
                logger.debug(
                    "Skipping member %r of function: the name is reserved by the mock runtime",
                    member_name,
                )
                continue
            try:
                value = getattr(component, member_name)
            except AttributeError:
                continue
            if not _is_own_member(component, category, member_name, value):
                continue
            member = extract(value, arena)
            if member is None:
                logger.debug(
                    "Skipping member %r of %s: %s is not mockable",
                    member_name,
                    category.value,
                    type(value).__name__,
                )
                continue
            members[member_name] = member

        if category is Category.FUNCTION:
            template = behavior_template(component)
            if template is not None:
                template_metadata = extract(template, arena)
                if template_metadata is not None and template_metadata.members:
                    members[TEMPLATE_MEMBER_NAME] = template_metadata

    return MockMetadata(
        type=category.value,
        ref_id=ref_id,
        name=name,
        members=members or None,
        mock_impl=mock_impl,
    )


def get_metadata(component: object) -> MockMetadata | None:
    """
    Capture the shape of ``component`` and of everything reachable from it.

    :return: The root of the metadata tree, or ``None`` when the component
        itself is not recognized.
    """
    return extract(component, IdentityArena())

"""
Type classification of arbitrary runtime values.

Every value is sorted into exactly one :class:`Category`, or into none at all.
Values without a category are not mockable and are silently dropped by the
metadata extractor.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Set
from enum import Enum, auto
from types import ModuleType, SimpleNamespace
from typing import Final, final


@final
class UndefinedSentinel(Enum):
    """
    Sentinel for a value that was never provided.

    Unlike ``None``, which is an ordinary value a mock may be configured to
    return, ``UNDEFINED`` marks the absence of a configured value.
    """

    UNDEFINED = auto()

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Final = UndefinedSentinel.UNDEFINED


class Category(Enum):
    """Category of a component. The values are the strings used on the wire."""

    FUNCTION = "function"
    """Anything callable, including classes and other mocks."""

    ARRAY = "array"
    """An ordered sequence. Elements are never captured."""

    OBJECT = "object"
    """A plain keyed record: namespaces, modules and instances with a ``__dict__``."""

    CONSTANT = "constant"
    """A primitive value, captured by reference."""

    COLLECTION = "collection"
    """A keyed collection such as a mapping or a set, captured by reference."""

    REGEXP = "regexp"
    """A compiled regular expression."""

    UNDEFINED = "undefined"
    """The :data:`UNDEFINED` sentinel."""

    NULL = "null"
    """``None``."""


LEAF_CATEGORIES: Final = frozenset(
    {Category.CONSTANT, Category.COLLECTION, Category.UNDEFINED, Category.NULL}
)
"""Categories whose components are captured as values, never decomposed."""

_CONSTANT_TYPES: Final = (bool, int, float, complex, str, bytes)
_COLLECTION_TYPES: Final = (Mapping, Set)


def _is_record(value: object) -> bool:
    if isinstance(value, (SimpleNamespace, ModuleType)):
        return True
    if value is UNDEFINED or isinstance(
        value, (*_CONSTANT_TYPES, *_COLLECTION_TYPES, re.Pattern)
    ):
        return False
    return hasattr(value, "__dict__")


def classify(value: object) -> Category | None:
    """
    Classify a value. The first matching rule wins:

    1. callables are :attr:`Category.FUNCTION`
    2. lists and tuples are :attr:`Category.ARRAY`
    3. plain keyed records are :attr:`Category.OBJECT`
    4. numbers, strings and bytes are :attr:`Category.CONSTANT`
    5. mappings and sets are :attr:`Category.COLLECTION`
    6. compiled patterns are :attr:`Category.REGEXP`
    7. :data:`UNDEFINED` is :attr:`Category.UNDEFINED`
    8. ``None`` is :attr:`Category.NULL`

    Instances of slotted classes, including ``@dataclass(slots=True)``, carry
    no ``__dict__`` and are therefore not recognized.

    :return: The category, or ``None`` when the value is not recognized.
    """
    if callable(value):
        return Category.FUNCTION
    elif isinstance(value, (list, tuple)):
        return Category.ARRAY
    elif _is_record(value):
        return Category.OBJECT
    elif isinstance(value, _CONSTANT_TYPES):
        return Category.CONSTANT
    elif isinstance(value, _COLLECTION_TYPES):
        return Category.COLLECTION
    elif isinstance(value, re.Pattern):
        return Category.REGEXP
    elif value is UNDEFINED:
        return Category.UNDEFINED
    elif value is None:
        return Category.NULL
    else:
        return None

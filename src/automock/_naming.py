"""
Display labels for synthesized callables.

A label only affects introspection (``__name__``, ``__qualname__`` and
``repr``), never invocation.
"""

from __future__ import annotations

import keyword
import re
from typing import Final

MOCK_CONSTRUCTOR_NAME: Final = "mock_constructor"
"""Label of a mock whose source had no usable name."""

_BOUND_PREFIX: Final = "bound "
_RESERVED_CHARACTERS: Final = re.compile(r"[\s-]")


def synthesize_label(name: str | None) -> str:
    """
    Sanitize a captured name into a label for a new mock.

    - Every leading ``"bound "`` prefix is stripped. If any was stripped, the
      label gets exactly one ``"bound "`` prefix back, as if the mock had been
      rebound once.
    - A keyword gets a leading ``_``.
    - Whitespace and ``-`` characters are replaced with ``_``.

    :param name: The captured name, possibly empty.
    :return: The label. Missing names give :data:`MOCK_CONSTRUCTOR_NAME`.
    """
    if not name or name == MOCK_CONSTRUCTOR_NAME:
        return MOCK_CONSTRUCTOR_NAME

    rebind_count = 0
    while name.startswith(_BOUND_PREFIX):
        name = name[len(_BOUND_PREFIX) :]
        rebind_count += 1
    if not name:
        return MOCK_CONSTRUCTOR_NAME

    if keyword.iskeyword(name):
        name = "_" + name

    name = _RESERVED_CHARACTERS.sub("_", name)

    if rebind_count:
        return _BOUND_PREFIX + name
    return name

"""
Member enumeration: which attribute names make up a component's observable shape.

The delegation chain of a component is walked explicitly instead of relying on
:func:`dir`:

- a class delegates along its MRO;
- any other component first exposes its own ``__dict__`` and then delegates to
  the MRO of its type.

The walk never enters a root sentinel: :class:`object`, or :class:`re.Pattern`
whose methods are built into every pattern.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Iterator, Mapping
from types import ModuleType, SimpleNamespace
from typing import Final

from automock._classifier import UNDEFINED

TEMPLATE_MEMBER_NAME: Final = "prototype"
"""Reserved member name under which a callable's behavior template is captured."""

TEMPLATE_OWNER_NAME: Final = "__mock_owner__"
"""Attribute of a generated behavior template pointing back at its owning mock."""

_PATTERN_INTRINSICS: Final = frozenset({"pattern", "flags", "groups", "groupindex"})
_ROOT_SENTINELS: Final = (object, re.Pattern)


def is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def is_intrinsic(component: object, name: str) -> bool:
    """
    Whether ``name`` is an intrinsic member of ``component``.

    Dunder names belong to the interpreter protocol. They include every piece of
    call metadata of a callable (``__name__``, ``__code__``, ``__defaults__``
    and so on). Compiled patterns additionally keep their configuration
    (``pattern``, ``flags``, ``groups``, ``groupindex``) to themselves.
    """
    if is_dunder(name):
        return True
    return isinstance(component, re.Pattern) and name in _PATTERN_INTRINSICS


def own_namespace(component: object) -> Mapping[str, object] | None:
    """The component's own attribute namespace, if it has one."""
    namespace = getattr(component, "__dict__", None)
    if isinstance(namespace, Mapping):
        return namespace
    return None


def module_exports(module: ModuleType) -> tuple[str, ...]:
    """Names listed in ``__all__`` that are served by a module-level ``__getattr__``."""
    namespace = vars(module)
    if "__getattr__" not in namespace:
        return ()
    exported = namespace.get("__all__", ())
    return tuple(
        name for name in exported if isinstance(name, str) and name not in namespace
    )


def _delegation_chain(component: object) -> Iterator[tuple[Mapping[str, object], bool]]:
    """
    Yield each namespace of the delegation chain together with a flag telling
    whether it belongs to a type, where descriptors take effect.
    """
    if isinstance(component, type):
        classes = component.__mro__
    else:
        namespace = own_namespace(component)
        if namespace is not None:
            yield namespace, False
        classes = type(component).__mro__
    for klass in classes:
        if klass in _ROOT_SENTINELS:
            return
        yield vars(klass), True


def enumerate_members(component: object) -> list[str]:
    """
    Compute the ordered member names of a component.

    A name shadows every later definition of the same name along the chain.
    Members backed by a computed accessor (a data descriptor such as
    :class:`property`) are excluded unless the component is a module. Modules
    also expose their lazily computed ``__all__`` exports.

    Plain functions defined on a class are instance behavior. They are reported
    by :func:`behavior_template`, not here.
    """
    if component is None or component is UNDEFINED:
        return []

    is_namespace = isinstance(component, ModuleType)
    is_class = isinstance(component, type)
    seen: set[str] = set()
    members: list[str] = []
    for namespace, is_type_namespace in _delegation_chain(component):
        for name, raw in namespace.items():
            if name in seen:
                continue
            seen.add(name)
            if is_intrinsic(component, name):
                continue
            if is_class and inspect.isfunction(raw):
                continue
            if is_type_namespace and not is_namespace and inspect.isdatadescriptor(raw):
                continue
            members.append(name)

    if is_namespace:
        members.extend(name for name in module_exports(component) if name not in seen)
    return members


def behavior_template(component: object) -> SimpleNamespace | None:
    """
    The record of members that instances of ``component`` inherit.

    Only classes have one. It holds the plain functions and plain data attributes
    found along the MRO. Descriptors such as static methods, class methods and
    properties stay on the class.
    """
    if not isinstance(component, type):
        return None

    seen: set[str] = set()
    inherited: dict[str, object] = {}
    for klass in component.__mro__:
        if klass is object:
            break
        for name, raw in vars(klass).items():
            if name in seen or is_dunder(name):
                continue
            seen.add(name)
            if inspect.isfunction(raw) or not hasattr(type(raw), "__get__"):
                inherited[name] = raw
    return SimpleNamespace(**inherited)

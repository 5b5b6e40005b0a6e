"""
Runtime of instrumented callables.

A :class:`MockFunction` records every invocation in its :class:`MockFunctionRecord`
and resolves its result from layered overrides:

1. when the last configuration call set a return value, the next one-shot return
   value, or else the persistent one;
2. the next one-shot implementation, or else the persistent one;
3. the implementation inherited from the behavior template;
4. ``None``.

Receivers follow the descriptor protocol. A mock stored on a class and accessed
through an instance is bound to that instance, exactly like a function would be,
and implementations are bound to the receiver the same way before being called.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, ClassVar, Final, Self, final

from automock._classifier import UNDEFINED, Category
from automock._members import TEMPLATE_MEMBER_NAME, TEMPLATE_OWNER_NAME

if TYPE_CHECKING:
    from automock._metadata import MockMetadata


@final
@dataclass(frozen=True, kw_only=True, slots=True)
class Call:
    """Arguments of one recorded invocation."""

    args: tuple[object, ...]
    kwargs: Mapping[str, object]


@final
@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class MockFunctionRecord:
    """
    Mutable state of one :class:`MockFunction`.

    The ledger (:attr:`calls` and :attr:`instances`) only ever grows until
    :meth:`MockFunction.mock_clear` empties it in place.
    """

    calls: Final[list[Call]] = field(default_factory=list)
    """Arguments of every invocation, in invocation order."""

    instances: Final[list[object]] = field(default_factory=list)
    """Receiver of every invocation, ``None`` for plain calls."""

    pending_return_values: Final[deque[object]] = field(default_factory=deque)
    pending_implementations: Final[deque[Callable[..., object]]] = field(
        default_factory=deque
    )
    default_return_value: object = UNDEFINED
    default_implementation: Callable[..., object] | None = None

    favor_return_value: bool = False
    """
    Whether the most recent configuration call set a return value rather than an
    implementation. Return values are only consulted when this is set.
    """

    template_implementation: Callable[..., object] | None = None
    """
    Fallback inherited from the behavior template.

    Only set on the per-instance copies installed by constructor-style invocation.
    """


@final
class _ReturnReceiver:
    """Implementation that evaluates to the receiver it is bound to."""

    __slots__ = ()

    def __get__(self, receiver: object, owner: type | None = None) -> Callable[..., object]:
        return lambda *args, **kwargs: receiver

    def __call__(self, *args: object, **kwargs: object) -> None:
        return None

    def __repr__(self) -> str:
        return "<return receiver>"


RETURN_RECEIVER: Final = _ReturnReceiver()


def bind_receiver(implementation: Any, receiver: object) -> Any:
    """
    Bind ``implementation`` to ``receiver`` through the descriptor protocol.

    Functions become bound methods, mocks become :class:`BoundMockFunction`, and
    callables that are not descriptors are returned unchanged.
    """
    if receiver is None:
        return implementation
    descriptor_get = getattr(type(implementation), "__get__", None)
    if descriptor_get is None:
        return implementation
    return descriptor_get(implementation, receiver, type(receiver))


class MockFunction:
    """
    An instrumented callable.

    Configuration methods return the mock itself so that they can be chained::

        fetch = get_mock_function().mock_return_value_once(1).mock_return_value(0)
        fetch(), fetch(), fetch()  # (1, 0, 0)
        fetch.mock.calls  # [Call(args=(), kwargs={})] * 3

    Arbitrary attributes can be stored on a mock. They form its shape, which
    :func:`automock.get_metadata` captures like that of any other callable.
    Names of :data:`CONFIGURATION_SURFACE` are reserved for the runtime and are
    neither captured from nor generated onto a mock.
    """

    __slots__ = (
        "_record",
        "_template_members",
        "_fallback_template",
        "__dict__",
        "__weakref__",
    )

    _is_mock_function: ClassVar[bool] = True

    def __init__(
        self,
        *,
        label: str,
        template_members: Mapping[str, MockMetadata] | None = None,
    ) -> None:
        """
        :param label: Display name of the mock.
        :param template_members: Metadata of the behavior template members,
            used to give every constructed instance its own method mocks.
        """
        self._record = MockFunctionRecord()
        self._template_members = template_members or {}
        self._fallback_template: SimpleNamespace | None = None
        self.__name__ = label
        self.__qualname__ = label

    @property
    def mock(self) -> MockFunctionRecord:
        """The invocation ledger and override state."""
        return self._record

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return MockFunction._invoke(self, None, args, kwargs)

    def __get__(self, receiver: object, owner: type | None = None) -> Any:
        if receiver is None:
            return self
        return BoundMockFunction(self, receiver)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.__name__}>"

    def new(self, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke the mock in constructor style.

        A fresh :class:`MockInstance` delegating to the behavior template becomes
        the receiver. It is returned unless the implementation returned a value
        other than ``None``.
        """
        instance = MockInstance(template=MockFunction._template(self))
        result = MockFunction._invoke(self, instance, args, kwargs)
        return instance if result is None else result

    def get_mock_implementation(self) -> Callable[..., object] | None:
        return self._record.default_implementation

    def mock_clear(self) -> Self:
        """Empty the ledger, keeping every configured override."""
        self._record.calls.clear()
        self._record.instances.clear()
        return self

    def mock_return_value_once(self, value: object) -> Self:
        self._record.favor_return_value = True
        self._record.pending_return_values.append(value)
        return self

    def mock_return_value(self, value: object) -> Self:
        self._record.favor_return_value = True
        self._record.default_return_value = value
        return self

    def mock_implementation_once(self, implementation: Callable[..., object]) -> Self:
        self._record.favor_return_value = False
        self._record.pending_implementations.append(implementation)
        return self

    def mock_implementation(self, implementation: Callable[..., object]) -> Self:
        self._record.favor_return_value = False
        self._record.default_implementation = implementation
        return self

    mock_impl = mock_implementation

    def mock_return_this(self) -> Self:
        """
        Make every call return its receiver, or ``None`` when called plainly.

        A mock stored as a member of a generated record is read without binding,
        so calling it through the record is a plain call with no receiver.
        """
        return MockFunction.mock_implementation(self, RETURN_RECEIVER)

    def _template(self) -> object:
        template = vars(self).get(TEMPLATE_MEMBER_NAME)
        if template is None:
            if self._fallback_template is None:
                self._fallback_template = SimpleNamespace()
            template = self._fallback_template
        setattr(template, TEMPLATE_OWNER_NAME, self)
        return template

    def _invoke(
        self, receiver: object, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> Any:
        record = self._record
        record.instances.append(receiver)
        record.calls.append(Call(args=args, kwargs=kwargs))
        if isinstance(receiver, MockInstance) and receiver._owner is self:
            return MockFunction._construct(self, receiver, args, kwargs)
        return MockFunction._resolve(self, receiver, args, kwargs)

    def _construct(
        self, instance: MockInstance, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> Any:
        from automock._generator import generate_from_metadata

        template = instance._template
        for name, member in self._template_members.items():
            if member.type != Category.FUNCTION.value:
                continue
            template_implementation = getattr(template, name, None)
            own_function = generate_from_metadata(member)
            own_function.mock.template_implementation = template_implementation
            vars(instance)[name] = own_function.__get__(instance, type(instance))

        implementation = self._record.default_implementation
        if implementation is None:
            return None
        return bind_receiver(implementation, instance)(*args, **kwargs)

    def _resolve(
        self, receiver: object, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> Any:
        record = self._record
        if record.favor_return_value:
            if record.pending_return_values:
                return_value = record.pending_return_values.popleft()
            else:
                return_value = record.default_return_value
            if return_value is not UNDEFINED:
                return return_value

        if record.pending_implementations:
            implementation = record.pending_implementations.popleft()
        else:
            implementation = record.default_implementation
        if implementation is not None:
            return bind_receiver(implementation, receiver)(*args, **kwargs)

        if record.template_implementation is not None:
            return bind_receiver(record.template_implementation, receiver)(
                *args, **kwargs
            )
        return None


@final
class BoundMockFunction:
    """
    A :class:`MockFunction` bound to a receiver.

    Calls are recorded on the underlying mock with the receiver in its
    :attr:`MockFunctionRecord.instances`. Every other attribute, including the
    configuration methods, is looked up on the underlying mock.
    """

    __slots__ = ("__func__", "__self__")

    def __init__(self, function: MockFunction, receiver: object) -> None:
        self.__func__ = function
        self.__self__ = receiver

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return MockFunction._invoke(self.__func__, self.__self__, args, kwargs)

    def __getattr__(self, name: str) -> Any:
        function = object.__getattribute__(self, "__func__")
        return getattr(function, name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundMockFunction):
            return NotImplemented
        return self.__func__ is other.__func__ and self.__self__ is other.__self__

    def __hash__(self) -> int:
        return hash((id(self.__func__), id(self.__self__)))

    def __repr__(self) -> str:
        return f"<bound {type(self.__func__).__name__} {self.__func__.__name__} of {self.__self__!r}>"


@final
class MockInstance:
    """
    Receiver created by :meth:`MockFunction.new`.

    Attributes missing from the instance are looked up on its behavior template
    and bound to the instance.
    """

    __slots__ = ("_template", "__dict__", "__weakref__")

    def __init__(self, *, template: object) -> None:
        self._template = template

    @property
    def _owner(self) -> object:
        """The mock whose constructor-style invocation created this instance."""
        return getattr(self._template, TEMPLATE_OWNER_NAME, None)

    def __getattr__(self, name: str) -> Any:
        template = object.__getattribute__(self, "_template")
        try:
            value = getattr(template, name)
        except AttributeError as error:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}",
                name=name,
                obj=self,
            ) from error
        return bind_receiver(value, self)

    def __repr__(self) -> str:
        owner = self._owner
        label = getattr(owner, "__name__", None)
        return f"<{type(self).__name__} of {label}>"


def is_mock_function(value: object) -> bool:
    """Whether ``value`` is an instrumented callable, bound or not."""
    return getattr(value, "_is_mock_function", False) is True


CONFIGURATION_SURFACE: Final = frozenset(
    name for name in vars(MockFunction) if not (name.startswith("__") and name.endswith("__"))
)
"""Members of every mock that are regenerated rather than captured."""

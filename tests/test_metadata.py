import logging
import re
from types import ModuleType, SimpleNamespace

import pytest

from automock import UNDEFINED, MockMetadata, get_metadata, get_mock_function


class Greeter:
    greeting = "hello"

    def greet(self, name: str) -> str:
        return f"{self.greeting} {name}"

    @staticmethod
    def create() -> "Greeter":
        return Greeter()


class Empty:
    pass


class _Base:
    shared = 1

    def method(self) -> str:
        return "base"


class _Child(_Base):
    def __init__(self) -> None:
        self.value = 5


class _Nameless:
    def __call__(self) -> None:
        pass


class TestGetMetadata:
    """Test extraction of component shapes."""

    def test_self_reference(self) -> None:
        component = SimpleNamespace()
        component.self = component
        assert get_metadata(component) == MockMetadata(
            type="object", ref_id=0, members={"self": MockMetadata(ref=0)}
        )

    def test_shared_reference(self) -> None:
        child = SimpleNamespace(v=1)
        parent = SimpleNamespace(x=child, y=child)
        metadata = get_metadata(parent)
        assert metadata is not None
        assert metadata.members == {
            "x": MockMetadata(
                type="object",
                ref_id=1,
                members={"v": MockMetadata(type="constant", value=1)},
            ),
            "y": MockMetadata(ref=1),
        }

    def test_ref_ids_are_dense_in_visitation_order(self) -> None:
        first = SimpleNamespace()
        second = SimpleNamespace()
        root = SimpleNamespace(first=first, second=second, again=first)
        metadata = get_metadata(root)
        assert metadata is not None
        assert metadata.members is not None
        assert metadata.ref_id == 0
        assert metadata.members["first"].ref_id == 1
        assert metadata.members["second"].ref_id == 2
        assert metadata.members["again"] == MockMetadata(ref=1)

    def test_leaves_are_captured_by_reference(self) -> None:
        config = {"retries": [1, 2]}
        metadata = get_metadata(SimpleNamespace(config=config, nothing=None))
        assert metadata is not None
        assert metadata.members is not None
        assert metadata.members["config"].type == "collection"
        assert metadata.members["config"].value is config
        assert metadata.members["nothing"] == MockMetadata(type="null")

    def test_undefined_leaf(self) -> None:
        assert get_metadata(UNDEFINED) == MockMetadata(type="undefined", value=UNDEFINED)

    def test_arrays_are_opaque(self) -> None:
        assert get_metadata([1, SimpleNamespace()]) == MockMetadata(
            type="array", ref_id=0
        )

    def test_regexp_has_no_members(self) -> None:
        assert get_metadata(re.compile("a+")) == MockMetadata(type="regexp", ref_id=0)

    def test_unrecognized_root(self) -> None:
        assert get_metadata(object()) is None

    def test_unrecognized_members_are_skipped(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="automock._metadata"):
            metadata = get_metadata(SimpleNamespace(keep=1, drop=object()))
        assert metadata is not None
        assert metadata.members is not None
        assert list(metadata.members) == ["keep"]
        assert "Skipping member 'drop' of object: object is not mockable" in caplog.text

    def test_function_name_and_attributes(self) -> None:
        def fetch() -> None:
            pass

        fetch.retries = 3  # type: ignore[attr-defined]
        assert get_metadata(fetch) == MockMetadata(
            type="function",
            ref_id=0,
            name="fetch",
            members={"retries": MockMetadata(type="constant", value=3)},
        )

    def test_callable_without_name(self) -> None:
        assert get_metadata(_Nameless()) == MockMetadata(
            type="function", ref_id=0, name=""
        )

    def test_class_with_behavior_template(self) -> None:
        metadata = get_metadata(Greeter)
        assert metadata == MockMetadata(
            type="function",
            ref_id=0,
            name="Greeter",
            members={
                "greeting": MockMetadata(type="constant", value="hello"),
                "create": MockMetadata(type="function", ref_id=1, name="create"),
                "prototype": MockMetadata(
                    type="object",
                    ref_id=2,
                    members={
                        "greeting": MockMetadata(type="constant", value="hello"),
                        "greet": MockMetadata(type="function", ref_id=3, name="greet"),
                    },
                ),
            },
        )
        assert metadata is not None
        assert metadata.members is not None
        assert list(metadata.members) == ["greeting", "create", "prototype"]

    def test_class_without_behavior_has_no_template(self) -> None:
        assert get_metadata(Empty) == MockMetadata(type="function", ref_id=0, name="Empty")

    def test_instance_keeps_inherited_behavior(self) -> None:
        metadata = get_metadata(_Child())
        assert metadata is not None
        assert metadata.members is not None
        assert list(metadata.members) == ["value", "shared", "method"]
        assert metadata.members["method"].type == "function"
        assert metadata.members["method"].name == "method"

    def test_module_with_lazy_exports(self) -> None:
        module = ModuleType("plugins")
        module.__all__ = ["lazy", "missing"]  # type: ignore[attr-defined]

        def __getattr__(name: str) -> int:
            if name == "lazy":
                return 2
            raise AttributeError(name)

        module.__getattr__ = __getattr__  # type: ignore[method-assign]
        module.eager = "e"  # type: ignore[attr-defined]
        metadata = get_metadata(module)
        assert metadata is not None
        assert metadata.members == {
            "eager": MockMetadata(type="constant", value="e"),
            "lazy": MockMetadata(type="constant", value=2),
        }

    def test_mock_of_mock(self) -> None:
        def implementation(value: int) -> int:
            return value * 2

        original = get_mock_function().mock_implementation(implementation)
        original.tag = "t"  # type: ignore[attr-defined]
        original(1)
        assert get_metadata(original) == MockMetadata(
            type="function",
            ref_id=0,
            name="mock_constructor",
            members={"tag": MockMetadata(type="constant", value="t")},
            mock_impl=implementation,
        )


class TestWireForm:
    """Test conversion between metadata and plain data."""

    def test_to_dict_omits_absent_fields(self) -> None:
        metadata = MockMetadata(
            type="object",
            ref_id=0,
            members={
                "self": MockMetadata(ref=0),
                "name": MockMetadata(type="constant", value="n"),
                "nothing": MockMetadata(type="null"),
                "missing": MockMetadata(type="undefined", value=UNDEFINED),
                "run": MockMetadata(type="function", ref_id=1, name="run"),
            },
        )
        assert metadata.to_dict() == {
            "type": "object",
            "refID": 0,
            "members": {
                "self": {"ref": 0},
                "name": {"type": "constant", "value": "n"},
                "nothing": {"type": "null", "value": None},
                "missing": {"type": "undefined"},
                "run": {"type": "function", "refID": 1, "name": "run"},
            },
        }

    def test_from_dict_inverts_to_dict(self) -> None:
        metadata = get_metadata(Greeter)
        assert metadata is not None
        assert MockMetadata.from_dict(metadata.to_dict()) == metadata

    def test_from_dict_restores_undefined(self) -> None:
        assert MockMetadata.from_dict({"type": "undefined"}).value is UNDEFINED

    def test_from_dict_accepts_unknown_types(self) -> None:
        assert MockMetadata.from_dict({"type": "widget"}).type == "widget"

    def test_is_reference(self) -> None:
        assert MockMetadata.from_dict({"ref": 0}).is_reference
        assert not MockMetadata.from_dict({"type": "object", "refID": 0}).is_reference

    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ([], "Metadata node must be a mapping, got list"),
            ({"type": 3}, "Metadata type must be a string, got int"),
            ({"name": 3}, "Metadata name must be a string, got int"),
            ({"members": []}, "Metadata members must be a mapping, got list"),
            ({"members": {1: {}}}, "Member name must be a string, got int: 1"),
            ({"ref": "0"}, "Metadata ref must be an integer, got '0'"),
            ({"refID": True}, "Metadata refID must be an integer, got True"),
        ],
    )
    def test_from_dict_rejects_malformed_data(self, data: object, message: str) -> None:
        with pytest.raises(ValueError, match=re.escape(message)):
            MockMetadata.from_dict(data)

    def test_from_dict_notes_member_path(self) -> None:
        with pytest.raises(ValueError) as excinfo:
            MockMetadata.from_dict({"members": {"outer": {"members": {"inner": 1}}}})
        assert excinfo.value.__notes__ == [
            "While parsing member 'inner'...",
            "While parsing member 'outer'...",
        ]


class _Repository:
    mock = True

    @classmethod
    def new(cls) -> "_Repository":
        return cls()

    @staticmethod
    def mock_clear() -> None:
        pass

    def save(self) -> None:
        pass


class TestReservedNames:
    """Test members whose names belong to the mock runtime."""

    def test_reserved_names_are_not_captured_from_functions(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="automock._metadata"):
            metadata = get_metadata(_Repository)
        assert metadata is not None
        assert metadata.members is not None
        assert list(metadata.members) == ["prototype"]
        assert "Skipping member 'new' of function" in caplog.text

    def test_reserved_names_are_kept_on_records(self) -> None:
        metadata = get_metadata(SimpleNamespace(mock=1, new=2))
        assert metadata is not None
        assert metadata.members is not None
        assert list(metadata.members) == ["mock", "new"]

"""Tests for the lens contract over Record instances."""

from datetime import date, datetime
from typing import Protocol

import pytest

from fieldlens import Lens, Lensable, Record, RecordLens, computed, lens_for


class TestReferenceScenario:
    """Mary, born at the epoch, with a derived age."""

    def test_get_birthday(self, mary, epoch):
        assert mary.lens.get("birthday", None) == epoch

    def test_set_name_then_get(self, mary):
        lens = mary.lens
        lens.set("name", "Mary Jane")
        assert lens.get("name", None) == "Mary Jane"

    def test_set_age_is_noop(self, mary, mary_age):
        lens = mary.lens
        lens.set("age", 99)

        assert lens.get("age", -1) == mary_age
        assert mary.age == mary_age

    def test_unknown_field_returns_default(self, mary):
        assert mary.lens.get("unknownField", "x") == "x"


class TestGet:
    """Test typed reads."""

    def test_get_without_type_returns_value(self, mary):
        assert mary.lens.get("name") == "Mary"

    def test_get_with_matching_type(self, mary, epoch):
        assert mary.lens.get("name", None, as_type=str) == "Mary"
        assert mary.lens.get("birthday", None, as_type=datetime) == epoch

    def test_get_with_wrong_type_returns_default(self, mary):
        """Requesting an incompatible type never yields a miscast value."""
        assert mary.lens.get("name", "fallback", as_type=int) == "fallback"
        assert mary.lens.get("birthday", None, as_type=str) is None

    def test_get_computed_field(self, mary, mary_age):
        age = mary.lens.get("age", as_type=int)
        assert age == mary_age

    def test_non_string_key_returns_default(self, mary):
        assert mary.lens.get(42, "x") == "x"  # type: ignore[arg-type]
        assert mary.lens.get(["name"], "x") == "x"  # type: ignore[arg-type]


class TestSet:
    """Test typed writes."""

    def test_set_mutates_the_same_record(self, mary):
        lens = mary.lens
        lens.set("name", "Mary Jane")
        assert mary.name == "Mary Jane"
        assert lens.value() is mary

    def test_round_trip_every_writable_key(self, mary):
        values = {"name": "Ada", "birthday": datetime(1815, 12, 10)}
        lens = mary.lens
        for key, value in values.items():
            lens.set(key, value)
            assert lens.get(key, object()) == value

    def test_set_wrong_value_type_is_noop(self, mary, epoch):
        lens = mary.lens
        lens.set("name", 42)
        lens.set("birthday", "1970-01-01")
        assert mary.name == "Mary"
        assert mary.birthday == epoch

    def test_set_unknown_key_leaves_record_unchanged(self, mary):
        before = mary.replace()
        mary.lens.set("nickname", "M")
        assert mary == before
        assert not hasattr(mary, "nickname")

    def test_set_with_mismatched_slot_type_is_noop(self, mary):
        """An explicit type must fit the field's current value."""
        mary.lens.set("name", 7, as_type=int)
        assert mary.name == "Mary"

    def test_set_with_matching_type(self, mary):
        mary.lens.set("name", "Maria", as_type=str)
        assert mary.name == "Maria"

    def test_set_none_on_non_nullable_is_noop(self, mary):
        mary.lens.set("name", None)
        assert mary.name == "Mary"

    def test_set_returns_none(self, mary):
        assert mary.lens.set("name", "X") is None
        assert mary.lens.set("missing", "X") is None


class TestFieldKinds:
    """Test nullable, read-only, numeric and generic fields."""

    def test_readonly_field_readable_not_writable(self, account_cls):
        account = account_cls(id=1, owner="ann")
        lens = account.lens
        lens.set("id", 2)
        assert lens.get("id") == 1

    def test_nullable_field_accepts_none_and_value(self, account_cls):
        account = account_cls(id=1, owner="ann")
        lens = account.lens

        lens.set("note", "hello")
        assert account.note == "hello"

        lens.set("note", None)
        assert account.note is None

    def test_nullable_field_typed_set_from_none(self, account_cls):
        account = account_cls(id=1, owner="ann")
        account.lens.set("note", "first", as_type=str)
        assert account.note == "first"

    def test_bool_is_not_an_int(self, account_cls):
        account = account_cls(id=1, owner="ann")
        account.lens.set("balance", True)
        assert account.balance == 0.0

    def test_int_widens_to_float(self, account_cls):
        account = account_cls(id=1, owner="ann")
        account.lens.set("balance", 10)
        assert account.balance == 10

    def test_datetime_is_not_a_date(self, account_cls):
        account = account_cls(id=1, owner="ann")
        account.lens.set("opened", datetime(2025, 5, 1, 12, 0))
        assert account.opened == date(2024, 1, 1)

        account.lens.set("opened", date(2025, 5, 1))
        assert account.opened == date(2025, 5, 1)

    def test_generic_field_checks_items(self, account_cls):
        account = account_cls(id=1, owner="ann")
        lens = account.lens

        lens.set("tags", ["a", "b"])
        assert account.tags == ["a", "b"]

        lens.set("tags", [1, 2])
        assert account.tags == ["a", "b"]

        lens.set("tags", ("c",))
        assert account.tags == ["a", "b"]

    def test_generic_get_with_type(self, account_cls):
        account = account_cls(id=1, owner="ann", tags=["x"])
        assert account.lens.get("tags", None, as_type=list[str]) == ["x"]
        assert account.lens.get("tags", "d", as_type=list[int]) == "d"

    def test_plain_protocol_field_never_raises(self):
        """A field typed by a non-runtime Protocol is readable but never matched."""

        class Greeter(Protocol):
            def greet(self) -> str: ...

        class Guest:
            def greet(self) -> str:
                return "hi"

        class Host(Record):
            guest: Greeter

        first = Guest()
        host = Host(guest=first)
        lens = host.lens

        lens.set("guest", Guest())
        assert host.guest is first
        assert lens.get("guest") is first
        assert lens.get("guest", "d", as_type=Greeter) == "d"


class TestValueRecords:
    """Frozen records are replaced, and the lens holds the latest copy."""

    def test_set_replaces_held_copy(self, point):
        lens = point.lens
        lens.set("x", 5)

        assert lens.value() == type(point)(x=5, y=4)
        assert point.x == 3

    def test_successive_sets_accumulate(self, point):
        lens = point.lens
        lens["x"] = 6
        lens["y"] = 8
        assert lens.get("norm") == 10.0

    def test_rejected_set_keeps_copy(self, point):
        lens = point.lens
        lens.set("x", "five")
        lens.set("norm", 1.0)
        assert lens.value() is point


class TestTypeQueries:
    """Test type lookup, has_property and registry/dispatch consistency."""

    def test_type_for_known_keys(self, mary):
        lens = mary.lens
        assert lens.type_for("name") is str
        assert lens.type_for("birthday") is datetime
        assert lens.type_for("age") is int

    def test_type_for_unknown_key(self, mary):
        assert mary.lens.type_for("unknownField") is None

    def test_type_for_nullable_key_is_declared_annotation(self, account_cls):
        assert account_cls(id=1, owner="a").lens.type_for("note") == (str | None)

    def test_has_property(self, mary):
        lens = mary.lens
        assert lens.has_property("name")
        assert lens.has_property("age")
        assert not lens.has_property("unknownField")
        assert "birthday" in lens
        assert "unknownField" not in lens

    def test_keys_in_declaration_order(self, mary):
        assert mary.lens.keys() == ["name", "birthday", "age"]

    @pytest.mark.parametrize("key", ["name", "birthday", "age", "unknownField", ""])
    def test_type_for_defined_iff_get_knows_key(self, mary, key):
        sentinel = object()
        known = mary.lens.get(key, sentinel) is not sentinel
        assert (mary.lens.type_for(key) is not None) == known


class TestIndexing:
    """Test subscript sugar."""

    def test_read(self, mary):
        assert mary.lens["name"] == "Mary"
        assert mary.lens["unknownField"] is None

    def test_read_with_default(self, mary):
        assert mary.lens["unknownField", "x"] == "x"
        assert mary.lens["name", "x"] == "Mary"

    def test_read_with_default_and_type(self, mary):
        assert mary.lens["name", "x", int] == "x"
        assert mary.lens["name", "x", str] == "Mary"

    def test_write(self, mary):
        lens = mary.lens
        lens["name"] = "Mary Jane"
        assert mary.name == "Mary Jane"

    def test_write_mismatch_is_noop(self, mary):
        lens = mary.lens
        lens["name"] = 3
        lens["age"] = 1
        assert mary.name == "Mary"

    def test_write_with_default_form(self, mary):
        """The read-side tuple forms also work as write targets."""
        lens = mary.lens
        lens["name", "x"] = "Mary Jane"
        assert mary.name == "Mary Jane"

    def test_write_with_type_form(self, mary):
        lens = mary.lens
        lens["name", None, int] = "Bob"
        assert mary.name == "Mary"

        lens["name", None, str] = "Bob"
        assert mary.name == "Bob"


class TestValueAndFactories:
    """Test value(), lens_for and the Lensable protocol."""

    def test_value_with_type(self, mary, person_cls):
        lens = mary.lens
        assert lens.value(person_cls) is mary
        assert lens.value(Record) is mary
        assert lens.value(str) is None

    def test_lens_is_a_lens(self, mary):
        assert isinstance(mary.lens, Lens)
        assert isinstance(mary.lens, RecordLens)

    def test_record_is_lensable(self, mary):
        assert isinstance(mary, Lensable)

    def test_lens_for_record(self, mary):
        lens = lens_for(mary)
        assert lens.get("name") == "Mary"

    def test_lens_for_unregistered_type_raises(self):
        class Plain:
            name = "x"

        with pytest.raises(TypeError, match="No lens registered"):
            lens_for(Plain())

    def test_each_access_gets_fresh_lens(self, mary):
        assert mary.lens is not mary.lens
        assert mary.lens.registry is mary.lens.registry

    def test_computed_errors_propagate(self):
        class Broken(Record):
            value: int

            @computed
            def ratio(self) -> float:
                return 1 / self.value

        with pytest.raises(ZeroDivisionError):
            Broken(value=0).lens.get("ratio")



"""
Tests for Copier -- struct, sequence, pointer and path mapping.

Covers:
- Same-name field matching with converters and transformers
- Rename ("diff") pairs, including fan-out to several destinations
- Dotted multi-level paths with path-keyed transformers
- Optional (pointer) fields on either side
- Sequences of primitives and structs
- Embedded (promoted) fields
- The ignore-zero-values policy
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from copier_kernel import (
    STRING_TIME_CONVERTER,
    TIME_STRING_CONVERTER,
    Copier,
    MappingPolicy,
    PendingCopy,
    Ref,
    RenamePair,
)
from copier_kernel.domain.converters import format_rfc3339
from tests.models import (
    Account,
    AccountView,
    Audit,
    Batch,
    BatchView,
    Customer,
    CustomerView,
    Envelope,
    EnvelopeView,
    EnvelopeWithPointer,
    Holder,
    Outer,
    Priority,
    Record,
    RecordView,
    RecordWithPointers,
    Required,
    Status,
    UserId,
    Wrapper,
)

CREATED = datetime(2026, 2, 1, 9, 30, 15, tzinfo=UTC)
LATER = CREATED + timedelta(days=430)


@dataclass
class Typed:
    record: Record = field(default_factory=Record)
    records: list[Record] = field(default_factory=list)


@dataclass
class Untyped:
    record: Any = None
    records: Any = None


def _parse_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


# =============================================================================
# Structs
# =============================================================================


class TestStructToStruct:

    def test_same_name_fields_with_converter(self):
        view = RecordView()
        Copier().register_converter(TIME_STRING_CONVERTER).from_(
            Record(id="id1", created_at=CREATED)
        ).to(view)

        # "id1" cannot become an int; the lenient default leaves zero
        assert view.id == 0
        assert view.created_at == format_rfc3339(CREATED)

    def test_nested_struct_fields(self):
        destination = EnvelopeView()
        Copier().register_converter(TIME_STRING_CONVERTER).copy(
            Envelope(Record(id="test", created_at=CREATED)), destination
        )
        assert destination.payload.created_at == format_rfc3339(CREATED)
        assert destination.view == RecordView()

    def test_rename_pair_fans_out(self):
        destination = EnvelopeView()
        (
            Copier()
            .register_diff_pairs([RenamePair("payload", ("payload", "view"))])
            .register_converter(TIME_STRING_CONVERTER)
            .from_(Envelope(Record(id="test", created_at=CREATED)))
            .to(destination)
        )
        assert destination.payload.created_at == format_rfc3339(CREATED)
        assert destination.view.created_at == format_rfc3339(CREATED)

    def test_fields_missing_on_either_side_are_skipped(self):
        record = Record(id="kept")
        Copier().copy(RecordView(id=3, id2=4), record)
        # id: int -> str is not a native conversion
        assert record.id == ""
        assert record.created_at == datetime.min

    def test_result_is_returned(self):
        view = RecordView()
        assert Copier().copy(Record(), view) is view

    def test_same_type_struct_is_copied_not_shared(self):
        payload = Record(id="p")
        destination = Envelope()
        Copier().copy(Envelope(payload), destination)
        assert destination.payload == payload
        assert destination.payload is not payload

    def test_copies_into_existing_nested_struct(self):
        destination = EnvelopeView(payload=RecordView(id2=9))
        Copier().copy(Envelope(Record(id="x")), destination)
        assert destination.payload.id2 == 9

    def test_destination_without_defaults(self):
        ref = Ref(Required)
        Copier().copy(RecordView(id=3), ref)
        assert ref.value == Required(id=3, label="")

    def test_defined_types_map_to_underlying(self):
        view = AccountView()
        Copier().copy(
            Account(owner=UserId("u1"), status=Status.CLOSED, priority=Priority.HIGH, balance=12.7),
            view,
        )
        assert view == AccountView(owner="u1", status="closed", priority=2, balance=12)

    def test_underlying_values_map_to_defined_types(self):
        account = Account()
        Copier().copy(AccountView(owner="u1", status="closed", priority=2, balance=5), account)
        assert account == Account(
            owner=UserId("u1"), status=Status.CLOSED, priority=Priority.HIGH, balance=5.0
        )

    def test_partial_copy_into_nested_struct(self):
        wrapper = Wrapper(Record(id="123", created_at=CREATED))
        outer = Outer()
        Copier().copy(wrapper.record, outer.wrapper.record)
        assert outer.wrapper.record.id == "123"
        assert outer.wrapper.record.created_at == CREATED


# =============================================================================
# Transformers
# =============================================================================


class TestTransformers:

    def test_transformer_per_destination_field(self):
        view = RecordView()
        (
            Copier()
            .register_transformer("id", _parse_int)
            .register_transformer("created_at", lambda created: created.strftime("%Y"))
            .copy(Record(id="123", created_at=datetime(2023, 2, 1)), view)
        )
        assert view.id == 123
        assert view.created_at == "2023"

    def test_transformer_with_rename_pair(self):
        view = RecordView()
        (
            Copier()
            .register_converter(TIME_STRING_CONVERTER)
            .register_rename_pairs([RenamePair("id", ("id2",))])
            .register_transformer("id2", _parse_int)
            .copy(Record(id="1", created_at=CREATED), view)
        )
        assert view.id2 == 1
        assert view.id == 0

    def test_transformer_runs_before_converter(self):
        view = RecordView()
        (
            Copier()
            .register_converter(str, int, lambda value, target: int(value) * 10)
            .register_transformer("id", lambda value: value + "1")
            .copy(Record(id="4"), view)
        )
        assert view.id == 410

    def test_transformer_keyed_by_destination_name(self):
        view = RecordView()
        (
            Copier()
            .register_rename_pairs({"id": ["id2"]})
            .register_transformer("id", lambda value: 99)
            .copy(Record(id="1"), view)
        )
        assert view.id == 0
        assert view.id2 == 0


# =============================================================================
# Dotted paths
# =============================================================================


class TestFieldPaths:

    def test_multi_level_path(self):
        outer = Outer()
        (
            Copier()
            .register_rename_pairs([RenamePair("record.id", ("wrapper.record.id",))])
            .copy(Wrapper(Record(id="123", created_at=CREATED)), outer)
        )
        assert outer.wrapper.record.id == "123"

    def test_multi_level_path_with_transformer(self):
        outer = Outer()
        (
            Copier()
            .register_rename_pairs([RenamePair("record.id", ("wrapper.record.id",))])
            .register_transformer("wrapper.record.id", lambda value: f"test_{value}")
            .copy(Wrapper(Record(id="123", created_at=CREATED)), outer)
        )
        assert outer.wrapper.record.id == "test_123"

    def test_path_to_plain_field(self):
        ref = Ref(RecordView)
        (
            Copier()
            .register_converter(TIME_STRING_CONVERTER)
            .register_rename_pairs({"payload.created_at": ["created_at"]})
            .copy(Envelope(Record(created_at=CREATED)), ref)
        )
        assert ref.value.created_at == format_rfc3339(CREATED)

    def test_path_allocates_optional_intermediate(self):
        holder = Holder()
        (
            Copier()
            .register_rename_pairs({"id": ["inner.record.id"]})
            .copy(Record(id="r1"), holder)
        )
        assert holder.inner == Wrapper(Record(id="r1"))

    def test_none_intermediate_in_source_path_maps_zero(self):
        record = Record(id="kept")
        (
            Copier()
            .register_rename_pairs({"inner.record.id": ["id"]})
            .copy(Holder(), record)
        )
        assert record.id == ""

    def test_rules_not_applicable_at_nested_level_are_skipped(self):
        destination = Envelope()
        (
            Copier()
            .register_rename_pairs({"payload.id": ["payload.id"]})
            .copy(Envelope(Record(id="x")), destination)
        )
        assert destination.payload.id == "x"


# =============================================================================
# Untyped destinations
# =============================================================================


class TestUntypedDestinations:

    def test_struct_into_any_field_is_copied(self):
        source = Typed(record=Record(id="r1", created_at=CREATED))
        destination = Untyped()
        Copier().copy(source, destination)
        assert destination.record == source.record
        assert destination.record is not source.record

    def test_list_into_any_field_is_copied(self):
        source = Typed(records=[Record(id="r1")])
        destination = Untyped()
        Copier().copy(source, destination)
        assert destination.records == source.records
        assert destination.records is not source.records
        assert destination.records[0] is not source.records[0]

    def test_struct_into_any_ref(self):
        source = Record(id="r1")
        ref = Ref(Any)
        Copier().copy(source, ref)
        assert ref.value == source
        assert ref.value is not source


# =============================================================================
# Pointers
# =============================================================================


class TestPointers:

    def test_values_into_optional_fields(self):
        destination = RecordWithPointers()
        Copier().copy(Record(id="123", created_at=CREATED), destination)
        assert destination.id == "123"
        assert destination.created_at == CREATED

    def test_struct_into_optional_struct(self):
        destination = EnvelopeWithPointer()
        payload = Record(id="123", created_at=CREATED)
        Copier().copy(Envelope(payload), destination)
        assert destination.payload is not None
        assert destination.payload == payload

    def test_none_optional_into_value_field_is_zero(self):
        record = Record(id="old")
        Copier().copy(RecordWithPointers(), record)
        assert record == Record()

    def test_optional_values_into_plain_fields(self):
        record = Record()
        Copier().copy(RecordWithPointers(id="7", created_at=CREATED), record)
        assert record == Record(id="7", created_at=CREATED)


# =============================================================================
# Sequences
# =============================================================================


class TestSequences:

    def test_time_list_to_string_list(self):
        ref = Ref(list[str])
        Copier().register_converter(TIME_STRING_CONVERTER).copy([CREATED, LATER], ref)
        assert ref.value == [format_rfc3339(CREATED), format_rfc3339(LATER)]

    def test_string_list_to_optional_time_list(self):
        ref = Ref(list[datetime | None])
        texts = [format_rfc3339(CREATED), format_rfc3339(LATER)]
        Copier().register_converter(STRING_TIME_CONVERTER).copy(texts, ref)
        assert len(ref.value) == 2
        assert ref.value[0].timestamp() == CREATED.timestamp()
        assert ref.value[1].timestamp() == LATER.timestamp()

    @pytest.mark.parametrize("target", [list[RecordView], list[RecordView | None]])
    def test_struct_list(self, target):
        ref = Ref(target)
        (
            Copier()
            .register_converter(TIME_STRING_CONVERTER)
            .register_rename_pairs([RenamePair("id", ("id2",))])
            .register_transformer("id2", _parse_int)
            .from_([Record(id="1", created_at=CREATED), Record(id="2", created_at=LATER)])
            .to(ref)
        )
        assert len(ref.value) == 2
        assert ref.value[0].id2 == 1
        assert ref.value[1].id2 == 2

    def test_empty_sequence(self):
        ref = Ref(list[int], [1, 2])
        Copier().copy([], ref)
        assert ref.value == []

    def test_sequence_replaces_destination(self):
        ref = Ref(list[int], [9, 9, 9])
        Copier().copy((1, 2), ref)
        assert ref.value == [1, 2]

    def test_container_follows_destination_type(self):
        ref = Ref(frozenset[int])
        Copier().copy([1, 1, 2], ref)
        assert ref.value == frozenset({1, 2})

    def test_sequence_fields(self):
        view = BatchView()
        Copier().register_converter(TIME_STRING_CONVERTER).copy(
            Batch(records=[Record(created_at=CREATED)], tags=("a", "b")), view
        )
        assert view.tags == ["a", "b"]
        assert view.records[0].created_at == format_rfc3339(CREATED)

    def test_unconvertible_element_lenient_is_zero(self):
        ref = Ref(list[int])
        Copier().copy([1, "x", 3], ref)
        assert ref.value == [1, 0, 3]


# =============================================================================
# Embedded fields
# =============================================================================


class TestEmbeddedFields:

    def test_promoted_fields_read(self):
        view = CustomerView()
        Copier().copy(Customer(audit=Audit(created_by="ops"), id="c1", name="Ann"), view)
        assert view == CustomerView(id="c1", name="Ann", created_by="ops")

    def test_outer_field_wins_on_name_collision(self):
        view = CustomerView()
        Copier().copy(Customer(audit=Audit(id="inner"), id="outer"), view)
        assert view.id == "outer"

    def test_promoted_fields_written(self):
        customer = Customer()
        Copier().copy(CustomerView(id="c1", name="Ann", created_by="ops"), customer)
        assert customer.audit.created_by == "ops"
        assert customer.audit.id == "audit"
        assert customer.id == "c1"


# =============================================================================
# Policies
# =============================================================================


class TestPolicies:

    def test_ignore_zero_values_keeps_destination(self):
        view = RecordView(id=7, created_at="keep")
        Copier(ignore_zero_values=True).copy(RecordView(id=0, created_at="new"), view)
        assert view == RecordView(id=7, created_at="new")

    def test_empty_string_to_time_with_zero_values_ignored(self):
        record = Record()
        (
            Copier(ignore_zero_values=True)
            .register_converter(STRING_TIME_CONVERTER)
            .copy(RecordView(), record)
        )
        assert record.created_at == datetime.min

    def test_per_call_policy_overrides_default(self):
        view = RecordView(id=7)
        Copier().copy(
            RecordView(id=0), view, policy=MappingPolicy(ignore_zero_values=True)
        )
        assert view.id == 7

    def test_policy_passed_to_pending_copy(self):
        pending = Copier().from_(RecordView(id=0), policy=MappingPolicy(ignore_zero_values=True))
        assert isinstance(pending, PendingCopy)
        view = RecordView(id=7)
        pending.to(view)
        assert view.id == 7

    def test_copier_policy_property(self):
        copier = Copier(policy=MappingPolicy.strict())
        assert copier.policy.ignore_type_errors is False
        assert copier.session().policy is copier.policy


# =============================================================================
# Destinations
# =============================================================================


class TestDestinations:

    def test_none_source_resets_ref(self):
        ref = Ref(list[int], [1])
        Copier().copy(None, ref)
        assert ref.value == []

    def test_none_source_resets_struct(self):
        view = RecordView(id=3, created_at="x")
        Copier().copy(None, view)
        assert view == RecordView()

    def test_primitive_ref(self):
        ref = Ref(float)
        assert Copier().copy(3, ref) == 3.0
        assert ref.value == 3.0


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentUse:

    def test_configured_copier_shared_across_threads(self):
        copier = (
            Copier()
            .register_converter(TIME_STRING_CONVERTER)
            .register_rename_pairs({"id": ["id2"]})
            .register_transformer("id2", _parse_int)
        )

        def copy_one(n: int) -> RecordView:
            view = RecordView()
            copier.copy(Record(id=str(n), created_at=CREATED), view)
            return view

        with ThreadPoolExecutor(max_workers=8) as pool:
            views = list(pool.map(copy_one, range(50)))

        assert [v.id2 for v in views] == list(range(50))
        assert all(v.created_at == format_rfc3339(CREATED) for v in views)

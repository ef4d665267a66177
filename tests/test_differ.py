"""Tests for the endpoint diff engine."""

from __future__ import annotations

import pytest
from service_mock import remote_record

from logsync.differ import (
    Create,
    Delete,
    DiffSummary,
    OperationKind,
    Update,
    changed_fields,
    diff,
    index_desired,
    summarize,
)
from logsync.errors import DuplicateName, InvalidRecord
from logsync.models import LocalRecord


def local(name: str, credential: str = "token", **fields: object) -> LocalRecord:
    return LocalRecord(name=name, credential=credential, **fields)


class TestIndexDesired:
    """Tests for desired-state indexing."""

    def test_index_by_name(self) -> None:
        """Records are keyed by name with defaults applied."""
        indexed = index_desired([local("a"), local("b", format_version=1)])
        assert set(indexed) == {"a", "b"}
        assert indexed["a"].format_version == 2
        assert indexed["b"].format_version == 1

    def test_duplicate_name(self) -> None:
        """Duplicate names are a configuration error."""
        with pytest.raises(DuplicateName) as exc_info:
            index_desired([local("a"), local("b"), local("a", credential="other")])
        assert exc_info.value.name == "a"

    def test_invalid_record(self) -> None:
        """Records missing a credential are rejected."""
        with pytest.raises(InvalidRecord):
            index_desired([local("a", credential="")])


class TestChangedFields:
    """Tests for field comparison."""

    def test_no_changes(self) -> None:
        """Identical records have no changed fields."""
        assert changed_fields(local("a", format_version=2), local("a", format_version=2)) == ()

    def test_lists_changed_fields_in_order(self) -> None:
        """Changed fields are reported in declaration order."""
        desired = local("a", credential="new", format_version=1, placement="none")
        current = local("a", credential="old", format_version=2)
        assert changed_fields(desired, current) == ("credential", "format_version", "placement")

    def test_exact_comparison(self) -> None:
        """Whitespace and case differences are changes."""
        assert changed_fields(local("a", format="%h"), local("a", format="%h ")) == ("format",)
        assert changed_fields(local("a", credential="T"), local("a", credential="t")) == (
            "credential",
        )


class TestDiff:
    """Tests for diff."""

    def test_create_into_empty(self) -> None:
        """A desired endpoint missing remotely is created."""
        operations = diff([local("newrelic-endpoint")], [])

        assert len(operations) == 1
        operation = operations[0]
        assert isinstance(operation, Create)
        assert operation.kind == OperationKind.CREATE
        assert operation.name == "newrelic-endpoint"
        assert operation.desired.format_version == 2

    def test_delete_on_empty_desired(self) -> None:
        """An empty desired set deletes every remote endpoint."""
        operations = diff([], [remote_record("b"), remote_record("a")])

        assert all(isinstance(op, Delete) for op in operations)
        assert [op.name for op in operations] == ["a", "b"]

    def test_credential_change_is_update(self) -> None:
        """A changed credential produces a single update."""
        observed = [remote_record("a", credential="old", format_version=2)]
        operations = diff([local("a", credential="new")], observed)

        assert len(operations) == 1
        operation = operations[0]
        assert isinstance(operation, Update)
        assert operation.desired.credential == "new"
        assert operation.observed is observed[0]
        assert operation.changed_fields == ("credential",)

    def test_mixed_set(self) -> None:
        """Create, keep and delete in one diff."""
        observed = [remote_record("b", format_version=2), remote_record("c", format_version=2)]
        operations = diff([local("a"), local("b")], observed)

        assert [(op.kind, op.name) for op in operations] == [
            (OperationKind.DELETE, "c"),
            (OperationKind.CREATE, "a"),
        ]

    def test_delete_create_update(self) -> None:
        """One operation of each kind, in apply order."""
        observed = [
            remote_record("nr1", credential="old", format_version=2),
            remote_record("nr3", format_version=2),
        ]
        operations = diff([local("nr1", credential="new"), local("nr2")], observed)

        assert [(op.kind, op.name) for op in operations] == [
            (OperationKind.DELETE, "nr3"),
            (OperationKind.CREATE, "nr2"),
            (OperationKind.UPDATE, "nr1"),
        ]

    def test_no_changes(self) -> None:
        """Matching sets produce no operations."""
        observed = [remote_record("a", format_version=2)]
        assert diff([local("a")], observed) == []

    def test_default_matches_explicit_remote_value(self) -> None:
        """An omitted format_version matches a remote value of 2."""
        assert diff([local("a")], [remote_record("a", format_version=2)]) == []

    def test_default_differs_from_remote_version_one(self) -> None:
        """An omitted format_version is 2, so a remote 1 is drift."""
        operations = diff([local("a")], [remote_record("a", format_version=1)])
        assert [op.kind for op in operations] == [OperationKind.UPDATE]

    @pytest.mark.parametrize("stored", [2, 2.0, "2"])
    def test_numeric_width_not_drift(self, stored: object) -> None:
        """The remote's numeric representation does not cause drift."""
        observed = [remote_record("a", format_version=stored)]
        assert diff([local("a", format_version=2)], observed) == []

    def test_server_fields_ignored(self) -> None:
        """Version and timestamps never cause drift."""
        observed = [remote_record("a", version=9, format_version=2)]
        assert diff([local("a")], observed) == []

    def test_whitespace_is_drift(self) -> None:
        """No normalization is applied to string values."""
        observed = [remote_record("a", format="%h", format_version=2)]
        operations = diff([local("a", format="%h ")], observed)
        assert [op.kind for op in operations] == [OperationKind.UPDATE]

    def test_ordering(self) -> None:
        """Deletes, then creates, then updates, each sorted by name."""
        observed = [
            remote_record("z-gone", format_version=2),
            remote_record("a-gone", format_version=2),
            remote_record("m-changed", credential="old", format_version=2),
            remote_record("b-changed", credential="old", format_version=2),
            remote_record("same", format_version=2),
        ]
        desired = [
            local("y-new"),
            local("m-changed"),
            local("same"),
            local("c-new"),
            local("b-changed"),
        ]

        operations = diff(desired, observed)

        assert [(op.kind.value, op.name) for op in operations] == [
            ("delete", "a-gone"),
            ("delete", "z-gone"),
            ("create", "c-new"),
            ("create", "y-new"),
            ("update", "b-changed"),
            ("update", "m-changed"),
        ]

    def test_deterministic(self) -> None:
        """Input order does not affect output."""
        observed = [remote_record("x"), remote_record("y")]
        first = diff([local("a"), local("b")], observed)
        second = diff([local("b"), local("a")], list(reversed(observed)))
        assert first == second

    def test_each_name_at_most_once(self) -> None:
        """No name appears in two operations."""
        observed = [remote_record(n, credential="old") for n in ("a", "b", "c")]
        operations = diff([local(n) for n in ("b", "c", "d")], observed)
        names = [op.name for op in operations]
        assert len(names) == len(set(names))

    def test_duplicate_desired_name(self) -> None:
        """Duplicate desired names fail the diff."""
        with pytest.raises(DuplicateName):
            diff([local("a"), local("a")], [])

    def test_applying_operations_converges(self) -> None:
        """Applying the operations to the observed set yields the desired set."""
        observed = [
            remote_record("keep", format_version=2),
            remote_record("change", credential="old", format_version=2),
            remote_record("drop", format_version=2),
        ]
        desired = [local("keep"), local("change", credential="new"), local("add")]

        state = {r.name: r for r in observed}
        result: dict[str, LocalRecord] = {}
        for operation in diff(desired, observed):
            match operation:
                case Delete(observed=record):
                    del state[record.name]
                case Create(desired=record) | Update(desired=record):
                    state.pop(record.name, None)
                    result[record.name] = record
        for name, record in state.items():
            result[name] = LocalRecord(
                name=record.name,
                credential=record.credential,
                format=record.format,
                format_version=record.format_version,
            )

        assert result == index_desired(desired)


class TestSummarize:
    """Tests for operation counting."""

    def test_empty(self) -> None:
        """No operations count as zero."""
        summary = summarize([])
        assert summary == DiffSummary()
        assert summary.total == 0

    def test_counts_by_kind(self) -> None:
        """Counts are split by operation kind."""
        observed = [remote_record("a", credential="old"), remote_record("b")]
        summary = summarize(diff([local("a"), local("c"), local("d")], observed))
        assert summary == DiffSummary(create_count=2, update_count=1, delete_count=1)
        assert summary.total == 4

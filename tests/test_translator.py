"""Tests for record translation."""

from __future__ import annotations

import pytest
from service_mock import remote_record

from logsync.errors import InvalidRecord
from logsync.models import DEFAULT_FORMAT_VERSION, LocalRecord, RemoteRecord
from logsync.translator import apply_defaults, flatten, to_local, to_remote, validate_record


class TestValidateRecord:
    """Tests for required-field validation."""

    def test_valid_record(self) -> None:
        """A record with name and credential passes."""
        validate_record(LocalRecord(name="a", credential="t"))

    def test_empty_name(self) -> None:
        """Empty name is rejected."""
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(LocalRecord(name="", credential="t"))
        assert exc_info.value.field == "name"

    def test_empty_credential(self) -> None:
        """Empty credential is rejected and names the endpoint."""
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(LocalRecord(name="a", credential=""))
        assert exc_info.value.field == "credential"
        assert exc_info.value.name == "a"
        assert "'a'" in str(exc_info.value)

    def test_remote_records_validated(self) -> None:
        """Remote records are held to the same rule."""
        with pytest.raises(InvalidRecord):
            validate_record(remote_record("a", credential=""))


class TestApplyDefaults:
    """Tests for default substitution."""

    def test_format_version_defaulted(self) -> None:
        """Missing format_version becomes 2."""
        record = apply_defaults(LocalRecord(name="a", credential="t"))
        assert record.format_version == DEFAULT_FORMAT_VERSION == 2

    def test_explicit_format_version_kept(self) -> None:
        """An explicit format_version is not overridden."""
        record = apply_defaults(LocalRecord(name="a", credential="t", format_version=1))
        assert record.format_version == 1

    def test_input_not_modified(self) -> None:
        """Defaults are applied to a copy."""
        original = LocalRecord(name="a", credential="t")
        apply_defaults(original)
        assert original.format_version is None

    def test_unsupported_format_version_passes_through(self) -> None:
        """Values outside {1, 2} are not rejected."""
        record = apply_defaults(LocalRecord(name="a", credential="t", format_version=7))
        assert record.format_version == 7


class TestToLocal:
    """Tests for the remote-to-local projection."""

    def test_drops_server_fields(self) -> None:
        """Service, version and timestamps are not part of the local record."""
        local = to_local(remote_record("a", version=5, format_version=2, format="%h"))
        assert local == LocalRecord(name="a", credential="token", format="%h", format_version=2)

    def test_keeps_optional_fields(self) -> None:
        """Placement and response condition pass through."""
        local = to_local(
            remote_record("a", placement="none", response_condition="errors-only")
        )
        assert local.placement == "none"
        assert local.response_condition == "errors-only"

    def test_does_not_apply_defaults(self) -> None:
        """A remote record without format_version stays without one."""
        assert to_local(remote_record("a")).format_version is None

    @pytest.mark.parametrize("value", [2, 2.0, "2", "2.0", " 2 "])
    def test_format_version_normalized(self, value: object) -> None:
        """Any integral representation surfaces as int."""
        local = to_local(remote_record("a", format_version=value))
        assert local.format_version == 2
        assert type(local.format_version) is int

    @pytest.mark.parametrize("value", [2.5, "2.5", "two"])
    def test_non_integral_format_version(self, value: object) -> None:
        """Non-integral format versions are invalid records."""
        with pytest.raises(InvalidRecord) as exc_info:
            to_local(remote_record("a", format_version=value))
        assert exc_info.value.field == "format_version"
        assert exc_info.value.name == "a"
        assert "not an integer" in str(exc_info.value)
        assert "empty" not in str(exc_info.value)

    def test_values_not_trimmed(self) -> None:
        """String values are passed through as stored."""
        local = to_local(remote_record("a", credential=" token "))
        assert local.credential == " token "


class TestToRemote:
    """Tests for the local-to-remote conversion."""

    def test_stamps_service_and_version(self) -> None:
        """The record is scoped to the given service version."""
        remote = to_remote(LocalRecord(name="a", credential="t"), "svc-1", 4)
        assert remote.service_id == "svc-1"
        assert remote.version == 4

    def test_applies_defaults(self) -> None:
        """format_version defaults to 2 on the way out."""
        remote = to_remote(LocalRecord(name="a", credential="t"), "svc-1", 4)
        assert remote.format_version == 2

    def test_timestamps_unknown(self) -> None:
        """Timestamps are left for the service to assign."""
        remote = to_remote(LocalRecord(name="a", credential="t"), "svc-1", 4)
        assert remote.created_at is None
        assert remote.updated_at is None

    def test_rejects_invalid_record(self) -> None:
        """Invalid records are not sent."""
        with pytest.raises(InvalidRecord):
            to_remote(LocalRecord(name="a", credential=""), "svc-1", 4)

    def test_round_trip_equals_defaulted_record(self) -> None:
        """to_local(to_remote(r)) is r with defaults applied."""
        local = LocalRecord(name="a", credential="t", format="%h %r", placement="none")
        assert to_local(to_remote(local, "svc-1", 2)) == apply_defaults(local)


class TestFlatten:
    """Tests for flattening remote records to key/value maps."""

    def test_flatten(self) -> None:
        """Only set user fields are included."""
        remotes = [
            RemoteRecord(
                service_id="svc-1",
                version=1,
                name="newrelic-endpoint",
                credential="token",
                format_version=2,
            )
        ]
        assert flatten(remotes) == [
            {"name": "newrelic-endpoint", "credential": "token", "format_version": 2}
        ]

    def test_flatten_preserves_order(self) -> None:
        """Records keep the remote list order."""
        remotes = [remote_record("b"), remote_record("a")]
        assert [entry["name"] for entry in flatten(remotes)] == ["b", "a"]

    def test_flatten_normalizes_format_version(self) -> None:
        """Flattened values use the local representation."""
        assert flatten([remote_record("a", format_version="1")])[0]["format_version"] == 1

    def test_flatten_empty(self) -> None:
        """No remote records flatten to an empty list."""
        assert flatten([]) == []

"""Tests for request decoding and the sort order."""

import pytest
from hypothesis import given, strategies as st

from pgmoneta_mcp.constant import DEFAULT_SORT, SortOrder
from pgmoneta_mcp.errors import InvalidParameters
from pgmoneta_mcp.schema import (
    InfoRequest,
    ListBackupsRequest,
    decode,
    input_schema,
)


class TestDecode:
    """Tests for decode()."""

    def test_info_request(self):
        request = decode("get_backup_info", InfoRequest, {
            "username": "admin",
            "server": "primary",
            "backup_id": "20260101120000",
        })

        assert request == InfoRequest(
            username="admin", server="primary", backup_id="20260101120000"
        )

    def test_list_request_without_sort(self):
        request = decode("list_backups", ListBackupsRequest, {
            "username": "admin",
            "server": "primary",
        })

        assert request.sort is None

    def test_null_optional_field_is_absent(self):
        request = decode("list_backups", ListBackupsRequest, {
            "username": "admin",
            "server": "primary",
            "sort": None,
        })

        assert request.sort is None

    def test_unknown_fields_ignored(self):
        request = decode("get_backup_info", InfoRequest, {
            "username": "admin",
            "server": "primary",
            "backup_id": "newest",
            "verbose": True,
        })

        assert request.backup_id == "newest"

    def test_all_violations_reported(self):
        with pytest.raises(InvalidParameters) as excinfo:
            decode("get_backup_info", InfoRequest, {"server": 1, "backup_id": ""})

        assert excinfo.value.violations == [
            "missing required field 'username'",
            "field 'server' must be a string, got int",
            "field 'backup_id' must not be empty",
        ]
        assert excinfo.value.message.startswith("Invalid parameters for 'get_backup_info': ")

    def test_none_arguments(self):
        with pytest.raises(InvalidParameters) as excinfo:
            decode("list_backups", ListBackupsRequest, None)

        assert "missing required field 'username'" in excinfo.value.violations
        assert "missing required field 'server'" in excinfo.value.violations

    def test_non_mapping_arguments(self):
        with pytest.raises(InvalidParameters, match="arguments must be an object"):
            decode("list_backups", ListBackupsRequest, ["admin", "primary"])

    def test_requests_are_immutable(self):
        request = InfoRequest(username="admin", server="primary", backup_id="newest")

        with pytest.raises(AttributeError):
            request.server = "replica"

    @given(st.dictionaries(
        st.sampled_from(["username", "server", "sort"]),
        st.one_of(st.none(), st.integers(), st.text(max_size=10)),
    ))
    def test_decode_either_succeeds_or_lists_violations(self, params):
        try:
            request = decode("list_backups", ListBackupsRequest, params)
        except InvalidParameters as e:
            assert e.violations
        else:
            assert request.username and request.server


class TestInputSchema:
    """Tests for the advertised JSON schemas."""

    def test_info_schema(self):
        schema = input_schema(InfoRequest)

        assert schema == {
            "type": "object",
            "properties": {
                "username": {
                    "type": "string",
                    "description": "pgmoneta user the request is made on behalf of",
                    "minLength": 1,
                },
                "server": {
                    "type": "string",
                    "description": "Name of the PostgreSQL server as configured in pgmoneta",
                    "minLength": 1,
                },
                "backup_id": {
                    "type": "string",
                    "description": "Backup identifier, e.g. 20260101120000, or 'oldest'/'newest'",
                    "minLength": 1,
                },
            },
            "required": ["username", "server", "backup_id"],
        }

    def test_sort_is_optional_enum(self):
        sort = input_schema(ListBackupsRequest)["properties"]["sort"]

        assert sort["enum"] == ["asc", "desc"]
        assert "minLength" not in sort


class TestSortOrder:
    """Tests for SortOrder."""

    def test_exactly_two_members(self):
        assert [m.value for m in SortOrder] == ["asc", "desc"]

    def test_default_is_ascending(self):
        assert DEFAULT_SORT is SortOrder.ASC
        assert SortOrder.parse(None) is SortOrder.ASC

    def test_str_is_token(self):
        assert str(SortOrder.DESC) == "desc"

    def test_parse_canonical(self):
        assert SortOrder.parse("desc") is SortOrder.DESC
        assert SortOrder.parse("asc") is SortOrder.ASC

    @pytest.mark.parametrize("token", ["ASC", "Desc", "up", ""])
    def test_parse_rejects_other_tokens(self, token):
        with pytest.raises(ValueError, match="sort must be one of asc, desc"):
            SortOrder.parse(token)

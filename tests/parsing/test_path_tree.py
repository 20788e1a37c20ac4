import pytest

from converter.domain.error_codes import ErrorCode
from converter.domain.exceptions import HeaderPathConflictError
from converter.domain.parsing.path_tree import (
    PathConflictPolicy,
    PathTreeAssembler,
    build_record,
    split_header,
)


def test_split_header():
    assert split_header("address.city") == ("address", "city")
    assert split_header("age") == ("age",)


def test_depth_one_headers_build_flat_mapping():
    headers = ["name", "age", "gender"]
    values = ["Rohit", "35", "male"]
    record = build_record([split_header(h) for h in headers], values)
    assert record == dict(zip(headers, values))


def test_shared_prefix_collapses_into_one_mapping():
    record = build_record([("address", "city"), ("address", "state")], ["Paris", "IDF"])
    assert record == {"address": {"city": "Paris", "state": "IDF"}}


def test_deep_paths():
    record = build_record(
        [("a", "b", "c"), ("a", "b", "d"), ("a", "e"), ("f",)],
        ["1", "2", "3", "4"],
    )
    assert record == {"a": {"b": {"c": "1", "d": "2"}, "e": "3"}, "f": "4"}


def test_identical_paths_last_value_wins():
    record = build_record([("age",), ("age",)], ["1", "2"])
    assert record == {"age": "2"}


def test_overwrite_policy_replaces_scalar_with_mapping():
    record = build_record([("address",), ("address", "city")], ["somewhere", "Pune"])
    assert record == {"address": {"city": "Pune"}}


def test_overwrite_policy_replaces_mapping_with_later_scalar():
    record = build_record([("address", "city"), ("address",)], ["Pune", "somewhere"])
    assert record == {"address": "somewhere"}


def test_records_do_not_share_state():
    assembler = PathTreeAssembler()
    paths = [("address", "city")]
    first = assembler.build_record(paths, ["Pune"])
    second = assembler.build_record(paths, ["Delhi"])
    first["address"]["city"] = "changed"
    assert second == {"address": {"city": "Delhi"}}


def test_value_count_mismatch_does_not_raise():
    assert build_record([("a",), ("b",)], ["1"]) == {"a": "1"}
    assert build_record([("a",)], ["1", "2"]) == {"a": "1"}


def test_reject_policy_detects_prefix_conflict():
    assembler = PathTreeAssembler(policy=PathConflictPolicy.REJECT)
    with pytest.raises(HeaderPathConflictError) as excinfo:
        assembler.validate_headers([("address",), ("address", "city")])
    assert excinfo.value.path == "address.city"
    assert excinfo.value.prefix == "address"
    assert excinfo.value.code == ErrorCode.HEADER_PATH_CONFLICT


def test_reject_policy_accepts_sibling_paths():
    assembler = PathTreeAssembler(policy=PathConflictPolicy.REJECT)
    assembler.validate_headers([("address", "city"), ("address", "state"), ("age",)])


def test_overwrite_policy_does_not_validate():
    PathTreeAssembler().validate_headers([("address",), ("address", "city")])

from core.pool_payload import as_mapping, read_number


def test_read_number_accepts_ints_and_floats() -> None:
    data = {"a": 10, "b": 2.5, "c": 0}

    assert read_number(data, "a").value == 10.0
    assert read_number(data, "b").value == 2.5
    assert read_number(data, "c").ok
    assert read_number(data, "c").value == 0.0


def test_read_number_reports_missing_and_wrong_types() -> None:
    data = {"s": "10", "b": True, "n": None, "o": {}, "nan": float("nan")}

    assert read_number(data, "absent").error == "missing"
    assert read_number(data, "s").error == "expected number, got str"
    assert read_number(data, "b").error == "expected number, got bool"
    assert read_number(data, "n").error == "expected number, got null"
    assert read_number(data, "o").error == "expected number, got object"
    assert not read_number(data, "nan").ok
    assert read_number(data, "s").value is None


def test_as_mapping_only_accepts_objects() -> None:
    assert as_mapping({"a": 1}) == {"a": 1}
    assert as_mapping([1, 2]) is None
    assert as_mapping("stats") is None
    assert as_mapping(None) is None

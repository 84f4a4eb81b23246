from runfromyaml.environment import Environment
from runfromyaml.extract import extract, extract_scalar
from runfromyaml.model import Operation


def op(expandenv=False, **fields):
    return Operation(index=1, type="shell", expandenv=expandenv, fields=fields)


def test_absent_field_is_empty():
    assert extract(op(), "values", Environment(seed={})) == []


def test_explicit_empty_list_is_empty_not_absent():
    o = op(values=[])
    assert "values" in o.fields
    assert extract(o, "values", Environment(seed={})) == []


def test_scalar_becomes_single_element():
    assert extract(op(values="ls -l"), "values", Environment(seed={})) == ["ls -l"]


def test_elements_are_coerced_to_strings():
    assert extract(op(values=[1, True, 2.5]), "values", Environment(seed={})) == ["1", "true", "2.5"]


def test_order_is_preserved():
    values = ["c", "a", "b"]
    assert extract(op(values=values), "values", Environment(seed={})) == values


def test_expansion_only_with_flag():
    env = Environment(seed={"FOO": "bar"})
    assert extract(op(expandenv=True, values=["$FOO-suffix"]), "values", env) == ["bar-suffix"]
    assert extract(op(values=["$FOO-suffix"]), "values", env) == ["$FOO-suffix"]


def test_semicolons_are_kept():
    assert extract(op(values=["a; b"]), "values", Environment(seed={})) == ["a; b"]


def test_extract_scalar():
    env = Environment(seed={"H": "example.org"})
    assert extract_scalar(op(expandenv=True, host="$H"), "host", env) == "example.org"
    assert extract_scalar(op(), "host", env, default="localhost") == "localhost"

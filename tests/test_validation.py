import pytest

from rest_bridge.core.errors import ValidationError
from rest_bridge.tools.base import ToolDefinition, ToolParameter
from rest_bridge.tools.builtin.common import clean_headers, clean_path, clean_query
from rest_bridge.tools.validation import validate_arguments

DEFINITION = ToolDefinition(
    name="sample",
    description="Sample tool",
    parameters=[
        ToolParameter(name="path", type="string", description="Path"),
        ToolParameter(name="limit", type="integer", description="Limit", required=False),
        ToolParameter(name="ratio", type="number", description="Ratio", required=False),
        ToolParameter(name="verbose", type="boolean", description="Verbose", required=False),
        ToolParameter(name="ids", type="array", description="Ids", required=False),
        ToolParameter(name="mode", type="string", description="Mode", required=False, enum=["fast", "slow"]),
    ],
)


def test_valid_arguments_pass_through():
    args = {"path": "/x", "limit": 5, "ratio": 0.5, "verbose": True, "ids": [1], "mode": "fast"}
    assert validate_arguments(DEFINITION, args) == args


def test_optional_null_dropped():
    assert validate_arguments(DEFINITION, {"path": "/x", "limit": None}) == {"path": "/x"}


def test_missing_required():
    with pytest.raises(ValidationError, match="Missing required parameter: 'path'"):
        validate_arguments(DEFINITION, {"limit": 1})


def test_required_null_is_missing():
    with pytest.raises(ValidationError, match="'path'"):
        validate_arguments(DEFINITION, {"path": None})


@pytest.mark.parametrize("name,value", [
    ("path", 3),
    ("limit", "5"),
    ("limit", True),
    ("limit", 1.5),
    ("ratio", False),
    ("verbose", "yes"),
    ("ids", {"a": 1}),
])
def test_type_mismatch(name, value):
    args = {"path": "/x", name: value}
    with pytest.raises(ValidationError, match=f"'{name}' must be of type"):
        validate_arguments(DEFINITION, args)


def test_integral_float_is_integer():
    assert validate_arguments(DEFINITION, {"path": "/x", "limit": 3.0})["limit"] == 3.0


def test_enum_enforced():
    with pytest.raises(ValidationError, match="Must be one of"):
        validate_arguments(DEFINITION, {"path": "/x", "mode": "medium"})


def test_unexpected_parameter():
    with pytest.raises(ValidationError, match="Unexpected parameter 'color'"):
        validate_arguments(DEFINITION, {"path": "/x", "color": "red"})


def test_clean_path():
    assert clean_path("users/1/") == "/users/1"
    with pytest.raises(ValidationError):
        clean_path("")
    with pytest.raises(ValidationError):
        clean_path("https://other.test/x")
    with pytest.raises(ValidationError):
        clean_path("//other.test/x")


def test_clean_headers():
    assert clean_headers(None) is None
    assert clean_headers({"X-Page": 2}) == {"X-Page": "2"}
    with pytest.raises(ValidationError, match="X-Bad"):
        clean_headers({"X-Bad": {"nested": True}})


def test_clean_query():
    assert clean_query({"tag": ["a", "b"], "page": 1}) == {"tag": ["a", "b"], "page": 1}
    with pytest.raises(ValidationError, match="filter"):
        clean_query({"filter": {"name": "x"}})

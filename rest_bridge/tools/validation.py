from typing import Any

from rest_bridge.core.errors import ValidationError
from rest_bridge.tools.base import ToolDefinition


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "integer": _is_integer,
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
    "null": lambda v: v is None,
}


def validate_arguments(definition: ToolDefinition, arguments: dict[str, Any]) -> dict[str, Any]:
    """Check arguments against the tool's declared parameters.

    Returns the arguments to pass to the handler: declared parameters only,
    with explicit nulls on optional parameters dropped. Raises ValidationError
    naming the first offending parameter.
    """
    declared = {p.name: p for p in definition.parameters}

    unexpected = sorted(set(arguments) - set(declared))
    if unexpected:
        raise ValidationError(
            f"Unexpected parameter '{unexpected[0]}' for tool '{definition.name}'. "
            f"Allowed: {list(declared)}"
        )

    validated: dict[str, Any] = {}
    for param in definition.parameters:
        value = arguments.get(param.name)
        if value is None and param.type != "null":
            if param.required:
                raise ValidationError(f"Missing required parameter: '{param.name}'")
            continue

        check = _TYPE_CHECKS.get(param.type)
        if check is None:
            raise ValidationError(f"Parameter '{param.name}' declares unknown type '{param.type}'")
        if not check(value):
            raise ValidationError(
                f"Parameter '{param.name}' must be of type {param.type}, "
                f"got {type(value).__name__}"
            )
        if param.enum and value not in param.enum:
            raise ValidationError(
                f"Invalid value for '{param.name}': {value!r}. Must be one of {param.enum}"
            )
        validated[param.name] = value

    return validated

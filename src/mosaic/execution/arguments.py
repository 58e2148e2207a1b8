"""Argument coercion against declared argument and input types."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from ..errors import InvalidArguments
from ..schema.composite import CompositeSchema
from ..schema.declarations import OperationDeclaration
from ..schema.types import TypeRef, normalize_datetime


def coerce_arguments(
    operation: OperationDeclaration, raw: Mapping[str, Any], schema: CompositeSchema
) -> dict[str, Any]:
    """
    Validate and coerce request arguments for ``operation``.

    Raises:
        InvalidArguments: On unknown arguments, missing required values or type mismatches
    """
    unknown = sorted(set(raw) - set(operation.args))
    if unknown:
        raise InvalidArguments(f"Unknown argument(s) for '{operation.name}': {', '.join(unknown)}")

    return {
        name: coerce_value(ref, raw.get(name), schema, name)
        for name, ref in operation.arg_refs().items()
    }


def coerce_value(ref: TypeRef, value: Any, schema: CompositeSchema, where: str) -> Any:
    if value is None:
        if not ref.nullable:
            raise InvalidArguments(f"Argument '{where}' is required")
        return None

    if ref.is_list:
        items = value if isinstance(value, list) else [value]
        item_ref = TypeRef(ref.name, nullable=ref.item_nullable)
        return [coerce_value(item_ref, item, schema, f"{where}[{i}]") for i, item in enumerate(items)]

    declaration = schema.inputs.get(ref.name)
    if declaration is not None:
        if not isinstance(value, Mapping):
            raise InvalidArguments(f"Argument '{where}' must be an object of type {ref.name}")
        declared = {f.name for f in declaration.fields}
        unknown = sorted(set(value) - declared)
        if unknown:
            raise InvalidArguments(
                f"Unknown field(s) for {ref.name} in '{where}': {', '.join(unknown)}"
            )
        return {
            f.name: coerce_value(f.ref, value.get(f.name), schema, f"{where}.{f.name}")
            for f in declaration.fields
        }

    return coerce_scalar(ref.name, value, where)


def coerce_scalar(type_name: str, value: Any, where: str) -> Any:
    def mismatch() -> InvalidArguments:
        return InvalidArguments(f"Argument '{where}' must be of type {type_name}")

    if type_name == "ID":
        if isinstance(value, bool) or not isinstance(value, str | int):
            raise mismatch()
        return str(value)
    if type_name == "String":
        if not isinstance(value, str):
            raise mismatch()
        return value
    if type_name == "Int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise mismatch()
        return value
    if type_name == "Float":
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise mismatch()
        return float(value)
    if type_name == "Boolean":
        if not isinstance(value, bool):
            raise mismatch()
        return value
    if type_name == "DateTime":
        if not isinstance(value, str | datetime):
            raise mismatch()
        try:
            return normalize_datetime(value)
        except ValueError as e:
            raise mismatch() from e
    # JSON
    return value

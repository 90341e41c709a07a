"""
Serialize/deserialize optional values.

Protobuf scalars have no "unset" state: an absent field reads as its type
default. These helpers map between that convention and JSON-style nulls.
"""
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")

_NO_DEFAULT = object()


def serialize(value: Any, default: Any = _NO_DEFAULT) -> Optional[Any]:
    """
    Serialize a value, emitting None when it equals the default.

    Args:
        value: Value to serialize
        default: Explicit default; type(value)() is used when omitted

    Returns:
        None for default values, value otherwise
    """
    if value is None:
        return None
    if default is _NO_DEFAULT:
        default = type(value)()
    if value == default:
        return None
    return value


def deserialize(value: Optional[T], default_factory: Callable[[], T]) -> T:
    """Deserialize a possibly-null value, substituting default_factory() for None."""
    if value is None:
        return default_factory()
    return value

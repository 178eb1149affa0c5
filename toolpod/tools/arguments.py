"""
Argument schemas for tool parameters.

The registry only talks to the ``ArgumentSchema`` protocol: something that
validates a raw value, reports a primitive kind and carries a description.
``Argument`` is the stock implementation, backed by a pydantic
``TypeAdapter`` so any annotation pydantic understands can be a schema.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Type, runtime_checkable

from pydantic import BaseModel, PydanticUserError, TypeAdapter, ValidationError


class _Missing:
    """Marker for an argument absent from the call."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ArgumentValidationError(ValueError):
    """Raised by a schema when a raw value does not validate."""


@runtime_checkable
class ArgumentSchema(Protocol):
    description: str
    optional: bool

    @property
    def kind(self) -> str:
        ...

    def validate(self, raw: Any = MISSING) -> Any:
        ...


def _schema_kind(schema: Dict[str, Any]) -> str:
    """Primitive JSON-schema type of a generated schema (``any`` if unknown)."""
    kind = schema.get("type")
    if isinstance(kind, str):
        return kind
    # Optional[X] comes out as anyOf [X, null]
    for option in schema.get("anyOf", []):
        option_kind = option.get("type")
        if option_kind and option_kind != "null":
            return option_kind
    return "any"


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class Argument:
    """
    A tool argument validated by pydantic.

    Parameters
    ----------
    annotation : any type pydantic can validate (``str``, ``List[int]``, a model...)
    description : shown in the tool listing
    optional : when True a missing value is allowed and ``default`` is used
    default : value handed to the handler when an optional argument is missing
    strict : use pydantic strict mode (no ``"5"`` -> ``5`` coercion)
    """

    def __init__(
        self,
        annotation: Any,
        description: str = "",
        optional: bool = False,
        default: Any = None,
        strict: bool = False,
    ):
        self.annotation = annotation
        self.description = description
        self.optional = optional
        self.default = default
        self.strict = strict
        self._adapter: TypeAdapter = TypeAdapter(annotation)

    @property
    def kind(self) -> str:
        try:
            return _schema_kind(self._adapter.json_schema())
        except PydanticUserError:
            # arbitrary types have no JSON schema
            return "any"

    def validate(self, raw: Any = MISSING) -> Any:
        if raw is MISSING:
            if self.optional:
                return self.default
            raise ArgumentValidationError("Required")
        try:
            return self._adapter.validate_python(raw, strict=self.strict)
        except ValidationError as exc:
            raise ArgumentValidationError(_format_errors(exc)) from exc

    def __repr__(self) -> str:
        flag = ", optional" if self.optional else ""
        return f"Argument({self.kind}{flag})"


# ── Factories ────────────────────────────────────────────────────────────


def string(description: str = "", optional: bool = False, default: Optional[str] = None) -> Argument:
    return Argument(str, description, optional, default, strict=True)


def number(description: str = "", optional: bool = False, default: Optional[float] = None) -> Argument:
    return Argument(float, description, optional, default, strict=True)


def integer(description: str = "", optional: bool = False, default: Optional[int] = None) -> Argument:
    return Argument(int, description, optional, default, strict=True)


def boolean(description: str = "", optional: bool = False, default: Optional[bool] = None) -> Argument:
    return Argument(bool, description, optional, default, strict=True)


def array(
    items: Any = Any,
    description: str = "",
    optional: bool = False,
    default: Optional[list] = None,
) -> Argument:
    return Argument(List[items], description, optional, default)


def obj(
    model: Type[BaseModel],
    description: str = "",
    optional: bool = False,
    default: Any = None,
) -> Argument:
    """Structured argument validated into a pydantic model."""
    return Argument(model, description or (model.__doc__ or "").strip(), optional, default)

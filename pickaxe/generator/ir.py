"""Intermediate representation consumed by the code templates.

Emitters in `rust.py` translate the schema into these values first; templates
only lay them out. Everything here is already resolved: type names are target
types and argument lists are in their final call-site form.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Pattern:
    """An enum variant pattern or struct-shorthand constructor."""

    path: str
    names: tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.names:
            return self.path
        return f"{self.path} {{ {', '.join(self.names)} }}"


@dataclass(frozen=True)
class VariantField:
    name: str
    type: str


@dataclass(frozen=True)
class EnumVariant:
    name: str
    fields: tuple[VariantField, ...] = ()

    @property
    def is_unit(self) -> bool:
        return not self.fields


@dataclass(frozen=True)
class HandlerDecl:
    method: str
    params: tuple[str, ...]

    @property
    def declaration(self) -> str:
        return f"fn {self.method}({', '.join(self.params)}) {{"


@dataclass(frozen=True)
class ReadStep:
    """Read one field off the wire; `binding` is None when the value is dropped."""

    field: str
    op: str
    arguments: str
    references: tuple[str, ...]
    binding: str | None

    @property
    def call(self) -> str:
        return f"buffer.read_{self.op}({self.arguments})"

    @property
    def statement(self) -> str:
        if self.binding is None:
            return f"{self.call}; // {self.field}"
        return f"let {self.binding} = {self.call};"


@dataclass(frozen=True)
class DecodeArm:
    id: int
    reads: tuple[ReadStep, ...]
    action: str

    @property
    def literal(self) -> str:
        return f"{self.id:#04x}"


@dataclass(frozen=True)
class StateDecoder:
    state: str
    arms: tuple[DecodeArm, ...]


@dataclass(frozen=True)
class WriteStep:
    field: str
    op: str
    value: str

    @property
    def statement(self) -> str:
        return f"buffer.write_{self.op}({self.value});"


@dataclass(frozen=True)
class EncodeArm:
    id: int
    pattern: Pattern
    writes: tuple[WriteStep, ...]

    @property
    def literal(self) -> str:
        return f"{self.id:#04x}"


@dataclass(frozen=True)
class DispatchArm:
    pattern: Pattern
    method: str
    arguments: tuple[str, ...]

    @property
    def call(self) -> str:
        return f"handler.{self.method}({', '.join(self.arguments)})"

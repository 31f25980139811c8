"""Type resolution and by-value/by-reference classification."""

from .types import Field, Mappings

STRING_TYPE = "string"
STRING_VIEW = "&str"


class TypeResolver:
    """Resolve logical field types to emitted type names.

    The reference/value classification decides both handler parameter types
    and call-site argument forms, so every emitter that generates a call goes
    through `argument()` or `serialized_argument()`.
    """

    def __init__(self, mappings: Mappings):
        self.types = {m.name: m.target_type for m in mappings.types}
        self.primitives = frozenset(mappings.primitives)

    def resolve(self, type_descriptor: str) -> str:
        """Map a descriptor such as `byte_array(n)` to its target type name."""
        base = type_descriptor.split("(", 1)[0].strip()
        return self.types.get(base, base)

    def resolve_field(self, fld: Field) -> str:
        return self.types.get(fld.expr.base, fld.expr.base)

    def is_primitive(self, fld: Field) -> bool:
        return fld.expr.base in self.primitives

    def is_reference(self, fld: Field) -> bool:
        return not self.is_primitive(fld) and not fld.pass_raw

    def param_type(self, fld: Field) -> str:
        """Handler parameter type for a field."""
        if not self.is_reference(fld):
            return self.resolve_field(fld)
        if fld.expr.base == STRING_TYPE:
            return STRING_VIEW
        return f"&{self.resolve_field(fld)}"

    def argument(self, fld: Field) -> str:
        """Call-site argument for an owned binding of the field."""
        return f"&{fld.name}" if self.is_reference(fld) else fld.name

    def serialized_argument(self, fld: Field) -> str:
        """Argument to `write_<type>` for a field bound by reference in a match."""
        return f"*{fld.name}" if self.is_primitive(fld) else fld.name

"""Type definitions for protocol schemas and type mappings."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin, config

from .typeexpr import TypeExpr, parse_type

INTERNAL_STATE = "__internal__"


def _packet_id(value: int | str) -> int:
    """Packet ids are written either as numbers or as literals like "0x1A"."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid packet id {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value), 0)


@dataclass(frozen=True)
class Field(DataClassJsonMixin):
    """Represents one field of a packet.

    - unused: not carried in enum payloads or handler arguments
    - referenced: bound anyway, because a later field's type reads it
    - pass_raw: passed by value regardless of its type
    """

    name: str
    type: str
    unused: bool = False
    referenced: bool = False
    pass_raw: bool = False

    @property
    def expr(self) -> TypeExpr:
        return parse_type(self.type)

    @property
    def is_bound(self) -> bool:
        """Whether generated deserializers bind this field to a name."""
        return not self.unused or self.referenced


@dataclass(frozen=True)
class Packet(DataClassJsonMixin):
    """Represents a packet definition within a connection state."""

    name: str
    id: int = field(metadata=config(decoder=_packet_id))
    fields: list[Field] = field(default_factory=list)
    is_async: bool = field(default=False, metadata=config(field_name="async"))
    sender_independent: bool = False
    unimplemented: bool = False

    @property
    def variant(self) -> str:
        """Enum variant name: `Login_Success` -> `LoginSuccess`."""
        return self.name.replace("_", "")

    @property
    def method(self) -> str:
        """Handler method name: `Login_Success` -> `login_success`."""
        return self.name.lower()

    @property
    def used_fields(self) -> list[Field]:
        return [f for f in self.fields if not f.unused]


@dataclass(frozen=True)
class ConnectionState(DataClassJsonMixin):
    """Represents a connection state and the packets valid in it."""

    name: str
    server_bound: list[Packet] | None = None
    client_bound: list[Packet] | None = None

    @property
    def is_internal(self) -> bool:
        return self.name == INTERNAL_STATE


@dataclass(frozen=True)
class TypeMapping(DataClassJsonMixin):
    """Maps a logical type identifier to an emitted type name."""

    name: str
    target_type: str = field(metadata=config(field_name="type"))


@dataclass(frozen=True)
class Mappings(DataClassJsonMixin):
    """Represents the type-mapping table."""

    types: list[TypeMapping] = field(default_factory=list)
    primitives: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Schema:
    """A loaded protocol: connection states in declaration order plus mappings."""

    states: list[ConnectionState]
    mappings: Mappings

    @property
    def server_bound(self) -> list[Packet]:
        """All server-bound packets, grouped by state."""
        return [p for state in self.states for p in state.server_bound or []]

    @property
    def client_bound(self) -> list[Packet]:
        """All client-bound packets, flattened across states."""
        return [p for state in self.states for p in state.client_bound or []]

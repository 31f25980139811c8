"""Rust code generator for pickaxe packet handlers."""

from jinja2 import Environment, PackageLoader

from .classifier import PacketSets, classify, takes_sender
from .ir import (
    DecodeArm,
    DispatchArm,
    EncodeArm,
    EnumVariant,
    HandlerDecl,
    Pattern,
    ReadStep,
    StateDecoder,
    VariantField,
    WriteStep,
)
from .merge import Block, Region
from .resolver import TypeResolver
from .types import ConnectionState, Field, Packet, Schema

env = Environment(
    loader=PackageLoader("pickaxe.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

SERVER_BOUND_ENUM = "ServerBoundPacket"
CLIENT_BOUND_ENUM = "ClientBoundPacket"
CONNECTION_STATE_ENUM = "ConnectionState"
ASYNC_CONNECTION = "conn: &mut AsyncClientConnection"
SENDER = "sender: usize"
ID_WRITE_OP = "varint"
INVALID_ID = "Err(PacketSerdeError::InvalidId { id, consumed: buffer.cursor() })"


def _params(packet: Packet, implicit: list[str], resolver: TypeResolver) -> tuple[str, ...]:
    params = implicit + [f"{f.name}: {resolver.param_type(f)}" for f in packet.used_fields]
    if packet.unimplemented:
        # Bound but unused, so the signature stays stable around a stub body
        params = [f"_{p}" for p in params]
    return ("&mut self", *params)


def build_variants(packets: list[Packet], resolver: TypeResolver) -> list[EnumVariant]:
    return [
        EnumVariant(
            name=packet.variant,
            fields=tuple(
                VariantField(f.name, resolver.resolve_field(f)) for f in packet.used_fields
            ),
        )
        for packet in packets
    ]


def build_handlers(
    packets: list[Packet], resolver: TypeResolver, *, synchronous: bool
) -> list[HandlerDecl]:
    decls: list[HandlerDecl] = []
    for packet in packets:
        if synchronous:
            implicit = [SENDER] if takes_sender(packet) else []
        else:
            implicit = [ASYNC_CONNECTION]
        decls.append(HandlerDecl(packet.method, _params(packet, implicit, resolver)))
    return decls


def _read_step(fld: Field) -> ReadStep:
    expr = fld.expr
    return ReadStep(
        field=fld.name,
        op=expr.base,
        arguments=expr.call_arguments,
        references=expr.references,
        binding=fld.name if fld.is_bound else None,
    )


def _decode_action(packet: Packet, resolver: TypeResolver) -> str:
    if packet.is_async:
        args = ["conn"] + [resolver.argument(f) for f in packet.used_fields]
        return f"async_handler.{packet.method}({', '.join(args)});"

    variant = Pattern(
        f"{SERVER_BOUND_ENUM}::{packet.variant}",
        tuple(f.name for f in packet.used_fields),
    )
    return f"conn.forward_to_server({variant});"


def build_decoders(states: list[ConnectionState], resolver: TypeResolver) -> list[StateDecoder]:
    return [
        StateDecoder(
            state=state.name,
            arms=tuple(
                DecodeArm(
                    id=packet.id,
                    reads=tuple(_read_step(f) for f in packet.fields),
                    action=_decode_action(packet, resolver),
                )
                for packet in state.server_bound or []
            ),
        )
        for state in states
    ]


def build_encoders(packets: list[Packet], resolver: TypeResolver) -> list[EncodeArm]:
    return [
        EncodeArm(
            id=packet.id,
            pattern=Pattern(
                f"{CLIENT_BOUND_ENUM}::{packet.variant}", tuple(f.name for f in packet.fields)
            ),
            writes=tuple(
                WriteStep(f.name, f.expr.base, resolver.serialized_argument(f))
                for f in packet.fields
            ),
        )
        for packet in packets
    ]


def build_dispatch(packets: list[Packet], resolver: TypeResolver) -> list[DispatchArm]:
    arms: list[DispatchArm] = []
    for packet in packets:
        used = packet.used_fields
        args = ["wrapped_packet.sender"] if takes_sender(packet) else []
        args += [resolver.argument(f) for f in used]
        pattern = Pattern(f"{SERVER_BOUND_ENUM}::{packet.variant}", tuple(f.name for f in used))
        arms.append(DispatchArm(pattern, packet.method, tuple(args)))
    return arms


def emit_enum(packets: list[Packet], resolver: TypeResolver) -> str:
    """Variants of a packet enum, one per packet in declaration order."""
    return env.get_template("enum.rs.j2").render(variants=build_variants(packets, resolver))


def emit_handlers(
    packets: list[Packet], resolver: TypeResolver, *, synchronous: bool
) -> list[str]:
    """Handler declaration lines, one per packet, for the positional merge."""
    text = env.get_template("handlers.rs.j2").render(
        handlers=build_handlers(packets, resolver, synchronous=synchronous)
    )
    return text.splitlines()


def emit_deserializer(states: list[ConnectionState], resolver: TypeResolver) -> str:
    return env.get_template("deserialize.rs.j2").render(
        decoders=build_decoders(states, resolver),
        state_enum=CONNECTION_STATE_ENUM,
        invalid=INVALID_ID,
    )


def emit_serializer(packets: list[Packet], resolver: TypeResolver) -> str:
    return env.get_template("serialize.rs.j2").render(
        encoders=build_encoders(packets, resolver),
        id_op=ID_WRITE_OP,
    )


def emit_dispatcher(packets: list[Packet], resolver: TypeResolver) -> str:
    return env.get_template("dispatch.rs.j2").render(arms=build_dispatch(packets, resolver))


def render(
    schema: Schema,
    resolver: TypeResolver | None = None,
    packets: PacketSets | None = None,
) -> dict[Region, Block]:
    """Render every marker region's generated block for a schema."""
    resolver = resolver or TypeResolver(schema.mappings)
    packets = packets or classify(schema)

    return {
        Region.ASYNC_HANDLER: emit_handlers(packets.asynchronous, resolver, synchronous=False),
        Region.SYNC_HANDLER: emit_handlers(packets.synchronous, resolver, synchronous=True),
        Region.CLIENT_BOUND: emit_enum(packets.client_bound, resolver),
        Region.SERVER_BOUND: emit_enum(packets.synchronous, resolver),
        Region.DISPATCH: emit_dispatcher(packets.synchronous, resolver),
        Region.SERIALIZE: emit_serializer(packets.client_bound, resolver),
        Region.DESERIALIZE: emit_deserializer(packets.decoded_states, resolver),
    }

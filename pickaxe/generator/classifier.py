"""Partition packets by direction and handling mode."""

from dataclasses import dataclass

from .types import ConnectionState, Packet, Schema


@dataclass(frozen=True)
class PacketSets:
    """Packets grouped the way the emitters consume them."""

    synchronous: list[Packet]  # forwarded to the server thread, then dispatched
    asynchronous: list[Packet]  # handled on the connection as soon as they are read
    client_bound: list[Packet]
    decoded_states: list[ConnectionState]  # states with a deserializer arm


def is_unit(packet: Packet) -> bool:
    """A packet without used fields collapses to a unit enum variant."""
    return len(packet.used_fields) == 0


def takes_sender(packet: Packet) -> bool:
    """Synchronous handlers receive the sender id unless sender independent."""
    return not packet.sender_independent


def classify(schema: Schema) -> PacketSets:
    server_bound = schema.server_bound
    return PacketSets(
        synchronous=[p for p in server_bound if not p.is_async],
        asynchronous=[p for p in server_bound if p.is_async],
        client_bound=schema.client_bound,
        decoded_states=[s for s in schema.states if not s.is_internal and s.server_bound],
    )

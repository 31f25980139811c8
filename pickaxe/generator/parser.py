"""Protocol schema loader and validation."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from .typeexpr import TypeExpressionError
from .types import ConnectionState, Mappings, Packet, Schema

PROTOCOL_FILE = "protocol.json"
MAPPINGS_FILE = "mappings.json"

logger = logging.getLogger(__name__)


class SchemaError(RuntimeError):
    """Raised when a protocol schema cannot be loaded or is invalid."""


def _decode(value: str | Any, what: str) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise SchemaError(f"{what} is not valid JSON: {e}") from e


def _directions(state: ConnectionState) -> Iterator[tuple[str, list[Packet]]]:
    yield "server_bound", state.server_bound or []
    yield "client_bound", state.client_bound or []


def _validate_fields(where: str, packet: Packet, direction: str) -> None:
    seen: dict[str, int] = {}
    for index, fld in enumerate(packet.fields):
        if fld.name in seen:
            raise SchemaError(f"{where}: duplicate field name '{fld.name}'")
        seen[fld.name] = index

        if direction == "client_bound" and fld.unused:
            raise SchemaError(
                f"{where}: client bound field '{fld.name}' cannot be unused, "
                "every field is written by the serializer"
            )

        try:
            expr = fld.expr
        except TypeExpressionError as e:
            raise SchemaError(f"{where}: field '{fld.name}': {e}") from e

        names = {f.name for f in packet.fields}
        for ref in expr.references:
            if ref not in names:
                continue  # not a field; passed through as target source
            if ref not in seen or seen[ref] == index:
                raise SchemaError(
                    f"{where}: type of field '{fld.name}' references '{ref}' "
                    "before it has been read"
                )
            earlier = packet.fields[seen[ref]]
            if not earlier.is_bound:
                raise SchemaError(
                    f"{where}: type of field '{fld.name}' references unused field "
                    f"'{ref}', which must be marked referenced"
                )


def validate(schema: Schema) -> None:
    """Validate a loaded schema before any code is emitted."""
    variants: dict[str, set[str]] = {"server_bound": set(), "client_bound": set()}
    methods: dict[str, dict[str, str]] = {"sync": {}, "async": {}}

    for state in schema.states:
        for direction, packets in _directions(state):
            ids: dict[int, str] = {}
            for packet in packets:
                where = f"{state.name}/{direction}/{packet.name}"

                if packet.id in ids:
                    raise SchemaError(
                        f"{where}: packet id {packet.id:#04x} already used by "
                        f"{ids[packet.id]} in state {state.name}"
                    )
                ids[packet.id] = packet.name

                if packet.variant in variants[direction]:
                    raise SchemaError(f"{where}: duplicate {direction} packet {packet.variant}")
                variants[direction].add(packet.variant)

                if direction == "server_bound":
                    handlers = methods["async" if packet.is_async else "sync"]
                    if packet.method in handlers:
                        raise SchemaError(
                            f"{where}: handler {packet.method} already declared by "
                            f"{handlers[packet.method]}"
                        )
                    handlers[packet.method] = packet.name

                _validate_fields(where, packet, direction)


def load(protocol: str | list[Any], mappings: str | dict[str, Any]) -> Schema:
    """Load a schema from protocol and mapping JSON (text or decoded values)."""
    raw_states = _decode(protocol, PROTOCOL_FILE)
    raw_mappings = _decode(mappings, MAPPINGS_FILE)

    if not isinstance(raw_states, list):
        raise SchemaError(f"{PROTOCOL_FILE} must contain a list of connection states")
    if not isinstance(raw_mappings, dict):
        raise SchemaError(f"{MAPPINGS_FILE} must contain an object")

    try:
        states = [ConnectionState.from_dict(s) for s in raw_states]
        type_mappings = Mappings.from_dict(raw_mappings)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SchemaError(f"Invalid schema: {e}") from e

    schema = Schema(states=states, mappings=type_mappings)
    validate(schema)

    logger.info(
        "Loaded %d connection states (%d server bound, %d client bound packets)",
        len(states),
        len(schema.server_bound),
        len(schema.client_bound),
    )
    return schema


def load_dir(path: str | Path) -> Schema:
    """Load `protocol.json` and `mappings.json` from a schema directory."""
    path = Path(path)

    logger.info("Loading %s...", PROTOCOL_FILE)
    protocol = (path / PROTOCOL_FILE).read_text(encoding="utf-8")

    logger.info("Loading %s...", MAPPINGS_FILE)
    mappings = (path / MAPPINGS_FILE).read_text(encoding="utf-8")

    return load(protocol, mappings)

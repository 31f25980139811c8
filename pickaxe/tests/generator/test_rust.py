"""Tests for Rust code generation."""

from pickaxe.generator import Region, TypeResolver, classify, load
from pickaxe.generator.rust import (
    INVALID_ID,
    build_decoders,
    build_encoders,
    build_variants,
    emit_deserializer,
    emit_dispatcher,
    emit_enum,
    emit_handlers,
    emit_serializer,
    render,
)

MAPPINGS = {"types": [{"name": "varint", "type": "i32"}], "primitives": ["varint", "u16", "bool"]}


def fixture_parts(schema):
    return TypeResolver(schema.mappings), classify(schema)


def describe_enums():
    def emits_struct_variants_in_field_order(expect):
        schema = load(
            [
                {
                    "name": "Handshake",
                    "server_bound": [
                        {
                            "name": "Handshake",
                            "id": 0,
                            "fields": [
                                {"name": "protocol_version", "type": "varint"},
                                {"name": "server_address", "type": "string"},
                                {"name": "server_port", "type": "u16"},
                                {"name": "next_state", "type": "varint"},
                            ],
                        }
                    ],
                }
            ],
            {"primitives": ["varint", "u16"]},
        )
        resolver = TypeResolver(schema.mappings)
        text = emit_enum(schema.server_bound, resolver)
        expect(text) == (
            "    Handshake {\n"
            "        protocol_version: varint,\n"
            "        server_address: string,\n"
            "        server_port: u16,\n"
            "        next_state: varint,\n"
            "    },\n"
        )

    def emits_unit_variants_without_braces(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_enum(packets.synchronous, resolver)
        expect("    Tick,\n" in text) == True
        expect("    StatusRequest,\n" in text) == True
        expect("    LegacyPing {\n        payload: u8,\n    },\n" in text) == True

    def omits_unused_fields_from_payloads(expect, schema):
        resolver, packets = fixture_parts(schema)
        variants = build_variants(packets.asynchronous, resolver)
        expect([f.name for f in variants[0].fields]) == ["version", "next_state"]
        expect([f.name for f in variants[3].fields]) == [
            "shared_secret_len",
            "shared_secret",
            "verify_token",
        ]

    def maps_payload_types(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_enum(packets.client_bound, resolver)
        expect("        json_length: i32,\n" in text) == True
        expect("        json_response: String,\n" in text) == True

    def emits_nothing_for_no_packets(expect, schema):
        resolver, _ = fixture_parts(schema)
        expect(emit_enum([], resolver)) == ""


def describe_handlers():
    def declares_async_handlers_with_connection(expect, schema):
        resolver, packets = fixture_parts(schema)
        lines = emit_handlers(packets.asynchronous, resolver, synchronous=False)
        expect(lines) == [
            "    fn handshake(&mut self, conn: &mut AsyncClientConnection, "
            "version: i32, next_state: i32) {",
            "    fn ping(&mut self, conn: &mut AsyncClientConnection, payload: i64) {",
            "    fn login_start(&mut self, conn: &mut AsyncClientConnection, name: &str) {",
            "    fn encryption_response(&mut self, conn: &mut AsyncClientConnection, "
            "shared_secret_len: i32, shared_secret: &Vec<u8>, verify_token: &Vec<u8>) {",
            "    fn login_plugin_response(&mut self, _conn: &mut AsyncClientConnection, "
            "_message_id: i32, _successful: bool, _data: &Vec<u8>) {",
        ]

    def declares_sync_handlers_with_sender(expect, schema):
        resolver, packets = fixture_parts(schema)
        lines = emit_handlers(packets.synchronous, resolver, synchronous=True)
        expect(lines) == [
            "    fn connection_established(&mut self, sender: usize, write_handle: WriteHandle) {",
            "    fn login_success_server(&mut self, sender: usize, uuid: &str, username: &str) {",
            "    fn tick(&mut self) {",
            "    fn legacy_ping(&mut self, sender: usize, payload: u8) {",
            "    fn status_request(&mut self, sender: usize) {",
        ]


def describe_deserializer():
    def reads_every_field_before_forwarding(expect):
        schema = load(
            [
                {
                    "name": "Handshake",
                    "server_bound": [
                        {
                            "name": "Handshake",
                            "id": 0,
                            "fields": [
                                {"name": "protocol_version", "type": "varint"},
                                {"name": "server_address", "type": "string"},
                                {"name": "server_port", "type": "u16"},
                                {"name": "next_state", "type": "varint"},
                            ],
                        }
                    ],
                }
            ],
            MAPPINGS,
        )
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect(text) == (
            "    match conn.connection_state {\n"
            "        ConnectionState::Handshake => match id {\n"
            "            0x00 => {\n"
            "                let protocol_version = buffer.read_varint();\n"
            "                let server_address = buffer.read_string();\n"
            "                let server_port = buffer.read_u16();\n"
            "                let next_state = buffer.read_varint();\n"
            "                conn.forward_to_server(ServerBoundPacket::Handshake "
            "{ protocol_version, server_address, server_port, next_state });\n"
            "                Ok(())\n"
            "            }\n"
            f"            _ => {INVALID_ID},\n"
            "        },\n"
            f"        _ => {INVALID_ID},\n"
            "    }\n"
        )

    def discards_unused_fields_after_reading(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect("                buffer.read_string(); // server_address\n" in text) == True
        expect("                buffer.read_u16(); // server_port\n" in text) == True
        expect("                async_handler.handshake(conn, version, next_state);\n" in text) == True

    def binds_referenced_fields(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect("                let verify_token_len = buffer.read_varint();\n" in text) == True
        expect(
            "                let verify_token = buffer.read_byte_array(verify_token_len as usize);\n"
            in text
        ) == True
        expect(
            "                async_handler.encryption_response"
            "(conn, shared_secret_len, &shared_secret, &verify_token);\n" in text
        ) == True

    def passes_parameter_lists_through(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect("                let data = buffer.read_byte_array(buffer.remaining());\n" in text) == True

    def forwards_sync_packets(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect("            0xfe => {\n" in text) == True
        expect(
            "                conn.forward_to_server(ServerBoundPacket::LegacyPing { payload });\n"
            in text
        ) == True
        expect("                conn.forward_to_server(ServerBoundPacket::StatusRequest);\n" in text) == True

    def skips_internal_and_empty_states(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_deserializer(packets.decoded_states, resolver)
        expect("__internal__" in text) == False
        expect("ConnectionEstablished" in text) == False
        expect("ConnectionState::Play" in text) == False
        expect(text.count(f"            _ => {INVALID_ID},\n")) == 3
        expect(text.count(f"\n        _ => {INVALID_ID},\n")) == 1


def describe_serializer():
    def writes_id_then_fields(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_serializer(packets.client_bound, resolver)
        expect(text.startswith("    match packet {\n")) == True
        expect(
            "        ClientBoundPacket::StatusResponse { json_length, json_response } => {\n"
            "            buffer.write_varint(0x00);\n"
            "            buffer.write_varint(*json_length);\n"
            "            buffer.write_string(json_response);\n"
            "        }\n" in text
        ) == True
        expect("            buffer.write_varint(0x03);\n" in text) == True
        expect(text.endswith("    }\n")) == True


def describe_dispatcher():
    def dispatches_sync_packets_to_handlers(expect, schema):
        resolver, packets = fixture_parts(schema)
        text = emit_dispatcher(packets.synchronous, resolver)
        expect(text) == (
            "    match wrapped_packet.packet {\n"
            "        ServerBoundPacket::ConnectionEstablished { write_handle } => "
            "handler.connection_established(wrapped_packet.sender, write_handle),\n"
            "        ServerBoundPacket::LoginSuccessServer { uuid, username } => "
            "handler.login_success_server(wrapped_packet.sender, &uuid, &username),\n"
            "        ServerBoundPacket::Tick => handler.tick(),\n"
            "        ServerBoundPacket::LegacyPing { payload } => "
            "handler.legacy_ping(wrapped_packet.sender, payload),\n"
            "        ServerBoundPacket::StatusRequest => "
            "handler.status_request(wrapped_packet.sender),\n"
            "    }\n"
        )


def describe_render():
    def renders_every_region(expect, schema):
        blocks = render(schema)
        expect(set(blocks)) == set(Region)
        expect(isinstance(blocks[Region.ASYNC_HANDLER], list)) == True
        expect(isinstance(blocks[Region.SERIALIZE], str)) == True

    def server_bound_enum_holds_sync_packets_only(expect, schema):
        text = render(schema)[Region.SERVER_BOUND]
        expect("LegacyPing" in text) == True
        expect("Handshake" in text) == False


def describe_round_trip():
    def deserializer_reads_what_serializer_writes(expect):
        client_fields = [
            {"name": "len", "type": "varint"},
            {"name": "data", "type": "byte_array(len as usize)"},
            {"name": "flag", "type": "bool"},
        ]
        server_fields = [dict(client_fields[0], unused=True, referenced=True), *client_fields[1:]]
        schema = load(
            [
                {
                    "name": "Play",
                    "server_bound": [{"name": "Blob", "id": 5, "fields": server_fields}],
                    "client_bound": [{"name": "Blob", "id": 5, "fields": client_fields}],
                }
            ],
            MAPPINGS,
        )
        resolver, packets = fixture_parts(schema)
        values = {"len": 3, "data": b"abc", "flag": True}

        encoder = build_encoders(packets.client_bound, resolver)[0]
        wire = [("varint", encoder.id)]
        for step in encoder.writes:
            expect(step.value.lstrip("*")) == step.field
            wire.append((step.op, values[step.field]))

        arm = build_decoders(packets.decoded_states, resolver)[0].arms[0]
        expect(wire.pop(0)) == ("varint", arm.id)

        bound = {}
        for step in arm.reads:
            op, value = wire.pop(0)
            expect(step.op) == op
            for ref in step.references:
                expect(len(value)) == bound[ref]
            if step.binding:
                bound[step.binding] = value

        expect(wire) == []
        expect(bound) == values
        expect(arm.action) == "conn.forward_to_server(ServerBoundPacket::Blob { data, flag });"

"""
Shared test data.

The hex messages are envelopes produced by the Node serializer for the Avro
record {"demo": "Hello world!"} under TESTSCHEMA.
"""

import json

REGISTRY_NAME = "testregistry"
SCHEMA_NAME = "Testschema"
SCHEMA_ID = "b7912285-527d-42de-88ee-e389a763225f"
SCHEMA_ARN = "arn:aws:glue:eu-central-1:123456789012:schema/testregistry/Testschema"
MISSING_SCHEMA_ID = "00000000-0000-0000-0000-000000000000"

TESTSCHEMA = {
    "type": "record",
    "name": "property",
    "namespace": "de.meinestadt.test",
    "fields": [{"name": "demo", "type": "string", "default": "Hello World"}],
}

TESTSCHEMA_V2 = {
    "type": "record",
    "name": "property",
    "namespace": "de.meinestadt.test",
    "fields": [
        {"name": "demo", "type": "string", "default": "Hello World"},
        {"name": "v2demo", "type": "string", "default": "Meinestadt"},
    ],
}

TESTSCHEMA_JSON = json.dumps(TESTSCHEMA)
TESTSCHEMA_V2_JSON = json.dumps(TESTSCHEMA_V2)

HELLO_WORLD = {"demo": "Hello world!"}

COMPRESSED_HELLO_WORLD = bytes.fromhex(
    "0305b7912285527d42de88eee389a763225f789c93f048cdc9c95728cf2fca495104001e420476"
)
UNCOMPRESSED_HELLO_WORLD = bytes.fromhex(
    "0300b7912285527d42de88eee389a763225f1848656c6c6f20776f726c6421"
)
MALFORMED_HEADER = bytes.fromhex(
    "0000b7912285527d42de88eee389a763225f1848656c6c6f20776f726c6421"
)
MALFORMED_COMPRESSION = bytes.fromhex(
    "0301b7912285527d42de88eee389a763225f1848656c6c6f20776f726c6421"
)
MISSING_SCHEMA_MESSAGE = bytes.fromhex(
    "030500000000000000000000000000000000789c93f048cdc9c95728cf2fca495104001e420476"
)

PROTO_DEFINITION = """
syntax = "proto3";
package de.meinestadt.test;

message Greeting {
  string text = 1;
  int32 count = 2;
}

message Other {
  bool flag = 1;
}
"""

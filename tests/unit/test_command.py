"""
Unit tests for the command builder.
"""

import pytest
from pydantic import BaseModel

from pulsar_producer.command import (
    build_command,
    escape_payload,
    redact_command,
    serialize_payload,
)
from pulsar_producer.config import ProducerConfig
from pulsar_producer.models import MessageOptions

CONNECTION = "pulsar://localhost:6650/persistent/public/default/test-topic"


class Order(BaseModel):
    id: int
    item: str


@pytest.mark.unit
class TestSerializePayload:
    """Test payload normalization."""

    def test_string_unchanged(self):
        assert serialize_payload("hello world") == "hello world"

    def test_dict_to_compact_json(self):
        assert serialize_payload({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_list_to_json(self):
        assert serialize_payload(["x", 2]) == '["x",2]'

    def test_bool_and_none_use_json(self):
        assert serialize_payload(True) == "true"
        assert serialize_payload(None) == "null"

    def test_numbers_coerced(self):
        assert serialize_payload(42) == "42"
        assert serialize_payload(1.5) == "1.5"

    def test_dict_with_non_string_keys(self):
        assert serialize_payload({1: "a", 2: {"b": True}}) == '{"1":"a","2":{"b":true}}'

    def test_bytes_decoded(self):
        assert serialize_payload(b"raw") == "raw"

    def test_pydantic_model(self):
        assert serialize_payload(Order(id=1, item="book")) == '{"id":1,"item":"book"}'

    def test_escape_quotes(self):
        assert escape_payload('say "hi"') == 'say \\"hi\\"'


@pytest.mark.unit
class TestBuildCommand:
    """Test build_command layout."""

    def test_minimal_publish(self):
        command = build_command(CONNECTION, "hello", None, ProducerConfig(), [])
        assert command == ["--name", '"manual-producer"', "--timeout", "30", CONNECTION, "hello"]

    def test_connection_and_payload_are_last(self, producer_config):
        options = MessageOptions(key="k1", properties={"a": "b"})
        command = build_command(CONNECTION, "body", options, producer_config, ["--jwt", "tok"])
        assert command[-2:] == [CONNECTION, "body"]
        assert all(not token.startswith("--") for token in command[-2:])

    def test_group_order(self, producer_config):
        options = MessageOptions(key="k1")
        command = build_command(CONNECTION, "body", options, producer_config, ["--username", "u"])
        assert command == [
            "--username",
            "u",
            "--name",
            '"test-producer"',
            "--timeout",
            "15",
            "--producer-property",
            "env=test",
            "--key",
            '"k1"',
            CONNECTION,
            "body",
        ]

    def test_all_message_flags(self):
        options = MessageOptions(
            key="k",
            ordering_key="ok",
            event_time=1700000000000,
            replication_clusters=["us-east", "eu-west"],
            disable_replication=True,
            sequence_id=7,
            deliver_after=500,
            deliver_at=1700000005000,
            properties={"source": "unit", "n": "1"},
        )
        command = build_command(CONNECTION, "m", options, ProducerConfig(), [])
        assert command[4:-2] == [
            "--key",
            '"k"',
            "--ordering-key",
            '"ok"',
            "--event-time",
            '"1700000000000"',
            "--replication-cluster",
            '"us-east"',
            "--replication-cluster",
            '"eu-west"',
            "--disable-replication",
            "--sequence-id",
            '"7"',
            "--deliver-after",
            '"500"',
            "--deliver-at",
            '"1700000005000"',
            "--property",
            'source="unit"',
            "--property",
            'n="1"',
        ]

    def test_replication_clusters_keep_input_order(self):
        options = MessageOptions(replication_clusters=["a", "b"])
        command = build_command(CONNECTION, "m", options, ProducerConfig(), [])
        clusters = [command[i + 1] for i, t in enumerate(command) if t == "--replication-cluster"]
        assert clusters == ['"a"', '"b"']

    def test_disable_replication_false_omitted(self):
        options = MessageOptions(disable_replication=False)
        command = build_command(CONNECTION, "m", options, ProducerConfig(), [])
        assert "--disable-replication" not in command

    def test_object_payload_is_escaped_json(self):
        command = build_command(CONNECTION, {"id": 1, "name": "x"}, None, ProducerConfig(), [])
        assert command[-1] == '{\\"id\\":1,\\"name\\":\\"x\\"}'

    def test_per_call_producer_properties(self):
        options = MessageOptions.from_mapping({"producer-properties": {"a": "b"}, "properties": {"x": 1}})
        command = build_command(CONNECTION, "m", options, ProducerConfig(), [])
        assert command[4:-2] == ["--property", 'x="1"', "--producer-property", 'a="b"']

    def test_test_mode(self, producer_config):
        options = MessageOptions(key="ignored")
        command = build_command(CONNECTION, "ignored", options, producer_config, ["--jwt", "tok"], test=True)
        assert command == ["--test", "--jwt", "tok", CONNECTION]

    def test_test_mode_without_auth(self):
        command = build_command(CONNECTION, None, None, ProducerConfig(), [], test=True)
        assert command == ["--test", CONNECTION]

    def test_fresh_vector_per_call(self):
        config = ProducerConfig()
        first = build_command(CONNECTION, "a", None, config, [])
        second = build_command(CONNECTION, "b", None, config, [])
        assert first is not second
        assert first[-1] == "a" and second[-1] == "b"


@pytest.mark.unit
class TestRedactCommand:
    """Test masking of secrets."""

    def test_masks_jwt_and_password(self):
        command = ["--jwt", "eyJsecret", "--username", "u", "--password", "p", CONNECTION]
        assert redact_command(command) == ["--jwt", "****", "--username", "u", "--password", "****", CONNECTION]

    def test_original_untouched(self):
        command = ["--jwt", "eyJsecret", CONNECTION]
        redact_command(command)
        assert command[1] == "eyJsecret"

"""Tests for the GraphQL response decoders."""

from __future__ import annotations

import json

import pytest

from conftest import detail_payload, device_list_payload, mutation_payload, port, vlan
from vlanlister.decoders import decode_device_detail, decode_device_list, decode_mutation
from vlanlister.exceptions import DecodeError
from vlanlister.models import DeviceSummary


def test_decode_device_list_returns_summaries() -> None:
    """Every device entry becomes a DeviceSummary in response order."""

    payload = device_list_payload(up=["10.0.0.2", "10.0.0.1"], down=["10.0.0.9"])

    assert decode_device_list(payload) == [
        DeviceSummary("10.0.0.2", True),
        DeviceSummary("10.0.0.1", True),
        DeviceSummary("10.0.0.9", False),
    ]


def test_decode_device_list_rejects_malformed_json() -> None:
    """Broken JSON raises DecodeError and keeps the offending bytes."""

    with pytest.raises(DecodeError) as err:
        decode_device_list(b"{not json")

    assert err.value.payload == b"{not json"
    assert "Could not decode JSON" in str(err.value)


def test_decode_device_list_requires_devices_field() -> None:
    """A response without data.network.devices is not a device list."""

    with pytest.raises(DecodeError, match="devices"):
        decode_device_list(b'{"data": {"network": {}}}')


def test_decode_surfaces_graphql_errors() -> None:
    """GraphQL error messages end up in the DecodeError text."""

    payload = json.dumps({"data": None, "errors": [{"message": "Unauthorized"}]}).encode()

    with pytest.raises(DecodeError, match="Unauthorized"):
        decode_device_list(payload)


def test_decode_mutation_success() -> None:
    """Only status SUCCESS counts as a successful rediscover."""

    outcome = decode_mutation(mutation_payload("SUCCESS", "ok"), "10.0.0.1")

    assert outcome.succeeded is True
    assert outcome.ip_address == "10.0.0.1"
    assert outcome.message == "ok"


@pytest.mark.parametrize("status", ["FAILED", "", "success"])
def test_decode_mutation_non_success_statuses(status: str) -> None:
    """Any other status, including empty or differently cased, is a failure."""

    outcome = decode_mutation(mutation_payload(status, "busy"), "10.0.0.1")

    assert outcome.succeeded is False
    assert outcome.message == "busy"


def test_decode_mutation_missing_status_is_failure() -> None:
    """A mutation result without status fields is a failure, not an error."""

    payload = b'{"data": {"network": {"rediscoverDevices": {}}}}'

    assert decode_mutation(payload, "10.0.0.1").succeeded is False


def test_decode_mutation_missing_envelope() -> None:
    """A missing rediscoverDevices object raises DecodeError carrying the IP."""

    with pytest.raises(DecodeError) as err:
        decode_mutation(b'{"data": {"network": {}}}', "10.0.0.7")

    assert err.value.ip_address == "10.0.0.7"


def test_decode_device_detail_exposes_device_ports_and_vlans() -> None:
    """The detail decoder keeps device, ports and deviceVlans."""

    payload = detail_payload(
        "10.0.0.1",
        device_id=42,
        ports=[port(1, vlan_list=["5[Tagged]"])],
        vlans=[vlan(5)],
    )

    detail = decode_device_detail(payload)

    assert detail.device["id"] == 42
    assert [p["ifIndex"] for p in detail.ports] == [1]
    assert [v["vid"] for v in detail.device_vlans] == [5]


def test_decode_device_detail_unknown_device() -> None:
    """XMC answers unknown IPs with a null device."""

    payload = b'{"data": {"network": {"device": null, "deviceVlans": []}}}'

    with pytest.raises(DecodeError, match="device"):
        decode_device_detail(payload)


def test_decode_device_detail_without_entity_data() -> None:
    """A device without entityData simply has no ports."""

    payload = b'{"data": {"network": {"device": {"id": 3, "ip": "10.0.0.3"}, "deviceVlans": null}}}'

    detail = decode_device_detail(payload)

    assert detail.ports == []
    assert detail.device_vlans == []

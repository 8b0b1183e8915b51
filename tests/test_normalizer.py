"""Tests for turning device detail responses into canonical devices."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from conftest import detail_payload, port, vlan
from vlanlister.decoders import decode_device_detail
from vlanlister.exceptions import NormalizationError
from vlanlister.normalizer import normalize_device, parse_vlan_token

STAMP = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _normalize(**kwargs):
    return normalize_device(decode_device_detail(detail_payload("10.0.0.1", **kwargs)), STAMP)


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("20[Tagged,Static]", (20, "tagged")),
        ("10[Untagged]", (10, "untagged")),
        ("10[Untagged,Tagged]", (10, "untagged")),
        ("30[Forbidden]", (30, "")),
        ("40", (40, "")),
    ],
)
def test_parse_vlan_token(token: str, expected: tuple) -> None:
    """The numeric prefix is the VLAN id and Untagged is checked before Tagged."""

    assert parse_vlan_token(token) == expected


@pytest.mark.parametrize("token", ["abc[Tagged]", " 20[Tagged]", "2_0[Tagged]", "[Tagged]", "20 [Untagged]"])
def test_parse_vlan_token_rejects_non_numeric_prefix(token: str) -> None:
    """Only an optionally signed run of ASCII digits is a VLAN id; anything else raises."""

    with pytest.raises(NormalizationError) as err:
        parse_vlan_token(token)

    assert err.value.token == token


def test_scalar_fields_are_copied() -> None:
    """Device scalars land in the canonical record unchanged."""

    device = _normalize(device_id=7, up=False)

    assert device.id == 7
    assert device.is_up is False
    assert device.ip_address == "10.0.0.1"
    assert device.sys_name == "sw-7"
    assert device.sys_location == "Lab"
    assert device.base_mac == "02:04:96:00:00:01"
    assert device.queried_at == STAMP


def test_vlans_and_ports_are_sorted() -> None:
    """VLANs sort by id and ports by index regardless of input order."""

    device = _normalize(
        ports=[port(3), port(1), port(2)],
        vlans=[vlan(30), vlan(1), vlan(20)],
    )

    assert [v.vlan_id for v in device.vlans] == [1, 20, 30]
    assert [p.index for p in device.ports] == [1, 2, 3]


def test_port_vlans_are_classified_and_sorted() -> None:
    """Tagged and untagged ids are split per port and sorted ascending."""

    device = _normalize(ports=[port(1, vlan_list=["30[Tagged]", "7[Untagged]", "20[Tagged]", "99[Forbidden]"])])

    (p,) = device.ports
    assert p.untagged_vlan_ids == (7,)
    assert p.tagged_vlan_ids == (20, 30)


def test_bad_vlan_token_is_dropped_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    """A bad token only drops itself; the rest of the port survives."""

    caplog.set_level(logging.WARNING)

    device = _normalize(ports=[port(1, name="1:1", vlan_list=["x5[Tagged]", "6[Tagged]"]), port(2)])

    assert [p.index for p in device.ports] == [1, 2]
    assert device.ports[0].tagged_vlan_ids == (6,)
    assert "x5" in caplog.text
    assert "10.0.0.1" in caplog.text


def test_vlan_record_fields() -> None:
    """deviceVlans entries map onto VlanRecord fields."""

    device = _normalize(vlans=[vlan(5, name="users", primaryIp="10.5.0.1", netmask="255.255.255.0")])

    (v,) = device.vlans
    assert v.kind == "STATIC"
    assert v.name == "users"
    assert v.primary_ip == "10.5.0.1"
    assert v.netmask == "255.255.255.0"


def test_null_port_entries_are_skipped() -> None:
    """A null entry in allPorts is ignored and the real ports are kept."""

    device = _normalize(ports=[None, port(2), port(1)])

    assert [p.index for p in device.ports] == [1, 2]

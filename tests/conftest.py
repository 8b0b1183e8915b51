"""Shared fixtures: a fake XMC client and GraphQL payload builders."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

import pytest

from vlanlister.config import InventoryOptions

Reply = Union[bytes, Exception]

_IP_RE = re.compile(r'"(\d+\.\d+\.\d+\.\d+)"')


def device_list_payload(up: Iterable[str] = (), down: Iterable[str] = ()) -> bytes:
    devices = [{"up": True, "ip": ip} for ip in up] + [{"up": False, "ip": ip} for ip in down]
    return json.dumps({"data": {"network": {"devices": devices}}}).encode()


def mutation_payload(status: str = "SUCCESS", message: str = "") -> bytes:
    body = {"data": {"network": {"rediscoverDevices": {"status": status, "message": message}}}}
    return json.dumps(body).encode()


def port(index: int, name: str = "", vlan_list: Optional[List[str]] = None, **extra: Any) -> Dict[str, Any]:
    data = {
        "ifIndex": index,
        "ifPhysAddress": f"00:00:00:00:00:{index:02x}",
        "ifName": name or f"1:{index}",
        "ifAdminStatus": "up",
        "ifOperStatus": "up",
        "vlanList": vlan_list or [],
    }
    data.update(extra)
    return data


def vlan(vid: int, name: str = "", **extra: Any) -> Dict[str, Any]:
    data = {"type": "STATIC", "vid": vid, "name": name or f"VLAN{vid}", "primaryIp": "", "netmask": ""}
    data.update(extra)
    return data


def detail_payload(
    ip: str,
    device_id: int = 1,
    ports: Optional[List[Dict[str, Any]]] = None,
    vlans: Optional[List[Dict[str, Any]]] = None,
    up: bool = True,
) -> bytes:
    device = {
        "id": device_id,
        "up": up,
        "baseMac": "02:04:96:00:00:01",
        "ip": ip,
        "sysName": f"sw-{device_id}",
        "sysLocation": "Lab",
        "nickName": "",
        "entityData": {"allPorts": ports or []},
    }
    body = {"data": {"network": {"device": device, "deviceVlans": vlans or []}}}
    return json.dumps(body).encode()


class FakeClient:
    """In-memory stand-in for XMCClient keyed on the query kind and IP."""

    def __init__(
        self,
        device_list: Reply = b"",
        mutations: Optional[Dict[str, Reply]] = None,
        details: Optional[Dict[str, Reply]] = None,
        expires_soon: bool = False,
    ) -> None:
        self.device_list = device_list
        self.mutations = mutations or {}
        self.details = details or {}
        self.expires_soon = expires_soon
        self.calls: List[tuple] = []
        self.expiry_checks = 0
        self.refreshes = 0

    def _reply(self, reply: Reply) -> bytes:
        if isinstance(reply, Exception):
            raise reply
        return reply

    def query(self, query: str) -> bytes:
        match = _IP_RE.search(query)
        ip = match.group(1) if match else ""
        if "rediscoverDevices" in query:
            self.calls.append(("mutation", ip))
            return self._reply(self.mutations.get(ip, mutation_payload()))
        if "deviceVlans" in query:
            self.calls.append(("detail", ip))
            return self._reply(self.details[ip])
        self.calls.append(("list", ""))
        return self._reply(self.device_list)

    def token_expires_soon(self, margin: int) -> bool:
        self.expiry_checks += 1
        return self.expires_soon

    def refresh_token(self) -> str:
        self.refreshes += 1
        self.expires_soon = False
        return "token"


@pytest.fixture
def no_refresh_options() -> InventoryOptions:
    return InventoryOptions(refresh=False)


@pytest.fixture
def fixed_clock():
    stamp = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    return lambda: stamp

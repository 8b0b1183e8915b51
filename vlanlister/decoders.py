# Decoders for the XMC NBI GraphQL responses; no I/O here.

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .exceptions import DecodeError
from .models import DeviceSummary, RediscoverOutcome


@dataclass(frozen=True)
class DeviceDetailResponse:
    device: Dict[str, Any]
    device_vlans: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ports(self) -> List[Dict[str, Any]]:
        entity_data = self.device.get("entityData") or {}
        return [p for p in entity_data.get("allPorts") or [] if isinstance(p, dict)]


def _snippet(payload: bytes, limit: int = 200) -> str:
    text = payload.decode("utf-8", errors="replace")
    return text if len(text) <= limit else text[:limit] + "..."


def _network(payload: bytes) -> Dict[str, Any]:
    # Unwrap data.network from a GraphQL envelope.
    try:
        body = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Could not decode JSON: {e} ({_snippet(payload)!r})", payload)
    if not isinstance(body, dict):
        raise DecodeError(f"Unexpected response type {type(body).__name__}", payload)

    data = body.get("data")
    if not isinstance(data, dict):
        errors = body.get("errors") or []
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise DecodeError(f"GraphQL error: {messages}", payload)
        raise DecodeError(f"Missing 'data' in response ({_snippet(payload)!r})", payload)

    network = data.get("network")
    if not isinstance(network, dict):
        raise DecodeError("Missing 'data.network' in response", payload)
    return network


def decode_device_list(payload: bytes) -> List[DeviceSummary]:
    network = _network(payload)
    devices = network.get("devices")
    if not isinstance(devices, list):
        raise DecodeError("Missing 'data.network.devices' in response", payload)
    return [
        DeviceSummary(ip_address=d.get("ip") or "", is_up=bool(d.get("up")))
        for d in devices
        if isinstance(d, dict)
    ]


def decode_mutation(payload: bytes, ip_address: str) -> RediscoverOutcome:
    network = _network(payload)
    result = network.get("rediscoverDevices")
    if not isinstance(result, dict):
        raise DecodeError("Missing 'data.network.rediscoverDevices' in response", payload, ip_address)
    status = result.get("status") or ""
    return RediscoverOutcome(
        ip_address=ip_address,
        succeeded=status == "SUCCESS",
        message=result.get("message") or "",
    )


def decode_device_detail(payload: bytes) -> DeviceDetailResponse:
    network = _network(payload)
    device = network.get("device")
    if not isinstance(device, dict):
        raise DecodeError("Missing 'data.network.device' in response (unknown device?)", payload)
    vlans = network.get("deviceVlans") or []
    if not isinstance(vlans, list):
        raise DecodeError("'data.network.deviceVlans' is not a list", payload)
    return DeviceDetailResponse(device=device, device_vlans=[v for v in vlans if isinstance(v, dict)])

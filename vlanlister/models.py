# Normalized device records and the aggregate the writers consume.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Tuple

CSV_COLUMNS = (
    "ID", "BaseMac", "IP", "SysUpDown", "SysName",
    "SysLocation", "IfName", "IfStatus", "Untagged", "Tagged",
)


def _join_ids(ids) -> str:
    return ",".join(str(i) for i in ids)


@dataclass(frozen=True)
class DeviceSummary:
    ip_address: str
    is_up: bool


@dataclass(frozen=True)
class RediscoverOutcome:
    ip_address: str
    succeeded: bool
    message: str = ""


@dataclass(frozen=True)
class VlanRecord:
    kind: str
    vlan_id: int
    name: str = ""
    primary_ip: str = ""
    netmask: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "id": self.vlan_id,
            "name": self.name,
            "primaryIp": self.primary_ip,
            "netmask": self.netmask,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VlanRecord":
        return cls(
            kind=data.get("type") or "",
            vlan_id=int(data.get("id") or 0),
            name=data.get("name") or "",
            primary_ip=data.get("primaryIp") or "",
            netmask=data.get("netmask") or "",
        )


@dataclass(frozen=True)
class PortRecord:
    index: int
    mac_address: str = ""
    name: str = ""
    admin_status: str = ""
    oper_status: str = ""
    untagged_vlan_ids: Tuple[int, ...] = ()
    tagged_vlan_ids: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "macAddress": self.mac_address,
            "name": self.name,
            "adminStatus": self.admin_status,
            "operStatus": self.oper_status,
            "untaggedVlans": list(self.untagged_vlan_ids),
            "taggedVlans": list(self.tagged_vlan_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortRecord":
        return cls(
            index=int(data.get("index") or 0),
            mac_address=data.get("macAddress") or "",
            name=data.get("name") or "",
            admin_status=data.get("adminStatus") or "",
            oper_status=data.get("operStatus") or "",
            untagged_vlan_ids=tuple(data.get("untaggedVlans") or ()),
            tagged_vlan_ids=tuple(data.get("taggedVlans") or ()),
        )


@dataclass(frozen=True)
class CanonicalDevice:
    id: int
    queried_at: datetime
    is_up: bool
    base_mac: str = ""
    ip_address: str = ""
    sys_name: str = ""
    sys_location: str = ""
    nick_name: str = ""
    vlans: Tuple[VlanRecord, ...] = ()
    ports: Tuple[PortRecord, ...] = ()

    @property
    def sys_up_down(self) -> str:
        return "up" if self.is_up else "down"

    def to_rows(self) -> List[List[str]]:
        # One SYSTEM row carrying every device VLAN, then one row per port.
        prefix = [
            str(self.id), self.base_mac, self.ip_address, self.sys_up_down,
            self.sys_name, self.sys_location,
        ]
        rows = [prefix + ["SYSTEM", "N/A", "", _join_ids(v.vlan_id for v in self.vlans)]]
        for port in self.ports:
            rows.append(prefix + [
                port.name,
                port.oper_status,
                _join_ids(port.untagged_vlan_ids),
                _join_ids(port.tagged_vlan_ids),
            ])
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "queriedAt": self.queried_at.isoformat(),
            "up": self.is_up,
            "baseMac": self.base_mac,
            "ipAddress": self.ip_address,
            "sysName": self.sys_name,
            "sysLocation": self.sys_location,
            "nickName": self.nick_name,
            "vlans": [v.to_dict() for v in self.vlans],
            "ports": [p.to_dict() for p in self.ports],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalDevice":
        return cls(
            id=int(data.get("id") or 0),
            queried_at=datetime.fromisoformat(data["queriedAt"]),
            is_up=bool(data.get("up")),
            base_mac=data.get("baseMac") or "",
            ip_address=data.get("ipAddress") or "",
            sys_name=data.get("sysName") or "",
            sys_location=data.get("sysLocation") or "",
            nick_name=data.get("nickName") or "",
            vlans=tuple(VlanRecord.from_dict(v) for v in data.get("vlans") or ()),
            ports=tuple(PortRecord.from_dict(p) for p in data.get("ports") or ()),
        )


@dataclass
class ResultAggregate:
    devices: List[CanonicalDevice] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.devices)

    def __iter__(self) -> Iterator[CanonicalDevice]:
        return iter(self.devices)

    def append(self, device: CanonicalDevice) -> None:
        self.devices.append(device)

    def sort_by_id(self) -> None:
        self.devices.sort(key=lambda d: d.id)

    def to_rows(self) -> List[List[str]]:
        # Data rows only; writers add the CSV_COLUMNS header themselves.
        rows: List[List[str]] = []
        for dev in self.devices:
            rows.extend(dev.to_rows())
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {"devices": [d.to_dict() for d in self.devices]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultAggregate":
        return cls(devices=[CanonicalDevice.from_dict(d) for d in data.get("devices") or ()])

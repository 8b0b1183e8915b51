import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Tuple

from .decoders import DeviceDetailResponse
from .exceptions import NormalizationError
from .models import CanonicalDevice, PortRecord, VlanRecord

logger = logging.getLogger(__name__)

VLAN_ID_RE = re.compile(r"[+-]?[0-9]+")


def parse_vlan_token(token: str) -> Tuple[int, str]:
    # "20[Tagged,...]" -> (20, "tagged"); state is "" when neither marker is present.
    prefix = token.split("[", 1)[0]
    if not VLAN_ID_RE.fullmatch(prefix):
        raise NormalizationError(f"Could not convert VLAN ID {prefix!r} in {token!r}", token)
    vid = int(prefix)
    if "Untagged" in token:
        return vid, "untagged"
    if "Tagged" in token:
        return vid, "tagged"
    return vid, ""


def _build_port(port: Dict[str, Any], device_ip: str) -> PortRecord:
    untagged: List[int] = []
    tagged: List[int] = []
    for token in port.get("vlanList") or []:
        try:
            vid, state = parse_vlan_token(str(token))
        except NormalizationError as e:
            logger.warning("[!] %s: port %s: %s", device_ip, port.get("ifName"), e)
            continue
        if state == "untagged":
            untagged.append(vid)
        elif state == "tagged":
            tagged.append(vid)

    return PortRecord(
        index=int(port.get("ifIndex") or 0),
        mac_address=port.get("ifPhysAddress") or "",
        name=port.get("ifName") or "",
        admin_status=port.get("ifAdminStatus") or "",
        oper_status=port.get("ifOperStatus") or "",
        untagged_vlan_ids=tuple(sorted(untagged)),
        tagged_vlan_ids=tuple(sorted(tagged)),
    )


def normalize_device(detail: DeviceDetailResponse, queried_at: datetime) -> CanonicalDevice:
    device = detail.device
    ip = device.get("ip") or ""

    vlans = [
        VlanRecord(
            kind=v.get("type") or "",
            vlan_id=int(v.get("vid") or 0),
            name=v.get("name") or "",
            primary_ip=v.get("primaryIp") or "",
            netmask=v.get("netmask") or "",
        )
        for v in detail.device_vlans
    ]
    vlans.sort(key=lambda v: v.vlan_id)

    ports = [_build_port(p, ip) for p in detail.ports]
    ports.sort(key=lambda p: p.index)

    return CanonicalDevice(
        id=int(device.get("id") or 0),
        queried_at=queried_at,
        is_up=bool(device.get("up")),
        base_mac=device.get("baseMac") or "",
        ip_address=ip,
        sys_name=device.get("sysName") or "",
        sys_location=device.get("sysLocation") or "",
        nick_name=device.get("nickName") or "",
        vlans=tuple(vlans),
        ports=tuple(ports),
    )

# List devices, optionally rediscover them, then fetch details one at a time.

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import requests

from .config import InventoryOptions
from .decoders import decode_device_detail, decode_device_list, decode_mutation
from .exceptions import DecodeError, FatalPipelineError
from .models import CanonicalDevice, ResultAggregate
from .normalizer import normalize_device
from .queries import fetch_device_detail, fetch_device_list, trigger_rediscover
from .xmc_client import XMCClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]
Clock = Callable[[], datetime]


def _now() -> datetime:
    return datetime.now().astimezone().replace(microsecond=0)


def _refresh_in_background(client: XMCClient) -> None:
    try:
        client.refresh_token()
    except requests.RequestException as e:
        logger.warning("[!] Background token refresh failed: %s", e)


def proactive_token_refresh(client: XMCClient, margin: int) -> Optional[threading.Thread]:
    # Fire-and-forget: the thread is never joined. A query issued before it
    # finishes may still use the old token and fail like any other call.
    if not client.token_expires_soon(margin):
        return None
    logger.debug("Access token expires within %ds, refreshing in background", margin)
    worker = threading.Thread(target=_refresh_in_background, args=(client,), name="token-refresh", daemon=True)
    worker.start()
    return worker


def list_devices(client: XMCClient, options: InventoryOptions) -> Tuple[List[str], List[str]]:
    logger.info("[>] Discovering managed devices...")
    try:
        payload = fetch_device_list(client)
    except requests.RequestException as e:
        raise FatalPipelineError(f"Could not fetch device list: {e}") from e
    proactive_token_refresh(client, options.token_refresh_margin)

    try:
        devices = decode_device_list(payload)
    except DecodeError as e:
        raise FatalPipelineError(f"Could not decode device list: {e}") from e

    up_ips = sorted(d.ip_address for d in devices if d.is_up)
    down_ips = [d.ip_address for d in devices if not d.is_up]
    logger.info("[+] Found %d device(s) up and %d down.", len(up_ips), len(down_ips))
    return up_ips, down_ips


def rediscover_devices(
    client: XMCClient,
    ip_list: List[str],
    options: InventoryOptions,
    sleep: Sleep = time.sleep,
) -> List[str]:
    rediscovered: List[str] = []
    margin = options.token_refresh_margin

    for ip in ip_list:
        proactive_token_refresh(client, margin)
        try:
            payload = trigger_rediscover(client, ip)
            outcome = decode_mutation(payload, ip)
        except requests.RequestException as e:
            logger.warning("[!] Could not mutate device %s: %s", ip, e)
        except DecodeError as e:
            logger.warning("[!] Could not decode rediscover result for %s: %s", ip, e)
        else:
            if outcome.succeeded:
                logger.info("[+] Successfully triggered rediscover for %s.", ip)
                rediscovered.append(ip)
            else:
                logger.warning("[!] Rediscover for %s failed: %s", ip, outcome.message)
        proactive_token_refresh(client, margin)

        logger.info("[~] Waiting for %d second(s)...", options.refresh_interval)
        sleep(options.refresh_interval)

    for remaining in range(options.refresh_wait, 0, -1):
        proactive_token_refresh(client, margin)
        logger.info("[~] Waiting for %d minute(s) to finish rediscover...", remaining)
        sleep(60)

    return rediscovered


def query_device(client: XMCClient, ip: str, clock: Clock = _now) -> CanonicalDevice:
    queried_at = clock()
    payload = fetch_device_detail(client, ip)
    detail = decode_device_detail(payload)
    try:
        device = normalize_device(detail, queried_at)
    except (AttributeError, TypeError, ValueError) as e:
        raise DecodeError(f"Unexpected device data: {e}", payload, ip) from e
    logger.info(
        "[+] Fetched data for %s: Got %d VLANs and %d ports.",
        device.ip_address or ip, len(device.vlans), len(device.ports),
    )
    return device


def fetch_device_details(
    client: XMCClient,
    ip_list: List[str],
    options: InventoryOptions,
    clock: Clock = _now,
) -> ResultAggregate:
    results = ResultAggregate()
    for ip in sorted(ip_list):
        try:
            device = query_device(client, ip, clock)
        except requests.RequestException as e:
            logger.warning("[!] Could not query device %s: %s", ip, e)
            continue
        except DecodeError as e:
            logger.warning("[!] Could not decode data for device %s: %s", ip, e)
            continue
        finally:
            proactive_token_refresh(client, options.token_refresh_margin)
        results.append(device)
    return results


def run_discovery(
    client: XMCClient,
    options: InventoryOptions,
    sleep: Sleep = time.sleep,
    clock: Clock = _now,
) -> ResultAggregate:
    up_ips, down_ips = list_devices(client, options)

    if options.refresh:
        targets = rediscover_devices(client, up_ips, options, sleep=sleep)
    else:
        targets = list(up_ips)
    if options.include_down:
        targets.extend(down_ips)

    results = fetch_device_details(client, targets, options, clock=clock)
    if options.sort_by_id:
        results.sort_by_id()
    logger.info("[+] Collected data for %d device(s).", len(results))
    return results

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .xmc_client import XMCClient

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".xmcenv"
DEFAULT_SETTINGS_PATH = "settings.yaml"


@dataclass(frozen=True)
class InventoryOptions:
    # Behaviour switches consumed by the discovery pipeline and the writers.
    refresh: bool = True
    refresh_interval: int = 5       # seconds between two rediscover mutations
    refresh_wait: int = 15          # minutes to let XMC finish rediscovering
    include_down: bool = False
    no_color: bool = False
    compress_output: bool = False
    sort_by_id: bool = True
    token_refresh_margin: int = 60  # seconds before token expiry to refresh


def load_env_files(cwd: Optional[Path] = None, home: Optional[Path] = None) -> List[Path]:
    # Load .xmcenv from the current directory, then from the home directory.
    # Variables that are already set win over both files.
    candidates = [(cwd or Path.cwd()) / ENV_FILE_NAME]
    try:
        candidates.append((home or Path.home()) / ENV_FILE_NAME)
    except RuntimeError:
        pass

    loaded = []
    for env_file in candidates:
        if not env_file.is_file():
            continue
        try:
            load_dotenv(env_file, override=False)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not load env file <%s>: %s", env_file, e)
            continue
        loaded.append(env_file)
    return loaded


def _to_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self, settings_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

        self.global_cfg: Dict[str, Any] = {}
        path = settings_path or DEFAULT_SETTINGS_PATH
        if settings_path or os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            self.global_cfg = data.get("global") or {}

        self.host = self._str("XMCHOST", "host", "")
        self.port = self._int("XMCPORT", "port", 8443)
        self.path = self._str("XMCPATH", "path", "")
        self.timeout = self._int("XMCTIMEOUT", "timeout", 5)
        self.no_https = self._bool("XMCNOHTTPS", "no_https")
        self.insecure_https = self._bool("XMCINSECUREHTTPS", "insecure_https")
        self.basic_auth = self._bool("XMCBASICAUTH", "basic_auth")
        # Credentials come from the environment (or .xmcenv) only.
        self.userid = self._environ.get("XMCUSERID", "")
        self.secret = self._environ.get("XMCSECRET", "")
        self.no_refresh = self._bool("XMCNOREFRESH", "no_refresh")
        self.refresh_interval = self._int("XMCREFRESHINTERVAL", "refresh_interval", 5)
        self.refresh_wait = self._int("XMCREFRESHWAIT", "refresh_wait", 15)
        self.include_down = self._bool("XMCINCLUDEDOWN", "include_down")
        self.no_color = self._bool("XMCNOCOLOR", "no_color")
        self.compress_output = self._bool("XMCCOMPRESSOUTPUT", "compress_output")
        self.outfiles: List[str] = list(self.global_cfg.get("outfiles") or [])

    def _raw(self, env_key: str, cfg_key: str) -> Any:
        v = self._environ.get(env_key)
        if v is not None and v != "":
            return v
        return self.global_cfg.get(cfg_key)

    def _str(self, env_key: str, cfg_key: str, default: str) -> str:
        v = self._raw(env_key, cfg_key)
        return default if v is None else str(v)

    def _int(self, env_key: str, cfg_key: str, default: int) -> int:
        v = self._raw(env_key, cfg_key)
        return default if v is None else int(v)

    def _bool(self, env_key: str, cfg_key: str, default: bool = False) -> bool:
        v = self._raw(env_key, cfg_key)
        return default if v is None else _to_bool(v)

    def options(self) -> InventoryOptions:
        return InventoryOptions(
            refresh=not self.no_refresh,
            refresh_interval=self.refresh_interval,
            refresh_wait=self.refresh_wait,
            include_down=self.include_down,
            no_color=self.no_color,
            compress_output=self.compress_output,
        )

    def client(self) -> XMCClient:
        return XMCClient(
            host=self.host,
            port=self.port,
            path=self.path,
            client_id=self.userid,
            secret=self.secret,
            basic_auth=self.basic_auth,
            use_https=not self.no_https,
            verify=not self.insecure_https,
            timeout=self.timeout,
        )

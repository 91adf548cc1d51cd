########## ini_config.py

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional

INI_DEFAULT_NAME = "SiteScanWeb.ini"

APPROVAL_MODES = ("auto", "manual")


@dataclass(frozen=True)
class AppSettings:
    # Fetching
    max_attempts: int
    backoff_seconds: float
    timeout_seconds: int
    forwarding_prefix: str

    # Scanning
    max_links: int
    queue_same_site_links: bool

    default_scheme: str
    guess_com_if_no_dot: bool
    no_guess_hosts: FrozenSet[str]

    approval_mode: str
    state_file: Path

    log_level: str
    log_file: Optional[Path]

    flask_host: str
    flask_port: int
    flask_debug: bool


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of the services; they only ever see AppSettings.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _get_str(self, section: str, key: str, default: str) -> str:
        return (self._cfg.get(section, key, fallback=default) or "").strip() or default

    def _resolve_path(self, raw: str) -> Path:
        """Relative paths are taken from the INI file's folder, not the working directory."""
        p = Path(os.path.expandvars(os.path.expanduser(raw)))
        if not p.is_absolute():
            p = self._ini_path.resolve().parent / p
        return p.resolve()

    def _cfg_path(self, section: str, key: str, default: str) -> Path:
        # [paths] and [path] are accepted interchangeably
        for sec in (section, "path" if section == "paths" else "paths"):
            if not self._cfg.has_section(sec):
                continue
            raw = (self._cfg.get(sec, key, fallback="") or "").strip()
            if raw:
                return self._resolve_path(raw)
        return self._resolve_path(default)

    def load_settings(self) -> AppSettings:
        # Fetch
        max_attempts = self._cfg.getint("fetch", "max_attempts", fallback=3)
        backoff_seconds = self._cfg.getfloat("fetch", "backoff_seconds", fallback=2.0)
        timeout_seconds = self._cfg.getint("fetch", "timeout_seconds", fallback=15)
        forwarding_prefix = (self._cfg.get("fetch", "forwarding_prefix", fallback="") or "").strip()

        # Scan
        max_links = self._cfg.getint("scan", "max_links", fallback=50)
        queue_same_site_links = self._cfg.getboolean("scan", "queue_same_site_links", fallback=False)

        # URL normalization
        default_scheme = self._get_str("url_normalization", "default_scheme", "https")
        guess_com_if_no_dot = self._cfg.getboolean("url_normalization", "guess_com_if_no_dot", fallback=True)
        no_guess_hosts = frozenset(
            h.strip().lower()
            for h in (self._cfg.get("url_normalization", "no_guess_hosts", fallback="localhost") or "").split(",")
            if h.strip()
        )

        approval_mode = self._get_str("approval", "mode", "auto").lower()

        state_file = self._cfg_path("paths", "state_file", "sitescan_state.json")

        # Logging
        log_level = self._get_str("logging", "level", "INFO").upper()
        log_file_raw = (self._cfg.get("logging", "log_file", fallback="") or "").strip()
        log_file = self._resolve_path(log_file_raw) if log_file_raw else None

        # Flask
        flask_host = self._get_str("flask", "host", "127.0.0.1")
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=False)

        # Validate
        if max_attempts < 1:
            raise ValueError(f"[fetch] max_attempts must be at least 1, got {max_attempts}")
        if backoff_seconds < 0:
            raise ValueError(f"[fetch] backoff_seconds must not be negative, got {backoff_seconds}")
        if max_links < 1:
            raise ValueError(f"[scan] max_links must be at least 1, got {max_links}")
        if approval_mode not in APPROVAL_MODES:
            raise ValueError(f"[approval] mode must be one of {APPROVAL_MODES}, got {approval_mode!r}")

        state_file.parent.mkdir(parents=True, exist_ok=True)

        return AppSettings(
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            timeout_seconds=timeout_seconds,
            forwarding_prefix=forwarding_prefix,
            max_links=max_links,
            queue_same_site_links=queue_same_site_links,
            default_scheme=default_scheme,
            guess_com_if_no_dot=guess_com_if_no_dot,
            no_guess_hosts=no_guess_hosts,
            approval_mode=approval_mode,
            state_file=state_file,
            log_level=log_level,
            log_file=log_file,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
        )

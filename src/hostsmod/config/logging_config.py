from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_TAGS = {
    logging.DEBUG: "[debug]",
    logging.INFO: "[info]",
    logging.WARNING: "[warn]",
    logging.ERROR: "[error]",
    logging.CRITICAL: "[crit]",
}


def _level_tag(levelno: int) -> str:
    return _TAGS.get(levelno, f"[lvl{levelno}]")


class SyslogFormatter(logging.Formatter):
    """Formatter for syslog output: program tag, level tag, no timestamp."""

    def __init__(self, tag: str = "hostsmod") -> None:
        super().__init__()
        self.tag = tag

    def format(self, record):
        record.level_tag = _level_tag(record.levelno)
        return f"{self.tag}: {record.level_tag} {record.name}: {record.getMessage()}"


class BracketLevelFormatter(logging.Formatter):
    """Custom formatter that adds bracketed lowercase level tags and UTC timestamps."""

    def formatTime(self, record, datefmt=None):
        """Format the record's creation time as UTC ISO-8601 with Z suffix."""
        return datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    def format(self, record):
        record.level_tag = _level_tag(record.levelno)
        return super().format(record)


def parse_level(value: Any, default: int = logging.INFO) -> int:
    """Brief: Map a level name (debug/info/warn/error/crit) to a logging constant."""

    return _LEVELS.get(str(value).strip().lower(), default)


def init_logging(cfg: Optional[Dict[str, Any]], *, verbose: bool = False) -> None:
    """
    Initialize logging configuration based on the provided config.

    Args:
        cfg: Logging configuration dictionary with optional keys:
            - level: debug, info, warn, error, crit (default: warn)
            - stderr: boolean to log to stderr (default: True)
            - file: string path to log file (optional)
            - syslog: boolean or dict to enable syslog logging (optional)
                Can be a boolean (True uses defaults) or a dict with:
                - address: Unix socket path (default: /dev/log)
                - facility: syslog facility (default: AUTH)
                - tag: program identifier to prepend (default: hostsmod)
        verbose: lower the effective level to debug regardless of cfg.

    Example config:
        {
            "level": "info",
            "stderr": True,
            "file": "/var/log/hostsmod.log",
            "syslog": {"facility": "auth"}
        }
    """
    cfg = cfg or {}

    level = parse_level(cfg.get("level", "warn"), logging.WARNING)
    if verbose:
        level = logging.DEBUG

    fmt = "%(asctime)s %(level_tag)s %(name)s: %(message)s"
    formatter = BracketLevelFormatter(fmt=fmt)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for h in list(root.handlers):
        root.removeHandler(h)

    if cfg.get("stderr", True):
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        root.addHandler(stderr_handler)

    file_path = cfg.get("file")
    if isinstance(file_path, str) and file_path.strip():
        path = os.path.abspath(os.path.expanduser(file_path.strip()))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Changes to /etc/hosts are security relevant, so syslog defaults to the
    # auth facility.
    syslog_cfg = cfg.get("syslog")
    if syslog_cfg:
        syslog_opts = syslog_cfg if isinstance(syslog_cfg, dict) else {}
        address = syslog_opts.get("address", "/dev/log")
        facility = getattr(
            logging.handlers.SysLogHandler,
            f"LOG_{str(syslog_opts.get('facility', 'auth')).upper()}",
            logging.handlers.SysLogHandler.LOG_AUTH,
        )
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=address, facility=facility
            )
        except (OSError, ValueError) as e:
            root.warning(f"Failed to configure syslog: {e}")
        else:
            syslog_handler.setFormatter(
                SyslogFormatter(tag=str(syslog_opts.get("tag", "hostsmod")))
            )
            root.addHandler(syslog_handler)

    logging.captureWarnings(True)

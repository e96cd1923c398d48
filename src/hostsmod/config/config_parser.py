"""Configuration loading for the hostsmod CLI.

Brief:
  Reads the YAML policy file, checks that it cannot be edited by unprivileged
  users when hostsmod runs as root, validates it against the JSON Schema and
  builds the immutable PolicyConfig handed to the pipeline.

Inputs:
  - YAML config file paths and parsed config dicts

Outputs:
  - Validated config dicts, PolicyConfig instances, sample YAML text
"""

from __future__ import annotations

import os
import socket
import stat
from typing import Any, Dict, Optional

import yaml

from ..policy import PolicyConfig, expand_hostname_placeholder
from .config_schema import validate_config

DEFAULT_CONFIG_PATH = "/etc/hostsmod.yaml"


def default_hosts_path() -> str:
    """Brief: Standard hosts file location for the running platform."""

    if os.name == "nt":  # pragma: no cover - platform specific
        root = os.environ.get("SystemRoot", r"C:\Windows")
        return os.path.join(root, "System32", "drivers", "etc", "hosts")
    return "/etc/hosts"


def effective_uid() -> Optional[int]:
    """Brief: Effective uid of the process, or None where the platform has none."""

    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:  # pragma: no cover - platform specific
        return None
    return geteuid()


def insecure_config_reason(st: os.stat_result) -> Optional[str]:
    """Brief: Explain why a config file's ownership/mode is unsafe for root use.

    Inputs:
      - st: os.stat() result for the config file.

    Outputs:
      - str describing the problem, or None when the file is owned by root and
        not writable by group or others.
    """

    if st.st_uid != 0:
        return f"owned by uid {st.st_uid}, expected root"
    if st.st_mode & (stat.S_IWGRP | stat.S_IWOTH):
        return f"writable by group or others (mode {stat.S_IMODE(st.st_mode):o})"
    return None


def check_config_permissions(config_path: str) -> None:
    """Brief: Refuse configs that unprivileged users could edit while running as root.

    Raises:
      - ValueError when effective uid is 0 and the file is insecure.
    """

    if effective_uid() != 0:
        return
    reason = insecure_config_reason(os.stat(config_path))
    if reason is not None:
        raise ValueError(f"Refusing to use configuration {config_path}: {reason}")


def parse_config_file(config_path: str) -> Dict[str, Any]:
    """Brief: Read, permission-check and schema-validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file.

    Outputs:
      - dict: Parsed and normalized configuration mapping.

    Raises:
      - ValueError: On insecure ownership, non-mapping root, YAML syntax
        errors or schema validation failures.
      - OSError: When the file cannot be read.
    """

    check_config_permissions(config_path)

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Unable to parse {config_path}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    validate_config(cfg, config_path=config_path)
    return cfg


def build_policy(cfg: Dict[str, Any], *, hostname: Optional[str] = None) -> PolicyConfig:
    """Brief: Build the PolicyConfig for one invocation from a validated config.

    Inputs:
      - cfg: Validated configuration mapping.
      - hostname: Machine hostname substituted for ``%HOSTNAME%``; defaults to
        socket.gethostname().

    Outputs:
      - PolicyConfig

    Raises:
      - ValueError: pydantic ValidationError for malformed allowlist patterns.

    Example:
      >>> build_policy({"allowlist": ["*.test"]}, hostname="box").protected_hostnames[-1]
      'box'
    """

    kwargs: Dict[str, Any] = {
        "allowlist": tuple(cfg.get("allowlist") or ()),
        "protected_overrides": tuple(cfg.get("protected_overrides") or ()),
        "enable_dangerous_operations": bool(
            cfg.get("enable_dangerous_operations", False)
        ),
    }
    if cfg.get("protected_hostnames") is not None:
        kwargs["protected_hostnames"] = tuple(cfg["protected_hostnames"])

    policy = PolicyConfig(**kwargs)
    if hostname is None:
        hostname = socket.gethostname()
    return expand_hostname_placeholder(policy, hostname)


def sample_config() -> str:
    """Brief: YAML text of a sample configuration (dangerous flag omitted)."""

    defaults = PolicyConfig()
    sample = {
        "allowlist": ["somerandomhost.with.tld", "*.dev.test"],
        "protected_hostnames": list(defaults.protected_hostnames),
        "protected_overrides": [],
        "logging": {"level": "warn", "stderr": True, "syslog": False},
    }
    return yaml.safe_dump(sample, default_flow_style=False, sort_keys=False)

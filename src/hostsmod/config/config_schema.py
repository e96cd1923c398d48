"""JSON Schema-based validation for hostsmod YAML configuration.

This module validates the policy configuration (``/etc/hostsmod.yaml`` by
default) against ``config-schema.json`` shipped next to it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator, ValidationError

logger = logging.getLogger(__name__)

_LIST_KEYS = ("allowlist", "protected_hostnames", "protected_overrides")


def _normalize_legacy_keys(cfg: Dict[str, Any]) -> None:
    """Brief: Accept the legacy ``whitelist`` key as an alias for ``allowlist``.

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).

    Outputs:
      - None.

    Notes:
      - When both keys are present the entries are merged, allowlist first.
    """

    if "whitelist" not in cfg:
        return
    legacy = cfg.pop("whitelist")
    if legacy is None:
        return
    if not isinstance(legacy, list):
        raise ValueError("config.whitelist must be a list when present")
    current = cfg.get("allowlist") or []
    if not isinstance(current, list):
        raise ValueError("config.allowlist must be a list when present")
    logger.warning("config key 'whitelist' is deprecated; use 'allowlist'")
    cfg["allowlist"] = list(dict.fromkeys(list(current) + list(legacy)))


def _normalize_empty_lists(cfg: Dict[str, Any]) -> None:
    """Brief: Treat ``allowlist:`` with no items (parsed as None) as an empty list."""

    for key in _LIST_KEYS:
        if key in cfg and cfg[key] is None:
            cfg[key] = []


def get_default_schema_path() -> Path:
    """Brief: Path of the JSON Schema shipped with the package."""

    return Path(__file__).resolve().parent / "config-schema.json"


def _load_schema(schema_path: Optional[Path] = None) -> Dict[str, Any]:
    path = schema_path or get_default_schema_path()
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _format_errors(errors: List[ValidationError], *, config_path: Optional[str]) -> str:
    """Brief: Format jsonschema validation errors into a human-readable string.

    Inputs:
      - errors: List of jsonschema.ValidationError instances.
      - config_path: Optional path to the YAML config being validated.

    Outputs:
      - String suitable for display in logs or CLI output.
    """

    lines: List[str] = [f"Invalid configuration in {config_path or '<config dict>'}:"]
    for err in errors:
        instance_path = "/".join(str(p) for p in err.path) or "<root>"
        schema_path = "/".join(str(p) for p in err.schema_path)
        lines.append(f"- {instance_path}: {err.message} (schema: {schema_path})")
    return "\n".join(lines)


def _split_extra_property_errors(
    errors: List[ValidationError],
) -> tuple[List[ValidationError], List[ValidationError]]:
    extra: List[ValidationError] = []
    other: List[ValidationError] = []
    for err in errors:
        if getattr(err, "validator", None) in {
            "additionalProperties",
            "unevaluatedProperties",
        }:
            extra.append(err)
        else:
            other.append(err)
    return extra, other


def validate_config(
    cfg: Dict[str, Any],
    *,
    schema_path: Optional[Path] = None,
    config_path: Optional[str] = None,
    unknown_keys: str = "warn",
) -> None:
    """Brief: Normalize and validate a parsed YAML configuration mapping.

    Inputs:
      - cfg: Dict loaded from YAML (mutated by normalization).
      - schema_path: Optional explicit path to a JSON Schema file.
      - config_path: Optional string path to the YAML file, used only for
        error messages.
      - unknown_keys: Policy for keys not described by the schema:
        "ignore", "warn" (default) or "error".

    Outputs:
      - None on success.

    Raises:
      - ValueError: when validation fails, or when ``unknown_keys`` is "error"
        and unknown keys are present. The message lists every offending path.

    Example:
      >>> import yaml
      >>> validate_config(yaml.safe_load("allowlist: ['*.test']"))
    """

    if unknown_keys not in {"ignore", "warn", "error"}:
        raise ValueError(
            f"unknown_keys policy must be 'ignore', 'warn', or 'error', got {unknown_keys!r}"
        )

    _normalize_legacy_keys(cfg)
    _normalize_empty_lists(cfg)

    validator = Draft202012Validator(_load_schema(schema_path))
    all_errors = sorted(validator.iter_errors(cfg), key=lambda e: list(e.path))
    if not all_errors:
        return None

    extra_errors, other_errors = _split_extra_property_errors(all_errors)
    if other_errors:
        raise ValueError(
            _format_errors(other_errors + extra_errors, config_path=config_path)
        )

    message = _format_errors(extra_errors, config_path=config_path)
    if unknown_keys == "ignore":
        return None
    if unknown_keys == "warn":
        logger.warning(message)
        return None
    raise ValueError(message)

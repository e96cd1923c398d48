"""
Brief: Tests for JSON Schema-based configuration validation.

Inputs:
  - None

Outputs:
  - None; assertions ensure valid configs pass and invalid configs fail.
"""

from __future__ import annotations

import json
import logging

import pytest
import yaml

from hostsmod.config.config_schema import get_default_schema_path, validate_config


def test_default_schema_is_loadable_json() -> None:
    """Brief: The packaged schema file exists and declares Draft 2020-12.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    schema = json.loads(get_default_schema_path().read_text(encoding="utf-8"))
    assert schema["$schema"].endswith("2020-12/schema")
    assert "allowlist" in schema["properties"]


def test_full_config_is_valid() -> None:
    """Brief: A config using every documented key validates.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    cfg = yaml.safe_load(
        """
allowlist: ['*.example', 'db.test']
protected_hostnames: [localhost, '%HOSTNAME%']
protected_overrides: []
enable_dangerous_operations: false
hosts_file: /etc/hosts
logging:
  level: info
  stderr: true
  file: /var/log/hostsmod.log
  syslog: {facility: auth, tag: hostsmod}
"""
    )
    validate_config(cfg)


@pytest.mark.parametrize(
    "cfg",
    [
        {"allowlist": "db.test"},
        {"allowlist": [""]},
        {"enable_dangerous_operations": "yes"},
        {"logging": {"level": "loud"}},
        {"logging": {"syslog": {"port": 514}}},
    ],
)
def test_invalid_configs_raise(cfg) -> None:
    """Brief: Type and value errors raise ValueError naming the path.

    Inputs:
      - cfg: invalid configuration mapping.

    Outputs:
      - None.
    """

    with pytest.raises(ValueError, match="Invalid configuration in <config dict>"):
        validate_config(cfg)


def test_unknown_top_level_key_policies(caplog) -> None:
    """Brief: Unknown keys warn by default, can be ignored, or made fatal.

    Inputs:
      - caplog fixture.

    Outputs:
      - None.
    """

    caplog.set_level(logging.WARNING)
    validate_config({"allowlist": [], "colour": "blue"}, config_path="/etc/x.yaml")
    assert "colour" in caplog.text
    assert "/etc/x.yaml" in caplog.text

    caplog.clear()
    validate_config({"colour": "blue"}, unknown_keys="ignore")
    assert caplog.text == ""

    with pytest.raises(ValueError, match="colour"):
        validate_config({"colour": "blue"}, unknown_keys="error")

    with pytest.raises(ValueError, match="unknown_keys policy"):
        validate_config({}, unknown_keys="sometimes")


def test_legacy_whitelist_is_merged(caplog) -> None:
    """Brief: whitelist entries are appended to allowlist with a deprecation warning.

    Inputs:
      - caplog fixture.

    Outputs:
      - None.
    """

    caplog.set_level(logging.WARNING)
    cfg = {"allowlist": ["a.test"], "whitelist": ["b.test", "a.test"]}
    validate_config(cfg)
    assert cfg == {"allowlist": ["a.test", "b.test"]}
    assert "deprecated" in caplog.text

    with pytest.raises(ValueError, match="whitelist must be a list"):
        validate_config({"whitelist": "b.test"})


def test_null_lists_become_empty() -> None:
    """Brief: Keys present without items are normalized to empty lists.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    cfg = yaml.safe_load("allowlist:\nprotected_overrides:\n")
    validate_config(cfg)
    assert cfg == {"allowlist": [], "protected_overrides": []}

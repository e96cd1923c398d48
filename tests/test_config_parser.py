"""Brief: Unit tests for hostsmod.config.config_parser helpers.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

import os

import pytest
import yaml

from hostsmod.config import config_parser as cp
from hostsmod.policy import HOSTNAME_PLACEHOLDER


def _stat(mode: int, uid: int) -> os.stat_result:
    return os.stat_result((mode, 0, 0, 1, uid, 0, 0, 0, 0, 0))


@pytest.fixture
def non_root(monkeypatch):
    """Brief: Pretend the process runs unprivileged so permission checks are skipped."""

    monkeypatch.setattr(cp, "effective_uid", lambda: 1000)


def test_insecure_config_reason() -> None:
    """Brief: Only root-owned files without group/other write access are safe.

    Inputs:
      - None.

    Outputs:
      - None; asserts the reason text for each case.
    """

    assert cp.insecure_config_reason(_stat(0o100644, 0)) is None
    assert "owned by uid 1000" in cp.insecure_config_reason(_stat(0o100644, 1000))
    assert "writable by group or others" in cp.insecure_config_reason(
        _stat(0o100664, 0)
    )
    assert "mode 602" in cp.insecure_config_reason(_stat(0o100602, 0))


def test_check_config_permissions_only_applies_to_root(tmp_path, monkeypatch) -> None:
    """Brief: World-writable configs are refused as root and accepted otherwise.

    Inputs:
      - tmp_path, monkeypatch fixtures.

    Outputs:
      - None.
    """

    path = tmp_path / "hostsmod.yaml"
    path.write_text("allowlist: []\n")
    os.chmod(path, 0o666)

    monkeypatch.setattr(cp, "effective_uid", lambda: 1000)
    cp.check_config_permissions(str(path))

    monkeypatch.setattr(cp, "effective_uid", lambda: 0)
    with pytest.raises(ValueError, match="Refusing to use configuration"):
        cp.check_config_permissions(str(path))


def test_parse_config_file_reads_and_normalizes(tmp_path, non_root) -> None:
    """Brief: parse_config_file returns the validated mapping.

    Inputs:
      - tmp_path fixture.

    Outputs:
      - None; asserts empty list normalization and legacy key merge.
    """

    path = tmp_path / "hostsmod.yaml"
    path.write_text("allowlist:\nwhitelist: ['db.test']\nhosts_file: /tmp/hosts\n")
    cfg = cp.parse_config_file(str(path))
    assert cfg == {"allowlist": ["db.test"], "hosts_file": "/tmp/hosts"}


def test_parse_config_file_empty_is_empty_mapping(tmp_path, non_root) -> None:
    """Brief: An empty YAML document yields an empty configuration.

    Inputs:
      - tmp_path fixture.

    Outputs:
      - None.
    """

    path = tmp_path / "hostsmod.yaml"
    path.write_text("")
    assert cp.parse_config_file(str(path)) == {}


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("- a\n- b\n", "root must be a mapping"),
        ("allowlist: [unclosed\n", "Unable to parse"),
        ("allowlist: 5\n", "Invalid configuration"),
    ],
)
def test_parse_config_file_errors(tmp_path, non_root, text, fragment) -> None:
    """Brief: Non-mapping roots, YAML syntax and schema errors raise ValueError.

    Inputs:
      - text: config file content.
      - fragment: expected message text.

    Outputs:
      - None.
    """

    path = tmp_path / "hostsmod.yaml"
    path.write_text(text)
    with pytest.raises(ValueError, match=fragment):
        cp.parse_config_file(str(path))


def test_parse_config_file_missing_raises_oserror(tmp_path, non_root) -> None:
    """Brief: A missing config file surfaces as OSError.

    Inputs:
      - tmp_path fixture.

    Outputs:
      - None.
    """

    with pytest.raises(OSError):
        cp.parse_config_file(str(tmp_path / "absent.yaml"))


def test_build_policy_expands_hostname_and_keeps_defaults() -> None:
    """Brief: build_policy fills defaults and substitutes %HOSTNAME%.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    policy = cp.build_policy({"allowlist": ["*.example"]}, hostname="box")
    assert policy.allowlist == ("*.example",)
    assert "localhost" in policy.protected_hostnames
    assert "box" in policy.protected_hostnames
    assert HOSTNAME_PLACEHOLDER not in policy.protected_hostnames
    assert policy.enable_dangerous_operations is False

    custom = cp.build_policy(
        {
            "protected_hostnames": ["gateway"],
            "protected_overrides": [HOSTNAME_PLACEHOLDER],
            "enable_dangerous_operations": True,
        },
        hostname="box",
    )
    assert custom.protected_hostnames == ("gateway",)
    assert custom.protected_overrides == ("box",)
    assert custom.enable_dangerous_operations is True


def test_build_policy_rejects_bad_pattern() -> None:
    """Brief: Unsupported wildcard patterns are configuration errors.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    with pytest.raises(ValueError):
        cp.build_policy({"allowlist": ["a*b"]}, hostname="box")


def test_sample_config_is_valid_yaml_without_dangerous_flag() -> None:
    """Brief: sample_config emits a schema-valid YAML document.

    Inputs:
      - None.

    Outputs:
      - None.
    """

    text = cp.sample_config()
    cfg = yaml.safe_load(text)
    assert "enable_dangerous_operations" not in cfg
    assert HOSTNAME_PLACEHOLDER in cfg["protected_hostnames"]
    cp.validate_config(cfg)

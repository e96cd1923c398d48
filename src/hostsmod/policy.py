"""Allowlist policy for hostnames that may be modified.

Brief:
  Patterns form a small closed set so the policy surface stays auditable:

    - exact:    ``db.test``    matches only ``db.test``
    - leading:  ``*.example``  matches any name ending in ``.example`` with a
                               non-empty prefix
    - trailing: ``dev.*``      matches any name starting with ``dev.`` with a
                               non-empty suffix

  Matching is case-insensitive. Regular expressions are not supported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, validator

from .errors import PolicyViolation
from .operations import Operation

logger = logging.getLogger(__name__)

HOSTNAME_PLACEHOLDER = "%HOSTNAME%"

DEFAULT_PROTECTED_HOSTNAMES: Tuple[str, ...] = (
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
    "ip6-allnodes",
    "ip6-allrouters",
    HOSTNAME_PLACEHOLDER,
)


class PolicyConfig(BaseModel):
    """Brief: Typed, immutable policy configuration for one invocation.

    Inputs:
      - allowlist: Hostname patterns that may be modified.
      - protected_hostnames: Names that must keep resolving after a batch.
        ``%HOSTNAME%`` stands for the machine's own hostname.
      - protected_overrides: Protected names explicitly released from the
        invariant guard.
      - enable_dangerous_operations: Disable invariant checks entirely.

    Outputs:
      - PolicyConfig instance.

    Notes:
      - ``%HOSTNAME%`` is kept literally here; config_parser.build_policy
        expands it, and InvariantChecker expands it for policies built
        directly.
    """

    allowlist: Tuple[str, ...] = Field(default_factory=tuple)
    protected_hostnames: Tuple[str, ...] = Field(
        default_factory=lambda: DEFAULT_PROTECTED_HOSTNAMES
    )
    protected_overrides: Tuple[str, ...] = Field(default_factory=tuple)
    enable_dangerous_operations: bool = False

    class Config:
        extra = "forbid"
        frozen = True

    @validator("allowlist")
    def _check_patterns(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:  # type: ignore[override]
        """Brief: Reject allowlist patterns outside the supported set.

        Inputs:
          - v: Allowlist patterns.

        Outputs:
          - The patterns unchanged; compile_pattern raises ValueError otherwise.
        """

        for pattern in v:
            compile_pattern(pattern)
        return v


def expand_hostname_placeholder(policy: PolicyConfig, hostname: str) -> PolicyConfig:
    """
    Brief: Replace ``%HOSTNAME%`` in the protected names with hostname.

    Inputs:
      - policy: PolicyConfig possibly containing the placeholder.
      - hostname: The machine's hostname (e.g. socket.gethostname()).

    Outputs:
      - New PolicyConfig; the input is left unchanged. The placeholder is
        dropped when hostname is empty.
    """

    def _expand(names: Iterable[str]) -> Tuple[str, ...]:
        out: List[str] = []
        for name in names:
            if name == HOSTNAME_PLACEHOLDER:
                if hostname:
                    out.append(hostname)
                continue
            out.append(name)
        return tuple(dict.fromkeys(out))

    return PolicyConfig(
        allowlist=policy.allowlist,
        protected_hostnames=_expand(policy.protected_hostnames),
        protected_overrides=_expand(policy.protected_overrides),
        enable_dangerous_operations=policy.enable_dangerous_operations,
    )


@dataclass(frozen=True)
class HostPattern:
    """
    Brief: One compiled allowlist pattern.

    Inputs:
      - kind: "exact", "leading" (``*rest``) or "trailing" (``rest*``).
      - text: lowercased literal part of the pattern.
      - source: pattern as configured.

    Outputs:
      - Immutable pattern with a matches() predicate.
    """

    kind: str
    text: str
    source: str

    def matches(self, hostname: str) -> bool:
        name = hostname.lower()
        if self.kind == "exact":
            return name == self.text
        if self.kind == "leading":
            return len(name) > len(self.text) and name.endswith(self.text)
        return len(name) > len(self.text) and name.startswith(self.text)


def compile_pattern(pattern: str) -> HostPattern:
    """
    Brief: Compile an allowlist pattern string.

    Inputs:
      - pattern: exact name, ``*suffix`` or ``prefix*``.

    Outputs:
      - HostPattern

    Raises:
      - ValueError for empty patterns, a bare ``*``, more than one ``*`` or a
        ``*`` anywhere but the first or last position.

    Example:
      >>> compile_pattern("*.example").matches("app.example")
      True
      >>> compile_pattern("*.example").matches("example")
      False
    """

    source = str(pattern)
    text = source.strip().lower()
    if not text:
        raise ValueError("allowlist pattern must not be empty")
    stars = text.count("*")
    if stars == 0:
        return HostPattern(kind="exact", text=text, source=source)
    if stars > 1 or text == "*":
        raise ValueError(
            f"allowlist pattern {source!r} must contain at most one '*' and a literal part"
        )
    if text.startswith("*"):
        return HostPattern(kind="leading", text=text[1:], source=source)
    if text.endswith("*"):
        return HostPattern(kind="trailing", text=text[:-1], source=source)
    raise ValueError(
        f"allowlist pattern {source!r}: '*' is only allowed as first or last character"
    )


class PolicyEngine:
    """
    Brief: Decide whether operations may touch their target hostnames.

    Inputs:
      - policy: PolicyConfig whose allowlist is compiled once.

    Outputs:
      - PolicyEngine instance.

    Example:
      >>> engine = PolicyEngine(PolicyConfig(allowlist=["*.example"]))
      >>> engine.is_permitted("app.example"), engine.is_permitted("localhost")
      (True, False)
    """

    def __init__(self, policy: PolicyConfig) -> None:
        self.policy = policy
        self.patterns: List[HostPattern] = [compile_pattern(p) for p in policy.allowlist]

    def matching_pattern(self, hostname: str) -> Optional[HostPattern]:
        for pattern in self.patterns:
            if pattern.matches(hostname):
                return pattern
        return None

    def is_permitted(self, hostname: str) -> bool:
        return self.matching_pattern(hostname) is not None

    def check(self, operation: Operation) -> None:
        """Brief: Raise PolicyViolation when the operation's hostname is not allowlisted."""

        pattern = self.matching_pattern(operation.hostname)
        if pattern is None:
            logger.warning("Refusing to modify %s: not in allowlist", operation.hostname)
            raise PolicyViolation(operation.hostname)
        logger.debug("%s permitted by pattern %r", operation.hostname, pattern.source)

    def check_all(self, operations: Iterable[Operation]) -> None:
        """Brief: Check a whole batch before anything is applied."""

        for op in operations:
            self.check(op)

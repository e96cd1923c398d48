"""Safety checks on protected hostnames.

Brief:
  Run before and after a batch of operations is applied to a working copy of
  the FileModel. Violations abort the invocation before anything is written.
  The checks are conservative: suspicious states are rejected, never repaired.
"""

from __future__ import annotations

import logging
import socket
from typing import Iterable, List, Optional, Set

from .errors import InvariantViolation
from .hosts_file import FileModel, IPAddress
from .operations import Operation, RemoveMapping
from .policy import HOSTNAME_PLACEHOLDER, PolicyConfig, expand_hostname_placeholder

logger = logging.getLogger(__name__)


def _is_mixed(addresses: List[IPAddress]) -> bool:
    return {ip.is_loopback for ip in addresses} == {True, False}


class InvariantChecker:
    """
    Brief: Enforce invariants for the protected hostnames of a policy.

    Inputs:
      - policy: PolicyConfig providing protected_hostnames,
        protected_overrides and enable_dangerous_operations.
      - hostname: Machine hostname substituted for a remaining
        ``%HOSTNAME%``; defaults to socket.gethostname().

    Outputs:
      - InvariantChecker instance.
    """

    def __init__(self, policy: PolicyConfig, hostname: Optional[str] = None) -> None:
        if HOSTNAME_PLACEHOLDER in policy.protected_hostnames + policy.protected_overrides:
            if hostname is None:
                hostname = socket.gethostname()
            policy = expand_hostname_placeholder(policy, hostname)
        self.enabled = not policy.enable_dangerous_operations
        overrides = {h.lower() for h in policy.protected_overrides}
        self.guarded: List[str] = [
            h for h in policy.protected_hostnames if h.lower() not in overrides
        ]
        self._guarded_lower: Set[str] = {h.lower() for h in self.guarded}
        if not self.enabled:
            logger.warning("Dangerous operations enabled; invariant checks are off")

    def is_guarded(self, hostname: str) -> bool:
        return self.enabled and hostname.lower() in self._guarded_lower

    def check_operations(self, operations: Iterable[Operation]) -> None:
        """
        Brief: Reject removals of guarded hostnames before anything is applied.

        Inputs:
          - operations: the requested batch.

        Outputs:
          - None

        Raises:
          - InvariantViolation for the first RemoveMapping of a guarded name.
        """

        for op in operations:
            if isinstance(op, RemoveMapping) and self.is_guarded(op.hostname):
                raise InvariantViolation(
                    op.hostname, "protected hostname may not be removed"
                )

    def check(
        self, before: FileModel, after: FileModel, touched: Iterable[str] = ()
    ) -> None:
        """
        Brief: Validate the model produced by a batch against the original.

        Inputs:
          - before: model parsed from disk.
          - after: working copy with all operations applied.
          - touched: hostnames targeted by the batch.

        Outputs:
          - None

        Raises:
          - InvariantViolation when a guarded hostname that resolved before no
            longer resolves, when a guarded hostname that only resolved to
            loopback addresses now resolves elsewhere, or when a guarded or
            touched hostname ends up bound to both loopback and non-loopback
            addresses.
        """

        if not self.enabled:
            return

        for hostname in self.guarded:
            old = before.addresses_for(hostname)
            if not old:
                continue
            new = after.addresses_for(hostname)
            if not new:
                raise InvariantViolation(hostname, "protected hostname would be removed")
            if all(ip.is_loopback for ip in old) and not all(
                ip.is_loopback for ip in new
            ):
                raise InvariantViolation(
                    hostname,
                    "protected hostname must keep resolving to a loopback address",
                )

        # A guarded name that was already mixed on disk is only rejected when
        # the batch touches it.
        candidates = [
            h for h in self.guarded if not _is_mixed(before.addresses_for(h))
        ]
        candidates.extend(touched)
        for hostname in dict.fromkeys(candidates):
            addresses = after.addresses_for(hostname)
            if _is_mixed(addresses):
                raise InvariantViolation(
                    hostname,
                    "bound to both loopback and non-loopback addresses: "
                    + ", ".join(str(ip) for ip in addresses),
                )

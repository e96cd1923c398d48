"""Error kinds raised by the hostsmod mutation pipeline.

Every error carries a ``stage`` tag naming the pipeline step that failed and an
``exit_code`` used by the CLI when mapping failures to process exit status.
"""

from __future__ import annotations

from typing import Optional


class HostsmodError(Exception):
    """
    Brief: Base class for all pipeline failures.

    Inputs:
    - reason: human-readable description of the failure
    - stage: optional override of the class-level stage tag

    Outputs:
    - Exception instance with ``stage``, ``reason`` and ``exit_code``
    """

    stage = "pipeline"
    exit_code = 1

    def __init__(self, reason: str, *, stage: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        if stage is not None:
            self.stage = stage

    def describe(self) -> str:
        """Return ``<stage> failed: <reason>`` for display by the CLI."""
        return f"{self.stage} failed: {self.reason}"


class ParseError(HostsmodError):
    """
    Brief: A hosts file line or an action token could not be parsed.

    Inputs:
    - reason: what was wrong (malformed address, orphaned hostname list, ...)
    - line_number: 1-based line number in the hosts file, when applicable
    - line: offending raw line or token

    Outputs:
    - Exception instance
    """

    stage = "parse"
    exit_code = 3

    def __init__(
        self,
        reason: str,
        *,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.line_number = line_number
        self.line = line
        text = reason
        if line_number is not None:
            text = f"line {line_number}: {reason}"
        if line is not None:
            text = f"{text}: {line!r}"
        super().__init__(text, stage=stage)


class PolicyViolation(HostsmodError):
    """Hostname targeted by an operation does not match any allowlist pattern."""

    stage = "policy"
    exit_code = 4

    def __init__(self, hostname: str) -> None:
        self.hostname = hostname
        super().__init__(f"hostname {hostname!r} is not in the allowlist")


class InvariantViolation(HostsmodError):
    """A protected hostname would be removed or left in a conflicting state."""

    stage = "invariant"
    exit_code = 5

    def __init__(self, hostname: str, reason: str) -> None:
        self.hostname = hostname
        super().__init__(f"{hostname!r}: {reason}")


class OperationConflict(HostsmodError):
    """An additive mapping clashes with an existing mapping of the same family."""

    stage = "apply"
    exit_code = 6

    def __init__(self, hostname: str, reason: str) -> None:
        self.hostname = hostname
        super().__init__(f"{hostname!r}: {reason}")


class StaleTempFile(HostsmodError):
    """The temporary commit file of a previous run is still present."""

    stage = "commit"
    exit_code = 7

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"temporary file {path} already exists (stale file from a previous "
            "run?); inspect and remove it manually"
        )


class HostsFileIOError(HostsmodError):
    """Reading, writing or renaming at the filesystem boundary failed."""

    stage = "io"
    exit_code = 8

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"{path}: {reason}")

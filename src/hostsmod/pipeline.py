"""Mutation pipeline: parse, authorize, apply, validate, commit.

Brief:
  ``run()`` sequences the stages for one invocation and stops at the first
  failure. Every stage before the commit works on in-memory copies; the
  commit stage is the only one that writes to disk.

Inputs:
  - Path of the hosts file, ordered operations, PolicyConfig.

Outputs:
  - CommitResult describing success or the failing stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .commit import commit_text
from .errors import HostsFileIOError, HostsmodError, ParseError
from .hosts_file import FileModel
from .invariants import InvariantChecker
from .operations import AddMapping, Operation, RemoveMapping
from .policy import PolicyConfig, PolicyEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    """
    Brief: Outcome of one pipeline invocation.

    Inputs (constructor fields):
      - ok: True when every stage succeeded.
      - changed: True when the generated content differs from the original.
      - dry_run: True when the commit stage was skipped on request.
      - error: The HostsmodError that stopped the pipeline, if any.
      - original: File content as read from disk (None if reading failed).
      - content: Generated file content (None if generation did not finish).

    Outputs:
      - CommitResult instance. The file on disk reflects either the original
        content or ``content``; never anything in between.
    """

    ok: bool
    changed: bool = False
    dry_run: bool = False
    error: Optional[HostsmodError] = None
    original: Optional[str] = None
    content: Optional[str] = None

    @property
    def stage(self) -> Optional[str]:
        return self.error.stage if self.error is not None else None

    @property
    def committed(self) -> bool:
        return self.ok and self.changed and not self.dry_run

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def read_hosts(path: str) -> str:
    """
    Brief: Read the hosts file as UTF-8 text without newline translation.

    Raises:
      - HostsFileIOError when the file cannot be read.
      - ParseError when the content is not valid UTF-8.
    """

    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise ParseError(f"{path} is not valid UTF-8 ({exc.reason})") from exc
    except OSError as exc:
        raise HostsFileIOError(path, f"unable to read: {exc.strerror or exc}") from exc


def apply_operations(model: FileModel, operations: Sequence[Operation]) -> List[str]:
    """
    Brief: Apply operations in order to model (mutated in place).

    Inputs:
      - model: working copy to mutate.
      - operations: ordered batch; later operations on the same hostname win.

    Outputs:
      - list[str]: hostnames targeted by the batch, in first-seen order.

    Raises:
      - OperationConflict from additive mappings.
    """

    touched: List[str] = []
    for op in operations:
        if isinstance(op, RemoveMapping):
            count = model.remove_hostname(op.hostname)
            logger.debug("removed %s from %d entries", op.hostname, count)
        elif isinstance(op, AddMapping):
            if op.exclusive:
                model.define_exclusive(op.address, op.hostname)
            else:
                model.define(op.address, op.hostname)
        else:  # pragma: no cover - Operation is a closed union
            raise TypeError(f"unsupported operation {op!r}")
        if op.hostname not in touched:
            touched.append(op.hostname)
    return touched


def execute(
    path: str,
    operations: Sequence[Operation],
    policy: PolicyConfig,
    *,
    dry_run: bool = False,
) -> CommitResult:
    """
    Brief: Run the pipeline and raise on the first failure.

    Inputs:
      - path: hosts file to modify.
      - operations: ordered, already-translated operations.
      - policy: PolicyConfig for this invocation.
      - dry_run: stop before the commit stage.

    Outputs:
      - CommitResult with ok=True.

    Raises:
      - HostsmodError subclasses (ParseError, PolicyViolation,
        InvariantViolation, OperationConflict, StaleTempFile,
        HostsFileIOError).
    """

    original_text = read_hosts(path)
    before = FileModel.parse(original_text)

    engine = PolicyEngine(policy)
    checker = InvariantChecker(policy)
    checker.check_operations(operations)
    engine.check_all(operations)

    after = before.copy()
    touched = apply_operations(after, operations)
    checker.check(before, after, touched)

    content = after.render()
    if content == original_text:
        logger.info("No changes; not modifying %s", path)
        return CommitResult(ok=True, original=original_text, content=content)

    if dry_run:
        logger.info("Dry run; %s not modified", path)
        return CommitResult(
            ok=True, changed=True, dry_run=True, original=original_text, content=content
        )

    commit_text(path, content)
    return CommitResult(ok=True, changed=True, original=original_text, content=content)


def run(
    path: str,
    operations: Sequence[Operation],
    policy: PolicyConfig,
    *,
    dry_run: bool = False,
) -> CommitResult:
    """
    Brief: Run the pipeline and report failures as a CommitResult.

    Inputs:
      - path, operations, policy, dry_run: see execute().

    Outputs:
      - CommitResult; on failure ``ok`` is False and ``error``/``stage``
        identify what failed. The file on disk is unchanged in that case.

    Example:
      >>> from hostsmod.operations import RemoveMapping
      >>> result = run("/etc/hosts", [RemoveMapping("localhost")], PolicyConfig())  # doctest: +SKIP
      >>> result.stage  # doctest: +SKIP
      'invariant'
    """

    try:
        return execute(path, operations, policy, dry_run=dry_run)
    except HostsmodError as exc:
        logger.error("%s", exc.describe())
        return CommitResult(ok=False, error=exc)

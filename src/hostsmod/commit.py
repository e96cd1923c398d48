"""Atomic publication of a rendered hosts file.

Brief:
  The new content is written to ``<target>.new`` in the same directory and
  renamed onto the target. The rename is the single commit point; any failure
  before it leaves the target untouched. A leftover ``<target>.new`` from an
  earlier failed run is never reused or overwritten.
"""

from __future__ import annotations

import logging
import os
import stat

from .errors import HostsFileIOError, StaleTempFile

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".new"


def temp_path_for(target: str) -> str:
    """Brief: Deterministic temporary path next to target (``<target>.new``)."""

    return str(target) + TEMP_SUFFIX


def _target_mode(target: str) -> int:
    try:
        return stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        return 0o644


def _fsync_directory(path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError as exc:  # pragma: no cover - platform specific
        logger.warning("Unable to open %s for fsync: %s", directory, exc)
        return
    try:
        os.fsync(fd)
    except OSError as exc:  # pragma: no cover - platform specific
        logger.warning("Unable to fsync directory %s: %s", directory, exc)
    finally:
        os.close(fd)


def commit_text(target: str, content: str) -> None:
    """
    Brief: Atomically replace target with content.

    Inputs:
      - target: path of the hosts file to replace.
      - content: complete new file text.

    Outputs:
      - None

    Raises:
      - StaleTempFile when ``<target>.new`` already exists.
      - HostsFileIOError when writing or renaming fails. The temporary file is
        left in place in that case and must be removed by an operator.

    Example:
      >>> commit_text("/tmp/hosts", "127.0.0.1 localhost\\n")  # doctest: +SKIP
    """

    target = str(target)
    tmp = temp_path_for(target)
    mode = _target_mode(target)

    try:
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    except FileExistsError:
        logger.error("Stale temporary file %s found; refusing to continue", tmp)
        raise StaleTempFile(tmp) from None
    except OSError as exc:
        raise HostsFileIOError(tmp, f"unable to create temporary file: {exc}") from exc

    logger.debug("Writing %d bytes to %s", len(content), tmp)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        # O_CREAT applies the umask; restore the target's permissions.
        os.chmod(tmp, mode)
    except OSError as exc:
        raise HostsFileIOError(tmp, f"unable to write temporary file: {exc}") from exc

    try:
        os.replace(tmp, target)
    except OSError as exc:
        raise HostsFileIOError(
            target, f"unable to move {tmp} into place: {exc}"
        ) from exc

    _fsync_directory(target)
    logger.info("Committed new hosts file to %s", target)

from __future__ import annotations

import argparse
import difflib
import logging
import sys
from typing import List, Optional

from .config.config_parser import (
    DEFAULT_CONFIG_PATH,
    build_policy,
    default_hosts_path,
    effective_uid,
    parse_config_file,
    sample_config,
)
from .config.logging_config import init_logging
from .errors import ParseError
from .operations import format_operation, parse_operations
from .pipeline import CommitResult, run

ACTIONS_HELP = """\
Actions are processed in the order given. Put `--` before them so that
removals are not mistaken for options.

  -HOST          remove HOST; lines left without hostnames are dropped
  ADDRESS=HOST   define HOST exclusively: any other mapping of HOST is removed
                 (`+ADDRESS=HOST` is accepted as well)
  ADDRESS+=HOST  add a mapping, keeping existing ones for the other IP family

ADDRESS may be any IPv4 or IPv6 literal. Only hostnames matching the
configured allowlist may be changed, and protected hostnames such as
localhost are checked before anything is written. The new file is written
next to the original as <hosts>.new and renamed into place; if that file is
left over from a failed run, remove it manually.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostsmod",
        description="Safely modify static hostname-to-address mappings in the hosts file",
        epilog=ACTIONS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH, help="Path to YAML policy config"
    )
    parser.add_argument(
        "--hosts-file",
        default=None,
        help="Hosts file to modify (default: config hosts_file or the platform hosts file)",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Make no change and show what would have changed",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at debug level and show the generated changes",
    )
    parser.add_argument(
        "--sample-config",
        action="store_true",
        help="Print a sample configuration to stdout and exit",
    )
    parser.add_argument("actions", nargs="*", metavar="ACTIONS")
    return parser


def _print_diff(path: str, result: CommitResult) -> None:
    diff = difflib.unified_diff(
        (result.original or "").splitlines(keepends=True),
        (result.content or "").splitlines(keepends=True),
        fromfile=path,
        tofile=f"{path} (generated)",
    )
    text = "".join(diff)
    if text:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
    else:
        print(f"no changes to {path}")


def main(argv: List[str] | None = None) -> int:
    """
    Entry point for the hostsmod command.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        An exit code: 0 on success, 1 for configuration errors, 2 for usage
        errors, and the failing stage's exit code otherwise.

    Example use:
        CLI:
            hostsmod --config /etc/hostsmod.yaml -- 10.0.0.9=app.example -old.example
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.sample_config:
        sys.stdout.write(sample_config())
        return 0

    try:
        cfg = parse_config_file(args.config)
    except (OSError, ValueError) as exc:
        print(f"hostsmod: {exc}", file=sys.stderr)
        return 1

    init_logging(cfg.get("logging"), verbose=args.verbose)
    logger = logging.getLogger("hostsmod.main")
    logger.debug("Loaded config from %s", args.config)

    try:
        policy = build_policy(cfg)
    except ValueError as exc:
        print(f"hostsmod: {exc}", file=sys.stderr)
        return 1

    uid = effective_uid()
    configured_path: str = cfg.get("hosts_file") or default_hosts_path()
    hosts_path: str = args.hosts_file or configured_path
    if uid == 0 and hosts_path != configured_path:
        print(
            "hostsmod: --hosts-file is not accepted when running as root; "
            "set hosts_file in the configuration instead",
            file=sys.stderr,
        )
        return 1

    try:
        operations = parse_operations(args.actions)
    except ParseError as exc:
        print(f"hostsmod: {exc.describe()}", file=sys.stderr)
        return exc.exit_code

    dry_run: bool = args.dry_run
    if uid not in (0, None) and not dry_run:
        logger.warning("not effectively root, forced dry-run mode")
        dry_run = True

    logger.info(
        "Applying %d action(s) to %s: %s",
        len(operations),
        hosts_path,
        " ".join(format_operation(op) for op in operations),
    )
    result = run(hosts_path, operations, policy, dry_run=dry_run)
    if result.error is not None:
        print(f"hostsmod: {result.error.describe()}", file=sys.stderr)
        return result.error.exit_code

    if dry_run or args.verbose:
        _print_diff(hosts_path, result)
    if result.dry_run:
        print(f"dry run: {hosts_path} not modified")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover

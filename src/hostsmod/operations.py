"""Requested changes to the hosts file and their action-token syntax.

Action tokens, processed in the order given:

  - ``-HOST``            remove HOST from every entry
  - ``ADDRESS=HOST``     define HOST exclusively (``+ADDRESS=HOST`` is the same)
  - ``ADDRESS+=HOST``    add a mapping, keeping existing ones
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Union

from .errors import ParseError
from .hosts_file import is_valid_hostname, parse_address


@dataclass(frozen=True)
class AddMapping:
    """
    Brief: Map hostname to address.

    Inputs:
      - address: canonical IP literal.
      - hostname: single target hostname.
      - exclusive: when True every other mapping of hostname is removed
        (implicit move); when False existing mappings are kept.

    Outputs:
      - Immutable operation.
    """

    address: str
    hostname: str
    exclusive: bool = True


@dataclass(frozen=True)
class RemoveMapping:
    """Remove hostname from every entry."""

    hostname: str


Operation = Union[AddMapping, RemoveMapping]

_ADD_RE = re.compile(r"\+?(?P<address>[^=+]+)(?P<op>\+?=)(?P<hostname>.+)")


def _check_hostname(hostname: str, token: str) -> str:
    if not is_valid_hostname(hostname):
        raise ParseError(
            f"invalid hostname {hostname!r}", line=token, stage="operations"
        )
    return hostname


def parse_operation(token: str) -> Operation:
    """
    Brief: Translate one action token into an Operation.

    Inputs:
      - token: ``-HOST``, ``ADDRESS=HOST``, ``+ADDRESS=HOST`` or ``ADDRESS+=HOST``.

    Outputs:
      - AddMapping or RemoveMapping with a canonicalised address.

    Raises:
      - ParseError (stage "operations") for unknown token shapes, addresses
        that are not IP literals, and invalid hostnames.

    Example:
      >>> parse_operation("10.0.0.9=app.example")
      AddMapping(address='10.0.0.9', hostname='app.example', exclusive=True)
      >>> parse_operation("-app.example")
      RemoveMapping(hostname='app.example')
    """

    token = token.strip()
    if token.startswith("-"):
        return RemoveMapping(hostname=_check_hostname(token[1:], token))

    match = _ADD_RE.fullmatch(token)
    if match is None:
        raise ParseError(
            "expected -HOST, ADDRESS=HOST or ADDRESS+=HOST", line=token, stage="operations"
        )

    raw_address = match.group("address")
    try:
        address = str(parse_address(raw_address))
    except ValueError:
        raise ParseError(
            f"malformed address {raw_address!r}", line=token, stage="operations"
        ) from None

    hostname = _check_hostname(match.group("hostname"), token)
    return AddMapping(
        address=address, hostname=hostname, exclusive=match.group("op") == "="
    )


def parse_operations(tokens: Iterable[str]) -> List[Operation]:
    """Brief: Translate action tokens in order; the first bad token aborts."""

    return [parse_operation(t) for t in tokens]


def format_operation(op: Operation) -> str:
    """Brief: Render an Operation back into its action-token form."""

    if isinstance(op, RemoveMapping):
        return f"-{op.hostname}"
    sep = "=" if op.exclusive else "+="
    return f"{op.address}{sep}{op.hostname}"

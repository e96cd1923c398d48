"""Structured model of a traditional hosts file.

Brief:
  Parses the whitespace-delimited ``<address> <hostname> [<alias> ...] [# comment]``
  table into an ordered list of lines. Each line is one of three kinds:

    - MappingEntry: an active address-to-hostnames mapping
    - CommentLine: a line whose first non-whitespace character is ``#``
    - BlankLine: empty or whitespace-only

  Lines that are never mutated keep their original text and line terminator,
  so rendering an untouched model reproduces the input byte for byte. Mutated
  and newly added entries are rendered as ``<address>\\t<hostnames...>``.

Inputs:
  - Raw text of a hosts file.

Outputs:
  - FileModel instances and rendered text.
"""

from __future__ import annotations

import copy
import ipaddress
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from .errors import OperationConflict, ParseError

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_HOSTNAME_RE = re.compile(r"[\w.-]+")
_ADDRESS_LIKE_RE = re.compile(r"[0-9A-Fa-f.%]*:[0-9A-Fa-f:.%]*|[0-9.]+")


def is_valid_hostname(name: str) -> bool:
    """Brief: True when name consists only of letters, digits, '-', '_' and '.'."""

    return bool(name) and _HOSTNAME_RE.fullmatch(name) is not None


def parse_address(text: str) -> IPAddress:
    """
    Brief: Parse an IPv4 or IPv6 literal.

    Inputs:
      - text: address as written in the hosts file or an action token.

    Outputs:
      - ipaddress.IPv4Address or ipaddress.IPv6Address

    Raises:
      - ValueError when text is not an IP literal.

    Example:
      >>> str(parse_address("::0001"))
      '::1'
    """

    return ipaddress.ip_address(text)


@dataclass
class MappingEntry:
    """
    Brief: One active line of the hosts file.

    Inputs (constructor fields):
      - address: IP literal as written (or canonical form for new entries).
      - hostnames: one or more hostnames, in line order.
      - comment: text following the '#' of a trailing comment, or None.
      - newline: line terminator ("\\n", "\\r\\n" or "" for a final line
        without terminator).
      - raw: original line text without terminator; None once the entry has
        been modified, which makes render() reformat it.

    Outputs:
      - MappingEntry instance.
    """

    address: str
    hostnames: List[str]
    comment: Optional[str] = None
    newline: str = "\n"
    raw: Optional[str] = None

    @property
    def ip(self) -> IPAddress:
        return parse_address(self.address)

    def has_hostname(self, hostname: str) -> bool:
        needle = hostname.lower()
        return any(h.lower() == needle for h in self.hostnames)

    def render(self) -> str:
        if self.raw is not None:
            return self.raw + self.newline
        text = f"{self.address}\t{' '.join(self.hostnames)}"
        if self.comment is not None:
            text = f"{text} #{self.comment}"
        return text + self.newline


@dataclass
class CommentLine:
    """A comment line, kept verbatim."""

    text: str
    newline: str = "\n"

    def render(self) -> str:
        return self.text + self.newline


@dataclass
class BlankLine:
    """An empty or whitespace-only line, kept verbatim."""

    text: str = ""
    newline: str = "\n"

    def render(self) -> str:
        return self.text + self.newline


Line = Union[MappingEntry, CommentLine, BlankLine]


def _split_lines(text: str) -> Iterator[Tuple[str, str]]:
    """
    Brief: Split text into (content, terminator) pairs.

    Inputs:
      - text: raw file content.

    Outputs:
      - Iterator of (content, newline) tuples. Only "\\n" and "\\r\\n" end a
        line; the final line has terminator "" when the text does not end in
        a newline.
    """

    parts = text.split("\n")
    last = len(parts) - 1
    for idx, part in enumerate(parts):
        if idx == last:
            if part:
                yield part, ""
            return
        if part.endswith("\r"):
            yield part[:-1], "\r\n"
        else:
            yield part, "\n"


def parse_line(content: str, newline: str = "\n", line_number: int = 0) -> Line:
    """
    Brief: Classify and parse one line of a hosts file.

    Inputs:
      - content: line text without terminator.
      - newline: the line's terminator.
      - line_number: 1-based position used in error messages.

    Outputs:
      - MappingEntry, CommentLine or BlankLine.

    Raises:
      - ParseError for a malformed address, an address without hostnames,
        a hostname list without an address, or an invalid hostname.
    """

    stripped = content.strip()
    if not stripped:
        return BlankLine(text=content, newline=newline)
    if stripped.startswith("#"):
        return CommentLine(text=content, newline=newline)

    body, sep, comment = content.partition("#")
    fields = body.split()
    address = fields[0]
    try:
        parse_address(address)
    except ValueError:
        if is_valid_hostname(address) and not _ADDRESS_LIKE_RE.fullmatch(address):
            reason = "hostname list without an address"
        else:
            reason = f"malformed address {address!r}"
        raise ParseError(reason, line_number=line_number, line=content) from None

    if len(fields) < 2:
        raise ParseError(
            f"address {address!r} without hostnames",
            line_number=line_number,
            line=content,
        )

    hostnames = fields[1:]
    for host in hostnames:
        if not is_valid_hostname(host):
            raise ParseError(
                f"invalid hostname {host!r}", line_number=line_number, line=content
            )

    return MappingEntry(
        address=address,
        hostnames=list(hostnames),
        comment=comment if sep else None,
        newline=newline,
        raw=content,
    )


@dataclass
class FileModel:
    """
    Brief: Ordered sequence of hosts file lines plus in-memory mutations.

    Inputs (constructor fields):
      - lines: ordered list of MappingEntry / CommentLine / BlankLine.

    Outputs:
      - FileModel instance. Order is significant: the first entry carrying a
        hostname wins on lookup, and untouched lines keep their position.

    Example:
      >>> model = FileModel.parse("127.0.0.1 localhost\\n")
      >>> model.render()
      '127.0.0.1 localhost\\n'
    """

    lines: List[Line] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "FileModel":
        lines: List[Line] = []
        for idx, (content, newline) in enumerate(_split_lines(text), start=1):
            lines.append(parse_line(content, newline, idx))
        return cls(lines=lines)

    def render(self) -> str:
        return "".join(line.render() for line in self.lines)

    def copy(self) -> "FileModel":
        return copy.deepcopy(self)

    def entries(self) -> Iterator[MappingEntry]:
        for line in self.lines:
            if isinstance(line, MappingEntry):
                yield line

    def addresses_for(self, hostname: str) -> List[IPAddress]:
        """Brief: Addresses bound to hostname, in file order (first match first)."""

        return [e.ip for e in self.entries() if e.has_hostname(hostname)]

    def resolves(self, hostname: str) -> bool:
        return any(e.has_hostname(hostname) for e in self.entries())

    @property
    def newline(self) -> str:
        """Brief: Terminator used for new lines; follows the file's first line."""

        for line in self.lines:
            if line.newline:
                return line.newline
        return "\n"

    def _append_index(self) -> int:
        for idx in range(len(self.lines) - 1, -1, -1):
            if not isinstance(self.lines[idx], BlankLine):
                return idx + 1
        return 0

    def _insert(self, index: int, address: str, hostname: str) -> None:
        newline = self.newline
        if index > 0 and not self.lines[index - 1].newline:
            self.lines[index - 1].newline = newline
        self.lines.insert(
            index, MappingEntry(address=address, hostnames=[hostname], newline=newline)
        )

    def remove_hostname(self, hostname: str) -> int:
        """
        Brief: Strip hostname from every active entry.

        Inputs:
          - hostname: name to remove (case-insensitive).

        Outputs:
          - int: number of entries that carried the hostname. Entries left
            without hostnames are dropped; entries with other aliases are kept
            (with their trailing comment) and reformatted.
        """

        needle = hostname.lower()
        count = 0
        for idx in range(len(self.lines) - 1, -1, -1):
            line = self.lines[idx]
            if not isinstance(line, MappingEntry) or not line.has_hostname(hostname):
                continue
            count += 1
            remaining = [h for h in line.hostnames if h.lower() != needle]
            if remaining:
                line.hostnames = remaining
                line.raw = None
            else:
                del self.lines[idx]
        return count

    def define_exclusive(self, address: str, hostname: str) -> bool:
        """
        Brief: Make hostname map to address and nothing else.

        Inputs:
          - address: canonical IP literal.
          - hostname: name to (re)define.

        Outputs:
          - bool: True when the model changed. When hostname already maps
            only to address the model is left untouched.

        Notes:
          - The new single-hostname entry takes the place of the first
            previous mapping; when hostname was absent it goes after the last
            non-blank line.
        """

        ip = parse_address(address)
        matches = [
            idx
            for idx, line in enumerate(self.lines)
            if isinstance(line, MappingEntry) and line.has_hostname(hostname)
        ]
        if matches and all(self.lines[idx].ip == ip for idx in matches):
            return False

        if matches:
            first = matches[0]
            first_entry = self.lines[first]
            self.remove_hostname(hostname)
            survived = first < len(self.lines) and self.lines[first] is first_entry
            index = first + 1 if survived else first
        else:
            index = self._append_index()

        self._insert(index, address, hostname)
        logger.debug("defined %s -> %s exclusively at line %d", hostname, address, index + 1)
        return True

    def define(self, address: str, hostname: str) -> bool:
        """
        Brief: Add a mapping without touching existing ones.

        Inputs:
          - address: canonical IP literal.
          - hostname: name to add.

        Outputs:
          - bool: True when a line was added; False when the exact mapping
            already exists.

        Raises:
          - OperationConflict when hostname already maps to a different
            address of the same IP family.
        """

        ip = parse_address(address)
        last_related: Optional[int] = None
        for idx, line in enumerate(self.lines):
            if not isinstance(line, MappingEntry):
                continue
            has_host = line.has_hostname(hostname)
            line_ip = line.ip
            if has_host and line_ip == ip:
                return False
            if has_host and line_ip.version == ip.version:
                raise OperationConflict(
                    hostname,
                    f"already mapped to {line.address} (IPv{ip.version}); "
                    f"use {address}={hostname} to replace it",
                )
            if has_host or line_ip == ip:
                last_related = idx

        index = last_related + 1 if last_related is not None else self._append_index()
        self._insert(index, address, hostname)
        return True


def parse_hosts(text: str) -> FileModel:
    """Brief: Parse hosts file text into a FileModel (see FileModel.parse)."""

    return FileModel.parse(text)

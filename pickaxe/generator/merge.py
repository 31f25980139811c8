"""Marker-region merging of generated code into a hand-maintained source file.

A region starts at a marker comment such as `//#serialize` and runs until the
next `//#end`. Most regions are replaced wholesale. The two handler regions
hold developer-written method bodies, so only their declaration lines are
rewritten: the n-th `fn` line of the region receives the n-th generated
declaration.
"""

import logging
import re
from collections.abc import Mapping
from enum import StrEnum

END_MARKER = "//#end"
INDENT = "    "

# A wholesale region takes rendered text, a handler region a list of declarations
Block = str | list[str]

_DECLARATION = re.compile(r"^\s*fn\s+(\w+)")

logger = logging.getLogger(__name__)


class MergeError(RuntimeError):
    """Raised when generated code cannot be merged into the target file."""


class Region(StrEnum):
    """Marker regions, named by their start marker."""

    ASYNC_HANDLER = "AsyncPacketHandler"
    SYNC_HANDLER = "SyncPacketHandler"
    CLIENT_BOUND = "ClientBoundPacket"
    SERVER_BOUND = "ServerBoundPacket"
    DISPATCH = "dispatch_sync_packet"
    SERIALIZE = "serialize"
    DESERIALIZE = "handle_packet"

    @property
    def marker(self) -> str:
        return f"//#{self.value}"

    @property
    def is_handler(self) -> bool:
        return self in (Region.ASYNC_HANDLER, Region.SYNC_HANDLER)


def _marker_pattern(marker: str) -> re.Pattern[str]:
    return re.compile(re.escape(marker) + r"(?!\w)")


def find_region(text: str, region: Region, start: int = 0) -> tuple[int, int]:
    """Return the (content start, content end) offsets of a region.

    Content starts right after the start marker and ends where the end marker's
    line begins, so an indented `//#end` keeps its indentation.
    """
    match = _marker_pattern(region.marker).search(text, start)
    if match is None:
        raise MergeError(f"Marker {region.marker} not found")

    end = text.find(END_MARKER, match.end())
    if end < 0:
        raise MergeError(f"Marker {region.marker} has no matching {END_MARKER}")

    line_start = text.rfind("\n", 0, end) + 1
    if line_start > match.end() and not text[line_start:end].strip():
        end = line_start

    return match.end(), end


def _region_order(text: str) -> list[Region]:
    """Regions sorted by where they occur in the file."""
    positions: list[tuple[int, Region]] = []
    for region in Region:
        found = list(_marker_pattern(region.marker).finditer(text))
        if not found:
            raise MergeError(f"Marker {region.marker} not found")
        if len(found) > 1:
            raise MergeError(f"Marker {region.marker} appears {len(found)} times")
        positions.append((found[0].start(), region))
    return [region for _, region in sorted(positions)]


def count_declarations(content: str) -> int:
    return sum(1 for line in content.split("\n") if line.lstrip().startswith("fn "))


def merge_handlers(
    content: str, declarations: list[str], region: Region, *, strict: bool = False
) -> str:
    """Positionally merge generated declarations into an existing handler region.

    Existing bodies are preserved. Declarations left over once every existing
    `fn` line has been replaced are appended with an empty body.
    """
    existing = count_declarations(content)
    if existing > len(declarations):
        raise MergeError(
            f"{region.marker} has {existing} handlers but the schema only defines "
            f"{len(declarations)}; refusing to discard handler bodies"
        )

    pending = list(declarations)
    source = content.split("\n")
    lines: list[str] = []
    i = 0
    while i < len(source):
        line = source[i]
        i += 1
        if not line.lstrip().startswith("fn "):
            lines.append(line)
            continue

        # A wrapped signature runs up to the line that opens the body
        end = i
        while "{" not in source[end - 1]:
            if end == len(source):
                raise MergeError(f"{region.marker}: declaration {line.strip()!r} has no body")
            end += 1
        i = end

        position = len(declarations) - len(pending) + 1
        decl = pending.pop(0)
        old, new = _DECLARATION.match(line), _DECLARATION.match(decl)
        if old and new and old.group(1) != new.group(1):
            message = (
                f"{region.marker}: handler {old.group(1)} at position {position} "
                f"now declares {new.group(1)}"
            )
            if strict:
                raise MergeError(message)
            logger.warning("%s; its body is kept as written", message)
        lines.append(decl)

    if not pending:
        return "\n".join(lines)

    logger.info("%s: appending %d new handlers", region.marker, len(pending))

    # The last line holds the end marker's indentation
    tail = lines.pop() if not lines[-1].strip() else ""
    if not lines:
        lines.append("")
    for decl in pending:
        if lines[-1].strip():
            lines.append("")
        indent = decl[: len(decl) - len(decl.lstrip())]
        lines.extend([decl, "", f"{indent}}}"])
    lines.append(tail)

    return "\n".join(lines)


def _replace_block(block: str) -> str:
    if not block or block.endswith("\n"):
        return "\n" + block
    return "\n" + block + "\n"


def normalize_whitespace(text: str, indent: str = INDENT) -> str:
    return text.replace("\t", indent)


def merge(
    text: str,
    blocks: Mapping[Region, Block],
    *,
    indent: str = INDENT,
    strict: bool = False,
) -> str:
    """Merge generated blocks into every marker region of `text`.

    Raises MergeError without producing output if any region cannot be merged.
    """
    order = _region_order(text)
    cursor = 0

    for region in order:
        # Offsets are looked up again each time, earlier replacements move them
        try:
            start, end = find_region(text, region, cursor)
        except MergeError as e:
            raise MergeError(f"{e} (regions overlap?)") from e

        block = blocks[region]
        content = text[start:end]
        if region.is_handler:
            if isinstance(block, str):
                block = block.splitlines()
            replacement = merge_handlers(content, block, region, strict=strict)
        else:
            assert isinstance(block, str)
            replacement = _replace_block(block)

        logger.debug("Replacing %s (%d -> %d chars)", region.marker, len(content), len(replacement))
        text = text[:start] + replacement + text[end:]
        cursor = start + len(replacement)

    return normalize_whitespace(text, indent)

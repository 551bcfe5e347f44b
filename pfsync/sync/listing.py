"""Parsing of ``rclone lsd`` and ``rclone ls`` output."""

import re
from dataclasses import dataclass, field

# Size, date and time columns printed in front of every lsd entry
_PREAMBLE = re.compile(
    r"^-?\d+\s+(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2}:\d{2})(?:\.\d+)?(?:\s+|$)"
)

# Count column rclone prints when the backend cannot count a directory
COUNT_PLACEHOLDER = "-1"

# Number of entries shown by summarize_listing
SUMMARY_LIMIT = 100


@dataclass
class ListingWarning:
    """A listing line that could not be turned into a folder name."""

    line: str
    reason: str


@dataclass
class ParsedListing:
    """Folder names found in a directory listing."""

    folders: list[str] = field(default_factory=list)
    warnings: list[ListingWarning] = field(default_factory=list)


def parse_folder_line(line: str) -> str:
    """Return the folder name of one listing line.

    The name is the last whitespace-separated token. When the line starts
    with a size, date and time preamble, something other than the ``-1``
    count placeholder has to follow it, so a numeric folder name such as
    ``2023`` is kept whether or not a count column is printed.

    Raises:
        ValueError: If the line is blank or is a preamble without a name
    """
    stripped = line.strip()
    if not stripped:
        raise ValueError("blank line")
    match = _PREAMBLE.match(stripped)
    if match is None:
        return stripped.split()[-1]
    rest = stripped[match.end() :].split()
    if not rest or rest == [COUNT_PLACEHOLDER]:
        raise ValueError("no folder name after the timestamp preamble")
    return rest[-1]


def parse_lsd_output(output: str) -> ParsedListing:
    """Parse the output of ``rclone lsd`` into folder names.

    Blank lines are ignored. Lines without a folder name are reported as
    warnings and skipped.

    Examples:
        >>> parse_lsd_output("   -1 2024-03-05 10:11:12   -1 gdrive1\\n").folders
        ['gdrive1']
    """
    listing = ParsedListing()
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        try:
            listing.folders.append(parse_folder_line(stripped))
        except ValueError as e:
            listing.warnings.append(ListingWarning(line=stripped, reason=str(e)))
    return listing


def summarize_listing(
    output: str, files: bool = False, limit: int = SUMMARY_LIMIT
) -> str:
    """Render listing output as a short report of at most ``limit`` entries.

    Args:
        output: Raw ``rclone lsd`` (or, with ``files``, ``rclone ls``) output
        files: True when ``output`` lists files rather than directories
        limit: Maximum number of entries shown

    Returns:
        Header, entry count line and the first ``limit`` entries
    """
    if files:
        header = "        Files\n" + "-" * 40 + "\n"
        item_type = "files"
    else:
        header = "        Date       Time    Directory\n" + "-" * 40 + "\n"
        item_type = "directories"

    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        return f"{header}No {item_type} found"

    entries = []
    for line in lines[:limit]:
        match = None if files else _PREAMBLE.match(line)
        if match is None:
            entries.append(f"           {line}")
            continue
        rest = line[match.end() :].split()
        name = rest[-1] if rest else ""
        entries.append(f"           {match.group(1)} {match.group(2)}  {name}")

    if len(lines) > limit:
        count_line = f"Showing top {limit} of {len(lines)} {item_type}:"
    else:
        count_line = f"Showing all {len(lines)} {item_type}:"
    return header + count_line + "\n\n" + "\n".join(entries)

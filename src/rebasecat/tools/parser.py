"""Git conflict marker detection and parsing."""

from dataclasses import dataclass

START_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
SEPARATOR = "======="
END_MARKER = ">>>>>>>"


@dataclass
class Conflict:
    """One conflict hunk of a file."""

    ours_content: str
    theirs_content: str
    base_content: str | None
    start_line: int
    end_line: int
    ours_ref: str
    theirs_ref: str


def has_conflict_markers(content: str) -> bool:
    """True if any line opens a conflict hunk."""
    return any(
        line.startswith(START_MARKER) for line in content.splitlines()
    )


def parse(file_content: str) -> list[Conflict]:
    """Parse the conflict hunks of a file.

    Handles both the standard two-way and the diff3 layout. Line
    numbers are 1-indexed and point at the start and end markers.

    Raises:
        ValueError: If a hunk has no separator or no end marker
    """
    conflicts = []
    lines = file_content.splitlines()
    i = 0

    while i < len(lines):
        if not lines[i].startswith(START_MARKER):
            i += 1
            continue

        start = i
        ours_ref = lines[i][len(START_MARKER):].strip() or "ours"
        sections = {"ours": [], "base": None, "theirs": []}
        current = "ours"
        end = None

        for j in range(i + 1, len(lines)):
            line = lines[j]
            if current == "ours" and line.startswith(BASE_MARKER):
                sections["base"] = []
                current = "base"
            elif current in ("ours", "base") and line.startswith(SEPARATOR):
                current = "theirs"
            elif current == "theirs" and line.startswith(END_MARKER):
                end = j
                break
            else:
                sections[current].append(line)

        if current != "theirs":
            raise ValueError(
                f"Malformed conflict at line {start + 1}: no separator found"
            )
        if end is None:
            raise ValueError(
                f"Malformed conflict at line {start + 1}: no end marker found"
            )

        base = sections["base"]
        conflicts.append(Conflict(
            ours_content="\n".join(sections["ours"]),
            theirs_content="\n".join(sections["theirs"]),
            base_content="\n".join(base) if base is not None else None,
            start_line=start + 1,
            end_line=end + 1,
            ours_ref=ours_ref,
            theirs_ref=lines[end][len(END_MARKER):].strip() or "theirs",
        ))
        i = end + 1

    return conflicts

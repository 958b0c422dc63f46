"""Parse and validate Logix symbolic tag names into immutable TagPath values."""

import re
from dataclasses import dataclass

from .errors import TagPathError

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

# Identifier + optional [i] / [i,j] / [i,j,k] array subscript
_SEGMENT_PATTERN = re.compile(rf"({_IDENT})(?:\[([0-9]+(?:,[0-9]+){{0,2}})\])?", re.ASCII)

# Program-scope prefix: Program:<name>
_PROGRAM_PATTERN = re.compile(rf"program:({_IDENT})", re.IGNORECASE | re.ASCII)

_MAX_IDENT_LEN = 40
_MAX_BIT = 31


def _check_ident(raw: str, ident: str) -> None:
    if len(ident) > _MAX_IDENT_LEN:
        raise TagPathError(raw, f"Name longer than {_MAX_IDENT_LEN} characters: {ident!r}")
    if "__" in ident:
        raise TagPathError(raw, f"Name contains consecutive underscores: {ident!r}")
    if ident.endswith("_"):
        raise TagPathError(raw, f"Name ends with an underscore: {ident!r}")


@dataclass(frozen=True)
class TagSegment:
    name: str
    indices: tuple[int, ...] = ()

    def __str__(self) -> str:
        if not self.indices:
            return self.name
        return f"{self.name}[{','.join(str(i) for i in self.indices)}]"


@dataclass(frozen=True)
class TagPath:
    """
    A validated symbolic address into controller memory.

    Examples: Flow_PV, Program:Main.Meter[2].Pressure, Status.5
    """

    segments: tuple[TagSegment, ...]
    program: str | None = None
    bit: int | None = None

    def __str__(self) -> str:
        text = ".".join(str(s) for s in self.segments)
        if self.program is not None:
            text = f"Program:{self.program}.{text}"
        if self.bit is not None:
            text = f"{text}.{self.bit}"
        return text

    @property
    def base(self) -> str:
        """Top-level tag name, including program scope."""
        name = self.segments[0].name
        return f"Program:{self.program}.{name}" if self.program is not None else name

    @classmethod
    def parse(cls, raw: str) -> "TagPath":
        """
        Parse a tag name such as 'Program:Main.Meter[2].Flow.3'.

        - Optional Program:<name> scope prefix.
        - Dotted members; each may carry up to three array indices.
        - A trailing numeric member is a bit index (0–31).

        Raises TagPathError for malformed names.
        """
        s = raw.strip()
        if not s:
            raise TagPathError(raw, "Tag name cannot be empty")

        parts = s.split(".")
        program: str | None = None
        m = _PROGRAM_PATTERN.fullmatch(parts[0])
        if m:
            program = m.group(1)
            _check_ident(raw, program)
            parts = parts[1:]
            if not parts:
                raise TagPathError(raw, "Program scope without a tag name")
        elif ":" in parts[0]:
            raise TagPathError(raw, f"Unsupported scope prefix: {parts[0]!r}")

        bit: int | None = None
        if len(parts) > 1 and parts[-1].isascii() and parts[-1].isdigit():
            bit = int(parts[-1])
            if bit > _MAX_BIT:
                raise TagPathError(raw, f"Bit index out of range 0–{_MAX_BIT}: {bit}")
            parts = parts[:-1]

        segments: list[TagSegment] = []
        for part in parts:
            seg = _SEGMENT_PATTERN.fullmatch(part)
            if not seg:
                raise TagPathError(raw, f"Malformed tag segment: {part!r}")
            name = seg.group(1)
            _check_ident(raw, name)
            indices = tuple(int(i) for i in seg.group(2).split(",")) if seg.group(2) else ()
            segments.append(TagSegment(name, indices))

        return cls(segments=tuple(segments), program=program, bit=bit)

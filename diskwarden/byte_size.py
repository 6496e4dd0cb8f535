"""Human-readable byte sizes such as "20GB", "500MB" or "1.5TB"."""

import re
from dataclasses import dataclass
from typing import Union

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB
TIB = 1024 * GIB

UNITS = {
    "": 1,
    "B": 1,
    "K": KIB,
    "KB": KIB,
    "KIB": KIB,
    "M": MIB,
    "MB": MIB,
    "MIB": MIB,
    "G": GIB,
    "GB": GIB,
    "GIB": GIB,
    "T": TIB,
    "TB": TIB,
    "TIB": TIB,
}

_SIZE_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*([a-zA-Z]*)\s*$")


@dataclass(frozen=True, order=True)
class ByteSize:
    """An unsigned byte count. All units are binary (1KB == 1024 bytes)."""
    value: int

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"byte size cannot be negative: {self.value}")

    @classmethod
    def parse(cls, value: Union[str, int, float]) -> "ByteSize":
        """
        Parse a size like "20GB", "500 mb", "1.5TiB" or a plain number of bytes.

        Raises:
            ValueError: if the value is empty, negative or has an unknown unit
        """
        if isinstance(value, bool):
            raise ValueError(f"invalid byte size: {value!r}")
        if isinstance(value, (int, float)):
            return cls(int(value))

        text = value.strip()
        if not text:
            raise ValueError("empty string")

        match = _SIZE_RE.match(text)
        if not match:
            raise ValueError(f"invalid byte size: {value!r}")

        number, unit = match.groups()
        multiplier = UNITS.get(unit.upper())
        if multiplier is None:
            raise ValueError(f"unknown unit: {unit}")

        return cls(int(float(number) * multiplier))

    def __str__(self) -> str:
        size = self.value
        if size >= TIB:
            return f"{size / TIB:.2f}TB"
        if size >= GIB:
            return f"{size / GIB:.2f}GB"
        if size >= MIB:
            return f"{size / MIB:.2f}MB"
        if size >= KIB:
            return f"{size / KIB:.2f}KB"
        return f"{size}B"

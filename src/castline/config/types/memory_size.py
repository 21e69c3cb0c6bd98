"""Memory size data type for castline configuration.

Provides the MemorySize dataclass, which parses shorthand byte sizes such as
``"128M"`` into a byte count used as the worker's memory ceiling.
"""

from dataclasses import dataclass
import re

_SIZE_PATTERN = re.compile(r"^(-?\d+)\s*([kmg]?)b?$", re.IGNORECASE)

_UNIT_TO_BYTES: dict[str, int] = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
}

# Ceiling used when the configured limit is "unlimited" (-1).
UNLIMITED_SIZE = "32000M"


@dataclass(frozen=True)
class MemorySize:
    """Data representation of a memory limit.

    Accepts "<number>[K|M|G]" strings, case-insensitive, with an optional
    trailing "B". A value of ``-1`` (or an empty string) means unlimited and
    resolves to 32000M.

    Examples:
        - "128M" -> 134217728 bytes
        - "1G" -> 1073741824 bytes
        - "-1" -> 32000M

    Attributes:
        size_str: Normalized size string.
        total_bytes: Size in bytes.
    """

    size_str: str
    total_bytes: int

    def __init__(self, size_str: str | int):
        """Initialize MemorySize from a shorthand size.

        Args:
            size_str: Size string or raw byte count.

        Raises:
            ValueError: If the size cannot be parsed or is zero.
        """
        stripped = str(size_str).strip()
        if not stripped or stripped == "-1":
            stripped = UNLIMITED_SIZE

        match = _SIZE_PATTERN.match(stripped)
        if not match:
            raise ValueError(
                f"Invalid memory size: '{size_str}'. "
                "Expected format: <number>[K|M|G], e.g. '512M', '2G', or -1 for unlimited"
            )

        value = int(match.group(1))
        if value == -1:
            stripped = UNLIMITED_SIZE
            match = _SIZE_PATTERN.match(stripped)
            assert match is not None
            value = int(match.group(1))
        if value <= 0:
            raise ValueError(f"Memory size must be positive, got '{size_str}'")

        unit = match.group(2).lower()
        object.__setattr__(self, "size_str", stripped)
        object.__setattr__(self, "total_bytes", value * _UNIT_TO_BYTES[unit])

    def __str__(self) -> str:
        return self.size_str

    def __repr__(self) -> str:
        return f"MemorySize(size_str='{self.size_str}', total_bytes={self.total_bytes})"

"""Variable price impact (VPI) parsing and point-in-time history."""

import re
from bisect import bisect_right
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, model_validator

from ..core.errors import ParseError
from ..core.types import VPIParams, VPIParamsParsed

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# Stays under the interpreter's int/str conversion digit limit.
_CHUNK_DIGITS = 1000

_VPI_FIELDS = ("market_depth_long", "market_depth_short", "spread", "k")


def parse_integer(value: str, asset: str, timestamp: str, field: str) -> int:
    """Parse a base-10 integer string of any size.

    Raises:
        ParseError: If value is not an optionally signed run of digits
    """
    if not _INTEGER_RE.fullmatch(value):
        raise ParseError(asset, timestamp, field, value)

    digits = value.lstrip("+-")
    result = 0
    for start in range(0, len(digits), _CHUNK_DIGITS):
        chunk = digits[start : start + _CHUNK_DIGITS]
        result = result * 10 ** len(chunk) + int(chunk)
    return -result if value.startswith("-") else result


def parse_vpi_params(
    params: VPIParams, asset: str = "", timestamp: str = ""
) -> VPIParamsParsed | None:
    """Parse VPI parameters.

    Returns None when either market depth is empty: the service publishes
    such entries before depth data is available for the asset.

    Raises:
        ParseError: If any field is not a base-10 integer
    """
    if not params.market_depth_long or not params.market_depth_short:
        return None

    return VPIParamsParsed(
        **{
            field: parse_integer(getattr(params, field), asset, timestamp, field)
            for field in _VPI_FIELDS
        }
    )


class VPIHistory(BaseModel):
    """Parsed VPI entries of one asset, ordered by timestamp."""

    model_config = ConfigDict(frozen=True)

    timestamps: tuple[int, ...] = ()
    params: tuple[VPIParamsParsed, ...] = ()

    @model_validator(mode="after")
    def check_order(self) -> "VPIHistory":
        if len(self.timestamps) != len(self.params):
            raise ValueError("timestamps and params must have the same length")
        if any(a >= b for a, b in zip(self.timestamps, self.timestamps[1:])):
            raise ValueError("timestamps must be strictly increasing")
        return self

    @classmethod
    def from_entries(cls, entries: Mapping[int, VPIParamsParsed]) -> "VPIHistory":
        ordered = sorted(entries.items())
        return cls(
            timestamps=tuple(ts for ts, _ in ordered),
            params=tuple(p for _, p in ordered),
        )

    def __len__(self) -> int:
        return len(self.timestamps)

    def at(self, ts: int) -> VPIParamsParsed | None:
        """Return the entry with the greatest timestamp <= ts."""
        i = bisect_right(self.timestamps, ts)
        if i == 0:
            return None
        return self.params[i - 1]

    def latest(self) -> VPIParamsParsed | None:
        return self.params[-1] if self.params else None


def parse_vpi_history(
    raw: Mapping[str, Mapping[str, VPIParams]],
) -> dict[str, VPIHistory]:
    """Parse the /vpi-history document.

    Entries with an empty market depth are dropped. Assets left without
    entries are omitted.

    Args:
        raw: asset name -> timestamp string -> VPI params

    Returns:
        asset name -> VPIHistory

    Raises:
        ParseError: On a malformed timestamp or numeric field
    """
    history: dict[str, VPIHistory] = {}

    for asset, points in raw.items():
        entries: dict[int, VPIParamsParsed] = {}
        for ts_str, params in points.items():
            ts = parse_integer(ts_str, asset, ts_str, "timestamp")
            parsed = parse_vpi_params(params, asset, ts_str)
            if parsed is None:
                continue
            entries[ts] = parsed

        if entries:
            history[asset] = VPIHistory.from_entries(entries)

    return history

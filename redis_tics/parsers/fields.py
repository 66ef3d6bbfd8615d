"""Default-valued field access shared by the reply parsers.

Parsing happens in two stages: raw text or arrays are first folded into a
``FieldMap`` of strings, then projected into a typed record through these
accessors. Any missing or unparseable field falls back to its default.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple


def to_text(value: Any) -> str:
    """Render a raw reply element as text, decoding bytes leniently."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def parse_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(to_text(value).strip())
    except ValueError:
        return default


def parse_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(to_text(value).strip())
    except ValueError:
        return default


class FieldMap(Dict[str, str]):
    """A flat ``name -> raw string`` map with typed, defaulted getters."""

    def get_str(self, key: str, default: str = "") -> str:
        return self.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        return parse_int(self.get(key), default) if key in self else default

    def get_float(self, key: str, default: float = 0.0) -> float:
        return parse_float(self.get(key), default) if key in self else default

    def get_bool(self, key: str) -> bool:
        return self.get(key) == "1"

    def get_optional_int(self, key: str) -> Optional[int]:
        if key not in self:
            return None
        try:
            return int(self[key])
        except ValueError:
            return None


def split_pairs(text: str, separator: str) -> Iterable[Tuple[str, str]]:
    """Yield ``(key, value)`` for every line containing ``separator``."""
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(separator)
        if sep:
            yield key, value


def fold_lines(text: Any) -> FieldMap:
    """Fold ``key:value`` lines into a FieldMap, skipping comments and blanks."""
    return FieldMap(split_pairs(to_text(text), ":"))


def fold_flat_pairs(values: Any) -> List[Tuple[str, Any]]:
    """Pair up a flat ``[k1, v1, k2, v2, ...]`` reply (or pass a map through)."""
    if isinstance(values, dict):
        return [(to_text(k), v) for k, v in values.items()]
    if not isinstance(values, (list, tuple)):
        return []
    items = list(values)
    return [(to_text(items[i]), items[i + 1]) for i in range(0, len(items) - 1, 2)]

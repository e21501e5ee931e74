from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple


def as_float(x: Any, default: float) -> float:
    try:
        return float(x)
    except Exception:
        return float(default)


def as_int(x: Any, default: int) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def as_str(x: Any, default: str) -> str:
    if x is None:
        return default
    s = str(x).strip()
    return s or default


def as_str_list(x: Any, default: Sequence[str]) -> List[str]:
    if isinstance(x, (list, tuple)) and x:
        return [str(v) for v in x]
    return list(default)


def as_size(x: Any, default: Tuple[int, int]) -> Tuple[int, int]:
    if isinstance(x, (list, tuple)) and len(x) == 2:
        return as_int(x[0], default[0]), as_int(x[1], default[1])
    return default


def get_section(root: Dict[str, Any], key: str) -> Dict[str, Any]:
    v = root.get(key, {})
    return v if isinstance(v, dict) else {}

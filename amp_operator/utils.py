"""
Common utilities shared across amp_operator
"""

# Standard
from typing import Any, Dict, List, Optional

# Local
from . import constants

__MISSING__ = "__MISSING__"


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict from which the key will be read
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts and intermediate None
            values.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


def merge_string_map(existing: Dict[str, str], desired: Optional[Dict[str, str]]) -> bool:
    """Merge every desired key into existing in place, overwriting differing
    values and leaving keys that only exist in existing alone

    Returns:
        changed:  bool
            Whether or not any key was added or changed
    """
    changed = False
    for key, val in (desired or {}).items():
        if existing.get(key, __MISSING__) != val:
            existing[key] = val
            changed = True
    return changed


def find_by_name(items: Optional[List[dict]], name: str) -> int:
    """Find the index of the element with the given name in a list of named
    elements (containers, env vars, image stream tags)

    Returns:
        index:  int
            The position of the element or -1 when not present
    """
    for idx, item in enumerate(items or []):
        if item.get("name") == name:
            return idx
    return -1

# ABOUTME: Deep merge of operator patch overlays onto canonical documents.
# ABOUTME: Merging the same overlay twice yields the same document as merging it once.

import copy
from typing import Any


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into a copy of base.

    Mappings merge recursively and scalars from the overlay win. Lists are
    unioned: overlay items not already present are appended in order, so
    repeated merges never duplicate entries.

    Args:
        base: The document to patch. Not modified.
        overlay: The structural fragment to apply. Not modified.

    Returns:
        A new merged document.
    """
    result = copy.deepcopy(base)
    for key, value in overlay.items():
        existing = result.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            result[key] = deep_merge(existing, value)
        elif isinstance(existing, list) and isinstance(value, list):
            merged = list(existing)
            for item in value:
                if item not in merged:
                    merged.append(copy.deepcopy(item))
            result[key] = merged
        else:
            result[key] = copy.deepcopy(value)
    return result

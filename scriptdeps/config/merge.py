# scriptdeps/config/merge.py
from __future__ import annotations
from typing import Any, Literal, cast
from collections.abc import Mapping
import copy

__all__ = ["MergeStrategy", "mergeWithStrategy"]



MergeStrategy = Literal["deep", "replace", "append", "prepend", "uniqueAppend"]
_ALL_STRATEGIES: tuple[str, ...] = ("deep", "replace", "append", "prepend", "uniqueAppend")
_LIST_STRATEGIES: tuple[str, ...] = ("replace", "append", "prepend", "uniqueAppend")



def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Deep merge of one settings layer (right) over another (left).

      - dicts: recurse by default; {"__merge": "replace"} replaces the whole object
      - lists: replaced by default; a sibling "<key>__merge" selects
        "append", "prepend" or "uniqueAppend" (e.g. packageSources from a
        config file extended by the command line)
      - scalars: right replaces left

    Inputs are never mutated.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        strategy = cast(MergeStrategy, right.get("__merge", "deep"))
        _validateMergeStrategy(strategy, context="object", listContext=False)
        if strategy == "replace":
            return {key: copy.deepcopy(value) for key, value in right.items() if key != "__merge"}

        for key in right:
            if key.endswith("__merge") and key != "__merge":
                base = key[:-len("__merge")]
                if base not in right:
                    raise ValueError(
                        f'Unexpected reserved key "{key}" without matching base key "{base}". '
                        'Place list merge directives as "<key>__merge" next to <key>.'
                    )

        out: dict[str, Any] = {key: copy.deepcopy(value) for key, value in left.items()}
        for key, rightValue in right.items():
            if key == "__merge" or key.endswith("__merge"):
                continue
            leftValue = out.get(key)
            listStrategyKey = f"{key}__merge"
            if listStrategyKey in right and isinstance(rightValue, list):
                listStrategy = cast(MergeStrategy, right[listStrategyKey])
                _validateMergeStrategy(listStrategy, context=f'key "{key}"', listContext=True)
                out[key] = _mergeLists(leftValue, rightValue, listStrategy)
                continue
            if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
                out[key] = mergeWithStrategy(leftValue, rightValue)
            elif isinstance(rightValue, list):
                out[key] = list(copy.deepcopy(rightValue))
            else:
                out[key] = copy.deepcopy(rightValue)
        return out
    if isinstance(left, list) and isinstance(right, list):
        return list(right)
    return copy.deepcopy(right)



def _mergeLists(left: Any, right: Any, strategy: MergeStrategy) -> list[Any]:
    left = list(left or [])
    right = list(right or [])
    if strategy == "append":
        return left + right
    if strategy == "prepend":
        return right + left
    if strategy == "uniqueAppend":
        out = left[:]
        for item in right:
            if item not in out:
                out.append(item)
        return out
    return right



def _validateMergeStrategy(strategy: str, *, context: str, listContext: bool = False) -> None:
    allowed = _LIST_STRATEGIES if listContext else _ALL_STRATEGIES
    if strategy not in allowed:
        raise ValueError(f"Invalid __merge='{strategy}' in {context}; allowed: {', '.join(allowed)}")

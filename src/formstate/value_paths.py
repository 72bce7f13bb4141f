"""
Dotted-path access over nested value trees.

Form values are stored as plain nested dicts/lists addressed by field names
such as ``"user.email"`` or ``"members[2].name"`` (``"members.2.name"`` is
accepted too). Every function here is pure with respect to its inputs except
``set_value``, which writes in place and returns the tree it was given.

Missing entries are reported as ``UNSET`` rather than ``None``: ``None`` is a
legitimate field value, ``UNSET`` means "nothing stored here". Lists keep
``UNSET`` placeholders where items were omitted so the indexes of their
siblings do not shift.
"""
import copy
import re
from typing import Any, Dict, List, Union

PathToken = Union[str, int]

_TOKEN_RE = re.compile(r'([^.\[\]]+)|\[(\d+)\]')


class _Unset:
    """Singleton marker for an absent value (JavaScript's ``undefined``)."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()


def is_missing(value: Any) -> bool:
    """True for both ``UNSET`` and ``None`` (the precedence chains skip both)."""
    return value is UNSET or value is None


def split_path(path: str) -> List[PathToken]:
    """Split a field name into path tokens.

    Bracketed indexes become ints, everything else stays a string:
    ``"members[0].name"`` -> ``['members', 0, 'name']``.
    """
    tokens: List[PathToken] = []
    for match in _TOKEN_RE.finditer(str(path)):
        key, index = match.groups()
        tokens.append(int(index) if index is not None else key)
    return tokens


def _as_index(token: PathToken) -> Any:
    if isinstance(token, int):
        return token
    if token.isdigit():
        return int(token)
    return None


def _child(container: Any, token: PathToken) -> Any:
    if isinstance(container, dict):
        if token in container:
            return container[token]
        # "members.0" against a dict keyed by ints, and the reverse
        alt = str(token) if isinstance(token, int) else _as_index(token)
        if alt is not None and alt in container:
            return container[alt]
        return UNSET
    if isinstance(container, list):
        index = _as_index(token)
        if index is None or index >= len(container):
            return UNSET
        return container[index]
    return UNSET


def get_value(tree: Any, path: str) -> Any:
    """Return the value stored at ``path`` or ``UNSET``."""
    node = tree
    for token in split_path(path):
        node = _child(node, token)
        if node is UNSET:
            return UNSET
    return node


def set_value(tree: Any, path: str, value: Any) -> Any:
    """Write ``value`` at ``path``, creating intermediate containers.

    A following index token (bracketed or all-digit, as in ``"tags.0"``)
    creates a list, anything else a dict. Lists are padded with ``UNSET``
    when writing past their end.

    Returns:
        The (possibly newly created) root tree.
    """
    tokens = split_path(path)
    if not tokens:
        return value
    if not isinstance(tree, (dict, list)):
        tree = [] if _as_index(tokens[0]) is not None else {}

    node = tree
    for position, token in enumerate(tokens):
        is_last = position == len(tokens) - 1
        next_token = None if is_last else tokens[position + 1]

        if isinstance(node, list):
            index = _as_index(token)
            if index is None:
                raise ValueError(f"Cannot use key {token!r} on a list in path {path!r}")
            while len(node) <= index:
                node.append(UNSET)
            key: Any = index
        else:
            key = token

        if is_last:
            node[key] = value
            return tree

        existing = node[key] if (isinstance(node, dict) and key in node) or isinstance(node, list) else UNSET
        if not isinstance(existing, (dict, list)):
            existing = [] if _as_index(next_token) is not None else {}
            node[key] = existing
        node = existing
    return tree


def _is_empty_container(node: Any) -> bool:
    if isinstance(node, dict):
        return not node
    if isinstance(node, list):
        return all(item is UNSET for item in node)
    return False


def omit_value(tree: Any, path: str) -> Any:
    """Return a copy of ``tree`` without the entry at ``path``.

    List entries are replaced by ``UNSET`` so sibling indexes stay put.
    Containers left empty by the removal are pruned from their parents.
    """
    if not isinstance(tree, (dict, list)):
        return tree
    result = clone_values(tree)
    tokens = split_path(path)
    if not tokens:
        return result

    trail = [result]
    node: Any = result
    for token in tokens[:-1]:
        node = _child(node, token)
        if not isinstance(node, (dict, list)):
            return result
        trail.append(node)

    _remove(trail[-1], tokens[-1])

    # Prune upward, never removing the root itself
    for depth in range(len(trail) - 1, 0, -1):
        if not _is_empty_container(trail[depth]):
            break
        _remove(trail[depth - 1], tokens[depth - 1])
    return result


def _remove(container: Any, token: PathToken) -> None:
    if isinstance(container, dict):
        if token in container:
            del container[token]
        else:
            alt = str(token) if isinstance(token, int) else _as_index(token)
            if alt is not None and alt in container:
                del container[alt]
    elif isinstance(container, list):
        index = _as_index(token)
        if index is not None and index < len(container):
            container[index] = UNSET


def clone_values(tree: Any) -> Any:
    return copy.deepcopy(tree)


def merge_values(target: Any, source: Any) -> Any:
    """Deep-merge ``source`` into a copy of ``target``.

    ``UNSET`` entries in ``source`` never overwrite. Dicts merge by key, lists
    merge by index, anything else is replaced by the source value.
    """
    if source is UNSET:
        return clone_values(target)
    if isinstance(target, dict) and isinstance(source, dict):
        merged = clone_values(target)
        for key, value in source.items():
            if value is UNSET:
                continue
            merged[key] = merge_values(merged.get(key, UNSET), value)
        return merged
    if isinstance(target, list) and isinstance(source, list):
        merged_list = clone_values(target)
        for index, value in enumerate(source):
            if value is UNSET:
                if index >= len(merged_list):
                    merged_list.append(UNSET)
                continue
            if index < len(merged_list):
                merged_list[index] = merge_values(merged_list[index], value)
            else:
                merged_list.append(merge_values(UNSET, value))
        return merged_list
    if isinstance(source, (dict, list)):
        return merge_values([] if isinstance(source, list) else {}, source)
    return source


def parse_values(tree: Any) -> Any:
    """Expand dotted keys into nested structure.

    ``{"user.name": "Ada", "tags[1]": "x"}`` becomes
    ``{"user": {"name": "Ada"}, "tags": [UNSET, "x"]}``.
    """
    if isinstance(tree, list):
        return [parse_values(item) for item in tree]
    if not isinstance(tree, dict):
        return tree
    result: Dict[Any, Any] = {}
    for key, value in tree.items():
        parsed = parse_values(value)
        if isinstance(key, str) and ('.' in key or '[' in key):
            existing = get_value(result, key)
            if isinstance(existing, (dict, list)) and isinstance(parsed, (dict, list)):
                parsed = merge_values(existing, parsed)
            result = set_value(result, key, parsed)
        elif key in result and isinstance(result[key], (dict, list)):
            result[key] = merge_values(result[key], parsed)
        else:
            result[key] = parsed
    return result


def materialize(value: Any) -> Any:
    """Copy of ``value`` with ``UNSET`` turned into ``None`` (lists) or dropped (dicts)."""
    if value is UNSET:
        return None
    if isinstance(value, dict):
        return {k: materialize(v) for k, v in value.items() if v is not UNSET}
    if isinstance(value, list):
        return [materialize(item) for item in value]
    return copy.deepcopy(value)


def fill_placeholders(template: List[Any], items: List[Any]) -> List[Any]:
    """Fill the top-level ``UNSET`` slots of ``template`` with ``items`` in order.

    A collection insertion writes ``[UNSET]*n + new + [UNSET]*m`` where the
    placeholders stand for the ``n + m`` existing items; filling them in order
    rebuilds the full array.
    """
    remaining = iter(items)
    return [next(remaining, UNSET) if slot is UNSET else slot for slot in template]


def placeholder_count(value: Any) -> int:
    if not isinstance(value, list):
        return 0
    return sum(1 for slot in value if slot is UNSET)

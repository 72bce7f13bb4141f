"""
CollectionRegistry: stable item identity for repeatable field groups.

A collection is an array-shaped form value (``members``) whose items are
rendered as groups of fields (``members[0].name``, ...). The registry keeps a
key list parallel to that array. Keys are opaque, generated once per item and
never handed to another item, so an item keeps its key while siblings are
inserted or removed around it.

The registry only reshapes key lists. The matching value writes go through
the store's ``set_values`` so validation and pristine rules apply as for any
other injected value.
"""
import logging
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union
import uuid

from formstate.models import Updater, resolve_update
from formstate.value_paths import UNSET

logger = logging.getLogger(__name__)

KeysOrUpdater = Union[Sequence[str], Updater]


def generate_unique_id() -> str:
    return uuid.uuid4().hex


class InsertPlan(NamedTuple):
    """Result of an insertion: the new key list and the value array to write.

    ``values`` holds UNSET at every pre-existing position so that the write
    only touches the inserted items.
    """
    keys: List[str]
    values: List[object]
    index: int


class CollectionRegistry:

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._keys: Dict[str, List[str]] = {}
        self._id_factory = id_factory or generate_unique_id

    def new_key(self) -> str:
        return str(self._id_factory())

    def names(self) -> List[str]:
        return list(self._keys)

    def get_keys(self, name: str) -> Optional[Tuple[str, ...]]:
        keys = self._keys.get(str(name))
        return tuple(keys) if keys is not None else None

    def set_keys(self, name: str, keys_or_updater: KeysOrUpdater) -> List[str]:
        """Replace the key list; an ``Updater`` receives the current list (or [])."""
        name = str(name)
        current = list(self._keys.get(name) or [])
        keys = list(resolve_update(current, keys_or_updater) or [])
        self._keys[name] = keys
        return keys

    # ========== STRUCTURAL OPERATIONS ==========

    @staticmethod
    def effective_index(index: int, length: int) -> int:
        """Negative indexes count from the end, -1 meaning "after the last item"."""
        computed = length + 1 + index if index < 0 else index
        return max(0, min(computed, length))

    def insert(self, name: str, index: int, values: Sequence[object]) -> InsertPlan:
        """Splice one fresh key per value into the key list at ``index``."""
        old_keys = list(self._keys.get(str(name)) or [])
        at = self.effective_index(index, len(old_keys))
        values = list(values or [])
        fresh = [self.new_key() for _ in values]

        keys = old_keys[:at] + fresh + old_keys[at:]
        new_values = [UNSET] * at + values + [UNSET] * (len(old_keys) - at)
        self._keys[str(name)] = keys
        logger.debug(f"Collection {name!r}: inserted {len(fresh)} item(s) at {at}")
        return InsertPlan(keys=keys, values=new_values, index=at)

    def remove(self, name: str, indexes: Iterable[int]) -> List[str]:
        """Drop the keys at ``indexes`` (negative counts from the end)."""
        old_keys = list(self._keys.get(str(name)) or [])
        length = len(old_keys)
        doomed = {length + i if i < 0 else i for i in indexes}
        keys = [key for position, key in enumerate(old_keys) if position not in doomed]
        self._keys[str(name)] = keys
        logger.debug(f"Collection {name!r}: removed positions {sorted(doomed)}")
        return keys

    def resize(self, name: str, length: int) -> List[str]:
        """Fit the key list to ``length`` items.

        Existing keys are reused position by position; positions past the old
        end get fresh keys.
        """
        old_keys = self._keys.get(str(name)) or []
        keys = [old_keys[i] if i < len(old_keys) else self.new_key() for i in range(length)]
        self._keys[str(name)] = keys
        return keys

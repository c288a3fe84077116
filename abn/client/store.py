"""Dense keyed stores used by the middleware cache.

SlotMap hands out Key(index, generation). Removing a key frees its slot and
bumps the slot's generation, so the slot can be reused while old keys stay
detectably stale.
"""

from typing import Dict, Generic, Iterator, List, NamedTuple, Optional, Tuple, TypeVar

from abn.schemas.filter import TaskPropVariant

T = TypeVar("T")


class Key(NamedTuple):
    index: int
    generation: int


class SlotMap(Generic[T]):
    def __init__(self):
        self._values: List[Optional[T]] = []
        self._generations: List[int] = []
        self._free: List[int] = []
        self._len = 0

    def insert(self, value: T) -> Key:
        if self._free:
            index = self._free.pop()
        else:
            index = len(self._values)
            self._values.append(None)
            self._generations.append(0)
        self._values[index] = value
        self._len += 1
        return Key(index, self._generations[index])

    def contains(self, key: Key) -> bool:
        return (
            0 <= key.index < len(self._values)
            and self._generations[key.index] == key.generation
            and self._values[key.index] is not None
        )

    def get(self, key: Key) -> Optional[T]:
        if not self.contains(key):
            return None
        return self._values[key.index]

    def replace(self, key: Key, value: T) -> None:
        if not self.contains(key):
            raise KeyError(key)
        self._values[key.index] = value

    def remove(self, key: Key) -> T:
        if not self.contains(key):
            raise KeyError(key)
        value = self._values[key.index]
        self._values[key.index] = None
        self._generations[key.index] += 1
        self._free.append(key.index)
        self._len -= 1
        return value

    def keys(self) -> List[Key]:
        return [
            Key(index, self._generations[index])
            for index, value in enumerate(self._values)
            if value is not None
        ]

    def items(self) -> Iterator[Tuple[Key, T]]:
        for key in self.keys():
            # l'appelant peut retirer des clés entre deux itérations
            if self.contains(key):
                yield key, self._values[key.index]

    def __contains__(self, key: Key) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        return self._len


class PropStore:
    """
    Property values of cached tasks.

    Names are interned to dense handles; each handle has one type (fixed at
    first registration); values are stored per (task key, handle).
    """

    def __init__(self):
        self._handles: Dict[str, int] = {}
        self._names: List[str] = []
        self._types: List[Optional[str]] = []
        self._values: Dict[Tuple[Key, int], TaskPropVariant] = {}

    def intern(self, name: str) -> int:
        handle = self._handles.get(name)
        if handle is None:
            handle = len(self._names)
            self._handles[name] = handle
            self._names.append(name)
            self._types.append(None)
        return handle

    def handle(self, name: str) -> Optional[int]:
        return self._handles.get(name)

    def name(self, handle: int) -> str:
        return self._names[handle]

    def names(self) -> List[str]:
        return list(self._names)

    def type_of(self, name: str) -> Optional[str]:
        handle = self._handles.get(name)
        return None if handle is None else self._types[handle]

    def register(self, name: str, prop_type: str) -> int:
        """Intern name; the first registered type sticks."""
        handle = self.intern(name)
        if self._types[handle] is None:
            self._types[handle] = prop_type
        return handle

    def get(self, task: Key, name: str) -> Optional[TaskPropVariant]:
        handle = self._handles.get(name)
        if handle is None:
            return None
        return self._values.get((task, handle))

    def set(self, task: Key, name: str, value: TaskPropVariant) -> None:
        handle = self.register(name, value.prop_type)
        self._values[(task, handle)] = value

    def remove(self, task: Key, name: str) -> Optional[TaskPropVariant]:
        handle = self._handles.get(name)
        if handle is None:
            return None
        return self._values.pop((task, handle), None)

    def for_task(self, task: Key) -> Dict[str, TaskPropVariant]:
        return {
            self._names[handle]: value
            for (key, handle), value in self._values.items()
            if key == task
        }

    def drop_task(self, task: Key) -> None:
        for entry in [entry for entry in self._values if entry[0] == task]:
            del self._values[entry]

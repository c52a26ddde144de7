"""
The versioned cache: the objects as they are believed to exist remotely.

The cache is a plain container with no locking of its own. It is owned
by the reflector (see `kmirror.reactor.reflecting`), which guards the data
and the version together as one unit.

The mutations are asymmetric: the additions never overwrite the existing
entries, and the modifications never insert the absent ones. The replays
of the watch-stream leave the state intact this way.
"""
from typing import Any, Dict, Generic, Iterable, Iterator, List, Mapping, Optional, TypeVar

from kmirror.structs import ids

DEFAULT_VERSION = '0'

_K = TypeVar('_K', bound=Mapping[str, Any])


class State(Generic[_K]):
    """
    The objects by their identities, plus the resource version to resume from.

    The store is O(1) for lookups/updates/deletions due to ``dict`` used
    internally, and O(n*log(n)) for the ordered copies of the values.
    """
    data: Dict[ids.ObjectId, _K]
    version: str

    def __init__(
            self,
            data: Optional[Mapping[ids.ObjectId, _K]] = None,
            version: str = DEFAULT_VERSION,
    ) -> None:
        super().__init__()
        self.data = dict(data or {})
        self.version = version

    @classmethod
    def from_objects(cls, objs: Iterable[_K], version: Optional[str] = None) -> "State[_K]":
        data: Dict[ids.ObjectId, _K] = {}
        for obj in objs:
            data[ids.ObjectId.key_for(obj)] = obj
        return cls(data=data, version=version or DEFAULT_VERSION)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} version={self.version!r} keys={self.keys()!r}>'

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[ids.ObjectId]:
        return iter(self.keys())

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def keys(self) -> List[ids.ObjectId]:
        return sorted(self.data)

    def values(self) -> List[_K]:
        return [self.data[key] for key in sorted(self.data)]

    def lookup(self, key: ids.ObjectId) -> Optional[_K]:
        return self.data.get(key)

    def insert(self, key: ids.ObjectId, obj: _K) -> bool:
        if key in self.data:
            return False
        self.data[key] = obj
        return True

    def update(self, key: ids.ObjectId, obj: _K) -> bool:
        if key not in self.data:
            return False
        self.data[key] = obj
        return True

    def remove(self, key: ids.ObjectId) -> bool:
        try:
            del self.data[key]
        except KeyError:
            return False
        else:
            return True

import functools
from typing import Any, Mapping, Optional, Tuple

from kmirror.structs import bodies


@functools.total_ordering
class ObjectId:
    """
    An identity of an object by its name and namespace (if any).

    It is an internal subset of Kubernetes' ``ObjectReference``: only the parts
    that make an object unique within one resource kind. The objects' UIDs are
    not used: a re-created object with the same name is the same entry.

    The identities are ordered by the namespace presence first (cluster-scoped
    objects go first), then by the name, then by the namespace's value.
    The order is used for the stable iteration of the reflector's state.
    """
    __slots__ = ('_name', '_namespace')

    def __init__(self, name: str, namespace: Optional[str] = None) -> None:
        super().__init__()
        self._name = name
        self._namespace = namespace

    @classmethod
    def key_for(cls, body: Mapping[str, Any]) -> "ObjectId":
        return cls(name=bodies.get_name(body) or '', namespace=bodies.get_namespace(body))

    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    @property
    def _sortkey(self) -> Tuple[bool, str, str]:
        return (self._namespace is not None, self._name, self._namespace or '')

    def __hash__(self) -> int:
        return hash((self._name, self._namespace))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return (self._name, self._namespace) == (other._name, other._namespace)
        else:
            return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return self._sortkey < other._sortkey
        else:
            return NotImplemented

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._name!r}, namespace={self._namespace!r})'

    def __str__(self) -> str:
        return self.to_display()

    def to_display(self) -> str:
        return f'{self._name} [{self._namespace}]' if self._namespace is not None else self._name

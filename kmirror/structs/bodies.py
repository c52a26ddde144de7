"""
All the structures coming from the Kubernetes API.

The usage of these classes is spread over the codebase, so they are extracted
into a separate module of such type definitions.

For strict type-checking, they are detailed to the per-field level
(e.g. `TypedDict` instead of just ``Mapping[Any, Any]``) --
as used by the mirror. The objects can have arbitrary fields at runtime,
which are not declared in the type definitions at type-checking time.

.. note::

    The mirror never interprets the objects beyond their identity
    (name & namespace) and their resource version. Everything else is stored
    and returned as is, exactly as it was received from the API.
"""
import dataclasses
import enum
from typing import Any, Collection, Generic, Mapping, Optional, TypeVar, Union

from typing_extensions import Literal, TypedDict

#
# Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
# from Kubernetes API, usually as retrieved in watching or listing API calls.
# "Input" is a parsed JSON line as is, while "event" is its classified form.
# All non-used payload falls into `Any`, and is not type-checked.
#

RawInputType = Literal['ADDED', 'MODIFIED', 'DELETED', 'BOOKMARK', 'ERROR']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    labels: Mapping[str, str]
    annotations: Mapping[str, str]
    resourceVersion: str
    creationTimestamp: str
    deletionTimestamp: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# A special payload for type==ERROR (this is not a connection or client error).
class RawError(TypedDict, total=False):
    apiVersion: str     # usually: Literal['v1']
    kind: str           # usually: Literal['Status']
    metadata: Mapping[Any, Any]
    code: int
    reason: str
    status: str
    message: str


# As received from the stream before classifying the events and errors.
class RawInput(TypedDict, total=True):
    type: RawInputType
    object: Union[RawBody, RawError]


#
# Introspection of the objects: the only three things the mirror needs to know.
# Any object stored in the mirror must support them (i.e. have the metadata).
#

def get_name(body: Mapping[str, Any]) -> Optional[str]:
    return (body.get('metadata') or {}).get('name')


def get_namespace(body: Mapping[str, Any]) -> Optional[str]:
    return (body.get('metadata') or {}).get('namespace')


def get_resource_version(body: Mapping[str, Any]) -> Optional[str]:
    return (body.get('metadata') or {}).get('resourceVersion')


#
# Classified events as consumed by the reflector.
#

_K = TypeVar('_K')


class EventType(str, enum.Enum):
    """ The kinds of the watch-events, as sent by the API. """
    ADDED = 'ADDED'
    MODIFIED = 'MODIFIED'
    DELETED = 'DELETED'
    BOOKMARK = 'BOOKMARK'
    ERROR = 'ERROR'


@dataclasses.dataclass(frozen=True)
class WatchEvent(Generic[_K]):
    """
    A single event of the watch-stream: either an object's change or an error.

    For ``ERROR`` events, the ``object`` is the raw status of the error
    (`RawError`), not the resource object. For ``BOOKMARK`` events, it is
    a mostly empty object with only the resource version in its metadata.
    """
    type: EventType
    object: Union[_K, RawError]

    @classmethod
    def from_raw(cls, raw_input: RawInput) -> "WatchEvent[Any]":
        return cls(type=EventType(raw_input['type']), object=raw_input['object'])


@dataclasses.dataclass(frozen=True)
class ObjectList(Generic[_K]):
    """ A full point-in-time listing of the objects with its resource version. """
    items: Collection[_K]
    resource_version: Optional[str] = None


def build_object_reference(body: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Construct an object reference for the logs.

    Keep in mind that some fields can be absent: e.g. ``namespace``
    for cluster resources, or e.g. ``apiVersion`` for ``kind: Node``, etc.
    """
    meta = body.get('metadata') or {}
    ref = dict(
        apiVersion=body.get('apiVersion'),
        kind=body.get('kind'),
        name=meta.get('name'),
        uid=meta.get('uid'),
        namespace=meta.get('namespace'),
    )
    return {key: val for key, val in ref.items() if val}

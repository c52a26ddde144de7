"""
A reflection of the state for one Kubernetes resource collection.

The reflector keeps the latest known objects by their identities, plus the
resource version to resume the watching from. It advances the state by the
watch-events (`Reflector.poll`), and rebuilds it from scratch by the full
listing (`Reflector.reset`) when the watch-stream cannot be continued.

It is prone to the desync problems of the watch-streams, but it self-heals,
as best as possible -- though this means that a full reset might happen
occasionally when the network issues or the expired resource versions
are encountered. Deciding when to reset is the caller's responsibility
(see `kmirror.reactor.running` for the default policy).

The state is readable at any time, also from other threads, via the getters
(`Reflector.state`, `Reflector.get`, `Reflector.get_within`). Only copies
are returned; the internal state is never exposed.

A single lock guards both the objects and the resource version as one unit.
It is held only for applying one event or for copying the data out,
never while waiting for the API.
"""
import logging
import threading
from typing import Any, AsyncIterator, Generic, List, Mapping, Optional, TypeVar

from typing_extensions import Protocol

from kmirror.engines import loggers
from kmirror.structs import bodies, caches, ids, references

logger = logging.getLogger(__name__)

_K = TypeVar('_K', bound=Mapping[str, Any])


class StreamError(Exception):
    """
    Raised when an explicit ``ERROR`` event arrives in the watch-stream.

    The raw status of the error (usually of kind ``Status``) is kept as is.
    Code 410 ("Gone") means that the resource version has expired,
    and the reflector must be reset to continue.
    """

    def __init__(self, status: bodies.RawError) -> None:
        message = status.get('message') if isinstance(status, Mapping) else None
        super().__init__(message or f"Error in the watch-stream: {status!r}", status)
        self._status = status

    @property
    def status(self) -> bodies.RawError:
        return self._status

    @property
    def code(self) -> Optional[int]:
        return self._status.get('code') if isinstance(self._status, Mapping) else None

    @property
    def reason(self) -> Optional[str]:
        return self._status.get('reason') if isinstance(self._status, Mapping) else None


class Collaborator(Protocol[_K]):
    """
    Everything the reflector needs from the API: listing & watching.

    `kmirror.clients.resources.Api` implements it for the Kubernetes API.
    The tests implement it with the pre-scripted events.
    """

    namespace: references.Namespace

    async def list(self, params: references.ListParams) -> bodies.ObjectList[_K]:
        ...

    def watch(
            self,
            params: references.ListParams,
            since: Optional[str],
    ) -> AsyncIterator[bodies.WatchEvent[_K]]:
        ...


class Reflector(Generic[_K]):
    """
    A local eventually-consistent mirror of one resource collection.

    Usage::

        reflector = Reflector(api)
        await reflector.reset()
        while True:
            await reflector.poll()
            print(reflector.state())

    See also `kmirror.reactor.running.run_reflector` for a ready-made loop.
    """

    def __init__(
            self,
            api: Collaborator[_K],
            params: Optional[references.ListParams] = None,
    ) -> None:
        super().__init__()
        self._api = api
        self._params = params if params is not None else references.ListParams()
        self._lock = threading.Lock()
        self._state: caches.State[_K] = caches.State()

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self._api!r}>'

    def params(self, params: references.ListParams) -> "Reflector[_K]":
        """
        Make a new reflector with different list-params for the same API.

        The new reflector starts with an empty state and must be reset.
        """
        return self.__class__(self._api, params=params)

    @property
    def list_params(self) -> references.ListParams:
        return self._params

    @property
    def version(self) -> str:
        with self._lock:
            return self._state.version

    async def poll(self) -> None:
        """
        A single watch-request to advance the state by its events.

        The events are applied one by one in the order of arrival. If the stream
        fails midway, the events applied so far remain applied.
        """
        with self._lock:
            resource_version = self._state.version
        logger.debug(f"Polling {self._api!r} from resourceVersion={resource_version}.")

        async for event in self._api.watch(self._params, resource_version):
            with self._lock:
                self._apply(event)

    def _apply(self, event: bodies.WatchEvent[_K]) -> None:
        # Must be called under the lock.
        if event.type is bodies.EventType.ERROR:
            status: bodies.RawError = event.object  # type: ignore
            logger.warning(f"Failed to watch {self._api!r}: {status!r}")
            raise StreamError(status)

        obj: _K = event.object  # type: ignore

        # Always store the last seen resource version, even for deletions & bookmarks.
        new_version = bodies.get_resource_version(obj)
        if new_version:
            logger.debug(f"Updating the version of {self._api!r} to {new_version}.")
            self._state.version = new_version

        key = ids.ObjectId.key_for(obj)
        object_logger = loggers.ObjectLogger(body=obj)
        if event.type is bodies.EventType.ADDED:
            if self._state.insert(key, obj):
                object_logger.debug(f"Added {key} to {self._api!r}.")
            else:
                object_logger.debug(f"Ignored a repeated addition of {key} to {self._api!r}.")
        elif event.type is bodies.EventType.MODIFIED:
            if self._state.update(key, obj):
                object_logger.debug(f"Modified {key} in {self._api!r}.")
            else:
                object_logger.debug(f"Ignored a modification of unknown {key} in {self._api!r}.")
        elif event.type is bodies.EventType.DELETED:
            if self._state.remove(key):
                object_logger.debug(f"Removed {key} from {self._api!r}.")
            else:
                object_logger.debug(f"Ignored a deletion of unknown {key} from {self._api!r}.")
        elif event.type is bodies.EventType.BOOKMARK:
            logger.debug(f"Bookmarked {self._api!r} at {new_version}.")
        else:
            raise TypeError(f"Unsupported event type: {event.type!r}")

    async def reset(self) -> None:
        """
        Rebuild the state from scratch with the full listing of the objects.

        The new state replaces the old one at once, so that the readers see
        either the old or the new state, never a mix of them. If the listing
        fails, the old state remains intact.
        """
        logger.debug(f"Resetting {self._api!r}.")
        objs = await self._api.list(self._params)
        state = caches.State.from_objects(objs.items, version=objs.resource_version)
        logger.debug(f"Got {len(state)} objects of {self._api!r} at resourceVersion={state.version}.")
        keys = ', '.join(str(key) for key in state.keys())
        logger.debug(f"Initialized {self._api!r} with: [{keys}]")
        with self._lock:
            self._state = state

    def state(self) -> List[_K]:
        """
        All currently known objects, ordered by their namespaces & names.
        """
        with self._lock:
            return self._state.values()

    def get(self, name: str) -> Optional[_K]:
        """
        Read a single object by name.

        It is looked up in the API's namespace, or globally for cluster-wide
        reflectors. For the cluster-wide reflectors of namespaced resources,
        use `get_within` instead.
        """
        key = ids.ObjectId(name=name, namespace=self._api.namespace)
        with self._lock:
            return self._state.lookup(key)

    def get_within(self, name: str, namespace: str) -> Optional[_K]:
        """
        Read a single object by name within a specific namespace.

        It is only useful for the reflectors that watch across all namespaces.
        """
        key = ids.ObjectId(name=name, namespace=namespace)
        with self._lock:
            return self._state.lookup(key)

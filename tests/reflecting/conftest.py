import types
from typing import Any, List, Optional

import pytest

from kmirror.reactor.reflecting import Reflector
from kmirror.structs.bodies import EventType, ObjectList, WatchEvent
from kmirror.structs.references import ListParams


class FakeCollaborator:
    """
    A pre-scripted API for the reflector: the listings & the watch-streams.

    Every call consumes one scripted result. An exception as a listing is raised
    instead of returning; an exception among the events fails the stream there.
    Unscripted listings are empty, unscripted streams end immediately.
    """

    def __init__(self, namespace: Optional[str] = None) -> None:
        super().__init__()
        self.namespace = namespace
        self.lists: List[Any] = []
        self.watches: List[List[Any]] = []
        self.list_calls: List[ListParams] = []
        self.watch_calls: List[Any] = []

    def __repr__(self) -> str:
        return '<FakeCollaborator>'

    async def list(self, params):
        self.list_calls.append(params)
        result = self.lists.pop(0) if self.lists else ObjectList(items=[])
        if isinstance(result, BaseException):
            raise result
        return result

    async def watch(self, params, since):
        self.watch_calls.append((params, since))
        for item in self.watches.pop(0) if self.watches else []:
            if isinstance(item, BaseException):
                raise item
            yield item


def mkobj(name: str, namespace: Optional[str] = None, version: Optional[str] = None, **fields: Any):
    metadata = {'name': name}
    if namespace is not None:
        metadata['namespace'] = namespace
    if version is not None:
        metadata['resourceVersion'] = version
    return dict(fields, metadata=metadata)


def added(obj):
    return WatchEvent(type=EventType.ADDED, object=obj)


def modified(obj):
    return WatchEvent(type=EventType.MODIFIED, object=obj)


def deleted(obj):
    return WatchEvent(type=EventType.DELETED, object=obj)


def bookmark(version):
    return WatchEvent(type=EventType.BOOKMARK, object={'metadata': {'resourceVersion': version}})


def error(code=500, message='oops', reason='InternalError'):
    return WatchEvent(type=EventType.ERROR, object={
        'apiVersion': 'v1', 'kind': 'Status', 'status': 'Failure',
        'code': code, 'message': message, 'reason': reason,
    })


@pytest.fixture()
def collaborator():
    return FakeCollaborator()


@pytest.fixture()
def reflector(collaborator):
    return Reflector(collaborator)


@pytest.fixture()
def events():
    """ The object & event builders, so that the tests need no imports from here. """
    return types.SimpleNamespace(
        mkobj=mkobj,
        added=added,
        modified=modified,
        deleted=deleted,
        bookmark=bookmark,
        error=error,
    )

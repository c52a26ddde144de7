from typing import Any, List, Optional

import pytest

from kmirror.reactor.reflecting import Reflector
from kmirror.structs.bodies import EventType, ObjectList, WatchEvent


class ScriptedCollaborator:
    """ Every listing & watching call takes the next scripted result or exception. """

    def __init__(self, namespace: Optional[str] = None) -> None:
        super().__init__()
        self.namespace = namespace
        self.lists: List[Any] = []
        self.watches: List[Any] = []
        self.calls: List[str] = []

    def __repr__(self) -> str:
        return '<ScriptedCollaborator>'

    async def list(self, params):
        self.calls.append('list')
        result = self.lists.pop(0) if self.lists else ObjectList(items=[], resource_version='1')
        if isinstance(result, BaseException):
            raise result
        return result

    async def watch(self, params, since):
        self.calls.append(f'watch@{since}')
        result = self.watches.pop(0) if self.watches else []
        if isinstance(result, BaseException):
            raise result
        for item in result:
            if isinstance(item, BaseException):
                raise item
            yield item


@pytest.fixture()
def collaborator():
    return ScriptedCollaborator()


@pytest.fixture()
def reflector(collaborator):
    return Reflector(collaborator)


@pytest.fixture()
def gone_event():
    return WatchEvent(type=EventType.ERROR, object={'kind': 'Status', 'code': 410})


@pytest.fixture()
def added_event():
    return WatchEvent(type=EventType.ADDED, object={'metadata': {'name': 'a', 'resourceVersion': '5'}})

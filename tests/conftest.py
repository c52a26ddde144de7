import collections
import dataclasses
import io
import json
import logging
import re
import sys
import time
from typing import Any, Deque, Dict, List, Mapping, Tuple

import aiohttp.test_utils
import aiohttp.web
import pytest

from kmirror.clients.auth import APIContext
from kmirror.clients.resources import Api
from kmirror.engines.loggers import ObjectPrefixingTextFormatter, configure
from kmirror.structs.configuration import ReflectorSettings
from kmirror.structs.credentials import ConnectionInfo
from kmirror.structs.references import Resource


@pytest.fixture()
def namespaced_resource():
    """ The resource used in the tests. Usually faked, so it does not matter. """
    return Resource('kmirror.dev', 'v1', 'kmirrorexamples', namespaced=True)


@pytest.fixture()
def cluster_resource():
    """ The resource used in the tests. Usually faked, so it does not matter. """
    return Resource('kmirror.dev', 'v1', 'kmirrorexamples', namespaced=False)


@pytest.fixture(params=[True, False], ids=['namespaced', 'cluster'])
def resource(request):
    """ The resource used in the tests. Usually faked, so it does not matter. """
    return Resource('kmirror.dev', 'v1', 'kmirrorexamples', namespaced=request.param)


@pytest.fixture()
def namespace(resource):
    return 'ns' if resource.namespaced else None


@pytest.fixture()
def settings():
    settings = ReflectorSettings()
    settings.watching.reconnect_backoff = 0
    settings.watching.error_backoff = 0
    return settings


#
# A fake Kubernetes API server. Reasons:
# 1. We do not test aiohttp, we test the layers on top of it,
#    so the real HTTP requests are made, but to a local fake server.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@dataclasses.dataclass(frozen=True)
class FakeRequest:
    method: str
    path: str
    query: Mapping[str, str]
    headers: Mapping[str, str]


class FakeKubeApi:
    """
    The pre-scripted responses of a fake API, and the requests as received.

    The responses are consumed one by one for every matching request.
    The listing and the watching of the same URL are scripted separately.
    Unscripted requests get the 404 status (as if the resource is absent).

    Sample usage::

        async def test_me(kube, api):
            kube.list(api.resource.get_url(namespace='ns'), items=[...], version='10')
            kube.watch(api.resource.get_url(namespace='ns'), events=[...])
            await something()
            assert kube.requests[0].query['watch'] == 'true'
    """

    def __init__(self) -> None:
        super().__init__()
        self.server: str = ''
        self.requests: List[FakeRequest] = []
        self._responses: Dict[Tuple[str, bool], Deque[aiohttp.web.StreamResponse]] = \
            collections.defaultdict(collections.deque)

    def list(self, path: str, items: List[Any], version: Any = None, **extra: Any) -> None:
        data = dict(extra, items=items, metadata={'resourceVersion': version} if version else {})
        self._responses[path, False].append(aiohttp.web.json_response(data))

    def watch(self, path: str, events: List[Any]) -> None:
        text = '\n'.join(json.dumps(event) for event in events)
        self._responses[path, True].append(aiohttp.web.Response(text=text))

    def watch_raw(self, path: str, lines: List[bytes]) -> None:
        self._responses[path, True].append(aiohttp.web.Response(body=b'\n'.join(lines)))

    def fail(self, path: str, status: int, payload: Any = None, *, watch: bool = False) -> None:
        response = (aiohttp.web.json_response(payload, status=status) if payload is not None else
                    aiohttp.web.Response(status=status, reason='oops'))
        self._responses[path, watch].append(response)

    async def handle(self, request: aiohttp.web.Request) -> aiohttp.web.StreamResponse:
        self.requests.append(FakeRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            headers=dict(request.headers),
        ))
        queue = self._responses.get((request.path, request.query.get('watch') == 'true'))
        if not queue:
            return aiohttp.web.json_response(status=404, data={
                'kind': 'Status', 'code': 404, 'message': f"No fake response for {request.path}",
            })
        return queue.popleft()


@pytest.fixture()
async def kube():
    fake = FakeKubeApi()
    app = aiohttp.web.Application()
    app.router.add_route('*', '/{path:.*}', fake.handle)
    server = aiohttp.test_utils.TestServer(app)
    await server.start_server()
    fake.server = str(server.make_url('')).rstrip('/')
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture()
def info(kube):
    return ConnectionInfo(server=kube.server)


@pytest.fixture()
async def context(info):
    async with APIContext(info) as context:
        yield context


@pytest.fixture()
def api(resource, namespace, context, settings):
    return Api(resource, namespace=namespace, context=context, settings=settings)


@pytest.fixture()
def logger():
    return logging.getLogger('kmirror.tests')


#
# Helpers for the timing checks.
#

@pytest.fixture()
def timer():
    return Timer()


class Timer(object):
    """
    A helper context manager to measure the time of the code-blocks.

    Usage:

        with Timer() as timer:
            do_something()

        print(f"Executed in {timer.seconds}s.")
        assert timer.seconds < 5.0
    """

    def __init__(self):
        super().__init__()
        self._ts = None
        self._te = None

    @property
    def seconds(self):
        if self._ts is None:
            return None
        elif self._te is None:
            return time.perf_counter() - self._ts
        else:
            return self._te - self._ts

    def __enter__(self):
        self._ts = time.perf_counter()
        self._te = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._te = time.perf_counter()

    async def __aenter__(self):
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return self.__exit__(exc_type, exc_val, exc_tb)


#
# Helpers for the logging checks.
#

@pytest.fixture()
def logstream(caplog):
    """ Prefixing is done at the final output. We have to intercept it. """

    logger = logging.getLogger()
    handlers = list(logger.handlers)

    # Setup all log levels of sub-libraries. A side-effect: the handlers are also added.
    configure(verbose=True)

    # Remove any stream handlers added in the step above. But keep the caplog's handlers.
    for handler in list(logger.handlers):
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr:
            logger.removeHandler(handler)

    # Inject our stream-intercepting handler.
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    formatter = ObjectPrefixingTextFormatter('prefix %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    try:
        with caplog.at_level(logging.DEBUG):
            yield stream
    finally:
        logger.removeHandler(handler)
        logger.handlers[:] = handlers  # undo `configure()`


@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    caplog.set_level(logging.DEBUG)

    def assert_logs_fn(patterns, prohibited=[]):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            if remaining_patterns and re.search(remaining_patterns[0], message):
                remaining_patterns[:1] = []

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                if re.search(pattern, message):
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn

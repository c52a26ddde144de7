import logging

import pytest

from kmirror.clients.errors import APIGoneError, APIMalformedError
from kmirror.clients.watching import watch_objs
from kmirror.structs.bodies import EventType
from kmirror.structs.references import ListParams

STREAM_WITH_NORMAL_EVENTS = [
    {'type': 'ADDED', 'object': {'metadata': {'name': 'a', 'resourceVersion': '1'}}},
    {'type': 'MODIFIED', 'object': {'metadata': {'name': 'a', 'resourceVersion': '2'}}},
    {'type': 'DELETED', 'object': {'metadata': {'name': 'a', 'resourceVersion': '3'}}},
    {'type': 'BOOKMARK', 'object': {'metadata': {'resourceVersion': '4'}}},
]


async def collect(**kwargs):
    return [event async for event in watch_objs(**kwargs)]


async def test_events_are_streamed(kube, context, settings, resource, namespace):
    kube.watch(resource.get_url(namespace=namespace), STREAM_WITH_NORMAL_EVENTS)

    events = await collect(
        settings=settings,
        resource=resource,
        namespace=namespace,
        params=ListParams(),
        since='0',
        context=context,
    )

    assert [event.type for event in events] == [
        EventType.ADDED, EventType.MODIFIED, EventType.DELETED, EventType.BOOKMARK,
    ]
    assert [event.object for event in events] == [raw['object'] for raw in STREAM_WITH_NORMAL_EVENTS]


async def test_error_events_are_yielded_not_raised(kube, context, settings, resource, namespace):
    kube.watch(resource.get_url(namespace=namespace), [
        {'type': 'ADDED', 'object': {'metadata': {'name': 'a'}}},
        {'type': 'ERROR', 'object': {'kind': 'Status', 'code': 410}},
    ])

    events = await collect(
        settings=settings,
        resource=resource,
        namespace=namespace,
        params=ListParams(),
        context=context,
    )

    assert [event.type for event in events] == [EventType.ADDED, EventType.ERROR]
    assert events[1].object == {'kind': 'Status', 'code': 410}


async def test_unknown_event_types_are_ignored(
        kube, context, settings, resource, namespace, caplog):
    kube.watch(resource.get_url(namespace=namespace), [
        {'type': 'UNKNOWN', 'object': {}},
        {'type': 'ADDED', 'object': {'metadata': {'name': 'a'}}},
    ])

    with caplog.at_level(logging.WARNING):
        events = await collect(
            settings=settings,
            resource=resource,
            namespace=namespace,
            params=ListParams(),
            context=context,
        )

    assert [event.type for event in events] == [EventType.ADDED]
    assert "Ignoring an unsupported event type" in caplog.text


async def test_watching_query_with_defaults(kube, context, settings, resource, namespace):
    kube.watch(resource.get_url(namespace=namespace), [])
    await collect(
        settings=settings,
        resource=resource,
        namespace=namespace,
        params=ListParams(),
        since='123',
        context=context,
    )
    assert kube.requests[0].query == {
        'watch': 'true',
        'resourceVersion': '123',
        'allowWatchBookmarks': 'true',
    }


async def test_watching_query_with_everything(kube, context, settings, resource, namespace):
    settings.watching.server_timeout = 100
    kube.watch(resource.get_url(namespace=namespace), [])
    await collect(
        settings=settings,
        resource=resource,
        namespace=namespace,
        params=ListParams(label_selector='app=x', field_selector='a=b', timeout=5,
                          allow_bookmarks=False),
        since='123',
        context=context,
    )
    assert kube.requests[0].query == {
        'watch': 'true',
        'labelSelector': 'app=x',
        'fieldSelector': 'a=b',
        'resourceVersion': '123',
        'timeoutSeconds': '5',
    }


async def test_server_timeout_from_settings(kube, context, settings, resource, namespace):
    settings.watching.server_timeout = 12.3
    kube.watch(resource.get_url(namespace=namespace), [])
    await collect(
        settings=settings,
        resource=resource,
        namespace=namespace,
        params=ListParams(),
        context=context,
    )
    assert kube.requests[0].query['timeoutSeconds'] == '12'
    assert 'resourceVersion' not in kube.requests[0].query


async def test_http_errors_are_raised(kube, context, settings, resource, namespace):
    kube.fail(resource.get_url(namespace=namespace), status=410, watch=True, payload={
        'kind': 'Status', 'code': 410, 'message': 'too old resource version',
    })

    with pytest.raises(APIGoneError) as err:
        await collect(
            settings=settings,
            resource=resource,
            namespace=namespace,
            params=ListParams(),
            since='1',
            context=context,
        )

    assert err.value.status == 410
    assert err.value.code == 410
    assert err.value.message == 'too old resource version'


@pytest.mark.parametrize('line', [
    b'{"type": "ADDED", "object": {',
    b'\xff\xfe{"type": "ADDED"}',
], ids=['broken-json', 'broken-utf8'])
async def test_malformed_lines_stop_the_stream(
        kube, context, settings, resource, namespace, line):
    kube.watch_raw(resource.get_url(namespace=namespace), [
        b'{"type": "ADDED", "object": {"metadata": {"name": "a"}}}',
        line,
        b'{"type": "ADDED", "object": {"metadata": {"name": "b"}}}',
    ])

    events = []
    with pytest.raises(APIMalformedError) as err:
        async for event in watch_objs(
            settings=settings,
            resource=resource,
            namespace=namespace,
            params=ListParams(),
            context=context,
        ):
            events.append(event)

    assert [event.object for event in events] == [{'metadata': {'name': 'a'}}]
    assert err.value.length == len(line)
    assert isinstance(err.value.__cause__, ValueError)
    assert 'ADDED' not in str(err.value)

"""
Watching and streaming watch-events.

One call of `watch_objs` is one watch request: it streams the events
from the given resource version until the server closes the connection
(e.g. by its ``timeoutSeconds``), and then ends. Continuing the stream
from where it stopped is the caller's responsibility (see the reflector).

The errors in the stream (``ERROR`` events) are not raised here,
they are yielded as events, so that the caller decides what to do with them.
The HTTP-level errors are raised (see `kmirror.clients.errors`).
"""
import logging
from typing import AsyncIterator, Dict, Optional, cast

import aiohttp

from kmirror.clients import api, auth
from kmirror.structs import bodies, configuration, references

logger = logging.getLogger(__name__)

KNOWN_EVENT_TYPES = frozenset(event_type.value for event_type in bodies.EventType)


async def watch_objs(
        *,
        settings: configuration.ReflectorSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        params: references.ListParams,
        since: Optional[str] = None,
        context: auth.APIContext,
) -> AsyncIterator[bodies.WatchEvent[bodies.RawBody]]:
    """
    Watch objects of a specific resource type.

    The cluster-scoped call is used in two cases:

    * The resource itself is cluster-scoped, and namespacing makes not sense.
    * The reflector serves all namespaces for the namespaced resource.

    Otherwise, the namespace-scoped call is used:

    * The resource is namespace-scoped AND the reflector is namespace-restricted.
    """
    query: Dict[str, str] = {}
    query['watch'] = 'true'
    query.update(params.as_query())
    if since is not None:
        query['resourceVersion'] = since
    if params.allow_bookmarks:
        query['allowWatchBookmarks'] = 'true'
    server_timeout = params.timeout if params.timeout is not None else settings.watching.server_timeout
    if server_timeout is not None:
        query['timeoutSeconds'] = str(int(server_timeout))

    connect_timeout = (
        settings.watching.connect_timeout if settings.watching.connect_timeout is not None else
        settings.networking.connect_timeout
    )

    # Stream the parsed events from the response until it is closed server-side.
    async for raw_input in api.stream(
        url=resource.get_url(namespace=namespace, params=query),
        settings=settings,
        context=context,
        logger=logger,
        timeout=aiohttp.ClientTimeout(
            total=settings.watching.client_timeout,
            sock_connect=connect_timeout,
        ),
    ):
        # Ensure that the event is something we understand and can handle.
        if raw_input.get('type') not in KNOWN_EVENT_TYPES:
            logger.warning(f"Ignoring an unsupported event type: {raw_input!r}")
            continue

        yield bodies.WatchEvent.from_raw(cast(bodies.RawInput, raw_input))

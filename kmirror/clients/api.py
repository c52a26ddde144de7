import json
from typing import Any, AsyncIterator, Optional

import aiohttp

from kmirror.clients import auth, errors
from kmirror.structs import configuration
from kmirror.utilities import typedefs


async def request(
        method: str,
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ReflectorSettings,
        context: auth.APIContext,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Make a single API request and check its response for errors.

    There are no retries here: the callers decide what to do on failures.
    """
    if '://' not in url:
        url = context.server.rstrip('/') + '/' + url.lstrip('/')

    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    logger.debug(f"Requesting: {method.upper()} {url}")
    response = await context.session.request(method=method, url=url, timeout=timeout)
    await errors.check_response(response)  # but do not parse it!
    return response


async def get(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ReflectorSettings,
        context: auth.APIContext,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='get',
        url=url,
        timeout=timeout,
        settings=settings,
        context=context,
        logger=logger,
    )
    async with response:
        return await response.json()


async def stream(
        url: str,  # relative to the server/api root.
        *,
        settings: configuration.ReflectorSettings,
        context: auth.APIContext,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> AsyncIterator[Any]:
    response = await request(
        method='get',
        url=url,
        timeout=timeout,
        settings=settings,
        context=context,
        logger=logger,
    )
    async with response:
        async for line in iter_jsonlines(response.content):
            try:
                data = json.loads(line.decode('utf-8'))
            except ValueError as e:  # incl. UnicodeDecodeError, JSONDecodeError
                raise errors.APIMalformedError(len(line)) from e
            yield data


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Split the watch-stream's content into lines, i.e. into the JSON events.

    aiohttp's own line iteration (``async for line in response.content``)
    fails on lines above 2**17 bytes (twice `aiohttp.streams.DEFAULT_LIMIT`).
    A single event carries a whole object, and some objects (e.g. Secrets
    and ConfigMaps) can be megabytes long. So, the chunks are accumulated
    until the newline, however long that takes. Empty lines are skipped.
    """

    # At most 2 copies of a line are in memory: in the buffer and the yielded one.
    buffer = b''
    async for data in content.iter_chunked(chunk_size):
        buffer += data
        del data

        start = 0
        index = buffer.find(b'\n', start)
        while index >= 0:
            line = buffer[start:index]
            if line:
                yield line
            del line
            start = index + 1
            index = buffer.find(b'\n', start)

        if start > 0:
            buffer = buffer[start:]

    if buffer:
        yield buffer

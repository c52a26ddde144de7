"""
The driving loop of a reflector: when to poll, when to reset.

The reflector itself never retries anything and never decides to resync.
This loop does it with a simple policy:

* Start with the full listing (a reset), since the state is empty initially.
* Poll repeatedly, with a small pause between the watch-requests.
* On the expired resource version (410 Gone, either as an HTTP status
  or as an ``ERROR`` event in the stream), reset after the short pause only.
* On other API or network errors, incl. malformed lines in the stream,
  pause longer, then either reset or retry polling from the last known
  version (see ``watching.reset_on_errors``).

The loop runs until the stop-event is set (or forever if there is none).
Unexpected exceptions (e.g. bugs) are escalated to the caller.
"""
import asyncio
import logging
from typing import Any, List, Mapping, Optional, TypeVar

import aiohttp

from kmirror.clients import auth, errors, login, resources
from kmirror.engines import sleeping
from kmirror.reactor import reflecting
from kmirror.structs import bodies, configuration, credentials, references

logger = logging.getLogger(__name__)

_K = TypeVar('_K', bound=Mapping[str, Any])

# The errors after which the reflector can recover by re-polling or resetting.
RECOVERABLE_ERRORS = (
    errors.APIError,
    errors.APIMalformedError,
    reflecting.StreamError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


def is_gone(exc: BaseException) -> bool:
    """ Check if the error means that the resource version has expired. """
    if isinstance(exc, errors.APIGoneError):
        return True
    if isinstance(exc, reflecting.StreamError) and exc.code == errors.HTTP_GONE_CODE:
        return True
    return False


async def run_reflector(
        reflector: reflecting.Reflector[_K],
        *,
        settings: Optional[configuration.ReflectorSettings] = None,
        stop_flag: Optional[asyncio.Event] = None,
        ready_flag: Optional[asyncio.Event] = None,
        _iterations: Optional[int] = None,  # used in tests/mocks/fixtures
) -> None:
    """
    Keep the reflector up to date until stopped.

    The ready-flag is set once the first reset succeeds, i.e. when the state
    is complete for the first time and can be used by the readers.
    """
    settings = settings if settings is not None else configuration.ReflectorSettings()
    needs_reset = True
    logger.debug(f"Starting the reflection of {reflector!r}.")
    try:
        while _iterations is None or _iterations > 0:  # equivalent to `while True` in non-test mode
            _iterations = None if _iterations is None else _iterations - 1
            if stop_flag is not None and stop_flag.is_set():
                break

            try:
                if needs_reset:
                    await reflector.reset()
                    needs_reset = False
                    logger.info(f"Listed {reflector!r}: {len(reflector.state())} objects "
                                f"at resourceVersion={reflector.version}.")
                    if ready_flag is not None:
                        ready_flag.set()
                await reflector.poll()

            except RECOVERABLE_ERRORS as e:
                if is_gone(e):
                    logger.info(f"The resource version of {reflector!r} has expired; re-listing.")
                    needs_reset = True
                    await sleeping.sleep_or_wait(settings.watching.reconnect_backoff, stop_flag)
                    continue

                logger.error(f"Reflecting {reflector!r} failed; will retry: {e!r}")
                needs_reset = needs_reset or settings.watching.reset_on_errors
                await sleeping.sleep_or_wait(settings.watching.error_backoff, stop_flag)

            else:
                logger.debug(f"Reflected {reflector!r}: {len(reflector.state())} objects "
                             f"at resourceVersion={reflector.version}.")
                await sleeping.sleep_or_wait(settings.watching.reconnect_backoff, stop_flag)
    finally:
        logger.debug(f"Stopping the reflection of {reflector!r}.")


async def mirror(
        *,
        resource: references.Resource,
        namespace: references.Namespace = None,
        params: Optional[references.ListParams] = None,
        settings: Optional[configuration.ReflectorSettings] = None,
        info: Optional[credentials.ConnectionInfo] = None,
        context_name: Optional[str] = None,
        stop_flag: Optional[asyncio.Event] = None,
        ready_flag: Optional[asyncio.Event] = None,
) -> None:
    """
    Log in, connect, and keep one resource collection mirrored until stopped.
    """
    settings = settings if settings is not None else configuration.ReflectorSettings()
    info = info if info is not None else login.login(context_name=context_name)
    async with auth.APIContext(info) as context:
        api = resources.Api(resource, namespace=namespace, context=context, settings=settings)
        reflector = reflecting.Reflector(api, params=params)
        await run_reflector(reflector, settings=settings, stop_flag=stop_flag, ready_flag=ready_flag)


def run(
        *,
        resource: references.Resource,
        namespace: references.Namespace = None,
        params: Optional[references.ListParams] = None,
        settings: Optional[configuration.ReflectorSettings] = None,
        context_name: Optional[str] = None,
) -> None:
    """
    Run the mirroring in a new event loop; exit gracefully on Ctrl+C.
    """
    try:
        asyncio.run(mirror(
            resource=resource,
            namespace=namespace,
            params=params,
            settings=settings,
            context_name=context_name,
        ))
    except KeyboardInterrupt:
        pass


async def snapshot(
        *,
        resource: references.Resource,
        namespace: references.Namespace = None,
        params: Optional[references.ListParams] = None,
        settings: Optional[configuration.ReflectorSettings] = None,
        info: Optional[credentials.ConnectionInfo] = None,
        context_name: Optional[str] = None,
) -> List[bodies.RawBody]:
    """
    Log in, connect, and list the resource collection once, as the reflector sees it.
    """
    settings = settings if settings is not None else configuration.ReflectorSettings()
    info = info if info is not None else login.login(context_name=context_name)
    async with auth.APIContext(info) as context:
        api = resources.Api(resource, namespace=namespace, context=context, settings=settings)
        reflector = reflecting.Reflector(api, params=params)
        await reflector.reset()
        return reflector.state()

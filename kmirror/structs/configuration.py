"""
All configuration flags, options, settings to fine-tune a reflector.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

In this package, they are called *"settings"* (plural).
Combined, they form a *"configuration"* (singular).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
"""
import dataclasses
from typing import Optional


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the one-time API requests, e.g. for listing.
    Measured in seconds. ``None`` disables the timeout.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for establishing the TCP/TLS connection to the API.
    """


@dataclasses.dataclass
class WatchingSettings:

    server_timeout: Optional[float] = None
    """
    The maximum duration of one streaming request. Patched in some tests.
    If ``None``, then obey the server-side timeouts (they seem to be random).
    """

    client_timeout: Optional[float] = None
    """
    An HTTP/HTTPS session timeout to use in watch requests.
    """

    connect_timeout: Optional[float] = None
    """
    An HTTP/HTTPS connection timeout to use in watch requests.
    If ``None``, the networking's ``connect_timeout`` is used.
    """

    reconnect_backoff: float = 0.1
    """
    How long should a pause be between watch requests (to prevent API flooding).
    """

    error_backoff: float = 5.0
    """
    How long should a pause be after a failed poll or reset before retrying.
    """

    reset_on_errors: bool = True
    """
    Should the reflector re-list everything after the unexpected stream errors?

    The resource version expiration (410 Gone) always causes the re-listing,
    since there is no other way to continue. Other errors can be retried
    with the same resource version if this flag is off.
    """


@dataclasses.dataclass
class ReflectorSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    watching: WatchingSettings = dataclasses.field(default_factory=WatchingSettings)

import base64
import os
import ssl
import tempfile
from typing import Any, Dict, Iterator, Mapping, Optional

import aiohttp

from kmirror.structs import credentials

USER_AGENT = 'kmirror/unknown'


class APIContext:
    """
    A container for an aiohttp session and the connection-related information.

    The context is created once per connection info, and is shared by all API
    calls of a reflector (or of several reflectors, if they share the cluster).
    It must be closed when not needed anymore, either explicitly or by using
    it as an async context manager::

        async with APIContext(info) as context:
            api = Api(resource, context=context)
            ...

    We assume that the whole program runs in the same event loop, so there is
    no need to split the sessions for multiple loops.
    """

    # The main contained object used by the API methods.
    session: aiohttp.ClientSession

    # Contextual information for URL building.
    server: str

    # Temporary files with the SSL data for the session's lifetime.
    _tempfiles: "_TempFiles"

    def __init__(
            self,
            info: credentials.ConnectionInfo,
    ) -> None:
        super().__init__()

        # Some SSL data are not accepted directly, so we have to use temp files.
        tempfiles = _TempFiles()
        ca_path = _pick_path(tempfiles, 'CA', info.ca_path, info.ca_data)
        certificate_path = _pick_path(tempfiles, 'certificate',
                                      info.certificate_path, info.certificate_data)
        private_key_path = _pick_path(tempfiles, 'private key',
                                      info.private_key_path, info.private_key_data)

        # The SSL part (both client certificate auth and CA verification).
        context: ssl.SSLContext
        if certificate_path and private_key_path:
            context = ssl.create_default_context(
                purpose=ssl.Purpose.SERVER_AUTH,
                cafile=ca_path)
            context.load_cert_chain(
                certfile=certificate_path,
                keyfile=private_key_path)
        else:
            context = ssl.create_default_context(
                cafile=ca_path)

        if info.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        # The token auth part.
        headers: Dict[str, str] = {}
        if info.scheme and info.token:
            headers['Authorization'] = f'{info.scheme} {info.token}'
        elif info.scheme:
            headers['Authorization'] = f'{info.scheme}'
        elif info.token:
            headers['Authorization'] = f'Bearer {info.token}'

        # The basic auth part.
        auth: Optional[aiohttp.BasicAuth]
        if info.username and info.password:
            auth = aiohttp.BasicAuth(info.username, info.password)
        else:
            auth = None

        headers['User-Agent'] = USER_AGENT

        # Generic aiohttp session based on the constructed credentials.
        self.session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=0,
                ssl=context,
            ),
            headers=headers,
            auth=auth,
        )

        self.server = info.server
        self._tempfiles = tempfiles

    async def __aenter__(self) -> "APIContext":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.session.close()

        # They will be purged on garbage collection anyway, but it is better to make it sooner.
        self._tempfiles.purge()


def _pick_path(
        tempfiles: "_TempFiles",
        what: str,
        path: Optional[str],
        data: Optional[bytes],
) -> Optional[str]:
    if path and data:
        raise credentials.LoginError(f"Both {what} path & data are set. Need only one.")
    elif path:
        return path
    elif data:
        return tempfiles[base64.b64decode(data)]
    else:
        return None


class _TempFiles(Mapping[bytes, str]):
    """
    A container for the temporary files, which are purged on garbage collection.

    The files are purged when the container is garbage-collected, or when
    its parent `APIContext` is explicitly closed.
    """

    def __init__(self) -> None:
        super().__init__()
        self._paths: Dict[bytes, str] = {}

    def __del__(self) -> None:
        self.purge()

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._paths)

    def __getitem__(self, item: bytes) -> str:
        if item not in self._paths:
            with tempfile.NamedTemporaryFile(delete=False) as f:
                f.write(item)
            self._paths[item] = f.name
        return self._paths[item]

    def purge(self) -> None:
        for _, path in self._paths.items():
            try:
                os.remove(path)
            except OSError:
                pass
        self._paths.clear()

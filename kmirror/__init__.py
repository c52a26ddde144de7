"""
The main kmirror module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from kmirror.clients.auth import (
    APIContext,
)
from kmirror.clients.errors import (
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIGoneError,
    APIMalformedError,
)
from kmirror.clients.login import (
    login,
    login_with_kubeconfig,
    login_with_service_account,
)
from kmirror.clients.resources import (
    Api,
)
from kmirror.engines.loggers import (
    LogFormat,
    ObjectLogger,
    configure,
)
from kmirror.reactor.reflecting import (
    Collaborator,
    Reflector,
    StreamError,
)
from kmirror.reactor.running import (
    mirror,
    run,
    run_reflector,
    snapshot,
)
from kmirror.structs.bodies import (
    EventType,
    ObjectList,
    RawBody,
    RawError,
    RawMeta,
    WatchEvent,
)
from kmirror.structs.configuration import (
    NetworkingSettings,
    ReflectorSettings,
    WatchingSettings,
)
from kmirror.structs.credentials import (
    ConnectionInfo,
    LoginError,
)
from kmirror.structs.ids import (
    ObjectId,
)
from kmirror.structs.references import (
    ListParams,
    Resource,
    parse_resource,
)

__all__ = [
    'APIContext',
    'APIError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIGoneError',
    'APIMalformedError',
    'login',
    'login_with_kubeconfig',
    'login_with_service_account',
    'Api',
    'LogFormat',
    'ObjectLogger',
    'configure',
    'Collaborator',
    'Reflector',
    'StreamError',
    'mirror',
    'run',
    'run_reflector',
    'snapshot',
    'EventType',
    'ObjectList',
    'RawBody',
    'RawError',
    'RawMeta',
    'WatchEvent',
    'NetworkingSettings',
    'ReflectorSettings',
    'WatchingSettings',
    'ConnectionInfo',
    'LoginError',
    'ObjectId',
    'ListParams',
    'Resource',
    'parse_resource',
]

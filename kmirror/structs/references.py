import dataclasses
import urllib.parse
from typing import Dict, Iterator, List, Mapping, NewType, Optional

# A specific really existing addressable namespace (at least, the one assumed to be so).
# Made as a NewType for stricter type-checking to avoid collisions with other strings.
NamespaceName = NewType('NamespaceName', str)

# A namespace reference usable in the API calls. `None` means cluster-wide API calls.
Namespace = Optional[NamespaceName]


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class Resource:
    """
    A reference to a very specific custom or built-in resource kind.

    It is used to form the K8s API URLs. Generally, K8s API only needs
    an API group, an API version, and a plural name of the resource.
    The kind is remembered for logging and informational purposes.
    """

    group: str
    """
    The resource's API group; e.g. ``"kmirror.dev"``, ``"apps"``, ``"batch"``.
    For Core v1 API resources, an empty string: ``""``.
    """

    version: str
    """
    The resource's API version; e.g. ``"v1"``, ``"v1beta1"``, etc.
    """

    plural: str
    """
    The resource's plural name; e.g. ``"pods"``, ``"configmaps"``.
    It is used as an API endpoint, together with API group & version.
    """

    kind: Optional[str] = None
    """
    The resource's kind (as in YAML files); e.g. ``"Pod"``, ``"ConfigMap"``.
    """

    namespaced: bool = True
    """
    Whether the resource is namespaced (``True``) or cluster-scoped (``False``).
    """

    def __hash__(self) -> int:
        return hash((self.group, self.version, self.plural))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Resource):
            self_tuple = (self.group, self.version, self.plural)
            other_tuple = (other.group, other.version, other.plural)
            return self_tuple == other_tuple
        else:
            return NotImplemented

    def __repr__(self) -> str:
        return f'{self.plural}.{self.version}.{self.group}'.strip('.')

    # Mostly for tests and CLI, to be used as `Resource(*resource)`.
    def __iter__(self) -> Iterator[str]:
        return iter((self.group, self.version, self.plural))

    @property
    def api_version(self) -> str:
        return f'{self.group}/{self.version}' if self.group else self.version

    def get_url(
            self,
            *,
            server: Optional[str] = None,
            namespace: Namespace = None,
            params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Build a URL for the resource list to be used with K8s API.

        If the namespace is not set, a cluster-wide URL is returned.
        For cluster-scoped resources, a namespace is not allowed.

        Params go to the query parameters (``?param1=value1&param2=value2...``).
        """
        if not self.namespaced and namespace is not None:
            raise ValueError("Specific namespaces are not supported for cluster-scoped resources.")

        parts: List[Optional[str]] = [
            '/api' if self.group == '' and self.version == 'v1' else '/apis',
            self.group,
            self.version,
            'namespaces' if self.namespaced and namespace is not None else None,
            namespace if self.namespaced and namespace is not None else None,
            self.plural,
        ]

        query = urllib.parse.urlencode(params, encoding='utf-8') if params else ''
        path = '/'.join([part for part in parts if part])
        url = path + ('?' if query else '') + query
        return url if server is None else server.rstrip('/') + '/' + url.lstrip('/')


def parse_resource(spec: str, *, namespaced: bool = True) -> Resource:
    """
    Parse a resource reference as kubectl does: ``plural.version.group``.

    The core v1 resources have no group: e.g. ``pods.v1``. The version is required,
    since there is no discovery of the preferred versions in the mirror.
    """
    plural, _, rest = spec.strip().partition('.')
    version, _, group = rest.partition('.')
    if not plural or not version:
        raise ValueError(f"Resource must be specified as plural.version[.group]: {spec!r}")
    return Resource(group=group, version=version, plural=plural, namespaced=namespaced)


@dataclasses.dataclass(frozen=True)
class ListParams:
    """
    Filtering & tuning of the list & watch requests.

    The same parameters are used for both the listing and the watching,
    so that the watch-stream continues exactly the same set of objects.
    """

    label_selector: Optional[str] = None
    """
    A label selector as in K8s API: e.g. ``"app=myapp,tier!=db"``.
    """

    field_selector: Optional[str] = None
    """
    A field selector as in K8s API: e.g. ``"metadata.name=myobj"``.
    """

    timeout: Optional[int] = None
    """
    The server-side duration of one watch request (``timeoutSeconds``).
    If ``None``, the settings' ``watching.server_timeout`` is used.
    """

    allow_bookmarks: bool = True
    """
    Whether the server may send the ``BOOKMARK`` events to advance the version.
    """

    def as_query(self) -> Dict[str, str]:
        query: Dict[str, str] = {}
        if self.label_selector:
            query['labelSelector'] = self.label_selector
        if self.field_selector:
            query['fieldSelector'] = self.field_selector
        return query

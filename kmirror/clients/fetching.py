from typing import List

from kmirror.clients import api, auth
from kmirror.structs import bodies, configuration, references
from kmirror.utilities import typedefs


async def list_objs(
        *,
        settings: configuration.ReflectorSettings,
        resource: references.Resource,
        namespace: references.Namespace,
        params: references.ListParams,
        context: auth.APIContext,
        logger: typedefs.Logger,
) -> bodies.ObjectList[bodies.RawBody]:
    """
    List the objects of specific resource type.

    The cluster-scoped call is used in two cases:

    * The resource itself is cluster-scoped, and namespacing makes not sense.
    * The reflector serves all namespaces for the namespaced resource.

    Otherwise, the namespace-scoped call is used:

    * The resource is namespace-scoped AND the reflector is namespace-restricted.
    """
    rsp = await api.get(
        url=resource.get_url(namespace=namespace, params=params.as_query()),
        settings=settings,
        context=context,
        logger=logger,
    )

    # The items in the lists have no kind & apiVersion, but the list itself has them.
    items: List[bodies.RawBody] = []
    resource_version = (rsp.get('metadata') or {}).get('resourceVersion', None)
    for item in rsp.get('items') or []:
        if 'kind' in rsp:
            item.setdefault('kind', rsp['kind'][:-4] if rsp['kind'][-4:] == 'List' else rsp['kind'])
        if 'apiVersion' in rsp:
            item.setdefault('apiVersion', rsp['apiVersion'])
        items.append(item)

    return bodies.ObjectList(items=items, resource_version=resource_version)

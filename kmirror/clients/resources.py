import logging
from typing import AsyncIterator, Optional

from kmirror.clients import auth, fetching, watching
from kmirror.structs import bodies, configuration, references

logger = logging.getLogger(__name__)


class Api:
    """
    An API handle bound to one resource kind in one namespace (or cluster-wide).

    This is what the reflector talks to: it lists the objects and watches them
    with the given list-params. The connection (the session & the credentials)
    is shared via the context; the handles themselves are cheap.
    """

    def __init__(
            self,
            resource: references.Resource,
            *,
            context: auth.APIContext,
            namespace: references.Namespace = None,
            settings: Optional[configuration.ReflectorSettings] = None,
    ) -> None:
        super().__init__()
        if not resource.namespaced and namespace is not None:
            raise ValueError("Specific namespaces are not supported for cluster-scoped resources.")
        self.resource = resource
        self.namespace = namespace
        self.context = context
        self.settings = settings if settings is not None else configuration.ReflectorSettings()

    def __repr__(self) -> str:
        where = f'in {self.namespace!r}' if self.namespace is not None else 'cluster-wide'
        return f'<{self.__class__.__name__} {self.resource!r} {where}>'

    async def list(
            self,
            params: references.ListParams,
    ) -> bodies.ObjectList[bodies.RawBody]:
        return await fetching.list_objs(
            settings=self.settings,
            resource=self.resource,
            namespace=self.namespace,
            params=params,
            context=self.context,
            logger=logger,
        )

    async def watch(
            self,
            params: references.ListParams,
            since: Optional[str],
    ) -> AsyncIterator[bodies.WatchEvent[bodies.RawBody]]:
        async for event in watching.watch_objs(
            settings=self.settings,
            resource=self.resource,
            namespace=self.namespace,
            params=params,
            since=since,
            context=self.context,
        ):
            yield event

"""
All the routines to talk to Kubernetes API.

Beware: this is NOT a Kubernetes client. It is set of dedicated adapters
specially tailored to do the mirror-specific tasks: listing and watching
the objects of one resource kind. Nothing is created, patched, or deleted.

The reflector does not depend on this package. It only needs an object
with the `list` & `watch` methods (see `kmirror.reactor.reflecting.Collaborator`);
`kmirror.clients.resources.Api` is the one for the real Kubernetes API.
"""

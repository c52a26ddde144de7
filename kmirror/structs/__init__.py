"""
All the data structures, type definitions, and settings.

The structures here have no behaviour of their own beyond the data access:
they are used by the reactor (see `kmirror.reactor`) and the API clients
(see `kmirror.clients`), but never import them.
"""

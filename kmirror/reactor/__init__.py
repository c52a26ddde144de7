"""
The reactor groups all modules to mirror the remote resources locally.

The reflector keeps the local state of one resource collection and advances it
by the watch-events (see `kmirror.reactor.reflecting`). The running loop drives
the reflector repeatedly and decides when to resynchronise it from scratch
(see `kmirror.reactor.running`).
"""

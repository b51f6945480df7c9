"""shokolat -- a forward HTTP proxy that mirrors selected GET responses to disk.

Requests whose URL matches a pattern from the *cache list* are answered from
a local mirror directory instead of the origin.  Matched URLs that are not
mirrored yet are refused with a fixed 403 page, and origin responses flowing
through the proxy are written back into the mirror so later requests can be
served locally.

Typical workflow::

    shokolat patterns check cachelist.txt     # validate the cache list
    shokolat cache warm https://example.com/img/a.png
    shokolat serve --root ./mirror --http :8080

Modules:
    app: Typer application and CLI entry point.
    patterns: Cache-list loading and first-match lookup.
    cache: Cache key resolution and the on-disk store.
    engine: Request-phase admission and response-phase write-back.
    addon: Binding of both engines to mitmproxy's hooks.
    models: Pydantic configuration models.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting and logging setup.
"""

__version__ = "0.3.0"

"""mitmproxy addon that puts the admission and write-back engines in the proxy path.

mitmproxy owns the sockets, TLS, HTTP parsing, and upstream connections and
calls two hooks per flow:

* ``request`` -- runs :class:`~shokolat.engine.AdmissionEngine`. A terminal
  verdict answers the flow directly, so mitmproxy never contacts the origin.
* ``response`` -- runs :class:`~shokolat.engine.WriteBackEngine` on the
  origin's decoded body. The response itself is never modified.

Flows answered from the mirror or with the 403 page are marked in
``flow.metadata`` and skipped at write-back, so synthetic bodies are never
persisted as if the origin had sent them.

mitmproxy only sends synthetic responses from an in-memory body, so a
served entry is read here in one pass; HEAD requests skip the read and
only advertise the entry's length.

``shokolat serve`` installs this addon into mitmproxy's ``DumpMaster``.
"""

from __future__ import annotations

import logging

from mitmproxy import http

from shokolat.engine import AdmissionEngine, Verdict, WriteBackEngine

logger = logging.getLogger(__name__)

METADATA_KEY = "shokolat"
"""``flow.metadata`` key holding the admission verdict's value."""

_SYNTHETIC = frozenset({Verdict.SERVE.value, Verdict.FORBID.value})


class ShokolatAddon:
    """Bind an admission engine and a write-back engine to mitmproxy's hooks.

    Args:
        admission: Decides how each request is answered.
        write_back: Decides which origin bodies are mirrored.
    """

    def __init__(self, admission: AdmissionEngine, write_back: WriteBackEngine) -> None:
        self.admission = admission
        self.write_back = write_back

    def request(self, flow: http.HTTPFlow) -> None:
        if flow.response is not None:
            return
        method = flow.request.method
        url = flow.request.url
        logger.debug("Url: %s", url)

        decision = self.admission.admit(method, url)
        flow.metadata[METADATA_KEY] = decision.verdict.value
        if not decision.is_terminal:
            return

        if method.upper() == "HEAD":
            decision.close()
            content = b""
        else:
            content = b"".join(decision.iter_body())

        response = http.Response.make(
            decision.status_code, content, {"Content-Type": decision.content_type}
        )
        response.headers["Content-Length"] = str(decision.content_length)
        flow.response = response

    def response(self, flow: http.HTTPFlow) -> None:
        if flow.metadata.get(METADATA_KEY) in _SYNTHETIC:
            return
        if flow.response is None:
            return
        body = flow.response.get_content(strict=False)
        if body is None:
            # Streamed through without buffering; nothing to mirror.
            return
        self.write_back.write_back(
            flow.request.method, flow.request.url, flow.response.headers, body
        )

"""ipfs:// locators and their gateway URLs.

Locator format: ipfs://<cid>[/<path>]

A CID is accepted as either CIDv0 (base58btc, "Qm" + 44 chars) or
CIDv1 in base32 ("b" + lowercase [a-z2-7]). The gateway transform is a
pure string mapping; it never touches the network.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from portfolio.errors import MalformedLocator


SCHEME = "ipfs://"

_CID_V0 = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_CID_V1 = re.compile(r"^b[a-z2-7]{50,}$")


@dataclass(frozen=True)
class Locator:
    """A parsed content-addressed locator."""
    cid: str
    path: str = ""

    @classmethod
    def parse(cls, uri: str) -> Locator:
        """Parse ipfs://<cid>[/<path>]. Raises MalformedLocator."""
        if not uri or not uri.startswith(SCHEME):
            raise MalformedLocator(uri, "contentURI must be ipfs://<CID>[/path]")
        rest = uri[len(SCHEME):]
        cid, _, path = rest.partition("/")
        if not is_cid(cid):
            raise MalformedLocator(uri, f"invalid CID {cid!r} in locator")
        if path.endswith("/") or "//" in path:
            raise MalformedLocator(uri, "empty path segment in locator")
        return cls(cid=cid, path=path)

    @classmethod
    def for_cid(cls, cid: str, path: str = "") -> Locator:
        return cls.parse(SCHEME + cid + (f"/{path}" if path else ""))

    @property
    def uri(self) -> str:
        if self.path:
            return f"{SCHEME}{self.cid}/{self.path}"
        return f"{SCHEME}{self.cid}"

    def gateway_url(self, gateway_base: str) -> str:
        """Map to <gatewayBase><cid>[/<path>]."""
        url = f"{gateway_base}{self.cid}"
        if self.path:
            url = f"{url}/{self.path}"
        return url

    def __str__(self) -> str:
        return self.uri


def is_cid(value: str) -> bool:
    """Check CIDv0 / base32 CIDv1 shape."""
    return bool(_CID_V0.match(value) or _CID_V1.match(value))


def is_locator(uri: str) -> bool:
    """Return True if uri parses as an ipfs:// locator."""
    try:
        Locator.parse(uri)
    except MalformedLocator:
        return False
    return True

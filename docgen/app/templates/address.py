"""
Template address parsing.

Address syntax:

    scheme@authority:payload    blob@templates-bucket:contracts/lease.tex
    scheme@payload              https@https://example.com/report.html
    bare path                   invoices/monthly.tex

The scheme tag is the text before the first '@' when that text is a
valid scheme token. Anything else is an untagged (local) address that is
never cached or downloaded.

Any address containing '..' is rejected unconditionally.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from docgen.app.errors import AddressNotFound, InvalidAddress


_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")

PARENT_SEGMENT = ".."


class ParsedAddress(BaseModel):
    raw: str
    scheme: Optional[str] = None
    payload: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_local(self) -> bool:
        return self.scheme is None

    def split_authority(self) -> Tuple[str, str]:
        """
        Split ``authority:payload``.

        Returns ``("", payload)`` when no authority separator is present.
        """
        authority, sep, rest = self.payload.partition(":")
        if not sep:
            return "", self.payload
        return authority, rest


def classify(address: Optional[str]) -> ParsedAddress:
    """
    Classify an address as scheme-tagged or local.

    Raises:
        AddressNotFound: the address is None, empty or blank.
        InvalidAddress:  the address contains a parent-directory segment.
    """
    if address is None or not address.strip():
        raise AddressNotFound(address)

    if PARENT_SEGMENT in address:
        raise InvalidAddress(address, "parent-directory traversal is not allowed")

    scheme, sep, payload = address.partition("@")
    if not sep or not _SCHEME_RE.match(scheme):
        return ParsedAddress(raw=address, scheme=None, payload=address)

    if not payload:
        raise InvalidAddress(address, f"scheme '{scheme}' has no payload")

    return ParsedAddress(raw=address, scheme=scheme.lower(), payload=payload)


def is_local(address: str) -> bool:
    """True when ``address`` carries no scheme tag."""
    return classify(address).is_local

"""Sender address parsing."""

import re
from dataclasses import dataclass
from email.utils import parseaddr


@dataclass(frozen=True)
class SenderAddress:
    """A parsed From header."""

    display_name: str
    email: str

    @property
    def local_part(self) -> str:
        return self.email.rsplit("@", 1)[0] if "@" in self.email else ""

    @property
    def domain(self) -> str:
        return self.email.rsplit("@", 1)[1] if "@" in self.email else ""


_QUOTES = "\"'“”‘’"


def parse_from(from_address: str) -> SenderAddress:
    """
    Split a From header into display name and address.

    Accepts '"Acme Talent" <jobs@acme.com>', 'jobs@acme.com' and bare
    display names. The address is lower-cased; the display name keeps its
    casing with surrounding quotes removed.

    Args:
        from_address: Raw From header value

    Returns:
        SenderAddress (fields may be empty strings)
    """
    raw = (from_address or "").strip()
    if not raw:
        return SenderAddress(display_name="", email="")

    display, address = parseaddr(raw)
    if "@" not in address:
        # parseaddr gives up on some display-name-only headers
        match = re.search(r"[\w.+\-]+@[\w\-]+(?:\.[\w\-]+)+", raw)
        if match:
            address = match.group(0)
            display = display or raw[: match.start()].strip(" <")
        else:
            return SenderAddress(display_name=raw.strip(_QUOTES).strip(), email="")

    return SenderAddress(
        display_name=display.strip().strip(_QUOTES).strip(),
        email=address.strip().lower(),
    )

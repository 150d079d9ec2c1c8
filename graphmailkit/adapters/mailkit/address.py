"""
Mail addresses shaped like MimeKit's InternetAddress family.

Parsing accepts exactly two forms: "Name <email>" (quotes around the name are
dropped) and a bare address. No further RFC 5322 grammar is attempted.
"""

import re
from collections.abc import MutableSequence
from typing import Iterable, List, Optional, Union


NAME_ADDR_RE = re.compile(r"^(.*?)\s*<([^>]+)>$")


class InternetAddress:
    """Base class for addresses. Subclasses provide `address`."""

    def __init__(self, name: str = ""):
        self.name = name or ""

    @property
    def address(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.address}>"
        return self.address

    @staticmethod
    def parse(text: str) -> "MailboxAddress":
        return MailboxAddress.parse(text)

    @staticmethod
    def try_parse(text: str) -> Optional["MailboxAddress"]:
        return MailboxAddress.try_parse(text)


class MailboxAddress(InternetAddress):
    """A single mailbox: display name plus address."""

    def __init__(self, name: str = "", address: str = ""):
        super().__init__(name)
        self._address = address or ""

    @property
    def address(self) -> str:
        return self._address

    @classmethod
    def parse(cls, text: str) -> "MailboxAddress":
        """
        Parse "Name <email>" or "email".

        Raises:
            ValueError: If text is None or empty
        """
        if not text:
            raise ValueError("Address text cannot be empty")

        text = text.strip()
        match = NAME_ADDR_RE.match(text)
        if match:
            name = match.group(1).strip().strip('"')
            return cls(name, match.group(2).strip())
        return cls("", text)

    @classmethod
    def try_parse(cls, text: str) -> Optional["MailboxAddress"]:
        try:
            return cls.parse(text)
        except ValueError:
            return None

    def __eq__(self, other) -> bool:
        if not isinstance(other, MailboxAddress):
            return NotImplemented
        return self.address.lower() == other.address.lower()

    def __hash__(self) -> int:
        return hash(self.address.lower())

    def __repr__(self) -> str:
        return f"MailboxAddress({self.name!r}, {self.address!r})"


class InternetAddressList(MutableSequence):
    """Ordered, mutable list of addresses."""

    def __init__(self, addresses: Optional[Iterable[InternetAddress]] = None):
        self._addresses: List[InternetAddress] = list(addresses or [])

    def __getitem__(self, index):
        return self._addresses[index]

    def __setitem__(self, index, value):
        self._addresses[index] = value

    def __delitem__(self, index):
        del self._addresses[index]

    def __len__(self) -> int:
        return len(self._addresses)

    def insert(self, index: int, value: InternetAddress) -> None:
        self._addresses.insert(index, value)

    def add(self, item: Union[InternetAddress, str, None]) -> None:
        """Append an address; strings are parsed, None and "" are ignored."""
        if item is None:
            return
        if isinstance(item, str):
            if not item:
                return
            item = MailboxAddress.parse(item)
        self._addresses.append(item)

    def add_range(self, addresses: Optional[Iterable[InternetAddress]]) -> None:
        for address in addresses or []:
            self.add(address)

    def __str__(self) -> str:
        return ", ".join(str(a) for a in self._addresses)

    def __repr__(self) -> str:
        return f"InternetAddressList({self._addresses!r})"

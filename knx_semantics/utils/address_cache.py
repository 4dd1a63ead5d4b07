"""Address cache for group address lookups"""

import logging
from typing import Dict, Iterable, Optional

from knx_semantics.models import GroupAddress, format_three_part, format_three_part_address

logger = logging.getLogger(__name__)


class AddressCache:
    """Index of group addresses by their three part address"""

    def __init__(self):
        """Initialize empty cache."""
        self.by_address: Dict[str, GroupAddress] = {}  # "1/0/1" -> GA

    def build_index(self, group_addresses: Iterable[GroupAddress]):
        """
        Add group addresses to the index.

        Adding the same address again replaces the previous entry.

        Args:
            group_addresses: Group addresses to index
        """
        count = 0
        for ga in group_addresses:
            self.by_address[ga.address] = ga
            count += 1

        logger.debug(f"Address cache: indexed {count} addresses, {len(self.by_address)} cached")

    def get_by_address(self, address: str) -> Optional[GroupAddress]:
        """
        Get group address by address string.

        Args:
            address: KNX address string (e.g., "1/2/3")

        Returns:
            GroupAddress or None
        """
        return self.by_address.get(address)

    def get_by_int(self, address_int: int) -> Optional[GroupAddress]:
        """Get group address by its packed integer, None outside the 16 bit range."""
        if not 0 <= address_int <= 0xFFFF:
            return None
        return self.get_by_address(format_three_part_address(address_int))

    def get_by_parts(self, main: int, middle: int, sub: int) -> Optional[GroupAddress]:
        return self.get_by_address(format_three_part(main, middle, sub))

    def __len__(self):
        return len(self.by_address)

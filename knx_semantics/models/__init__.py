"""Data models for a parsed KNX project.

This package contains the entity graph built from a .knxproj file:
- Area / Line / Device: the bus topology
- CommunicationObject: a device's send/listen binding to group addresses
- GroupAddressRange / GroupAddress: the group address catalog
- DatapointType: the datapoint types relevant for analysis
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

THREE_PART_ADDRESS = re.compile(r'^(\d+)/(\d+)/(\d+)$')


def get_main_group(address: int) -> int:
    """Return the main group (bits 15-11) of a group address."""
    return (address & 0xF800) >> 11


def get_middle_group(address: int) -> int:
    """Return the middle group (bits 10-8) of a group address."""
    return (address & 0x700) >> 8


def get_sub_group(address: int) -> int:
    """Return the sub group (bits 7-0) of a group address."""
    return address & 0xFF


def combine_address(main: int, middle: int, sub: int) -> int:
    """Pack main/middle/sub groups into the 16 bit group address."""
    return (main << 11) + (middle << 8) + sub


def format_three_part(main: int, middle: int, sub: int) -> str:
    return f"{main}/{middle}/{sub}"


def format_three_part_address(address: int) -> str:
    """
    Format a group address as ``main/middle/sub``.

    Example:
        >>> format_three_part_address(2058)
        '1/0/10'
    """
    return format_three_part(get_main_group(address), get_middle_group(address), get_sub_group(address))


def parse_three_part_address(text: str) -> int:
    """
    Parse a ``main/middle/sub`` string into the 16 bit group address.

    Raises:
        ValueError: If the text is not a valid three part address
    """
    match = THREE_PART_ADDRESS.match(text.strip()) if text else None
    if not match:
        raise ValueError(f"Invalid three part group address: '{text}'")
    main, middle, sub = (int(part) for part in match.groups())
    if main > 31 or middle > 7 or sub > 255:
        raise ValueError(f"Group address out of range: '{text}'")
    return combine_address(main, middle, sub)


def format_physical_address(line: Optional['Line'], address: Optional[str]) -> Optional[str]:
    """Build the physical address ``area.line.device``; None if any part is missing."""
    if address is None or line is None or line.address is None:
        return None
    if line.area is None or line.area.address is None:
        return None
    return f"{line.area.address}.{line.address}.{address}"


class DatapointType(Enum):
    """Datapoint types relevant for fixture detection, keyed by canonical ``main.sub`` code."""
    Switch = "1.001"
    Bool = "1.002"
    Enable = "1.003"
    UpDown = "1.008"
    OpenClose = "1.009"
    State = "1.011"
    ControlDimming = "3.007"
    Scaling = "5.001"

    @classmethod
    def find_by_value(cls, value: Optional[str]) -> Optional['DatapointType']:
        """Look up a datapoint type by canonical code; unknown codes return None."""
        return _DPT_BY_VALUE.get(value)


_DPT_BY_VALUE = {dpt.value: dpt for dpt in DatapointType}


@dataclass(eq=False)
class Area:
    """Represents a topology area."""
    id: Optional[str]
    address: Optional[str]
    name: Optional[str] = None
    description: Optional[str] = None
    lines: List['Line'] = field(default_factory=list, repr=False)

    def __str__(self) -> str:
        return f"Area [id={self.id}, address={self.address}]"


@dataclass(eq=False)
class Line:
    """Represents a line within an area."""
    area: Optional[Area] = field(repr=False)
    id: Optional[str]
    address: Optional[str]
    name: Optional[str] = None
    description: Optional[str] = None
    devices: List['Device'] = field(default_factory=list, repr=False)

    def __str__(self) -> str:
        return f"Line [id={self.id}, address={self.address}]"


@dataclass(eq=False)
class Device:
    """Represents a device instance on a line."""
    line: Optional[Line] = field(repr=False)
    id: Optional[str]
    local_address: Optional[str]
    name: Optional[str] = None
    description: Optional[str] = None
    communication_objects: List['CommunicationObject'] = field(default_factory=list, repr=False)

    @property
    def address(self) -> Optional[str]:
        """The physical address (e.g. ``1.1.12``), None if incomplete."""
        return format_physical_address(self.line, self.local_address)

    def __str__(self) -> str:
        return f"Device [{self.address}, {self.name if self.name and self.name.strip() else '<no name>'}]"


@dataclass(eq=False)
class CommunicationObject:
    """A device's communication object with its group address links."""
    device: Optional[Device] = field(repr=False)
    ref_id: Optional[str]
    datapoint_type: Optional[str]
    description: Optional[str] = None
    read_flag: bool = False
    send_group_address_ref_id: Optional[str] = None
    listen_group_address_ref_ids: List[str] = field(default_factory=list)

    # resolved by the linking pass
    send_group_address: Optional['GroupAddress'] = field(default=None, repr=False)
    listen_group_addresses: List['GroupAddress'] = field(default_factory=list, repr=False)

    def __str__(self) -> str:
        description = self.description if self.description and self.description.strip() else '<missing description>'
        read = ", READ" if self.read_flag else ""
        return f"CommunicationObject [{description}, dpt {self.datapoint_type}{read}, {self.device}]"


@dataclass(eq=False)
class GroupAddressRange:
    """A named bucket of group addresses; may be nested."""
    parent: Optional['GroupAddressRange'] = field(repr=False)
    id: Optional[str]
    start_int: int
    end_int: int
    name: Optional[str] = None
    description: Optional[str] = None

    @property
    def start(self) -> str:
        return format_three_part_address(self.start_int)

    @property
    def end(self) -> str:
        return format_three_part_address(self.end_int)

    def __str__(self) -> str:
        return f"GroupAddressRange [id={self.id}, start={self.start}, name={self.name}]"


@dataclass(eq=False)
class GroupAddress:
    """Represents a KNX group address with metadata."""
    group_address_range: Optional[GroupAddressRange] = field(repr=False)
    id: Optional[str]
    address_int: int
    name: Optional[str] = None
    description: Optional[str] = None
    datapoint_type: Optional[str] = None  # canonical, e.g. "1.001"

    # populated by the linking pass
    writing_communication_objects: List[CommunicationObject] = field(default_factory=list, repr=False)
    listening_communication_objects: List[CommunicationObject] = field(default_factory=list, repr=False)

    @property
    def address(self) -> str:
        """The address in ``main/middle/sub`` notation."""
        return format_three_part_address(self.address_int)

    @property
    def main(self) -> int:
        return get_main_group(self.address_int)

    @property
    def middle(self) -> int:
        return get_middle_group(self.address_int)

    @property
    def sub(self) -> int:
        return get_sub_group(self.address_int)

    def __str__(self) -> str:
        return f"{self.address} [{self.name}, dpt={self.datapoint_type}]"


__all__ = [
    'Area',
    'Line',
    'Device',
    'CommunicationObject',
    'GroupAddressRange',
    'GroupAddress',
    'DatapointType',
    'get_main_group',
    'get_middle_group',
    'get_sub_group',
    'combine_address',
    'format_three_part',
    'format_three_part_address',
    'parse_three_part_address',
    'format_physical_address',
]

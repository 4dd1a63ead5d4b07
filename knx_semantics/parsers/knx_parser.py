"""KNX Project Parser Module

Reads .knxproj archives exported from ETS into the entity graph of
:mod:`knx_semantics.models`.

Only two documents of the archive are read:

- ``P-xxxx/project.xml``: project id and name
- ``P-xxxx/0.xml``: topology and group address catalog

Both are streamed through :class:`ElementCursor`. Communication objects are
linked to their group addresses in a separate pass once everything is read.
"""
import logging
import re
import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterable, List, Optional, Tuple

from knx_semantics.config import config
from knx_semantics.exceptions import (
    MalformedDocumentError,
    MultipleProjectsExportedError,
    ProjectNotFoundError,
)
from knx_semantics.models import (
    Area,
    CommunicationObject,
    Device,
    GroupAddress,
    GroupAddressRange,
    Line,
)
from knx_semantics.parsers.element_reader import START, ElementCursor, read_children

logger = logging.getLogger(__name__)

PROJECT_ID_PREFIX = 'P-'
PROJECT_INFO_FILE = 'project.xml'
PROJECT_DATA_FILE = '0.xml'

UNKNOWN_DPT = '0.000'
LEGACY_DPT_LABELS = {
    '1 Bit': '1.001',
    '2 Bit': '2.001',
}
_DPT_PATTERN = re.compile(r'^(DPST|DPT)-(\d+)(?:-(\d+))?$')


def convert_to_dpt(datapoint_type: Optional[str], location: Optional[str] = None,
                   on_warning: Optional[Callable[[], None]] = None) -> Optional[str]:
    """
    Normalize an ETS datapoint type into its canonical ``main.sub`` code.

    Args:
        datapoint_type: Raw value, e.g. ``DPST-1-1``, ``DPT-5`` or ``1 Bit``
        location: Where the value was found (for log messages)
        on_warning: Called once for every problem logged for the value

    Returns:
        Canonical code (``1.001``), ``0.000`` if unrecognized, None if blank

    Example:
        >>> convert_to_dpt('DPST-5-1')
        '5.001'
        >>> convert_to_dpt('DPT-9')
        '9.000'
    """
    if datapoint_type is None or not datapoint_type.strip():
        return None

    if datapoint_type in LEGACY_DPT_LABELS:
        return LEGACY_DPT_LABELS[datapoint_type]

    value = datapoint_type.strip()
    parts = value.split()
    if len(parts) > 1:
        logger.warning(f"Found invalid DPT '{datapoint_type}' at {location}. "
                       f"Dropping everything following including first whitespace.")
        _notify(on_warning)
        value = parts[0]

    if value.startswith('DPST') or value.startswith('DPT'):
        match = _DPT_PATTERN.match(value)
        if not match:
            logger.warning(f"Found malformed DPT '{datapoint_type}' at {location}")
            _notify(on_warning)
            return UNKNOWN_DPT
        kind, main, sub = match.groups()
        if kind == 'DPST' and sub is None:
            logger.warning(f"Found malformed DPT '{datapoint_type}' at {location}")
            _notify(on_warning)
            return UNKNOWN_DPT
        return f"{int(main)}.{int(sub or 0):03d}"

    logger.warning(f"Found unsupported DPT '{datapoint_type}' at {location}")
    _notify(on_warning)
    return UNKNOWN_DPT


def _notify(on_warning: Optional[Callable[[], None]]):
    if on_warning is not None:
        on_warning()


class ZipProjectArchive:
    """Read access to the entries of a .knxproj file"""

    def __init__(self, path):
        self.path = Path(path)
        try:
            self._zip = zipfile.ZipFile(self.path, 'r')
        except zipfile.BadZipFile as e:
            raise MalformedDocumentError(f"Not a valid project archive: {self.path}") from e

    def names(self) -> List[str]:
        return self._zip.namelist()

    def open(self, name: str) -> BinaryIO:
        return self._zip.open(name, 'r')

    def close(self):
        self._zip.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def find_project_entries(names: Iterable[str]) -> Tuple[str, Dict[str, str]]:
    """
    Locate the documents of the exported project.

    Args:
        names: All entry names of the archive

    Returns:
        Tuple of project id and a mapping of document file name to entry name

    Raises:
        MultipleProjectsExportedError: If entries of more than one project are found
        ProjectNotFoundError: If no project is found
    """
    project_ids = []
    entries = {}
    for name in names:
        if not (name.endswith('/' + PROJECT_INFO_FILE) or name.endswith('/' + PROJECT_DATA_FILE)):
            continue

        name_parts = name.split('/')
        if len(name_parts) != 2:
            logger.warning(f"Found invalid zip entry: {name}")
            continue
        project_id, file_name = name_parts
        if not project_id.startswith(PROJECT_ID_PREFIX):
            logger.warning(f"Found unsupported project id: {project_id}")
            continue

        if project_id not in project_ids:
            project_ids.append(project_id)
        entries[file_name] = name

    if len(project_ids) > 1:
        raise MultipleProjectsExportedError(
            f"Multiple projects not supported ({', '.join(project_ids)}). Export only ONE project from ETS!")
    if not project_ids:
        raise ProjectNotFoundError("No exported project found in archive")

    logger.debug(f"Using project id: {project_ids[0]}")
    return project_ids[0], entries


class KNXParser:
    """Parser for KNX project files (.knxproj)

    A parser instance reads exactly one project; create a new instance for
    every archive.
    """

    def __init__(self, knxproj_path: Optional[str] = None, link_workers: Optional[int] = None):
        """
        Initialize KNX Parser.

        Args:
            knxproj_path: Path to the .knxproj file
            link_workers: Number of threads linking devices to group addresses
        """
        self.knxproj_path = Path(knxproj_path) if knxproj_path else None
        self.link_workers = link_workers or config['analysis'].get('link_workers', 1)
        self._archive = None

        self.project_id: Optional[str] = None
        self.project_name: Optional[str] = None
        self.areas: List[Area] = []
        self.group_address_ranges: List[GroupAddressRange] = []
        self.warnings = 0  # data quality problems found while reading and linking
        self._devices: List[Device] = []
        self._group_addresses: List[GroupAddress] = []
        self._group_addresses_by_id: Dict[str, GroupAddress] = {}

    @classmethod
    def from_archive(cls, archive, link_workers: Optional[int] = None) -> 'KNXParser':
        """
        Create a parser reading from an already opened archive.

        The archive must provide ``names()`` and ``open(name)``; it is not
        closed by the parser.
        """
        parser = cls(link_workers=link_workers)
        parser._archive = archive
        return parser

    @property
    def devices(self) -> List[Device]:
        return list(self._devices)

    @property
    def group_addresses(self) -> List[GroupAddress]:
        return list(self._group_addresses)

    def get_group_address(self, ga_id: str) -> Optional[GroupAddress]:
        return self._group_addresses_by_id.get(ga_id)

    def add_warning(self):
        self.warnings += 1

    def _convert_dpt(self, cursor: ElementCursor) -> Optional[str]:
        return convert_to_dpt(cursor.get('DatapointType'), cursor.location, self.add_warning)

    def parse(self) -> 'KNXParser':
        """
        Parse the KNX project.

        Returns:
            The parser itself, populated with project data

        Raises:
            KNXProjectError: If the archive or one of its documents is invalid
        """
        if self._archive is not None:
            self._read_archive(self._archive)
        else:
            logger.info(f"Parsing KNX project: {self.knxproj_path}")
            with ZipProjectArchive(self.knxproj_path) as archive:
                self._read_archive(archive)

        self._link()
        logger.info(f"Parsed project '{self.project_name}': {len(self._devices)} devices, "
                    f"{len(self._group_addresses)} group addresses, {self.warnings} warnings")
        return self

    def _read_archive(self, archive):
        project_id, entries = find_project_entries(archive.names())
        self.project_id = project_id

        if PROJECT_INFO_FILE in entries:
            logger.debug(f"Reading project info from: {entries[PROJECT_INFO_FILE]}")
            with archive.open(entries[PROJECT_INFO_FILE]) as stream:
                self.read_project_info(stream, entries[PROJECT_INFO_FILE])
        else:
            logger.warning(f"Project {project_id} has no {PROJECT_INFO_FILE}")

        if PROJECT_DATA_FILE in entries:
            logger.debug(f"Reading project data from: {entries[PROJECT_DATA_FILE]}")
            with archive.open(entries[PROJECT_DATA_FILE]) as stream:
                self.read_project_data(stream, entries[PROJECT_DATA_FILE])
        else:
            logger.warning(f"Project {project_id} has no {PROJECT_DATA_FILE}")

    def _verify_project_id(self, cursor: ElementCursor):
        declared = cursor.get('Id')
        if declared is None:
            raise MalformedDocumentError("Missing ID on Project element", cursor.location)
        if declared != self.project_id:
            raise MalformedDocumentError(
                f"Declared ID '{declared}' on Project element doesn't match expected ID '{self.project_id}'",
                cursor.location)

    def read_project_info(self, stream: BinaryIO, source: str = PROJECT_INFO_FILE):
        """Read the project name; stops reading as soon as it is known."""
        cursor = ElementCursor(stream, source)
        while cursor.advance():
            if cursor.event != START:
                continue
            if cursor.name == 'Project':
                self._verify_project_id(cursor)
            elif cursor.name == 'ProjectInformation':
                name = cursor.get('Name')
                if name is None:
                    raise MalformedDocumentError("Missing Name on ProjectInformation element", cursor.location)
                self.project_name = name
                logger.debug(f"Using project name: {name}")
                return

        logger.warning("Abnormal finish. Incomplete or unsupported project info.")

    def read_project_data(self, stream: BinaryIO, source: str = PROJECT_DATA_FILE):
        """Read topology and group addresses in one pass."""
        cursor = ElementCursor(stream, source)
        while cursor.advance():
            if cursor.event != START:
                continue
            if cursor.name == 'Project':
                self._verify_project_id(cursor)
            elif cursor.name == 'Topology':
                self._read_topology(cursor)
            elif cursor.name == 'GroupAddresses':
                self._read_group_addresses(cursor)
            elif cursor.name == 'Locations':
                # not needed for the analysis
                read_children(cursor, lambda name: None)

        logger.debug("Done reading project data.")

    def _read_topology(self, cursor: ElementCursor):
        def on_child(name):
            if name == 'Area':
                self._read_area(cursor)

        read_children(cursor, on_child)

    def _read_area(self, cursor: ElementCursor):
        area = Area(cursor.get('Id'), cursor.get('Address'), cursor.get('Name'), cursor.get('Description'))
        self.areas.append(area)

        def on_child(name):
            if name == 'Line':
                self._read_line(cursor, area)

        read_children(cursor, on_child)

    def _read_line(self, cursor: ElementCursor, area: Area):
        line = Line(area, cursor.get('Id'), cursor.get('Address'), cursor.get('Name'), cursor.get('Description'))
        area.lines.append(line)

        def on_child(name):
            if name == 'DeviceInstance':
                self._read_device_instance(cursor, line)
            elif name == 'Segment':
                # ETS6 puts devices into segments of a line
                read_children(cursor, on_child)

        read_children(cursor, on_child)

    def _read_device_instance(self, cursor: ElementCursor, line: Line):
        device_id = cursor.get('Id')
        device = Device(line, device_id, cursor.get('Address'), cursor.get('Name'), cursor.get('Description'))
        line.devices.append(device)
        self._devices.append(device)
        logger.debug(f"Found device: {device}")

        def on_com_object(name):
            if name == 'ComObjectInstanceRef':
                self._read_com_object(cursor, device)

        def on_child(name):
            if name == 'ComObjectInstanceRefs':
                read_children(cursor, on_com_object)

        read_children(cursor, on_child)

    def _read_com_object(self, cursor: ElementCursor, device: Device):
        com_object = CommunicationObject(
            device,
            cursor.get('RefId'),
            self._convert_dpt(cursor),
            cursor.get('Description'),
            cursor.get('ReadFlag') == 'Enabled',
        )
        device.communication_objects.append(com_object)

        def on_connector(name):
            if name == 'Send':
                com_object.send_group_address_ref_id = cursor.get('GroupAddressRefId')
            elif name == 'Receive':
                ref_id = cursor.get('GroupAddressRefId')
                if ref_id is not None:
                    com_object.listen_group_address_ref_ids.append(ref_id)

        def on_child(name):
            if name == 'Connectors':
                read_children(cursor, on_connector)

        read_children(cursor, on_child)

    def _read_group_addresses(self, cursor: ElementCursor):
        def on_range(name):
            if name == 'GroupRange':
                self._read_group_address_range(cursor, None)

        def on_child(name):
            if name == 'GroupRanges':
                read_children(cursor, on_range)

        read_children(cursor, on_child)

    def _read_group_address_range(self, cursor: ElementCursor, parent: Optional[GroupAddressRange]):
        group_range = GroupAddressRange(
            parent,
            cursor.get('Id'),
            cursor.require_int('RangeStart'),
            cursor.require_int('RangeEnd'),
            cursor.get('Name'),
            cursor.get('Description'),
        )
        self.group_address_ranges.append(group_range)

        def on_child(name):
            if name == 'GroupRange':
                self._read_group_address_range(cursor, group_range)
            elif name == 'GroupAddress':
                self._read_group_address(cursor, group_range)

        read_children(cursor, on_child)

    def _read_group_address(self, cursor: ElementCursor, group_range: GroupAddressRange):
        ga_id = cursor.get('Id')
        ga = GroupAddress(
            group_range,
            ga_id,
            cursor.require_int('Address'),
            cursor.get('Name'),
            cursor.get('Description'),
            self._convert_dpt(cursor),
        )
        self._group_addresses.append(ga)
        if ga_id is None:
            logger.warning(f"Group address without id cannot be referenced: {ga} at {cursor.location}")
            self.add_warning()
        elif ga_id in self._group_addresses_by_id:
            # the first declaration stays the target of references
            logger.warning(f"Duplicate group address id {ga_id} at {cursor.location}")
            self.add_warning()
        else:
            self._group_addresses_by_id[ga_id] = ga
        logger.debug(f"Found GA: {ga}")

    def _resolve_device(self, device: Device) -> Tuple[List[Tuple[CommunicationObject, Optional[GroupAddress],
                                                                  List[GroupAddress]]], int]:
        """
        Resolve the group address references of one device without touching shared state.

        Returns:
            Tuple of the resolved references per communication object and the
            number of references to unknown group addresses
        """
        resolved = []
        unknown = 0
        for co in device.communication_objects:
            send_ga = None
            if co.send_group_address_ref_id is not None:
                send_ga = self._group_addresses_by_id.get(co.send_group_address_ref_id)
                if send_ga is None:
                    logger.warning(f"Unknown group address {co.send_group_address_ref_id} sent by {co}")
                    unknown += 1
            listen_gas = []
            for ref_id in co.listen_group_address_ref_ids:
                ga = self._group_addresses_by_id.get(ref_id)
                if ga is None:
                    logger.warning(f"Unknown group address {ref_id} received by {co}")
                    unknown += 1
                elif ga not in listen_gas:
                    listen_gas.append(ga)
            resolved.append((co, send_ga, listen_gas))
        return resolved, unknown

    def _link(self):
        """Connect communication objects and group addresses in both directions."""
        logger.debug("Connecting devices and GAs")
        devices = self.devices
        if self.link_workers > 1 and len(devices) > 1:
            with ThreadPoolExecutor(max_workers=self.link_workers) as executor:
                results = list(executor.map(self._resolve_device, devices))
        else:
            results = [self._resolve_device(device) for device in devices]

        # merge serially in device order
        for resolved, unknown in results:
            self.warnings += unknown
            for co, send_ga, listen_gas in resolved:
                if send_ga is not None:
                    co.send_group_address = send_ga
                    if co not in send_ga.writing_communication_objects:
                        send_ga.writing_communication_objects.append(co)
                for ga in listen_gas:
                    if ga not in co.listen_group_addresses:
                        co.listen_group_addresses.append(ga)
                    if co not in ga.listening_communication_objects:
                        ga.listening_communication_objects.append(co)

        logger.debug(f"Found {len(self._devices)} devices and {len(self._group_addresses)} GAs")

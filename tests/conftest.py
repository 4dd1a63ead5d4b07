"""Shared pytest fixtures for all tests."""

import sys
import zipfile
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

KNX_NAMESPACE = "http://knx.org/xml/project/20"


def project_info_xml(project_id="P-0001", name="Testprojekt"):
    """Content of P-xxxx/project.xml."""
    name_attr = f' Name="{name}"' if name is not None else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<KNX xmlns="{KNX_NAMESPACE}">'
        f'<Project Id="{project_id}">'
        f'<ProjectInformation{name_attr} GroupAddressStyle="ThreeLevel" />'
        '</Project>'
        '</KNX>'
    )


def project_data_xml(project_id="P-0001", topology="", group_ranges="", locations=""):
    """Content of P-xxxx/0.xml with the given topology and group range elements."""
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<KNX xmlns="{KNX_NAMESPACE}">'
        f'<Project Id="{project_id}">'
        '<Installations><Installation Name="" InstallationId="0">'
        f'<Topology>{topology}</Topology>'
        f'<Locations>{locations}</Locations>'
        f'<GroupAddresses><GroupRanges>{group_ranges}</GroupRanges></GroupAddresses>'
        '</Installation></Installations>'
        '</Project>'
        '</KNX>'
    )


def ga_xml(ga_id, address, name, dpt=None, description=None):
    attrs = f'Id="{ga_id}" Address="{address}" Name="{name}"'
    if dpt:
        attrs += f' DatapointType="{dpt}"'
    if description:
        attrs += f' Description="{description}"'
    return f"<GroupAddress {attrs} />"


def range_xml(range_id, start, end, name, children=""):
    return f'<GroupRange Id="{range_id}" RangeStart="{start}" RangeEnd="{end}" Name="{name}">{children}</GroupRange>'


def com_object_xml(ref_id, dpt=None, send=None, receive=(), description=None):
    attrs = f'RefId="{ref_id}"'
    if dpt:
        attrs += f' DatapointType="{dpt}"'
    if description:
        attrs += f' Description="{description}"'
    connectors = ""
    if send:
        connectors += f'<Send GroupAddressRefId="{send}" />'
    for ga_id in receive:
        connectors += f'<Receive GroupAddressRefId="{ga_id}" />'
    return f"<ComObjectInstanceRef {attrs}><Connectors>{connectors}</Connectors></ComObjectInstanceRef>"


def device_xml(device_id, address, name, com_objects=""):
    return (f'<DeviceInstance Id="{device_id}" Address="{address}" Name="{name}">'
            f'<ComObjectInstanceRefs>{com_objects}</ComObjectInstanceRefs>'
            '</DeviceInstance>')


def topology_xml(devices="", area_address="1", line_address="1"):
    return (f'<Area Id="A-1" Address="{area_address}" Name="Bereich">'
            f'<Line Id="L-1" Address="{line_address}" Name="Linie">{devices}</Line>'
            '</Area>')


def write_knxproj(path, entries):
    """Write a .knxproj archive from a mapping of entry name to text content."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


@pytest.fixture(scope="session")
def project_root_dir():
    """Return the project root directory."""
    return project_root


@pytest.fixture
def make_knxproj(tmp_path):
    """Factory building a single-project .knxproj in tmp_path.

    Example:
        >>> def test_something(make_knxproj):
        ...     path = make_knxproj(group_ranges=range_xml("R-1", 2048, 4095, "Lichter"))
    """
    def _make(project_id="P-0001", name="Testprojekt", topology="", group_ranges="",
              extra_entries=None, file_name="test.knxproj"):
        entries = {
            f"{project_id}/project.xml": project_info_xml(project_id, name),
            f"{project_id}/0.xml": project_data_xml(project_id, topology, group_ranges),
            "knx_master.xml": "<KNX />",
        }
        entries.update(extra_entries or {})
        return write_knxproj(tmp_path / file_name, entries)

    return _make


@pytest.fixture
def kitchen_project(make_knxproj):
    """Project with one switchable light (1/0/1, status 1/0/4) and one dimmable light (1/1/0 - 1/1/4)."""
    group_ranges = range_xml(
        "R-1", 2048, 4095, "Lichter",
        ga_xml("GA-1", 2049, "Light Kitchen On/Off")
        + ga_xml("GA-2", 2052, "Light Kitchen Status", "DPST-1-11")
        + ga_xml("GA-10", 2304, "Licht Wohnzimmer Ein/Aus", "DPST-1-1")
        + ga_xml("GA-11", 2305, "Licht Wohnzimmer Dimmen", "DPST-3-7")
        + ga_xml("GA-12", 2306, "Licht Wohnzimmer Helligkeit", "DPST-5-1")
        + ga_xml("GA-13", 2307, "Licht Wohnzimmer Status", "DPST-1-11")
        + ga_xml("GA-14", 2308, "Licht Wohnzimmer Status Helligkeit", "DPST-5-1")
        + ga_xml("GA-20", 2560, "Steckdose Flur", "DPST-1-1")
    )
    devices = (
        device_xml("D-1", "1", "Schaltaktor",
                   com_object_xml("O-1", "DPST-1-1", send="GA-1", receive=["GA-1"], description="Küche")
                   + com_object_xml("O-2", "DPST-1-11", send="GA-2"))
        + device_xml("D-2", "2", "Dimmaktor",
                     com_object_xml("O-1", "DPST-1-1", receive=["GA-10"])
                     + com_object_xml("O-2", "DPST-1-11", send="GA-13")
                     + com_object_xml("O-3", "DPST-5-1", send="GA-14"))
    )
    return make_knxproj(topology=topology_xml(devices), group_ranges=group_ranges)


@pytest.fixture
def knx_xml():
    """Builders for project XML snippets, for tests assembling their own archives."""
    return SimpleNamespace(
        ga=ga_xml,
        group_range=range_xml,
        com_object=com_object_xml,
        device=device_xml,
        topology=topology_xml,
        project_info=project_info_xml,
        project_data=project_data_xml,
        write_knxproj=write_knxproj,
    )

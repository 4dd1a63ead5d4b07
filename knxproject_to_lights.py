"""Reads a KNX project file and lists the lights found in it."""
import argparse
import json
import logging
import sys
from pathlib import Path

from knx_semantics import KNXProjectError
from knx_semantics.analyzer import DimmableLight, ProjectAnalyzer
from knx_semantics.characteristics.german_characteristics import GenericGermanyCharacteristics
from knx_semantics.config import config
from knx_semantics.parsers.knx_parser import KNXParser

logger = logging.getLogger(__name__)


def format_light(light):
    """One line per light: name, kind and the addresses involved."""
    addresses = [light.primary_switch_group_address.address, light.status_group_address.address]
    if isinstance(light, DimmableLight):
        addresses += [light.dim_group_address.address, light.brightness_group_address.address,
                      light.brightness_status_group_address.address]
    return f"{light.name}: {light.kind} ({', '.join(addresses)})"


def main(argv=None):
    """Main function"""
    parser = argparse.ArgumentParser(description='Reads KNX project file and lists the lights it contains')
    parser.add_argument("--file_path", type=Path, required=True, help='Path to the input KNX project.')
    parser.add_argument("--json", action="store_true", help="Print the lights as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else config['logging']['level']
    logging.basicConfig(level=level, format=config['logging']['format'])

    try:
        project = KNXParser(args.file_path).parse()
        lights = ProjectAnalyzer(project, GenericGermanyCharacteristics()).analyze()
    except KNXProjectError as e:
        logger.error(f"Unable to analyze {args.file_path}: {e}")
        return 1

    if args.json:
        print(json.dumps([light.to_dict() for light in lights], indent=2, ensure_ascii=False))
    else:
        print(f"Project '{project.project_name}' ({project.project_id}): {len(lights)} lights")
        for light in lights:
            print(format_light(light))
    return 0


if __name__ == "__main__":
    sys.exit(main())

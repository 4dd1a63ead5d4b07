"""Project analysis: from parsed group addresses to lights"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from knx_semantics.characteristics.base_characteristics import ProjectCharacteristics
from knx_semantics.config import config
from knx_semantics.exceptions import EmptyProjectError
from knx_semantics.models import GroupAddress

logger = logging.getLogger(__name__)


def _ga_to_dict(ga: Optional[GroupAddress]) -> Optional[Dict[str, Any]]:
    if ga is None:
        return None
    return {
        'address': ga.address,
        'name': ga.name,
        'datapoint_type': ga.datapoint_type,
    }


@dataclass(eq=False)
class Light:
    """A switchable light with confirmed status feedback"""
    name: str
    primary_switch_group_address: GroupAddress
    status_group_address: GroupAddress

    kind = 'light'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind,
            'name': self.name,
            'switch': _ga_to_dict(self.primary_switch_group_address),
            'status': _ga_to_dict(self.status_group_address),
        }

    def __str__(self) -> str:
        return f"Light ({self.primary_switch_group_address}, status: {self.status_group_address})"


@dataclass(eq=False)
class DimmableLight(Light):
    """A light with dim, brightness and brightness status addresses"""
    dim_group_address: Optional[GroupAddress] = None
    brightness_group_address: Optional[GroupAddress] = None
    brightness_status_group_address: Optional[GroupAddress] = None

    kind = 'dimmable_light'

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['dim'] = _ga_to_dict(self.dim_group_address)
        result['brightness'] = _ga_to_dict(self.brightness_group_address)
        result['brightness_status'] = _ga_to_dict(self.brightness_status_group_address)
        return result

    def __str__(self) -> str:
        return f"DimmableLight ({self.primary_switch_group_address}, status: {self.status_group_address})"


class AnalyzerState(Enum):
    UNANALYZED = 'unanalyzed'
    FILLING_GAPS = 'filling_gaps'
    QUALITY_GATE = 'quality_gate'
    INDEXED = 'indexed'
    CLASSIFYING = 'classifying'
    GROUPING = 'grouping'
    DONE = 'done'
    FAILED = 'failed'


class ProjectAnalyzer:
    """Finds lights in a parsed project

    Args:
        project: Parsed project providing ``group_addresses`` and optionally a
            ``warnings`` count of reading problems (e.g. a KNXParser)
        characteristics: Conventions of the project, a fresh instance per analysis
        warning_threshold: Ratio of warnings per GA above which the project data
            is reported as poor (default from config)
    """

    def __init__(self, project, characteristics: ProjectCharacteristics,
                 warning_threshold: Optional[float] = None):
        self.project = project
        self.characteristics = characteristics
        if warning_threshold is None:
            warning_threshold = config['analysis']['warning_ratio_threshold']
        self.warning_threshold = warning_threshold
        self.state = AnalyzerState.UNANALYZED
        self.lights: List[Light] = []
        self.poor_data_quality = False

    def analyze(self) -> List[Light]:
        """
        Run the analysis.

        Returns:
            The lights found

        Raises:
            EmptyProjectError: If the project has no group addresses
            RuntimeError: If called more than once
        """
        if self.state != AnalyzerState.UNANALYZED:
            raise RuntimeError(f"Analyzer already used (state {self.state.value}), create a new one")

        group_addresses = list(self.project.group_addresses)
        if not group_addresses:
            self.state = AnalyzerState.FAILED
            raise EmptyProjectError("The project does not contain any Group Address.")

        self.state = AnalyzerState.FILLING_GAPS
        for ga in group_addresses:
            self.characteristics.fill_in_missing_information(ga)

        self.state = AnalyzerState.QUALITY_GATE
        warnings = self.characteristics.warnings + getattr(self.project, 'warnings', 0)
        ratio = warnings / len(group_addresses)
        if ratio > self.warning_threshold:
            self.poor_data_quality = True
            logger.warning("The project data generated a lot of warnings "
                           f"({warnings} for {len(group_addresses)} GAs). "
                           "Please consider improving the ETS data.")

        self.characteristics.learn(group_addresses)
        self.state = AnalyzerState.INDEXED

        self.state = AnalyzerState.CLASSIFYING
        light_group_addresses = [ga for ga in group_addresses if self.characteristics.is_light(ga)]
        primaries = [ga for ga in light_group_addresses if self.characteristics.is_primary_switch(ga)]
        logger.info(f"Found {len(light_group_addresses)} light GAs, {len(primaries)} primary switches")

        self.state = AnalyzerState.GROUPING
        for ga in primaries:
            light = self._analyze_light(ga)
            if light is not None:
                self.lights.append(light)

        self.state = AnalyzerState.DONE
        logger.info(f"Found {len(self.lights)} lights")
        return self.lights

    def _analyze_light(self, ga: GroupAddress) -> Optional[Light]:
        status_ga = self.characteristics.find_matching_status_group_address(ga)
        if status_ga is None:
            logger.debug(f"Unable to find matching status GA for GA {ga} ({ga.name})")
            return None

        dim_ga = self.characteristics.find_matching_dim_group_address(ga)
        brightness_ga = self.characteristics.find_matching_brightness_group_address(ga)
        brightness_status_ga = self.characteristics.find_matching_brightness_status_group_address(ga)
        if dim_ga is not None and brightness_ga is not None and brightness_status_ga is not None:
            name = self.characteristics.find_name(ga, status_ga, dim_ga, brightness_ga, brightness_status_ga)
            return DimmableLight(name, ga, status_ga, dim_ga, brightness_ga, brightness_status_ga)

        name = self.characteristics.find_name(ga, status_ga)
        return Light(name, ga, status_ga)

    @property
    def dimmable_lights(self) -> List[DimmableLight]:
        return [light for light in self.lights if isinstance(light, DimmableLight)]

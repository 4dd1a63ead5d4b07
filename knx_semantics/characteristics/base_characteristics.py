"""Base class for project characteristics

A characteristics implementation knows the naming and address allocation
conventions of a family of KNX projects. The analyzer uses it to detect
lights and to group the group addresses belonging to one light.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from knx_semantics.models import DatapointType, GroupAddress

logger = logging.getLogger(__name__)

PRIMARY_SWITCH_DPTS = (DatapointType.Switch, DatapointType.UpDown, DatapointType.OpenClose)


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


class ProjectCharacteristics(ABC):
    """Base class for all characteristics implementations

    Instances hold the index of one project. ``learn`` must be called with all
    group addresses before the ``find_*`` and ``is_*`` methods return anything
    meaningful. Use a fresh instance for every project.
    """

    def __init__(self):
        self._warnings = 0

    @property
    def warnings(self) -> int:
        """Number of data quality problems found by :meth:`fill_in_missing_information`."""
        return self._warnings

    def add_warning(self):
        self._warnings += 1

    @abstractmethod
    def learn(self, group_addresses: Iterable[GroupAddress]):
        """
        Submit group addresses for indexing.

        Args:
            group_addresses: All group addresses of the project
        """
        pass

    def fill_in_missing_information(self, ga: GroupAddress):
        """
        Complete a group address from its writing communication objects.

        Copies a missing datapoint type from the communication objects and
        names a nameless group address after the first communication object
        with a description, or else after its own description.

        Args:
            ga: The group address to complete (modified in place)
        """
        for co in ga.writing_communication_objects:
            if co.datapoint_type is not None:
                if ga.datapoint_type is None:
                    logger.debug(f"Update DPT to {co.datapoint_type} based on CO {co} for GA {ga}")
                    ga.datapoint_type = co.datapoint_type
                elif ga.datapoint_type != co.datapoint_type:
                    logger.warning(f"Found communication object with DPT {co.datapoint_type} which differs "
                                   f"from expected {ga.datapoint_type}\n  {co}\n  GA {ga}")
                    self.add_warning()
            else:
                logger.warning(f"Found communication object without DPT\n  {co}\n  GA {ga}")
                self.add_warning()

        if is_blank(ga.name):
            for co in ga.writing_communication_objects:
                if not is_blank(co.description):
                    logger.debug(f"Update name to '{co.description}' based on CO {co} for GA {ga}")
                    ga.name = co.description
                    break  # first one wins

        if is_blank(ga.name) and not is_blank(ga.description):
            logger.debug(f"Update name to '{ga.description}' based on description for GA {ga}")
            ga.name = ga.description

        if is_blank(ga.name):
            logger.warning(f"GA without name: {ga}")
            self.add_warning()

    @abstractmethod
    def is_light(self, ga: GroupAddress) -> bool:
        """Indicates if a GA is related to lighting (switching, dimming, status etc.)"""
        pass

    def is_primary_switch(self, ga: GroupAddress) -> bool:
        """
        Indicates if a GA is the primary GA switching a fixture on/off.

        All other GAs of a fixture (status, dim, brightness) are grouped around
        the primary. The default decides by DPT only.
        """
        return DatapointType.find_by_value(ga.datapoint_type) in PRIMARY_SWITCH_DPTS

    @abstractmethod
    def find_matching_status_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        """Find the GA reporting the on/off status of ``primary``."""
        pass

    @abstractmethod
    def find_matching_dim_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        """Find the GA dimming brighter/darker for ``primary``."""
        pass

    @abstractmethod
    def find_matching_brightness_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        """Find the GA setting the brightness level for ``primary``."""
        pass

    @abstractmethod
    def find_matching_brightness_status_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        """Find the GA reporting the brightness level of ``primary``."""
        pass

    @abstractmethod
    def find_name(self, primary: GroupAddress, *related: GroupAddress) -> str:
        """Derive a fixture name from the names of its GAs."""
        pass

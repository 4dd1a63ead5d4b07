"""Characteristics of KNX projects following the German KNX project guidelines

Typical conventions ("KNX Projektrichtlinien"):

- lights are named after the fixture ("Licht", "Deckenleuchte", "Spots")
  or use prefixes like ``L_``/``LD_``/``LDA_``
- the group addresses of one light are allocated as a block of five:
  on/off, dim, brightness, on/off status, brightness status
- alternatively status addresses live in a separate range ("Rückmeldungen",
  "Status") mirroring the numbering of the switching range
"""
import logging
from typing import Dict, Iterable, List, Optional, Set

from knx_semantics.characteristics.base_characteristics import ProjectCharacteristics, is_blank
from knx_semantics.characteristics.text_analyzer import GermanTextAnalyzer
from knx_semantics.config import characteristics_settings
from knx_semantics.models import (
    DatapointType,
    GroupAddress,
    GroupAddressRange,
    get_main_group,
    get_middle_group,
    get_sub_group,
)
from knx_semantics.utils.address_cache import AddressCache

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_MATCH_THRESHOLD = 0.6


class GenericGermanyCharacteristics(ProjectCharacteristics):
    """Heuristics for German projects built along the KNX guidelines"""

    def __init__(self, settings: Optional[dict] = None, analyzer: Optional[GermanTextAnalyzer] = None):
        """
        Args:
            settings: Vocabulary and conventions, defaults to
                ``characteristics.generic_germany`` of the configuration
            analyzer: Text analyzer for names
        """
        super().__init__()
        if settings is None:
            settings = characteristics_settings('generic_germany')
        self.analyzer = analyzer or GermanTextAnalyzer()

        # vocabulary goes through the analyzer so it compares with indexed terms
        self.light_terms = {self.analyzer.normalize(t) for t in settings['light_terms']}
        self.status_terms = {self.analyzer.normalize(t) for t in settings['status_terms']}
        self.light_prefixes = tuple(settings['light_prefixes'])
        self.light_description_tag = settings.get('light_description_tag')
        self.prefix_match_threshold = settings.get('prefix_match_threshold', DEFAULT_PREFIX_MATCH_THRESHOLD)

        offsets = settings.get('block_offsets') or {}
        self.dim_offset = offsets.get('dim', 1)
        self.brightness_offset = offsets.get('brightness', 2)
        self.status_offset = offsets.get('status', 3)
        self.brightness_status_offset = offsets.get('brightness_status', 4)
        self.block_length = max(self.dim_offset, self.brightness_offset,
                                self.status_offset, self.brightness_status_offset) + 1

        self._group_address_terms: Dict[GroupAddress, Set[str]] = {}
        self._group_address_range_terms: Dict[GroupAddressRange, Set[str]] = {}
        self.address_cache = AddressCache()

    def get_terms(self, text: Optional[str]) -> List[str]:
        return self.analyzer.get_terms(text)

    def learn(self, group_addresses: Iterable[GroupAddress]):
        group_addresses = list(group_addresses)
        indexed_ranges = set()
        for ga in group_addresses:
            self._group_address_terms[ga] = set(self.get_terms(ga.name))

            group_range = ga.group_address_range
            while group_range is not None and group_range not in indexed_ranges:
                self._group_address_range_terms[group_range] = set(self.get_terms(group_range.name))
                indexed_ranges.add(group_range)
                group_range = group_range.parent

        self.address_cache.build_index(group_addresses)
        logger.debug(f"Indexed {len(self._group_address_terms)} GAs "
                     f"and {len(self._group_address_range_terms)} ranges")

    def _terms_of(self, ga: GroupAddress) -> Optional[Set[str]]:
        terms = self._group_address_terms.get(ga)
        if terms is None:
            logger.warning(f"No index available for GA: {ga}")
        return terms

    def contains_status_term(self, terms: Set[str]) -> bool:
        return not terms.isdisjoint(self.status_terms)

    def is_light(self, ga: GroupAddress) -> bool:
        if is_blank(ga.name):
            logger.warning(f"GA with blank/empty name should be fixed: {ga}")
            return False

        terms = self._terms_of(ga)
        if terms is None:
            return False

        if not terms.isdisjoint(self.light_terms):
            return True
        if ga.name.startswith(self.light_prefixes):
            return True
        return bool(self.light_description_tag and ga.description
                    and self.light_description_tag in ga.description)

    def is_primary_switch(self, ga: GroupAddress) -> bool:
        if not super().is_primary_switch(ga):
            logger.debug(f"Not a primary switch GA due to DPT mismatch: {ga}")
            return False

        # status addresses often share the vocabulary of the light they report on
        terms = self._terms_of(ga)
        if terms is None:
            return False
        return not self.contains_status_term(terms)

    def calculate_prefix_match_ratio(self, candidate_name: Optional[str], primary_name: Optional[str]) -> float:
        """
        Length of the common prefix relative to the shorter name.

        "Licht Küche Status" and "Licht Küche Ein/Aus" share "Licht Küche "
        (12 characters), the shorter name has 18, the ratio is 0.67.
        """
        candidate_name = candidate_name or ''
        primary_name = primary_name or ''
        min_length = min(len(candidate_name), len(primary_name))
        if min_length == 0:
            return 0.0

        common = 0
        while common < min_length and candidate_name[common] == primary_name[common]:
            common += 1
        return common / min_length

    def is_match_on_name(self, candidate: GroupAddress, primary: GroupAddress) -> bool:
        ratio = self.calculate_prefix_match_ratio(candidate.name, primary.name)
        if ratio < self.prefix_match_threshold:
            logger.debug(f"Prefix mismatch for candidate {candidate} comparing to primary {primary} "
                         f"(match {ratio:.2f})")
            return False
        return True

    def is_match_on_name_and_dpt(self, candidate: GroupAddress, primary: GroupAddress,
                                 *datapoint_types: DatapointType) -> bool:
        if not self.is_match_on_name(candidate, primary):
            return False

        if is_blank(candidate.datapoint_type):
            logger.warning(f"Accepting candidate with missing DPT {candidate}")
            return True
        return DatapointType.find_by_value(candidate.datapoint_type) in datapoint_types

    def is_matching_status(self, candidate: GroupAddress, primary: GroupAddress) -> bool:
        return self.is_match_on_name_and_dpt(candidate, primary, DatapointType.State)

    def find_block_candidates(self, primary: GroupAddress) -> List[GroupAddress]:
        """
        Return the GAs following ``primary`` within one block.

        The scan stops at the first existing GA whose name does not match,
        the project does not use blocks then. ``primary`` is never included.
        """
        block = []
        for offset in range(1, self.block_length):
            candidate = self.address_cache.get_by_int(primary.address_int + offset)
            if candidate is None:
                continue
            if not self.is_match_on_name(candidate, primary):
                logger.debug(f"Project doesn't seem to use expected block structure. Insignificant name "
                             f"matching for GA {primary} and candidate GA {candidate}.")
                break
            block.append(candidate)
        return block

    def find_matching_status_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        # pattern 1: block of GAs
        block = self.find_block_candidates(primary)
        candidates = [ga for ga in block if DatapointType.find_by_value(ga.datapoint_type) == DatapointType.State]
        if len(candidates) == 1:
            logger.debug(f"Found matching status for GA {primary}: {candidates[0]}")
            return candidates[0]
        if candidates:
            logger.warning(f"Project is ambiguous. Found multiple matches with DPT {DatapointType.State.value} "
                           f"for GA {primary}: {', '.join(str(ga) for ga in candidates)}")
        else:
            expected = self.address_cache.get_by_int(primary.address_int + self.status_offset)
            if expected is not None and expected in block and is_blank(expected.datapoint_type):
                logger.warning(f"Accepting status candidate with missing DPT {expected} for GA {primary}")
                return expected
            logger.debug(f"No candidate identified with DPT {DatapointType.State.value} "
                         f"based on block pattern for GA {primary}")

        # pattern 2: status GA is in a different range
        return self._find_status_in_status_ranges(primary)

    def _find_status_in_status_ranges(self, primary: GroupAddress) -> Optional[GroupAddress]:
        matches = []
        for status_range, terms in self._group_address_range_terms.items():
            if not self.contains_status_term(terms):
                continue

            if status_range.parent is None:
                main = get_main_group(status_range.start_int)
                middle = get_middle_group(primary.address_int)
            else:
                main = get_main_group(primary.address_int)
                middle = get_middle_group(status_range.start_int)
            sub = get_sub_group(primary.address_int)

            candidate = self.address_cache.get_by_parts(main, middle, sub)
            if candidate is None or candidate is primary or candidate in matches:
                continue
            logger.debug(f"Evaluating potential candidate for GA {primary}: {candidate}")
            if self.is_matching_status(candidate, primary):
                matches.append(candidate)

        if len(matches) == 1:
            logger.debug(f"Found matching status for GA {primary}: {matches[0]}")
            return matches[0]
        if matches:
            logger.warning(f"Project is ambiguous. Found multiple status ranges matching GA {primary}: "
                           f"{', '.join(str(ga) for ga in matches)}")
        return None

    def _find_at_offset(self, primary: GroupAddress, offset: int,
                        datapoint_type: DatapointType) -> Optional[GroupAddress]:
        candidate = self.address_cache.get_by_int(primary.address_int + offset)
        if candidate is None:
            return None
        logger.debug(f"Evaluating potential candidate for GA {primary}: {candidate}")
        if self.is_match_on_name_and_dpt(candidate, primary, datapoint_type):
            return candidate
        return None

    def find_matching_dim_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        return self._find_at_offset(primary, self.dim_offset, DatapointType.ControlDimming)

    def find_matching_brightness_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        return self._find_at_offset(primary, self.brightness_offset, DatapointType.Scaling)

    def find_matching_brightness_status_group_address(self, primary: GroupAddress) -> Optional[GroupAddress]:
        return self._find_at_offset(primary, self.brightness_status_offset, DatapointType.Scaling)

    def find_name(self, primary: GroupAddress, *related: GroupAddress) -> str:
        """
        Longest leading part of the primary's name shared by all related GAs.

        The name is shortened word by word, then character by character.
        Falls back to the primary's name if nothing is shared.
        """
        name = primary.name or ''
        others = [ga.name or '' for ga in related if ga is not None]
        while name and not all(other.startswith(name) for other in others):
            last_space = name.rfind(' ')
            if last_space > 0:
                name = name[:last_space]
            else:
                name = name[:-1]

        name = name.rstrip()
        if not name:
            return primary.name or ''
        return name

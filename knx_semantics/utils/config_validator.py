"""Configuration validator using JSON Schema"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# JSON Schema for config.json
CONFIG_SCHEMA = {
    "type": "object",
    "required": ["logging", "analysis", "characteristics", "text_analysis"],
    "properties": {
        "logging": {
            "type": "object",
            "required": ["level", "format"],
            "properties": {
                "level": {"type": "string"},
                "format": {"type": "string"}
            }
        },
        "analysis": {
            "type": "object",
            "required": ["warning_ratio_threshold"],
            "properties": {
                "warning_ratio_threshold": {"type": "number"},
                "link_workers": {"type": "integer"}
            }
        },
        "characteristics": {
            "type": "object",
            "description": "Vocabulary and conventions per characteristics implementation"
        },
        "text_analysis": {
            "type": "object",
            "required": ["min_word_size", "min_subword_size", "max_subword_size", "only_longest_match"],
            "properties": {
                "min_word_size": {"type": "integer"},
                "min_subword_size": {"type": "integer"},
                "max_subword_size": {"type": "integer"},
                "only_longest_match": {"type": "boolean"}
            }
        },
        "web": {
            "type": "object",
            "properties": {
                "bind_host": {"type": "string"},
                "port": {"type": "integer"},
                "upload_dir": {"type": "string"},
                "max_upload_mb": {"type": "integer"}
            }
        }
    }
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
BLOCK_OFFSET_KEYS = ('dim', 'brightness', 'status', 'brightness_status')


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


class ConfigValidator:
    """Validates configuration files"""

    def __init__(self, schema: Optional[Dict] = None):
        """Initialize validator with schema."""
        self.schema = schema or CONFIG_SCHEMA
        self.errors = []

    def validate(self, config: Dict) -> bool:
        """
        Validate configuration against schema.

        Args:
            config: Configuration dictionary to validate

        Returns:
            True if valid

        Raises:
            ConfigValidationError: If validation fails with details
        """
        self.errors = []

        if not isinstance(config, dict):
            raise ConfigValidationError("Configuration validation failed:\n  - Configuration must be an object")

        for required_field in self.schema.get('required', []):
            if required_field not in config:
                self.errors.append(f"Missing required field: {required_field}")

        # simple type checks for all sections described in the schema
        for section, section_schema in self.schema.get('properties', {}).items():
            if section in config:
                self._validate_types(config[section], section_schema, section)

        if isinstance(config.get('logging'), dict):
            self._validate_logging(config['logging'])
        if isinstance(config.get('analysis'), dict):
            self._validate_analysis(config['analysis'])
        if isinstance(config.get('characteristics'), dict):
            generic = config['characteristics'].get('generic_germany')
            if generic is None:
                self.errors.append("Missing characteristics: generic_germany")
            else:
                self._validate_generic_germany(generic)
        if isinstance(config.get('text_analysis'), dict):
            self._validate_text_analysis(config['text_analysis'])

        if self.errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in self.errors)
            raise ConfigValidationError(error_msg)

        logger.debug("Configuration validation successful")
        return True

    def _validate_types(self, value, schema: Dict, name: str):
        expected = schema.get('type')
        if expected == 'object':
            if not isinstance(value, dict):
                self.errors.append(f"'{name}' must be a dictionary")
                return
            for key in schema.get('required', []):
                if key not in value:
                    self.errors.append(f"Missing required field: {name}.{key}")
            for key, sub_schema in schema.get('properties', {}).items():
                if key in value:
                    self._validate_types(value[key], sub_schema, f"{name}.{key}")
        elif expected == 'string' and not isinstance(value, str):
            self.errors.append(f"'{name}' must be a string")
        elif expected == 'boolean' and not isinstance(value, bool):
            self.errors.append(f"'{name}' must be a boolean")
        elif expected == 'integer' and (isinstance(value, bool) or not isinstance(value, int)):
            self.errors.append(f"'{name}' must be an integer")
        elif expected == 'number' and (isinstance(value, bool) or not isinstance(value, (int, float))):
            self.errors.append(f"'{name}' must be a number")

    def _validate_logging(self, section: Dict):
        level = section.get('level')
        if isinstance(level, str) and level.upper() not in LOG_LEVELS:
            self.errors.append(f"Unknown log level: {level}")

    def _validate_analysis(self, section: Dict):
        threshold = section.get('warning_ratio_threshold')
        if isinstance(threshold, (int, float)) and not 0 <= threshold <= 1:
            self.errors.append("'analysis.warning_ratio_threshold' must be between 0 and 1")
        workers = section.get('link_workers')
        if isinstance(workers, int) and workers < 1:
            self.errors.append("'analysis.link_workers' must be at least 1")

    def _validate_generic_germany(self, section: Dict):
        """Validate the vocabulary of the generic German characteristics."""
        prefix = 'characteristics.generic_germany'
        if not isinstance(section, dict):
            self.errors.append(f"'{prefix}' must be a dictionary")
            return

        for key in ('light_terms', 'light_prefixes', 'status_terms'):
            values = section.get(key)
            if values is None:
                self.errors.append(f"Missing required field: {prefix}.{key}")
            elif not isinstance(values, list) or not all(isinstance(v, str) and v.strip() for v in values):
                self.errors.append(f"'{prefix}.{key}' must be a list of non-empty strings")

        tag = section.get('light_description_tag')
        if tag is not None and not isinstance(tag, str):
            self.errors.append(f"'{prefix}.light_description_tag' must be a string")

        threshold = section.get('prefix_match_threshold')
        if threshold is not None and (isinstance(threshold, bool) or not isinstance(threshold, (int, float))
                                      or not 0 < threshold <= 1):
            self.errors.append(f"'{prefix}.prefix_match_threshold' must be a number in (0, 1]")

        offsets = section.get('block_offsets')
        if offsets is not None:
            if not isinstance(offsets, dict):
                self.errors.append(f"'{prefix}.block_offsets' must be a dictionary")
            else:
                for key in BLOCK_OFFSET_KEYS:
                    offset = offsets.get(key)
                    if offset is None:
                        self.errors.append(f"Missing block offset: {key}")
                    elif isinstance(offset, bool) or not isinstance(offset, int) or offset < 1:
                        self.errors.append(f"Block offset '{key}' must be a positive integer")

    def _validate_text_analysis(self, section: Dict):
        sizes = [section.get(k) for k in ('min_word_size', 'min_subword_size', 'max_subword_size')]
        if all(isinstance(s, int) and not isinstance(s, bool) for s in sizes):
            min_word, min_sub, max_sub = sizes
            if min_sub < 1 or min_word < 1:
                self.errors.append("Text analysis sizes must be positive")
            if min_sub > max_sub:
                self.errors.append("'text_analysis.min_subword_size' must not exceed 'max_subword_size'")

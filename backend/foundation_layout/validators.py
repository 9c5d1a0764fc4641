import re
import logging
from typing import Any

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r'^\s*\+?\d+\s*$')

# Largest accepted dimension (mm) or scale denominator
MAX_DIMENSION_MM = 1_000_000


class SettingsValidators:
    """Validation rules for project settings"""

    @staticmethod
    def validate_positive_int(value: Any) -> int:
        """Accept a positive whole number given as int, integral float or digit string"""
        if isinstance(value, bool):
            raise ValueError("Value must be a positive whole number")
        if isinstance(value, int):
            number = value
        elif isinstance(value, float):
            if value != value or not value.is_integer():
                raise ValueError("Value must be a positive whole number")
            number = int(value)
        elif isinstance(value, str) and _INTEGER_RE.match(value):
            number = int(value)
        else:
            raise ValueError("Value must be a positive whole number")

        if number <= 0:
            raise ValueError("Value must be greater than zero")
        if number > MAX_DIMENSION_MM:
            raise ValueError(f"Value cannot exceed {MAX_DIMENSION_MM}")
        return number

    @staticmethod
    def parse_form_value(value: Any):
        """Parse a raw form input; returns None when the input should be ignored"""
        try:
            return SettingsValidators.validate_positive_int(value)
        except ValueError:
            logger.debug(f"Ignoring invalid settings input: {value!r}")
            return None


def apply_setting_input(settings, field_name: str, raw_value: Any):
    """
    Apply one form field to a settings object.

    Unparseable input leaves the settings untouched and the same
    instance is returned.
    """
    fields = type(settings).model_fields
    if field_name not in fields:
        # Form inputs use the camelCase names
        by_alias = {f.alias: name for name, f in fields.items() if f.alias}
        if field_name not in by_alias:
            raise ValueError(f"Unknown setting: {field_name}")
        field_name = by_alias[field_name]

    number = SettingsValidators.parse_form_value(raw_value)
    if number is None:
        return settings
    return settings.model_copy(update={field_name: number})

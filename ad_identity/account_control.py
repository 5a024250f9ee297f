"""
Decoding of the Active Directory ``userAccountControl`` attribute.

Only the "account disabled" flag is interpreted. The check looks at the low
four bits of the control word, so other flags such as lockout or password
expiry do not influence the result.
"""

import logging
import re
from typing import Optional, Union

from ad_identity.constants import UF_ACCOUNTDISABLE

logger = logging.getLogger(__name__)

ControlValue = Union[str, bytes, int]

# Plain decimal digits with an optional minus sign
INTEGER_PATTERN = re.compile(r"-?[0-9]+")


class MalformedControlValue(Exception):
    """Raised when the account control value is not an integer."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Account control value is not an integer: {value!r}")


def parse_control_value(raw: ControlValue) -> int:
    """
    Parse a raw account control value.

    Raises:
        MalformedControlValue: If the value is not an integer
    """
    if isinstance(raw, bool):
        raise MalformedControlValue(raw)
    if isinstance(raw, int):
        return raw
    try:
        if isinstance(raw, bytes):
            raw = raw.decode('ascii')
        if not INTEGER_PATTERN.fullmatch(raw):
            raise MalformedControlValue(raw)
        return int(raw)
    except (TypeError, ValueError, UnicodeDecodeError):
        raise MalformedControlValue(raw)


def decode_enabled(raw: Optional[ControlValue]) -> bool:
    """
    Decode the enabled flag from a raw account control value.

    Args:
        raw: Value of userAccountControl, or None if the entry has none

    Returns:
        False if the disabled bit is set, True otherwise. Missing and
        malformed values are treated as enabled.
    """
    if raw is None:
        return True

    try:
        control = parse_control_value(raw)
    except MalformedControlValue as e:
        logger.error(f"{e}; treating account as enabled")
        return True

    return control % 16 != UF_ACCOUNTDISABLE


def is_account_disabled(raw: Optional[ControlValue]) -> bool:
    """Inverse of ``decode_enabled``."""
    return not decode_enabled(raw)

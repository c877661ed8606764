"""Input validation helpers for request payloads and route values."""
from __future__ import annotations
import re

from .exceptions import InvalidArgumentError

COMPUTER_NAME_MAX_LENGTH = 255
GUID_PATTERN = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
MAC_PATTERN = re.compile(r"^[0-9A-Fa-f]{2}([-:]?)[0-9A-Fa-f]{2}(\1[0-9A-Fa-f]{2}){4}$")


def require(value, field: str) -> str:
    """Return the trimmed value or raise if it is missing or blank.
    
    Raises:
        InvalidArgumentError: If value is None, not a string, or blank
    """
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{field} is required")
    return value.strip()


def validate_computer_name(name, field: str = "computerName") -> str:
    """Validate a device name (1-255 characters).
    
    Args:
        name: Raw device name
        field: Field name for error messages
        
    Returns:
        Trimmed device name
        
    Raises:
        InvalidArgumentError: If name is invalid
    """
    name = require(name, field)
    if len(name) > COMPUTER_NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"{field} must be between 1 and {COMPUTER_NAME_MAX_LENGTH} characters")
    return name


def validate_guid(value, field: str = "biosGuid") -> str:
    """Validate a BIOS/SMBIOS GUID in 8-4-4-4-12 form."""
    value = require(value, field)
    if not GUID_PATTERN.match(value):
        raise InvalidArgumentError(f"{field} must be a GUID in the format xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx")
    return value


def normalize_mac_address(value, field: str = "macAddress") -> str:
    """Validate a MAC address and return it in upper-case colon form.
    
    Accepts colon, dash or no separators (``00-11-22-33-44-55``,
    ``00:11:22:33:44:55``, ``001122334455``).
    """
    value = require(value, field)
    if not MAC_PATTERN.match(value):
        raise InvalidArgumentError(f"{field} must be a MAC address such as 00:11:22:33:44:55")
    digits = value.replace("-", "").replace(":", "").upper()
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def validate_collection_id(value, field: str = "collectionId") -> str:
    """Collection ids are site-code prefixed (e.g. ``PS100012``)."""
    value = require(value, field)
    if len(value) > 8 or not value.isalnum():
        raise InvalidArgumentError(f"{field} must be an alphanumeric collection id of at most 8 characters")
    return value.upper()


def bare_user_name(user_name: str) -> str:
    """Strip a ``DOMAIN\\`` prefix: ``CONTOSO\\jdoe`` -> ``jdoe``."""
    return user_name.split("\\")[-1]

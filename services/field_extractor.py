"""
Field Extractor Module

Turns the field bag delivered by the form builder's webhook into the
canonical message / email / form_data triple. Field names are chosen by
whoever builds the form, so detection works on name patterns:

- message: the LAST field whose name contains "textarea" or equals one of
  the primary message field names ("message", "text-1")
- fallback: if that finds no message, the FIRST present field of the
  fallback list ("textarea-1", "text-1", "message", "question", "content")
- email: the LAST field whose name contains "email"

The primary scan runs once in the order the request delivered the fields,
so when several fields qualify the later one wins. A form with no message
field is still stored with an empty message; only a completely empty
payload is an error.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from config import settings
from utils.exceptions import NoDataReceived
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ExtractedFields:
    """Canonical fields pulled out of a webhook payload."""
    message: str
    email: str
    form_data: Dict[str, Any] = field(default_factory=dict)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(_as_text(v) for v in value)
    return str(value)


def is_message_field(name: str, message_field_names: Iterable[str],
                     message_substring: Optional[str] = None) -> bool:
    """Check whether a field name identifies the message field."""
    substring = message_substring or settings.MESSAGE_FIELD_SUBSTRING
    return substring in name or name in message_field_names


def extract_fields(
    fields: Mapping[str, Any],
    message_field_names: Optional[Iterable[str]] = None,
    fallback_field_names: Optional[Iterable[str]] = None,
    message_substring: Optional[str] = None,
    email_substring: Optional[str] = None,
) -> ExtractedFields:
    """
    Extract message, email and the verbatim field bag from a webhook payload.

    Args:
        fields: Field name to value mapping, in delivery order.
        message_field_names: Exact names that carry the message. Defaults to settings.MESSAGE_FIELD_NAMES.
        fallback_field_names: Names tried in order when no message was found. Defaults to settings.MESSAGE_FALLBACK_FIELDS.
        message_substring: Substring marking a message field. Defaults to settings.MESSAGE_FIELD_SUBSTRING.
        email_substring: Substring marking an email field. Defaults to settings.EMAIL_FIELD_SUBSTRING.

    Returns:
        ExtractedFields: The extracted message, email and all fields.

    Raises:
        NoDataReceived: If the payload holds no fields at all.
    """
    if not fields:
        logger.error("No data received")
        raise NoDataReceived("No data received")

    names = frozenset(message_field_names if message_field_names is not None
                      else settings.MESSAGE_FIELD_NAMES)
    fallback_names = list(fallback_field_names if fallback_field_names is not None
                          else settings.MESSAGE_FALLBACK_FIELDS)
    message_substring = message_substring or settings.MESSAGE_FIELD_SUBSTRING
    email_substring = email_substring or settings.EMAIL_FIELD_SUBSTRING

    message = None
    email = None
    form_data = {}

    for name, value in fields.items():
        form_data[name] = value

        if is_message_field(name, names, message_substring):
            message = _as_text(value)
            logger.debug(f"Found message in field: {name}")

        if email_substring in name:
            email = _as_text(value)
            logger.debug(f"Found email in field: {name}")

    if not message:
        for name in fallback_names:
            if name in fields:
                message = _as_text(fields[name])
                logger.debug(f"Found message in fallback field: {name}")
                break

    if not message:
        logger.warning("No message content found in submission")
        logger.warning(f"Available fields: {', '.join(form_data)}")

    return ExtractedFields(message=message or "", email=email or "", form_data=form_data)

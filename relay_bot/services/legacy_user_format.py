"""
Adapter for the textual user-record format some agent tools still emit.

Instead of JSON, those tools return the repr of their result objects, e.g.

    [User(id='1', display_name='Ada Lovelace', job_title='Engineer',
          department='R&D', mail='ada@example.com')]

The records are pulled out with regular expressions so they can be rendered
like the JSON variant. Known limitation: field values containing ")" end the
record early, since the format carries no escaping.

TODO: drop this module once the agent's directory tools return JSON.
"""
import re
from typing import Dict, List, Optional

USER_RECORD_PATTERN = re.compile(r"User\(([^)]*)\)")
FIELD_PATTERN = re.compile(r"(\w+)=(?:'([^']*)'|\"([^\"]*)\")")


def looks_like_legacy_user_records(content: str) -> bool:
    """True when the text carries at least one User(...display_name=...) record."""
    return isinstance(content, str) and "User(" in content and "display_name=" in content


def parse_legacy_user_records(content: str) -> Optional[List[Dict[str, str]]]:
    """
    Extract user records from the textual representation.

    Args:
        content: Tool output text

    Returns:
        One dict of quoted string fields per record that has a display_name,
        or None when nothing could be extracted
    """
    if not looks_like_legacy_user_records(content):
        return None

    users = []
    for record in USER_RECORD_PATTERN.finditer(content):
        fields = {}
        for field in FIELD_PATTERN.finditer(record.group(1)):
            name, single_quoted, double_quoted = field.groups()
            fields[name] = single_quoted if single_quoted is not None else double_quoted
        if fields.get("display_name"):
            users.append(fields)

    return users or None

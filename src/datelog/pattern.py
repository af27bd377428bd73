"""
Resolve naming patterns into concrete log file paths
"""

import re
from datetime import datetime
from typing import Mapping

DATE_TOKENS = (("YYYY", "%Y"), ("MM", "%m"), ("DD", "%d"))


def replace_ignore_case(subject: str, search: str, replace: str) -> str:
    """Replace every occurrence of ``search`` in ``subject``, ignoring case"""
    if not search:
        return subject
    regex = re.compile(re.escape(search), re.IGNORECASE)
    # A function replacement keeps backslashes in ``replace`` literal
    return regex.sub(lambda _: replace, subject)


def resolve_path(
    pattern: str, properties: Mapping[str, str], timestamp: datetime
) -> str:
    """
    Expand ``pattern`` for one property set and one calendar day

    ``{KEY}`` tokens are replaced first, then YYYY, MM and DD, all matched
    case-insensitively. Tokens without a value are left untouched. Property
    values are not escaped, so a value containing a date token's text is
    substituted again by the date pass.

    Example:
        >>> resolve_path("logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD_{IP}.log",
        ...              {"APP": "ids", "IP": "10.0.0.1"}, datetime(2020, 10, 21))
        'logs/ids/20201021/ids_20201021_10.0.0.1.log'
    """
    path = pattern
    for key, value in properties.items():
        path = replace_ignore_case(path, "{" + key + "}", str(value))

    for token, fmt in DATE_TOKENS:
        path = replace_ignore_case(path, token, timestamp.strftime(fmt))

    return path

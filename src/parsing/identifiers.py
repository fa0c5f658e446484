"""Messaging identifier helpers."""

import re
from typing import Optional


def normalize_jid_to_phone(identifier: Optional[str]) -> Optional[str]:
    """
    Turn a messaging JID ("5511999999999@s.whatsapp.net") into an E.164 phone.

    Everything from the first "@" is dropped, only digits are kept and a "+"
    prefix is added. Returns None when no digits remain.
    """
    if not identifier:
        return None

    jid = identifier.strip()
    if not jid:
        return None

    without_suffix = jid.split("@", 1)[0]
    digits = re.sub(r"\D", "", without_suffix)
    if not digits:
        return None

    return f"+{digits}"

# orderflow/utils/note_helpers.py
from datetime import datetime
from typing import Optional

from orderflow.utils.check_roles import role_group
from orderflow.utils.time_utils import short_date


def role_label(role: str) -> str:
    group = role_group(role)
    if group:
        return group.capitalize()
    return role.replace("_", " ").title()


def append_note(existing: Optional[str], text: str, role: str, when: Optional[datetime] = None) -> str:
    """Appends ``[2026-01-31 - Admin] text`` below any earlier notes."""
    block = f"[{short_date(when)} - {role_label(role)}] {text.strip()}"
    if existing and existing.strip():
        return f"{existing.rstrip()}\n\n{block}"
    return block

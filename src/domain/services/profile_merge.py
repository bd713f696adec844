"""Pure ordering rules for an account's profile list.

The published list always starts with exactly one primary entry. The primary
is the multi-profile row whose handle matches the legacy row's handle (first
match in creation order wins); failing that, the legacy row itself.
"""

from dataclasses import replace
from typing import Iterable

from domain.entities.profile import Profile


def stub_primary(account_id: str, handle_prefix: str = "cardy-") -> Profile:
    """Stand-in primary used when the legacy row cannot be read."""
    return Profile(
        id=account_id,
        owner_account_id=account_id,
        handle=f"{handle_prefix}{account_id[:6]}",
        is_primary=True,
    )


def merge_profiles(primary_candidate: Profile, rows: Iterable[Profile]) -> list[Profile]:
    """Order ``rows`` behind the resolved primary and fix every ``is_primary`` flag."""
    rows = list(rows)
    match_index = next(
        (i for i, row in enumerate(rows) if row.matches_handle(primary_candidate.handle)),
        None,
    )

    if match_index is None:
        head = replace(primary_candidate, is_primary=True)
        others = rows
    else:
        head = replace(rows[match_index], is_primary=True)
        others = rows[:match_index] + rows[match_index + 1 :]

    return [head] + [replace(row, is_primary=False) for row in others if row.id != head.id]


def replace_entry(profiles: list[Profile], updated: Profile) -> list[Profile]:
    """Swap one entry in place, keeping position-derived ``is_primary``.

    Unknown ids are appended as non-primary.
    """
    result: list[Profile] = []
    found = False
    for index, existing in enumerate(profiles):
        if existing.id == updated.id:
            result.append(replace(updated, is_primary=index == 0))
            found = True
        else:
            result.append(existing)
    if not found:
        result.append(replace(updated, is_primary=not result))
    return result


def find_by_handle(profiles: Iterable[Profile], handle: str) -> Profile | None:
    return next((p for p in profiles if p.matches_handle(handle)), None)


def find_by_id(profiles: Iterable[Profile], profile_id: str | None) -> Profile | None:
    if not profile_id:
        return None
    return next((p for p in profiles if p.id == profile_id), None)

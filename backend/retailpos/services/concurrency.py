# Overview: Row-locking and compare-and-swap helpers shared by services that mutate balances.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def conditional_update(query, values: dict) -> int:
    """
    Issue a single UPDATE ... WHERE <query criteria> and return affected rows.

    The criteria must include the guard (e.g. is_used = false, or the balance
    that was read). Zero rows means the guard no longer held: another request
    won the race. Does not commit.
    """
    return query.update(values, synchronize_session=False)

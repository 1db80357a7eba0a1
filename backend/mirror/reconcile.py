# mirror/reconcile.py
"""
Reconciliation of pushed values into a subscriber's local state.

Every notification carries the full current value, so a subscriber never
patches fields ad hoc: it merges the remote value into what it holds.
The remote wins on every field it sends, and fields only the local side
knows about (UI flags, optimistic markers) survive the merge.

Local state only survives for the same record: if an identity field is
present on both sides with different values, the local dict describes
another record and is discarded.
"""

IDENTITY_FIELDS = ("id", "event_id", "user_id")


def same_record(local: dict, remote: dict) -> bool:
    return all(
        str(local[field]) == str(remote[field])
        for field in IDENTITY_FIELDS
        if field in local and field in remote
    )


def merge(local: dict | None, remote: dict) -> dict:
    if not local or not same_record(local, remote):
        return dict(remote)
    merged = dict(local)
    merged.update(remote)
    return merged


def merge_records(local: list[dict] | None, remote: list[dict], key: str) -> list[dict]:
    """
    Merge a full remote collection into a local one.

    Records absent from `remote` are dropped, records present on both
    sides are merged field-wise and the order follows `remote`.
    """
    by_key = {record.get(key): record for record in (local or []) if record.get(key) is not None}
    return [merge(by_key.get(record.get(key)), record) for record in remote]

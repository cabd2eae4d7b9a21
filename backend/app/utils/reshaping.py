"""
Response Reshaping
==================

Sentry lists organizations and projects as arrays of full records. The
dashboard only needs a name to pick from and the id to store, so we turn

    [{"id": "1", "name": "A", ...}, {"id": "2", "name": "B", ...}]

into

    [{"A": "1"}, {"B": "2"}]

keeping Sentry's order.
"""

from typing import Any


class MalformedUpstreamPayload(ValueError):
    """Sentry returned something that is not a list of {id, name} records."""


def to_name_id_pairs(records: Any) -> list[dict[str, str]]:
    """
    Reshape a list of {id, name} records into single-entry {name: id} dicts.

    Args:
        records: Parsed JSON body from a Sentry list endpoint

    Returns:
        One dict per record, in the same order, with the id as a string

    Raises:
        MalformedUpstreamPayload: If records is not a list, or a record
            has no id or name (or either is null)
    """
    if not isinstance(records, list):
        raise MalformedUpstreamPayload(
            f"Expected a list of records, got {type(records).__name__}"
        )

    pairs = []
    for index, record in enumerate(records):
        if not isinstance(record, dict) or record.get("id") is None or record.get("name") is None:
            raise MalformedUpstreamPayload(f"Record {index} has no id/name")
        pairs.append({str(record["name"]): str(record["id"])})
    return pairs

"""Equality filtering, sorting and merging for in-process record lists."""

ASCENDING = 1
DESCENDING = -1


def matches(record: dict, filter: dict) -> bool:
    return all(record.get(key) == value for key, value in filter.items())


def sort_records(records: list[dict], sort: list[tuple[str, int]] | None) -> list[dict]:
    """Stable multi-key sort, Mongo style: ``[(field, 1 | -1), ...]``."""
    if not sort:
        return list(records)

    ordered = list(records)
    # Apply keys from least to most significant so earlier keys win.
    for field, direction in reversed(sort):
        ordered.sort(
            key=lambda r: (r.get(field) is None, r.get(field) if r.get(field) is not None else ""),
            reverse=direction == DESCENDING,
        )
    return ordered


def merge_by_id(primary: list[dict], secondary: list[dict]) -> list[dict]:
    """Primary rows plus secondary rows whose id is not already present."""
    seen = {row.get("id") for row in primary}
    merged = list(primary)
    for row in secondary:
        if row.get("id") not in seen:
            merged.append(row)
            seen.add(row.get("id"))
    return merged

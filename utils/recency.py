def _key_of(item, id_key: str):
    if isinstance(item, dict):
        return item.get(id_key)
    return getattr(item, id_key, None)


def sort_by_recency(items: list, recent_ids: list, id_key: str = "id") -> list:
    """Move recently used items to the front, most recent first.

    Items not in `recent_ids` keep their original relative order after the
    recent ones. Works with dicts or objects exposing `id_key`.
    """
    if not items or not recent_ids:
        return list(items or [])

    rank = {}
    for position, rid in enumerate(recent_ids):
        rank.setdefault(rid, position)

    recent = [item for item in items if _key_of(item, id_key) in rank]
    recent.sort(key=lambda item: rank[_key_of(item, id_key)])
    others = [item for item in items if _key_of(item, id_key) not in rank]
    return recent + others

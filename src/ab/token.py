"""Assignment token codec.

The token persisted in the visitor's cookie is `<experimentID>.<i>-<j>-...`
where each index is a position in the experiment's variant list. Decoding
never raises: anything unreadable simply means "no previous assignment".
"""

# No experiment has a billion variants; longer segments are garbage
_MAX_INDEX_DIGITS = 9


def encode_token(experiment_id: str, variant_indexes: list[int]) -> str:
    return experiment_id + "." + "-".join(str(i) for i in variant_indexes)


def decode_token(raw: str | None) -> tuple[str, list[int]]:
    """Split a cookie value into (experiment_id, variant_indexes).

    Index segments that are not plain decimal integers are dropped; a
    missing separator or empty identifier yields ("", []).
    """
    if not raw:
        return "", []

    experiment_id, sep, indexes = raw.rpartition(".")
    if not sep or not experiment_id:
        return "", []

    variant_indexes = [
        int(segment) for segment in indexes.split("-")
        if segment.isdecimal() and len(segment) <= _MAX_INDEX_DIGITS
    ]
    return experiment_id, variant_indexes

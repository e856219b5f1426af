"""Lexical similarity — normalized Levenshtein distance."""


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert / delete / substitute, unit cost), two-row DP."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max_len`` on lowercased input, in [0, 1].

    Two empty strings are identical (1.0).
    """
    a, b = a.lower(), b.lower()
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / max_len

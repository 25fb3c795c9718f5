from typing import Optional


def constant_time_equals(a: Optional[str], b: Optional[str]) -> bool:
    """Compare two strings without short-circuiting on the first difference.

    ``None`` counts as the empty string. Runs ``max(len(a), len(b))`` steps
    whatever the content, so only length equality can leak.
    """
    a = a or ""
    b = b or ""
    # every mismatch, length included, gets folded into result
    result = len(a) ^ len(b)
    for i in range(max(len(a), len(b))):
        ca = ord(a[i]) if i < len(a) else 0
        cb = ord(b[i]) if i < len(b) else 0
        result |= ca ^ cb
    return result == 0

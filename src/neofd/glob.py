"""Glob matching shared by ignore files, exclude globs and search patterns.

Grammar:

* ``*`` matches any run of characters except ``/``.
* ``**`` matches any run including ``/``; ``**/`` matches zero or more
  complete path segments.
* ``?`` matches exactly one character except ``/``.
* ``[...]`` matches one character from a class. A leading ``!`` or ``^``
  negates the class and ``a-z`` denotes a range. There is no escaping, so
  ``]`` cannot appear inside a class. A ``[`` without a closing ``]`` is a
  literal ``[``. Classes do not treat ``/`` specially, so ``[!a]`` matches a
  ``/``.
"""

from __future__ import annotations


def glob_match(pattern: str, text: str) -> bool:
    """Return whether *text* matches *pattern* in full.

    Single ``*`` wildcards use the classic backtracking scan: the most recent
    star position in both pattern and text is remembered and, on mismatch,
    the star absorbs one more character. ``**`` recurses over the remaining
    text instead.

    Args:
        pattern: Glob pattern.
        text: Name or ``/``-separated relative path to test.

    Returns:
        bool: ``True`` when the whole of *text* matches.
    """
    plen = len(pattern)
    tlen = len(text)
    pi = 0
    ti = 0
    star_pi = -1
    star_ti = 0

    while ti < tlen or pi < plen:
        if pi < plen:
            pc = pattern[pi]

            if pc == "*" and pi + 1 < plen and pattern[pi + 1] == "*":
                return _match_globstar(pattern, pi + 2, text, ti)

            if pc == "*":
                star_pi = pi
                star_ti = ti
                pi += 1
                continue

            if pc == "?":
                if ti < tlen and text[ti] != "/":
                    pi += 1
                    ti += 1
                    continue
            elif pc == "[":
                end = pattern.find("]", pi + 1)
                if end == -1:
                    if ti < tlen and text[ti] == "[":
                        pi += 1
                        ti += 1
                        continue
                elif ti < tlen and _match_char_class(pattern[pi + 1 : end], text[ti]):
                    pi = end + 1
                    ti += 1
                    continue
            elif ti < tlen and pc == text[ti]:
                pi += 1
                ti += 1
                continue

        if star_pi >= 0 and star_ti < tlen and text[star_ti] != "/":
            star_ti += 1
            ti = star_ti
            pi = star_pi + 1
            continue

        return False

    return True


def _match_globstar(pattern: str, pi: int, text: str, ti: int) -> bool:
    """Match the pattern remainder after a ``**`` ending at ``pattern[pi]``."""
    segments_only = pi < len(pattern) and pattern[pi] == "/"
    if segments_only:
        pi += 1
    if pi >= len(pattern):
        return True

    rest = pattern[pi:]
    for start in range(ti, len(text) + 1):
        # "**/" may only resume at a segment boundary.
        if segments_only and start > ti and text[start - 1] != "/":
            continue
        if glob_match(rest, text[start:]):
            return True
    return False


def _match_char_class(body: str, char: str) -> bool:
    """Return whether *char* is selected by the class *body* (without brackets)."""
    i = 0
    negated = False
    if body[:1] in ("!", "^"):
        negated = True
        i = 1

    matched = False
    while i < len(body):
        if i + 2 < len(body) and body[i + 1] == "-":
            if body[i] <= char <= body[i + 2]:
                matched = True
            i += 3
        else:
            if char == body[i]:
                matched = True
            i += 1

    return matched != negated

"""
Resource and action matching rules for grants.

A stored resource id is a pattern. Without a ``*`` it matches only itself.
With a ``*`` every wildcard marker is removed and the remainder is used as a
literal string prefix: ``/a/b/*`` covers ``/a/b/c`` and also ``/a/b`` itself,
but not ``/a/x``. Markers are stripped wherever they appear, so ``/a/*/c``
behaves as the literal prefix ``/a//c``. This is a prefix test, not a glob.

The PostgreSQL repositories evaluate the same rule in SQL; the SQLite
repositories call these functions on rows already filtered by org.
"""
WILDCARD = "*"


def strip_wildcards(pattern: str) -> str:
    """Remove every wildcard marker from a stored pattern."""
    return pattern.replace(WILDCARD, "")


def is_wildcard(pattern: str) -> bool:
    return WILDCARD in pattern


def matches_resource(pattern: str, resource_id: str) -> bool:
    """
    Check whether a grant stored on ``pattern`` applies to ``resource_id``.

    Examples:
        matches_resource("/api/users/*", "/api/users/123")  -> True
        matches_resource("/api/users/*", "/api/users")      -> True
        matches_resource("/api/users/*", "/api/roles")      -> False
        matches_resource("/api/users", "/api/users/123")    -> False
    """
    if pattern == resource_id:
        return True
    if not is_wildcard(pattern):
        return False

    prefix = strip_wildcards(pattern)
    return resource_id.startswith(prefix) or resource_id == prefix.rstrip("/")


def matches_action(granted: str, action: str) -> bool:
    """A grant on action ``*`` covers every action."""
    return granted == action or granted == WILDCARD


def within_subtree(pattern: str, prefix: str) -> bool:
    """
    Check whether a grant is relevant to everything under ``prefix``.

    True when the grant sits inside the subtree (its pattern starts with the
    prefix) or covers the subtree root.
    """
    return pattern.startswith(prefix) or matches_resource(pattern, prefix)

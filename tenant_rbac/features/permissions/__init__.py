"""
Permission grants and effective-permission resolution.

Grants are stored per user and per role; effective permissions are resolved at
query time from both, with prefix-wildcard matching on resource ids.
"""

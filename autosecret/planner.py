"""
Decide which keys of a generation spec still need a value
"""


def plan(existing_keys, spec):
    """
    Return entries whose key is missing from `existing_keys`, in spec order

    An empty list means the resource is already complete and must not be written.
    """
    existing_keys = set(existing_keys)
    return [entry for entry in spec if entry.key not in existing_keys]

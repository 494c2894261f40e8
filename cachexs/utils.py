"""Key composition helpers."""

KEY_SEPARATOR = ":"


def namespace_prefix(namespace: str | None, sub_namespace: str | None = None) -> str:
    """Join the non-empty namespace segments into a key prefix."""
    return KEY_SEPARATOR.join(part for part in (namespace, sub_namespace) if part)


def compose_key(
    raw: str, namespace: str | None, sub_namespace: str | None = None
) -> str:
    """
    Build the key stored in the backend.

    The prefix is always added, even when ``raw`` already starts with it, so
    ``decompose_key`` can undo exactly one level.
    """
    prefix = namespace_prefix(namespace, sub_namespace)
    if not prefix:
        return raw
    return f"{prefix}{KEY_SEPARATOR}{raw}"


def decompose_key(
    full: str | bytes, namespace: str | None, sub_namespace: str | None = None
) -> str:
    """Strip one leading namespace prefix from a stored key."""
    if isinstance(full, bytes):
        full = full.decode("utf-8")

    prefix = namespace_prefix(namespace, sub_namespace)
    if not prefix:
        return full

    prefix = f"{prefix}{KEY_SEPARATOR}"
    if full.startswith(prefix):
        return full[len(prefix) :]
    return full

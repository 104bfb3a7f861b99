"""
Effective lock state of a class for one student.

Precedence, highest first:

1. per-student ``locked`` override
2. per-student ``unlocked`` override
3. preview classes are open
4. the class's global ``is_locked`` flag

The preview bypass only replaces the global flag; an explicit per-student
lock still closes a preview class. Access blocks are checked by the caller
before any of this runs.
"""

LOCKED = "locked"
UNLOCKED = "unlocked"
INHERIT = "inherit"

OVERRIDE_STATES = (LOCKED, UNLOCKED, INHERIT)


def resolve(class_record, override=None):
    """Return ``{"locked": bool}`` for ``class_record`` under ``override``.

    ``override`` is one of ``"locked"``, ``"unlocked"``, ``"inherit"`` or None.
    """
    if override == LOCKED:
        return {"locked": True}
    if override == UNLOCKED:
        return {"locked": False}
    if override not in (None, INHERIT):
        raise ValueError(f"Unknown override state: {override!r}")
    if class_record.is_preview:
        return {"locked": False}
    return {"locked": bool(class_record.is_locked)}


def is_locked(class_record, override=None):
    return resolve(class_record, override)["locked"]


def resolve_many(classes, overrides):
    """Map class id -> locked flag for a listing, ``overrides`` keyed by class id."""
    return {c.id: is_locked(c, overrides.get(c.id)) for c in classes}

"""
Classification of field edits for generator program cache invalidation.

A synthesized program reads every option value from the live field list at
run time, so only edits that change what it has to compute (field identity,
type, strategy, or whether the field drives grouping) make it stale.
"""

from dataforge.core.config import FieldConfig


def has_grouping(field: FieldConfig) -> bool:
    return field.options is not None and field.options.grouping_config is not None


def is_structural_change(old: FieldConfig, new: FieldConfig) -> bool:
    """
    Decide whether an edit invalidates a cached generator program.

    Args:
        old: Field before the edit
        new: Field after the edit

    Returns:
        True for structural edits, False for parameter-only edits
    """
    if old.key != new.key:
        return True
    if old.type != new.type:
        return True
    if old.strategy != new.strategy:
        return True
    return has_grouping(old) != has_grouping(new)

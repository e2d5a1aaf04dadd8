"""
Local deterministic data generation engine.
"""

import math
import logging
from typing import Dict, Any, List, Optional, Sequence

from dataforge.core.config import FieldConfig, FieldType, GenerationStrategy, GroupingStrategy
from dataforge.core.errors import ValidationError
from dataforge.core.paths import unflatten_object
from dataforge.core.state import GenerationState
from dataforge.generation.strategies import missing_options, registry, seed_generators

# Setup logging
logger = logging.getLogger(__name__)


def _start_of(field: FieldConfig):
    start = field.opts.start
    return 1 if start is None else start


def init_state(fields: Sequence[FieldConfig]) -> GenerationState:
    """Create the per-run state with every increment counter at its start."""
    state = GenerationState()
    for field in fields:
        if field.strategy == GenerationStrategy.INCREMENT:
            state.set(field.key, _start_of(field))
    return state


def group_size(field: FieldConfig, count: int) -> int:
    """Number of consecutive rows sharing one group value."""
    options = field.opts
    grouping = options.grouping_config
    length = len(options.values or []) or 1

    if grouping.strategy == GroupingStrategy.EVEN:
        return max(1, count // length)
    return grouping.count_per_group or 1


def coerce_static(value: Any, field_type: FieldType) -> Any:
    """
    Convert a static value to the field's declared type.

    Numbers that fail to parse are returned unchanged.
    """
    if value is None:
        return value

    if field_type == FieldType.NUMBER:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return value
        if not math.isfinite(number):
            return value
        return int(number) if number.is_integer() else number

    if field_type == FieldType.BOOLEAN:
        if value == "true":
            return True
        if value == "false":
            return False
        return bool(value)

    return value


def validate_fields(fields: Sequence[FieldConfig]) -> Dict[str, List[str]]:
    """Map each incompletely configured field key to its missing options."""
    problems = {}
    for field in fields:
        missing = missing_options(field)
        if missing:
            problems[field.key] = missing
    return problems


def generate_local_data(
    count: int,
    fields: Sequence[FieldConfig],
    seed: Optional[int] = None,
    strict: bool = False
) -> List[Dict[str, Any]]:
    """
    Generate records with the built-in strategy generators.

    Args:
        count: Number of records to generate
        fields: Field configuration, applied in order for every row
        seed: Random seed for reproducibility
        strict: Raise ValidationError instead of falling back when options are missing

    Returns:
        List of exactly count nested records
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if count == 0:
        return []

    problems = validate_fields(fields)
    if problems:
        if strict:
            raise ValidationError(f"Fields missing required options: {problems}", problems)
        logger.warning(f"Generating with fallbacks for incomplete fields: {problems}")

    seed_generators(seed)
    by_key = {field.key: field for field in fields}
    state = init_state(fields)
    result = []

    for i in range(count):
        flat_row: Dict[str, Any] = {}

        for field in fields:
            options = field.opts

            if options.grouping_config is not None:
                values = options.values or []
                size = group_size(field, count)
                index = (i // size) % (len(values) or 1)
                value = values[index] if values else None

                # New group: restart per-group counters
                if i > 0 and i % size == 0:
                    for reset_key in options.grouping_config.reset_fields:
                        target = by_key.get(reset_key)
                        if target is not None and target.strategy == GenerationStrategy.INCREMENT:
                            state.set(reset_key, _start_of(target))
            else:
                generator = registry.get(field.strategy)
                value = generator(state, field.key, options)

            if field.strategy == GenerationStrategy.STATIC:
                value = coerce_static(value, field.type)

            flat_row[field.key] = value

        result.append(unflatten_object(flat_row))

    logger.info(f"Generated {len(result)} records locally from {len(fields)} fields")
    return result

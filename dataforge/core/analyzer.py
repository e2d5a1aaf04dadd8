import re
import json
import logging
import warnings
from typing import Dict, Any, Optional, Tuple
import pandas as pd

from dataforge.core.config import (
    AnalysisResult,
    FieldConfig,
    FieldOptions,
    FieldType,
    GenerationStrategy
)
from dataforge.core.errors import ParseError
from dataforge.core.paths import flatten_object

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)
ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

LOCAL_DESCRIPTION = "Detected locally"

StrategyGuess = Tuple[GenerationStrategy, Optional[FieldOptions], Optional[str]]


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def parse_sample(text: str) -> Any:
    """Parse raw sample text, raising ParseError when it is not strict JSON."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid JSON format: {str(e)}") from e


def select_sample_record(parsed: Any) -> Any:
    """Pick the record used for inference: the first item of a list sample."""
    if isinstance(parsed, list):
        return parsed[0] if parsed else {}
    return parsed


def _is_integral(value: Any) -> bool:
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


def _is_id_key(key: str) -> bool:
    k = key.lower()
    return k == "id" or k.endswith("_id") or key.endswith("Id")


RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def _parses_as_date(value: str) -> bool:
    # pandas resolves relative words against the clock; only absolute dates count
    if not value.strip() or value.strip().lower() in RELATIVE_DATE_WORDS:
        return False
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def _upper_bound(value: float) -> float:
    doubled = value * 2
    if _is_integral(doubled):
        doubled = int(doubled)
    return doubled or 100


def determine_strategy(key: str, value: Any) -> StrategyGuess:
    """
    Propose a generation strategy for a single sample value.

    Args:
        key: Flat dot-path of the field
        value: Sample value found at that path

    Returns:
        Tuple of (strategy, options, description); options and description may be None
    """
    k = key.lower()

    if value is None:
        return GenerationStrategy.STATIC, FieldOptions(static_value="null"), None

    # bool is an int subclass, so it has to be handled before numbers
    if isinstance(value, bool):
        return GenerationStrategy.ENUM, FieldOptions(values=["true", "false"]), None

    if isinstance(value, (int, float)):
        if _is_id_key(key) and _is_integral(value):
            return GenerationStrategy.INCREMENT, FieldOptions(start=int(value), step=1), None
        if _is_integral(value):
            return GenerationStrategy.RANDOM_INT, FieldOptions(min=0, max=_upper_bound(value)), None
        return (
            GenerationStrategy.RANDOM_FLOAT,
            FieldOptions(min=0, max=_upper_bound(value), precision=2),
            None
        )

    if isinstance(value, str):
        if UUID_PATTERN.match(value):
            return GenerationStrategy.UUID, None, None
        if ISO_DATE_PREFIX.match(value) or (
            any(token in k for token in ("date", "time", "_at")) and _parses_as_date(value)
        ):
            return GenerationStrategy.DATE, FieldOptions(format="YYYY-MM-DD"), None
        if "email" in k:
            return GenerationStrategy.EMAIL, None, None
        if any(token in k for token in ("name", "user", "author")):
            return GenerationStrategy.NAME, None, None
        if "phone" in k or "tel" in k:
            return GenerationStrategy.PHONE, None, None
        if any(token in k for token in ("address", "city", "street", "country")):
            return GenerationStrategy.ADDRESS, None, None
        return GenerationStrategy.AI_CONTEXT, None, "Local: Random String"

    return GenerationStrategy.STATIC, FieldOptions(static_value=str(value)), None


def infer_field_type(value: Any) -> FieldType:
    """Classify a flattened leaf value."""
    if value is None:
        return FieldType.NULL
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, list):
        return FieldType.ARRAY
    return FieldType.STRING


def analyze_json_structure_local(json_input: str) -> AnalysisResult:
    """
    Infer a flat schema from a JSON sample using local heuristics.

    Args:
        json_input: Raw JSON text, either an object or a list of objects

    Returns:
        Analysis result with one field per flattened path
    """
    parsed = parse_sample(json_input)
    sample = select_sample_record(parsed)
    flattened = flatten_object(sample)

    logger.info(f"Analyzing {len(flattened)} flattened fields locally")
    fields = []
    for key, value in flattened.items():
        strategy, options, description = determine_strategy(key, value)
        fields.append(FieldConfig(
            key=key,
            type=infer_field_type(value),
            strategy=strategy,
            options=options,
            description=description or LOCAL_DESCRIPTION,
            sample_value=value
        ))

    return AnalysisResult(
        fields=fields,
        original_sample_count=len(parsed) if isinstance(parsed, list) else 1
    )


def attach_sample_values(result: AnalysisResult, json_input: str) -> AnalysisResult:
    """Copy sample values onto fields whose key exists in the flattened sample."""
    try:
        flattened: Dict[str, Any] = flatten_object(select_sample_record(json.loads(json_input)))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to attach sample values to schema: {str(e)}")
        return result

    for field in result.fields:
        if field.key in flattened:
            field.sample_value = flattened[field.key]
    return result

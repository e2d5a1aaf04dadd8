"""
Strategy generators for the local deterministic engine.

Every generator is a function ``(state, key, options) -> value``; the
registry maps each GenerationStrategy to exactly one of them.
"""

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Dict, Any, Callable, List, Optional
from faker import Faker

from dataforge.core.config import FieldConfig, FieldOptions, GenerationStrategy
from dataforge.core.state import GenerationState

# Setup logging
logger = logging.getLogger(__name__)

# Initialize Faker
fake = Faker()

GeneratorFn = Callable[[GenerationState, str, FieldOptions], Any]

FIRST_NAMES = ["James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda", "David", "Elizabeth"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
EMAIL_NAMES = ["user", "test", "dev", "admin", "guest"]
EMAIL_DOMAINS = ["gmail.com", "yahoo.com", "outlook.com", "example.org"]
STREETS = ["Main St", "Oak Ave", "Pine Rd", "Maple Ln", "Cedar Blvd"]
CITIES = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix"]

ENUM_PLACEHOLDER = "enum"
AI_CONTEXT_FILLER = "Lorem ipsum (Local generated string)"
SENTENCE_FILLER = "The quick brown fox jumps over the lazy dog."

# Options a strategy cannot work without (wire names)
REQUIRED_OPTIONS: Dict[GenerationStrategy, List[str]] = {
    GenerationStrategy.ENUM: ["values"],
    GenerationStrategy.STATIC: ["staticValue"],
    GenerationStrategy.REGEX: ["pattern"],
}


class StrategyRegistry:
    """Registry of generator functions keyed by strategy."""

    def __init__(self, fallback: GenerationStrategy = GenerationStrategy.STATIC):
        self._generators: Dict[GenerationStrategy, GeneratorFn] = {}
        self._fallback = fallback

    def register(self, *strategies: GenerationStrategy):
        """
        Register a generator for one or more strategies.

        Args:
            strategies: Strategies served by the decorated function
        """
        def decorator(func: GeneratorFn):
            @wraps(func)
            def wrapper(state: GenerationState, key: str, options: FieldOptions):
                return func(state, key, options)

            for strategy in strategies:
                self._generators[strategy] = wrapper
            return wrapper

        return decorator

    def get(self, strategy: Any) -> GeneratorFn:
        """Get the generator for a strategy, falling back to static."""
        generator = self._generators.get(strategy)
        if generator is None:
            logger.warning(f"No generator for strategy {strategy!r}, using {self._fallback.value}")
            generator = self._generators[self._fallback]
        return generator

    def list_strategies(self) -> Dict[str, Optional[str]]:
        """List registered strategies with their docstrings."""
        return {
            strategy.value: func.__doc__
            for strategy, func in self._generators.items()
        }


# Create global registry
registry = StrategyRegistry()


def seed_generators(seed: Optional[int]) -> None:
    """Seed the shared random source for reproducible output."""
    if seed is not None:
        fake.seed_instance(seed)


def _number(value: Any, default: float) -> float:
    return default if value is None else value


@registry.register(GenerationStrategy.INCREMENT)
def generate_increment(state: GenerationState, key: str, options: FieldOptions):
    """Emit the current counter, then add step."""
    if key not in state:
        state.set(key, _number(options.start, 1))
    return state.advance(key, _number(options.step, 1))


@registry.register(GenerationStrategy.RANDOM_INT)
def generate_random_int(state: GenerationState, key: str, options: FieldOptions):
    """Uniform integer in [min, max], both inclusive."""
    low = int(_number(options.min, 0))
    high = int(_number(options.max, 100))
    if low > high:
        low, high = high, low
    return fake.random.randint(low, high)


@registry.register(GenerationStrategy.RANDOM_FLOAT)
def generate_random_float(state: GenerationState, key: str, options: FieldOptions):
    """Uniform float in [min, max] rounded to precision decimals."""
    low = float(_number(options.min, 0))
    high = float(_number(options.max, 100))
    precision = int(_number(options.precision, 2))
    if low > high:
        low, high = high, low
    return round(fake.random.uniform(low, high), precision)


@registry.register(GenerationStrategy.ENUM)
def generate_enum(state: GenerationState, key: str, options: FieldOptions):
    """Uniform pick from values."""
    values = options.values or []
    if not values:
        return ENUM_PLACEHOLDER
    return fake.random.choice(values)


@registry.register(GenerationStrategy.UUID)
def generate_uuid(state: GenerationState, key: str, options: FieldOptions):
    """Random version 4 UUID."""
    return str(fake.uuid4())


@registry.register(GenerationStrategy.NAME)
def generate_name(state: GenerationState, key: str, options: FieldOptions):
    """First and last name from fixed lists."""
    return f"{fake.random.choice(FIRST_NAMES)} {fake.random.choice(LAST_NAMES)}"


@registry.register(GenerationStrategy.EMAIL)
def generate_email(state: GenerationState, key: str, options: FieldOptions):
    """name.N@domain from fixed lists."""
    name = fake.random.choice(EMAIL_NAMES)
    return f"{name}.{fake.random.randint(0, 998)}@{fake.random.choice(EMAIL_DOMAINS)}"


@registry.register(GenerationStrategy.PHONE)
def generate_phone(state: GenerationState, key: str, options: FieldOptions):
    """US-style +1-XXX-XXX-XXXX number."""
    return (
        f"+1-{fake.random.randint(100, 999)}"
        f"-{fake.random.randint(100, 999)}"
        f"-{fake.random.randint(1000, 9999)}"
    )


@registry.register(GenerationStrategy.DATE)
def generate_date(state: GenerationState, key: str, options: FieldOptions):
    """Random instant within the last 365 days."""
    moment = fake.date_time_between(start_date="-365d", end_date="now", tzinfo=timezone.utc)
    if options.format == "YYYY-MM-DD":
        return moment.date().isoformat()
    return _iso_timestamp(moment)


def _iso_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


@registry.register(GenerationStrategy.ADDRESS)
def generate_address(state: GenerationState, key: str, options: FieldOptions):
    """Street number, street and city from fixed lists."""
    return (
        f"{fake.random.randint(0, 9998)} {fake.random.choice(STREETS)}, "
        f"{fake.random.choice(CITIES)}"
    )


@registry.register(GenerationStrategy.STATIC)
def generate_static(state: GenerationState, key: str, options: FieldOptions):
    """The configured static value, uncoerced."""
    return options.static_value


@registry.register(GenerationStrategy.REGEX)
def generate_regex(state: GenerationState, key: str, options: FieldOptions):
    """Placeholder naming the pattern; no pattern-conformant synthesis locally."""
    return f"regex_sim({options.pattern or '?'})"


@registry.register(GenerationStrategy.AI_CONTEXT)
def generate_ai_context(state: GenerationState, key: str, options: FieldOptions):
    """Fixed filler standing in for context-aware text."""
    return AI_CONTEXT_FILLER


@registry.register(GenerationStrategy.SENTENCE)
def generate_sentence(state: GenerationState, key: str, options: FieldOptions):
    """Fixed filler sentence."""
    return SENTENCE_FILLER


def missing_options(field: FieldConfig) -> List[str]:
    """
    List the options a field needs but does not have.

    Args:
        field: Field to check

    Returns:
        Wire names of the missing options, empty when the field is complete
    """
    options = field.opts
    present = {
        "values": bool(options.values),
        "staticValue": options.static_value is not None,
        "pattern": bool(options.pattern),
    }

    missing = [name for name in REQUIRED_OPTIONS.get(field.strategy, []) if not present[name]]
    if options.grouping_config is not None and not present["values"] and "values" not in missing:
        missing.append("values")
    return missing

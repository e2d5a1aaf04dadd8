from dataclasses import dataclass, field
from typing import Dict, Union

Number = Union[int, float]


@dataclass
class GenerationState:
    """Counters for increment fields, owned by a single generation run."""
    counters: Dict[str, Number] = field(default_factory=dict)

    def __contains__(self, key: str) -> bool:
        return key in self.counters

    def get(self, key: str) -> Number:
        return self.counters[key]

    def set(self, key: str, value: Number) -> None:
        self.counters[key] = value

    def advance(self, key: str, step: Number) -> Number:
        """Return the current counter value, then move it by step."""
        value = self.counters[key]
        self.counters[key] = value + step
        return value

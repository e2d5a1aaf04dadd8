"""
Core configuration models for DataForge.
"""

import os
import logging
from enum import Enum
from typing import Optional, Dict, Any, List, Union
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldType(str, Enum):
    """Classification of a leaf value."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    NULL = "null"


class GenerationStrategy(str, Enum):
    """Algorithms available for synthesizing a field's value."""
    INCREMENT = "increment"
    RANDOM_INT = "random_int"
    RANDOM_FLOAT = "random_float"
    ENUM = "enum"
    UUID = "uuid"
    NAME = "name"
    EMAIL = "email"
    DATE = "date"
    ADDRESS = "address"
    PHONE = "phone"
    SENTENCE = "sentence"
    STATIC = "static"
    REGEX = "regex"
    AI_CONTEXT = "ai_context"


class GroupingStrategy(str, Enum):
    """How rows are distributed across group values."""
    FIXED = "fixed"  # countPerGroup rows per value
    EVEN = "even"  # count split evenly across values


class GroupingConfig(BaseModel):
    """Grouping rule carried by the grouping-key field."""
    model_config = ConfigDict(populate_by_name=True)

    strategy: GroupingStrategy = GroupingStrategy.FIXED
    count_per_group: Optional[int] = Field(default=None, gt=0, alias="countPerGroup")
    reset_fields: List[str] = Field(default_factory=list, alias="resetFields")

    @field_validator("reset_fields")
    @classmethod
    def _dedupe_reset_fields(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class FieldOptions(BaseModel):
    """Named generation parameters. Unknown keys are kept."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    step: Optional[Union[int, float]] = None
    start: Optional[Union[int, float]] = None
    precision: Optional[int] = None
    values: Optional[List[str]] = None
    format: Optional[str] = None
    pattern: Optional[str] = None
    static_value: Any = Field(default=None, alias="staticValue")
    grouping_config: Optional[GroupingConfig] = Field(default=None, alias="groupingConfig")


class FieldConfig(BaseModel):
    """Configuration of a single flat field."""
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., description="Dot-path of the field inside a record")
    type: FieldType
    strategy: GenerationStrategy
    options: Optional[FieldOptions] = None
    description: Optional[str] = None
    sample_value: Any = Field(default=None, alias="sampleValue")

    @property
    def opts(self) -> FieldOptions:
        """Options, or an empty set when none were configured."""
        return self.options or FieldOptions()

    def has_sample_value(self) -> bool:
        return "sample_value" in self.model_fields_set

    def to_wire(self) -> Dict[str, Any]:
        """JSON-shaped dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AnalysisResult(BaseModel):
    """Output of schema inference, input to generation."""
    model_config = ConfigDict(populate_by_name=True)

    fields: List[FieldConfig]
    original_sample_count: int = Field(default=1, alias="originalSampleCount")

    @model_validator(mode="after")
    def _unique_keys(self) -> "AnalysisResult":
        seen = set()
        for field in self.fields:
            if field.key in seen:
                raise ValueError(f"Duplicate field key: {field.key}")
            seen.add(field.key)
        return self


class LLMConfig(BaseModel):
    """LLM-specific configuration."""
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 4000


class Settings(BaseModel):
    """Runtime settings, usually loaded from the environment."""
    openai_api_key: Optional[str] = Field(default=None, description="Key for the LLM collaborators")
    llm: LLMConfig = Field(default_factory=LLMConfig)
    default_count: int = Field(default=50, ge=0, description="Rows generated when no count is given")
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key)


def load_settings(env_file: Optional[str] = ".env.local") -> Settings:
    """
    Build settings from environment variables.

    Args:
        env_file: Optional dotenv file loaded before reading the environment

    Returns:
        Populated settings
    """
    if env_file:
        load_dotenv(env_file)

    llm = LLMConfig()
    if os.getenv("DATAFORGE_MODEL"):
        llm.model = os.environ["DATAFORGE_MODEL"]
    if os.getenv("DATAFORGE_TEMPERATURE"):
        llm.temperature = float(os.environ["DATAFORGE_TEMPERATURE"])
    if os.getenv("DATAFORGE_MAX_TOKENS"):
        llm.max_tokens = int(os.environ["DATAFORGE_MAX_TOKENS"])

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        llm=llm,
        log_level=os.getenv("DATAFORGE_LOG_LEVEL", "INFO")
    )


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up logging for DataForge."""
    logger = logging.getLogger("dataforge")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

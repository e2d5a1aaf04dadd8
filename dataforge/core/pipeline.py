"""
Core pipeline class for DataForge.
"""

import re
import json
import logging
from typing import Optional, Dict, Any, List, Sequence, Union

from dataforge.core.analyzer import analyze_json_structure_local, parse_sample
from dataforge.core.changes import is_structural_change
from dataforge.core.config import (
    AnalysisResult,
    FieldConfig,
    FieldOptions,
    GenerationStrategy,
    GroupingConfig,
    GroupingStrategy,
    Settings
)
from dataforge.core.errors import DataForgeError
from dataforge.core.llm import GeneratorCodeSynthesizer, SchemaAnalyzer
from dataforge.core.paths import get_nested_value
from dataforge.core.presets import Preset, PresetConfig
from dataforge.generation.engine import generate_local_data
from dataforge.generation.executor import CodeExecutor, RestrictedExecutor

logger = logging.getLogger(__name__)

DEFAULT_JSON = """[
  {
    "id": 1001,
    "user_name": "Alice Chen",
    "role": "admin",
    "is_active": true,
    "login_count": 42,
    "rating": 4.5,
    "created_at": "2023-10-01"
  }
]"""

GROUP_VALUE_SEPARATORS = re.compile(r"[,，\n]")


def _display_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class ForgePipeline:
    """Orchestrates analysis, configuration edits and data generation."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        analyzer: Optional[SchemaAnalyzer] = None,
        synthesizer: Optional[GeneratorCodeSynthesizer] = None,
        executor: Optional[CodeExecutor] = None,
        local_mode: Optional[bool] = None
    ):
        """
        Initialize a new pipeline.

        Args:
            settings: Runtime settings (defaults to an empty configuration)
            analyzer: Delegated schema analyzer
            synthesizer: Generator program synthesizer
            executor: Executor for synthesized programs
            local_mode: Force local or delegated mode; defaults to local without an API key
        """
        self.settings = settings or Settings()
        self.analyzer = analyzer or SchemaAnalyzer(self.settings.llm, self.settings.openai_api_key)
        self.synthesizer = synthesizer or GeneratorCodeSynthesizer(
            self.settings.llm, self.settings.openai_api_key
        )
        self.executor = executor or RestrictedExecutor()
        self.local_mode = not self.settings.has_api_key if local_mode is None else local_mode

        self.input_json = DEFAULT_JSON
        self.fields: List[FieldConfig] = []
        self.generate_count = self.settings.default_count
        self.custom_instructions = ""
        self.generated_code = ""
        self.generated_data: List[Dict[str, Any]] = []

    # =========================================================
    # Cached generator program
    # =========================================================
    def invalidate_code(self, reason: str) -> None:
        if self.generated_code:
            logger.info(f"Discarding cached generator program: {reason}")
        self.generated_code = ""

    def set_input_json(self, text: str) -> None:
        if text != self.input_json:
            self.input_json = text
            self.invalidate_code("sample changed")

    def set_custom_instructions(self, text: str) -> None:
        if text != self.custom_instructions:
            self.custom_instructions = text
            self.invalidate_code("custom instructions changed")

    # =========================================================
    # Analysis
    # =========================================================
    async def analyze(self) -> AnalysisResult:
        """
        Infer the field configuration from the current sample.

        Returns:
            The analysis result; its fields replace the current configuration
        """
        self.invalidate_code("new analysis")
        try:
            parsed = parse_sample(self.input_json)
            normalized = json.dumps(parsed, ensure_ascii=False)

            if self.local_mode:
                result = analyze_json_structure_local(normalized)
            else:
                result = await self.analyzer.analyze(normalized)

        except DataForgeError as e:
            logger.error(f"Analysis failed: {str(e)}")
            raise

        self.fields = list(result.fields)
        return result

    # =========================================================
    # Configuration edits
    # =========================================================
    def field_index(self, key: str) -> int:
        for index, field in enumerate(self.fields):
            if field.key == key:
                return index
        raise ValueError(f"Unknown field: {key}")

    def update_field(self, index: int, field: FieldConfig) -> None:
        """Replace one field, dropping the cached program on structural edits."""
        old = self.fields[index]
        if any(f.key == field.key for i, f in enumerate(self.fields) if i != index):
            raise ValueError(f"Duplicate field key: {field.key}")

        self.fields[index] = field
        if is_structural_change(old, field):
            self.invalidate_code(f"structural change to '{old.key}'")

    def update_options(self, index: int, **changes: Any) -> None:
        """Change option values of one field, e.g. ``update_options(0, min=5)``."""
        field = self.fields[index]
        data = field.opts.model_dump(exclude_none=True)
        data.update(changes)
        self.update_field(index, field.model_copy(update={"options": FieldOptions.model_validate(data)}))

    def change_strategy(self, index: int, strategy: GenerationStrategy) -> None:
        """Switch strategy; switching to static restores the sample value when empty."""
        field = self.fields[index]
        options = field.opts.model_copy()

        if (
            strategy == GenerationStrategy.STATIC
            and options.static_value in (None, "")
            and field.has_sample_value()
        ):
            options.static_value = field.sample_value

        self.update_field(index, field.model_copy(update={"strategy": strategy, "options": options}))

    def remove_field(self, index: int) -> FieldConfig:
        removed = self.fields.pop(index)
        self.invalidate_code(f"field '{removed.key}' removed")
        return removed

    # =========================================================
    # Grouping
    # =========================================================
    def suggest_group_values(self, key: str) -> List[str]:
        """
        Candidate group values for a field.

        Enum fields offer their configured values; other fields offer the
        distinct values found at their path across the sample records.
        """
        field = self.fields[self.field_index(key)]
        if field.strategy == GenerationStrategy.ENUM and field.opts.values:
            return list(field.opts.values)

        try:
            parsed = parse_sample(self.input_json)
        except DataForgeError as e:
            logger.warning(f"Could not extract values from sample: {str(e)}")
            return []

        records = parsed if isinstance(parsed, list) else [parsed]
        unique: Dict[str, None] = {}
        for record in records:
            value = get_nested_value(record, key)
            if value is not None:
                unique[_display_value(value)] = None
        return list(unique)

    def apply_grouping_rule(
        self,
        key: str,
        values: Union[str, Sequence[str]],
        strategy: GroupingStrategy = GroupingStrategy.FIXED,
        count_per_group: int = 10,
        reset_fields: Sequence[str] = ()
    ) -> None:
        """
        Make a field the grouping key.

        Args:
            key: Field that cycles through the group values
            values: Group values, or a comma/newline separated string of them
            strategy: fixed (count_per_group rows per value) or even
            count_per_group: Rows per group for the fixed strategy
            reset_fields: Increment fields restarted at every group boundary
        """
        index = self.field_index(key)
        if isinstance(values, str):
            values = GROUP_VALUE_SEPARATORS.split(values)
        values_list = [v.strip() for v in values if v and v.strip()]

        strategy = GroupingStrategy(strategy)
        grouping = GroupingConfig(
            strategy=strategy,
            count_per_group=count_per_group if strategy == GroupingStrategy.FIXED else None,
            reset_fields=list(reset_fields)
        )

        if strategy == GroupingStrategy.FIXED:
            self.generate_count = len(values_list) * count_per_group

        field = self.fields[index]
        data = field.opts.model_dump(exclude_none=True)
        data.update(values=values_list, grouping_config=grouping)
        self.update_field(index, field.model_copy(update={"options": FieldOptions.model_validate(data)}))

    # =========================================================
    # Generation
    # =========================================================
    async def generate(self, force_refresh: bool = False, seed: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Generate generate_count records from the current configuration.

        In delegated mode the cached generator program is reused unless it is
        missing or force_refresh is set.

        Args:
            force_refresh: Synthesize a new program even if one is cached
            seed: Random seed for the local engine

        Returns:
            The generated records
        """
        if self.generate_count < 0:
            raise ValueError(f"generate_count must be >= 0, got {self.generate_count}")

        self.generated_data = []
        fields = list(self.fields)

        try:
            if self.local_mode:
                data = generate_local_data(self.generate_count, fields, seed=seed)
            else:
                code = self.generated_code
                if not code or force_refresh:
                    code = await self.synthesizer.generate_code(
                        fields, self.input_json, self.custom_instructions
                    )
                    self.generated_code = code
                else:
                    logger.info("Using cached generator program with live parameters")

                data = self.executor.execute(code, self.generate_count, fields)

        except DataForgeError as e:
            logger.error(f"Generation failed: {str(e)}")
            raise

        self.generated_data = data
        return data

    def reset(self) -> None:
        """Return to the initial sample with no configuration."""
        self.input_json = DEFAULT_JSON
        self.fields = []
        self.custom_instructions = ""
        self.generated_code = ""
        self.generated_data = []

    # =========================================================
    # Presets
    # =========================================================
    def to_preset(self, name: str) -> Preset:
        return Preset(
            name=name,
            config=PresetConfig(
                input_json=self.input_json,
                fields=[field.model_copy(deep=True) for field in self.fields],
                custom_instructions=self.custom_instructions,
                generate_count=self.generate_count,
                generated_code="" if self.local_mode else self.generated_code
            )
        )

    def load_preset(self, preset: Preset) -> None:
        """Replay a saved preset unchanged."""
        config = preset.config
        self.input_json = config.input_json
        self.fields = [field.model_copy(deep=True) for field in config.fields]
        self.custom_instructions = config.custom_instructions
        self.generate_count = config.generate_count
        self.generated_code = config.generated_code
        if config.generated_code and self.settings.has_api_key:
            self.local_mode = False
        logger.info(f"Loaded preset '{preset.name}'")

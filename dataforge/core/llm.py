"""
Core LLM integration layer for DataForge.
"""

import re
import json
import logging
from typing import Any, Optional, Sequence
import instructor
from openai import AsyncOpenAI
from langchain_openai import ChatOpenAI
from langchain_core.prompts import ChatPromptTemplate

from dataforge.core.analyzer import attach_sample_values
from dataforge.core.config import AnalysisResult, FieldConfig, LLMConfig
from dataforge.core.errors import InferenceError, SynthesisError

# Setup logging
logger = logging.getLogger(__name__)

ANALYSIS_SAMPLE_LIMIT = 10000
SYNTHESIS_SAMPLE_LIMIT = 2000
DEFAULT_INSTRUCTIONS = "Follow schema strategies strictly."

FENCED_BLOCK = re.compile(r"```[\w+-]*[ \t]*\n(.*?)```", re.DOTALL)
FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
FENCE_CLOSE = re.compile(r"\n?```$")


def strip_code_fences(text: Optional[str]) -> str:
    """Return the program source inside markdown code fences, if any."""
    if not text:
        return ""
    match = FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    stripped = text.strip()
    return FENCE_CLOSE.sub("", FENCE_OPEN.sub("", stripped)).strip()


ANALYSIS_SYSTEM = "You are an expert data engineer. Analyze JSON to build a flat schema with dot-notation keys."

ANALYSIS_PROMPT = """Analyze the following JSON data sample.
Your goal is to infer the schema and the likely data generation strategy for each field.

Rules:
1. Identify the type (string, number, boolean, array, null).
2. Infer the best 'strategy' from the allowed list:
   - 'increment' (for IDs like 1, 2, 3) -> detect 'start' (initial value) and 'step'.
   - 'enum' (if values repeat from a small set)
   - 'random_int' / 'random_float' (for ranges)
   - 'name', 'email', 'phone', 'address', 'date' (semantic detection)
   - 'uuid' (if it looks like a UUID)
   - 'regex' (if it follows a specific string pattern)
   - 'ai_context' (fallback for complex strings)
3. For nested objects or arrays, FLATTEN the keys using dot notation.
   - {{"user": {{"id": 1}}}} gives key "user.id".
   - {{"items": [{{"count": 1}}]}} gives key "items.0.count".
4. Fill in 'options' where applicable: min/max for random numbers, values for enums,
   start/step for increment, format for date, pattern for regex.

JSON Sample:
{sample}
"""


class SchemaAnalyzer:
    """Delegated schema inference through an LLM with structured output."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
        client: Any = None
    ):
        """Initialize the analyzer; the OpenAI client is created on first use."""
        self.config = config or LLMConfig()
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = instructor.from_openai(AsyncOpenAI(api_key=self._api_key))
        return self._client

    async def analyze(self, json_input: str) -> AnalysisResult:
        """
        Infer the field configuration of a JSON sample.

        Args:
            json_input: Validated JSON sample text

        Returns:
            Analysis result with sample values attached
        """
        try:
            result = await self.client.chat.completions.create(
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_model=AnalysisResult,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM},
                    {"role": "user", "content": ANALYSIS_PROMPT.format(
                        sample=json_input[:ANALYSIS_SAMPLE_LIMIT]
                    )}
                ]
            )
        except Exception as e:
            logger.error(f"Schema analysis failed: {str(e)}")
            raise InferenceError(f"Schema analysis failed: {str(e)}") from e

        if result is None or not isinstance(result, AnalysisResult):
            raise InferenceError("Empty response from schema analysis")

        logger.info(f"Delegated analysis returned {len(result.fields)} fields")
        return attach_sample_values(result, json_input)


SYNTHESIS_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are a senior Python developer writing data generator programs. "
               "Return ONLY Python source code, no explanations."),
    ("human", """Write a ROBUST Python function named `generate_data(count, fields)` that returns a list of generated JSON-compatible dicts.

1. Function signature: `def generate_data(count, fields):`
   - `count` (int): number of records to generate.
   - `fields` (list of dict): the live field configuration, keys `key`, `type`, `strategy`, `options`.

2. Output: return a list of exactly `count` dicts.

3. Dynamic parameter lookup (CRITICAL):
   - Do NOT hardcode option values (min, max, step, start, enum values, regex patterns, grouping counts).
   - Read them from `fields` at run time, e.g. `next(f for f in fields if f["key"] == "...").get("options") or {{}}`.
   - For lists such as enum values use `len(options["values"])` for index arithmetic so the program keeps working when values change.

4. Implementation logic:
   - State: build a `state` dict before the loop with a counter for every 'increment' field, initialised from `options.get("start", 1)`.
   - Loop `i` from 0 to `count - 1`.
   - Grouping (priority): a field whose options carry `groupingConfig` is a grouping key.
     - Group size: for `groupingConfig["strategy"] == "even"` use `max(1, count // len(values or [1]))`; for "fixed" use `groupingConfig.get("countPerGroup") or 1`.
     - Value index: `(i // size) % len(values)`.
     - Resets: when `i > 0 and i % size == 0`, every key in `groupingConfig["resetFields"]` that is an increment field gets its counter set back to that field's `options["start"]`.
   - Field generation:
     - 'increment': emit `state[key]`, then add `options.get("step", 1)`.
     - 'static': use `options["staticValue"]` and STRICTLY enforce the field type:
       number -> numeric value, boolean -> `str(value) == "true"`.
     - other strategies: standard logic driven by `options`.
   - Structure: rebuild nested dicts/lists from the flat dot-notation keys (a numeric segment means a list index).

5. Only import from: random, math, uuid, datetime, string, re, itertools, json, collections, copy, functools, time.

6. Custom instructions:
   - {instructions}

Original sample:
{sample}

Schema configuration:
{schema}

Define `def generate_data(count, fields):` and guard every options lookup against missing keys.""")
])


class GeneratorCodeSynthesizer:
    """Obtains generator program source from an LLM."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
        llm: Any = None
    ):
        """Initialize the synthesizer; the chat model is created on first use."""
        self.config = config or LLMConfig()
        self._api_key = api_key
        self._llm = llm

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                api_key=self._api_key
            )
        return self._llm

    async def generate_code(
        self,
        fields: Sequence[FieldConfig],
        original_sample: str,
        custom_instructions: Optional[str] = None
    ) -> str:
        """
        Generate generator program source for a field configuration.

        Args:
            fields: Current field configuration
            original_sample: Sample JSON text the fields were inferred from
            custom_instructions: Optional free-text instructions

        Returns:
            Program source with code fences removed
        """
        messages = SYNTHESIS_PROMPT.format_messages(
            instructions=custom_instructions or DEFAULT_INSTRUCTIONS,
            sample=original_sample[:SYNTHESIS_SAMPLE_LIMIT],
            schema=json.dumps([field.to_wire() for field in fields], indent=2)
        )

        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Code generation failed: {str(e)}")
            raise SynthesisError(f"Code generation failed: {str(e)}") from e

        content = response.content
        if not isinstance(content, str):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )

        code = strip_code_fences(content)
        if not code:
            raise SynthesisError("Empty response from code synthesis")
        return code

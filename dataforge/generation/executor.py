"""
Execution of synthesized generator programs.

A generator program is Python source defining::

    def generate_data(count, fields):
        ...

which returns a list of ``count`` nested records. ``fields`` is the live
field configuration as JSON-shaped dicts (camelCase keys), so the program
reads option values at run time instead of embedding them.
"""

import sys
import json
import logging
import builtins
import subprocess
from typing import Dict, Any, List, Optional, Sequence

from dataforge.core.config import FieldConfig
from dataforge.core.errors import CodeExecutionDetails, ExecutionError

# Setup logging
logger = logging.getLogger(__name__)

ENTRY_POINT = "generate_data"

ALLOWED_MODULES = frozenset({
    "collections", "copy", "datetime", "functools", "itertools",
    "json", "math", "random", "re", "string", "time", "uuid",
})

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "ascii", "bin", "bool", "bytes", "callable", "chr",
    "classmethod", "complex", "delattr", "dict", "divmod", "enumerate", "filter",
    "float", "format", "frozenset", "getattr", "hasattr", "hash", "hex", "id",
    "int", "isinstance", "issubclass", "iter", "len", "list", "map", "max", "min",
    "next", "object", "oct", "ord", "pow", "property", "range", "repr", "reversed",
    "round", "set", "setattr", "slice", "sorted", "staticmethod", "str", "sum",
    "super", "tuple", "type", "zip",
    "BaseException", "Exception", "ArithmeticError", "AssertionError", "AttributeError",
    "IndexError", "KeyError", "LookupError", "NameError", "OverflowError",
    "RuntimeError", "StopIteration", "TypeError", "ValueError", "ZeroDivisionError",
    "ImportError", "NotImplementedError", "__build_class__",
)


def serialize_fields(fields: Sequence[FieldConfig]) -> List[Dict[str, Any]]:
    """Fresh JSON-shaped copy of the field list handed to a program."""
    return [field.to_wire() for field in fields]


class CodeExecutor:
    """Runs generator programs; implementations choose the isolation primitive."""

    def execute(self, source: str, count: int, fields: Sequence[FieldConfig]) -> List[Dict[str, Any]]:
        """
        Run a generator program.

        Args:
            source: Program source defining generate_data(count, fields)
            count: Number of records requested
            fields: Live field configuration

        Returns:
            The records returned by the program

        Raises:
            ExecutionError: The program failed or did not return a list
        """
        raise NotImplementedError("Executors must implement execute method")

    @staticmethod
    def _check_result(result: Any, count: int) -> List[Dict[str, Any]]:
        if not isinstance(result, list):
            raise TypeError(f"Generated code did not return a list (got {type(result).__name__}).")
        if len(result) != count:
            logger.warning(f"Generator program returned {len(result)} records, {count} requested")
        return result


def _guarded_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level != 0 or name.split(".")[0] not in ALLOWED_MODULES:
        raise ImportError(f"Import of {name!r} is not allowed in generator programs")
    return __import__(name, globals, locals, fromlist, level)


def _program_print(*args, sep=" ", end="\n", file=None, flush=False):
    # Program output goes to the log, never to stdout
    logger.debug(f"generator program: {sep.join(str(a) for a in args)}")


def restricted_builtins() -> Dict[str, Any]:
    """Builtins visible to a program running in-process."""
    safe = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
    safe["__import__"] = _guarded_import
    safe["print"] = _program_print
    return safe


class RestrictedExecutor(CodeExecutor):
    """
    In-process executor with a curated builtins table.

    The program only sees its two arguments, a small set of builtins and
    whitelisted stdlib imports. This limits accidents, it is not a security
    boundary; use SubprocessExecutor when that matters.
    """

    def execute(self, source: str, count: int, fields: Sequence[FieldConfig]) -> List[Dict[str, Any]]:
        context = {"executor": type(self).__name__, "count": count, "field_count": len(fields)}
        try:
            namespace: Dict[str, Any] = {
                "__builtins__": restricted_builtins(),
                "__name__": "generator_program",
            }
            exec(compile(source, "<generator_program>", "exec"), namespace)

            entry = namespace.get(ENTRY_POINT)
            if not callable(entry):
                raise NameError(f"Program does not define {ENTRY_POINT}(count, fields)")

            return self._check_result(entry(count, serialize_fields(fields)), count)

        except Exception as e:
            logger.error(f"Generator program failed: {str(e)}")
            raise ExecutionError(str(e), CodeExecutionDetails.from_exception(e, context)) from e


# Runs inside the child interpreter; reads {source, count, fields} from stdin
_RUNNER = r"""
import sys, json, contextlib, traceback

payload = json.load(sys.stdin)
out = sys.stdout
try:
    namespace = {"__name__": "generator_program"}
    with contextlib.redirect_stdout(sys.stderr):
        exec(compile(payload["source"], "<generator_program>", "exec"), namespace)
        entry = namespace.get("generate_data")
        if not callable(entry):
            raise NameError("Program does not define generate_data(count, fields)")
        result = entry(payload["count"], payload["fields"])
    encoded = json.dumps({"result": result})
    out.write(encoded)
except Exception as e:
    json.dump({"error": {
        "error_type": type(e).__name__,
        "error_message": str(e),
        "traceback": traceback.format_exc(),
    }}, out)
    sys.exit(1)
"""


class SubprocessExecutor(CodeExecutor):
    """Executor that runs each program in a separate Python interpreter."""

    def __init__(self, timeout_seconds: Optional[float] = 30.0, python: Optional[str] = None):
        self.timeout_seconds = timeout_seconds
        self.python = python or sys.executable

    def execute(self, source: str, count: int, fields: Sequence[FieldConfig]) -> List[Dict[str, Any]]:
        context = {"executor": type(self).__name__, "count": count, "field_count": len(fields)}
        payload = json.dumps({
            "source": source,
            "count": count,
            "fields": serialize_fields(fields),
        })

        try:
            completed = subprocess.run(
                [self.python, "-I", "-c", _RUNNER],
                input=payload,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds
            )
            response = json.loads(completed.stdout or "{}")
        except subprocess.TimeoutExpired as e:
            logger.error(f"Generator program timed out after {self.timeout_seconds}s")
            raise ExecutionError(
                f"timed out after {self.timeout_seconds}s",
                CodeExecutionDetails.from_exception(e, context)
            ) from e
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Generator program failed: {str(e)}")
            raise ExecutionError(str(e), CodeExecutionDetails.from_exception(e, context)) from e

        if "error" in response:
            details = CodeExecutionDetails(context=context, **response["error"])
            logger.error(f"Generator program failed: {details.error_message}")
            raise ExecutionError(details.error_message, details)
        if "result" not in response:
            message = completed.stderr.strip() or f"child exited with code {completed.returncode}"
            raise ExecutionError(message, CodeExecutionDetails(
                error_type="ChildProcessError",
                error_message=message,
                context=context
            ))

        try:
            return self._check_result(response["result"], count)
        except TypeError as e:
            raise ExecutionError(str(e), CodeExecutionDetails.from_exception(e, context)) from e

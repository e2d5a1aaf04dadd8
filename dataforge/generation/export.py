"""
File export of generated records.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Union
import pandas as pd

# Setup logging
logger = logging.getLogger(__name__)


def default_output_name() -> str:
    """File name used when the caller does not choose one."""
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"generated_data_{stamp}.json"


def records_to_dataframe(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Tabular view of nested records; nested dicts become dot-path columns, lists stay whole cells."""
    return pd.json_normalize(records)


def save_generated_data(records: List[Dict[str, Any]], output_path: Union[str, Path]) -> Path:
    """
    Write generated records to disk.

    Args:
        records: Records returned by a generation run
        output_path: Target file; the suffix selects the format (.json or .csv)

    Returns:
        Path that was written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix == ".json":
        with open(output_path, "w") as f:
            json.dump(records, f, indent=2)
    elif output_path.suffix == ".csv":
        records_to_dataframe(records).to_csv(output_path, index=False)
    else:
        raise ValueError(f"Unsupported output format: {output_path}")

    logger.info(f"Saved {len(records)} records to {output_path}")
    return output_path

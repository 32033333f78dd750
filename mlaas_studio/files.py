"""Functions for writing model listings to CSV"""

import json
import pandas as pd
from pathlib import Path
from typing import List, Union

from .models.records import Model

LISTING_COLUMNS = ["id", "name", "type", "algorithm", "accuracy", "created", "datasetName", "targets", "fineTuned"]


def models_to_frame(models: List[Model]) -> pd.DataFrame:
    records = []
    for m in models:
        records.append({
            "id": m.id,
            "name": m.name,
            "type": m.type,
            "algorithm": m.algorithm,
            "accuracy": m.accuracy,
            "created": m.created.isoformat(),
            "datasetName": m.dataset_name,
            "targets": ",".join(m.targets) if m.targets else "",
            "fineTuned": m.is_fine_tuned,
            "parameters": json.dumps(m.parameters),
        })
    return pd.DataFrame.from_records(records, columns=LISTING_COLUMNS + ["parameters"])


def write_models_csv(
        models: List[Model],
        output_path: Union[str, Path],
        include_parameters: bool = False) -> pd.DataFrame:
    df = models_to_frame(models)
    if not include_parameters:
        df = df.drop(columns=["parameters"])

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)

    return df

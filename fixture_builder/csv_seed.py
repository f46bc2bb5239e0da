# fixture_builder/csv_seed.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Union

import pandas as pd

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_csv_table(csv_path: PathLike) -> pd.DataFrame:
    df = pd.read_csv(csv_path)
    # dotted headers are awkward as SQL column names
    df.columns = [str(c).replace(".", "__") for c in df.columns]
    return df


def load_csv_tables(builder: Any, tables: Mapping[str, PathLike]) -> Dict[str, int]:
    """
    Append the rows of each CSV file to its table. Tables are created from
    the CSV header when they do not exist yet.
    Returns row counts per table.
    """
    conn = builder.db.connection
    counts: Dict[str, int] = {}
    for table_name, csv_path in tables.items():
        df = read_csv_table(csv_path)
        df.to_sql(table_name, conn, if_exists="append", index=False)
        counts[table_name] = len(df)
        logger.debug("Loaded %d row(s) from %s into %s", len(df), csv_path, table_name)
    conn.commit()
    return counts


def csv_build_procedure(tables: Mapping[str, PathLike]) -> Callable[[Any], Dict[str, int]]:
    def build(builder: Any) -> Dict[str, int]:
        return load_csv_tables(builder, tables)
    return build

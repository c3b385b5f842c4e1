"""
Table Loader for C. elegans Recordings

This module provides functions for reading neuron-activity / behaviour tables
from delimited text or spreadsheet files and bringing their column names into
the canonical form used by the rest of the package.
"""

import os
import re
import time
from typing import Dict, Iterable, List, Optional

import pandas as pd

from worm_analysis.exceptions import MissingRequiredColumnError

TIME_COLUMN = 'time'
X_COLUMN = 'x'
Y_COLUMN = 'y'
BEHAVIOR_COLUMN = 'behavior'
DEFAULT_NEURON_PREFIX = 'neuron'

BEHAVIOR_LABELS: Dict[int, str] = {
    -1: 'reverse',
    0: 'stop',
    1: 'forward',
    2: 'turn',
}
UNKNOWN_BEHAVIOR = 'unknown'

_TIME_ALIASES = {'t', 'times', 'timestamp', 'timestamps', 'seconds', 'sec', 'frame_time'}
_BEHAVIOR_ALIASES = {'behaviour', 'behavior_label', 'behaviour_label', 'state', 'label', 'ethogram'}
_POSITION_ALIASES = {
    'x_position': X_COLUMN, 'xposition': X_COLUMN, 'position_x': X_COLUMN, 'pos_x': X_COLUMN, 'xpos': X_COLUMN, 'x_pos': X_COLUMN,
    'y_position': Y_COLUMN, 'yposition': Y_COLUMN, 'position_y': Y_COLUMN, 'pos_y': Y_COLUMN, 'ypos': Y_COLUMN, 'y_pos': Y_COLUMN,
}

_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')


def normalize_column_name(name: object) -> str:
    """
    Bring a single column name into canonical form.

    Punctuation (except underscores) is stripped, whitespace runs become a
    single underscore and the result is lower-cased. Time-like, behaviour and
    position aliases are then mapped onto ``time``, ``behavior``, ``x``, ``y``.

    Args:
        name: Raw column label as read from the file

    Returns:
        Normalised column name
    """
    cleaned = _PUNCTUATION.sub('', str(name).strip())
    cleaned = _WHITESPACE.sub('_', cleaned.strip()).lower()

    if cleaned in _TIME_ALIASES or cleaned.startswith(TIME_COLUMN):
        return TIME_COLUMN
    if cleaned in _BEHAVIOR_ALIASES:
        return BEHAVIOR_COLUMN
    return _POSITION_ALIASES.get(cleaned, cleaned)


def normalize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """
    Return a copy of ``df`` with canonical column names.

    When several raw columns collapse onto the same name (for example
    ``Time`` and ``time (s)``), the first one wins and later duplicates are
    dropped.
    """
    renamed = df.copy()
    renamed.columns = [normalize_column_name(col) for col in df.columns]
    return renamed.loc[:, ~renamed.columns.duplicated()]


def neuron_columns(df: pd.DataFrame, prefix: str = DEFAULT_NEURON_PREFIX) -> List[str]:
    """List neuron-activity columns (sharing ``prefix``) in file order."""

    prefix = normalize_column_name(prefix)
    return [col for col in df.columns if str(col).startswith(prefix)]


def validate_observation_table(
    df: pd.DataFrame,
    neuron_prefix: str = DEFAULT_NEURON_PREFIX,
    required: Iterable[str] = (TIME_COLUMN, X_COLUMN, Y_COLUMN, BEHAVIOR_COLUMN),
) -> None:
    """
    Check that a normalised table carries every column the analysis needs.

    Raises:
        MissingRequiredColumnError: If a required column or all neuron columns are absent
    """
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise MissingRequiredColumnError(
            f"Missing required column(s) {missing}. Available columns: {', '.join(map(str, df.columns))}"
        )
    if not neuron_columns(df, neuron_prefix):
        raise MissingRequiredColumnError(f"No neuron columns with prefix '{neuron_prefix}' found")


def decode_behavior_labels(labels: pd.Series) -> pd.Series:
    """Map integer behaviour codes to names; anything outside the label set is 'unknown'."""

    def _decode(value):
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            return UNKNOWN_BEHAVIOR
        if not numeric.is_integer():
            return UNKNOWN_BEHAVIOR
        return BEHAVIOR_LABELS.get(int(numeric), UNKNOWN_BEHAVIOR)

    return labels.map(_decode)


def read_table(file_path: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """
    Read a raw table from disk based on its file extension.

    Args:
        file_path: Path to a .csv, .tsv, .txt, .xls or .xlsx file
        sheet_name: Optional spreadsheet sheet (first sheet by default)

    Returns:
        DataFrame with the raw, un-normalised columns

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file extension is not supported
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    extension = os.path.splitext(file_path)[1].lower()
    if extension == '.csv':
        return pd.read_csv(file_path)
    if extension == '.tsv':
        return pd.read_csv(file_path, sep='\t')
    if extension == '.txt':
        return pd.read_csv(file_path, sep=None, engine='python')
    if extension in ('.xls', '.xlsx'):
        return pd.read_excel(file_path, sheet_name=sheet_name if sheet_name is not None else 0)

    raise ValueError(f"Unsupported table format '{extension}' for {file_path}")


def prepare_observation_table(
    raw_df: pd.DataFrame,
    neuron_prefix: str = DEFAULT_NEURON_PREFIX,
) -> pd.DataFrame:
    """Normalise column names, validate, and order rows by time."""

    df = normalize_column_names(raw_df)
    validate_observation_table(df, neuron_prefix=neuron_prefix)
    return df.sort_values(TIME_COLUMN, kind='mergesort').reset_index(drop=True)


def load_observation_table(
    file_path: str,
    neuron_prefix: str = DEFAULT_NEURON_PREFIX,
    sheet_name: Optional[str] = None,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Load a recording and return a validated Observation Table.

    Args:
        file_path: Path to the recording
        neuron_prefix: Prefix identifying neuron-activity columns
        sheet_name: Optional spreadsheet sheet
        verbose: Whether to print progress information

    Returns:
        DataFrame with ``time``, ``x``, ``y``, ``behavior`` and neuron columns,
        sorted by time
    """
    if verbose:
        print(f"Loading table: {file_path}")
        start_time = time.time()

    df = prepare_observation_table(read_table(file_path, sheet_name=sheet_name), neuron_prefix=neuron_prefix)

    if verbose:
        n_neurons = len(neuron_columns(df, neuron_prefix))
        print(f"  Loaded {len(df)} rows, {n_neurons} neurons in {time.time() - start_time:.2f} seconds")

    return df


__all__ = [
    'TIME_COLUMN',
    'X_COLUMN',
    'Y_COLUMN',
    'BEHAVIOR_COLUMN',
    'DEFAULT_NEURON_PREFIX',
    'BEHAVIOR_LABELS',
    'UNKNOWN_BEHAVIOR',
    'normalize_column_name',
    'normalize_column_names',
    'neuron_columns',
    'validate_observation_table',
    'decode_behavior_labels',
    'read_table',
    'prepare_observation_table',
    'load_observation_table',
]

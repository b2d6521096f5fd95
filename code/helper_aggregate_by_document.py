import pandas as pd
from itertools import chain
from config import DOC_ID_COLUMN, TOKENS_COLUMN, REFERENCE_COLUMN
from dfm import split_tokens

def aggregate_by_document(df: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregates a DataFrame by `doc_id`:
      - Concatenates `tokens` (token lists or space-joined strings) for rows
        with the same `doc_id`
      - Keeps the first non-missing `ref_score` of each document
      - Keeps documents in order of first appearance
    """
    df = df.copy()
    df[TOKENS_COLUMN] = df[TOKENS_COLUMN].apply(split_tokens)

    agg_dict = {
        REFERENCE_COLUMN: 'first',
        TOKENS_COLUMN: lambda x: list(chain.from_iterable(x))
    }

    agg_dict = {k: v for k, v in agg_dict.items() if k in df.columns}

    grouped = (
        df
        .groupby(DOC_ID_COLUMN, as_index=False, sort=False)
        .agg(agg_dict)
    )

    return grouped

import numpy as np
import pandas as pd
import pytest

from config import DOC_ID_COLUMN, TOKENS_COLUMN, REFERENCE_COLUMN, UK_MANIFESTO_REFERENCE_SCORES


UK_FEATURES = [
    "tax", "market", "enterprise", "cuts", "competition",
    "public", "services", "nhs", "union", "welfare", "spending",
    "europe", "education", "environment",
]

# Economic left-right flavoured word counts: 1992 manifestos are the
# reference texts, 1997 manifestos are virgin texts.
UK_COUNTS = {
    "Con1992": [40, 35, 30, 25, 20, 8, 10, 6, 3, 5, 7, 10, 12, 4],
    "Lab1992": [8, 6, 4, 3, 5, 35, 40, 30, 25, 30, 28, 8, 15, 10],
    "LD1992": [15, 12, 10, 6, 8, 20, 22, 18, 8, 14, 12, 30, 35, 28],
    "Con1997": [35, 30, 28, 20, 22, 10, 12, 8, 2, 6, 9, 14, 15, 6],
    "Lab1997": [18, 15, 14, 8, 12, 28, 30, 25, 12, 20, 18, 12, 22, 12],
    "LD1997": [12, 10, 8, 5, 7, 22, 25, 20, 10, 16, 14, 28, 32, 30],
}


@pytest.fixture
def uk_dfm():
    return pd.DataFrame.from_dict(UK_COUNTS, orient="index", columns=UK_FEATURES)


@pytest.fixture
def uk_scores():
    return [
        UK_MANIFESTO_REFERENCE_SCORES["Con1992"],
        UK_MANIFESTO_REFERENCE_SCORES["Lab1992"],
        UK_MANIFESTO_REFERENCE_SCORES["LD1992"],
        None, None, None,
    ]


@pytest.fixture
def two_doc_dfm():
    """Two reference documents on opposite ends of a two-word vocabulary."""
    return pd.DataFrame([[3, 1], [1, 3]], index=["right", "left"], columns=["a", "b"])


@pytest.fixture
def uk_segments():
    """Tokenized segments, two per manifesto, as the stage script reads them."""
    rows = []
    for doc_id, counts in UK_COUNTS.items():
        tokens = [word for word, count in zip(UK_FEATURES, counts) for _ in range(count)]
        half = len(tokens) // 2
        ref_score = UK_MANIFESTO_REFERENCE_SCORES.get(doc_id, np.nan)
        rows.append({DOC_ID_COLUMN: doc_id, TOKENS_COLUMN: " ".join(tokens[:half]),
                     REFERENCE_COLUMN: ref_score})
        rows.append({DOC_ID_COLUMN: doc_id, TOKENS_COLUMN: " ".join(tokens[half:]),
                     REFERENCE_COLUMN: ref_score})
    return pd.DataFrame(rows)

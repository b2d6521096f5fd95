"""
===============================================================================
FILE: stage_03_wordscores.py
PROJECT: Wordscores Scaling
===============================================================================
PURPOSE:
    This script performs the Wordscores stage of the pipeline: it calibrates
    word scores on reference documents with known positions and scales every
    document in the corpus on the same dimension.

DESCRIPTION OF STEPS:
    1. Load tokenized documents (one row per text segment)
    2. Aggregate segments into documents by doc_id
    3. Build a document-feature matrix over the whole corpus
    4. Fit word scores on the documents carrying a reference score
    5. Predict raw and rescaled scores for every document
    6. Sanity check: refit over a grid of smoothing values and correlate
       word scores and predictions with the unsmoothed fit
    7. Save predictions, sanity-check results and the fitted model

INPUT FILES:
    - data/03_tokens/tokenized_documents.csv
        columns: doc_id, tokens (space-joined), ref_score (empty for virgin
        documents)

OUTPUT FILES:
    - data/04_predictions/wordscores_predictions.csv
    - data/04_predictions/wordscores_smoothing_check.csv
    - models/wordscores_model.pkl

DEPENDENCIES:
    - numpy, pandas, tqdm
    - dfm.py, wordscores.py, helper_aggregate_by_document.py

USAGE:
    Run directly from the command line or import and call `main()`:
        $ python code/stage_03_wordscores.py
===============================================================================
"""
import sys
import time
import numpy as np
import pandas as pd
from tqdm import tqdm
from config import (TOKENIZED_DOCUMENTS, WORDSCORES_PREDICTIONS, SMOOTHING_CHECK_RESULTS,
                    WORDSCORES_MODEL, DOC_ID_COLUMN, TOKENS_COLUMN, REFERENCE_COLUMN,
                    WORDSCORES_SMOOTH, WORDSCORES_RESCALING, SMOOTHING_GRID,
                    MIN_SMOOTHING_CORRELATION, DFM_MIN_DF, DFM_NGRAM, save_pickle)
from dfm import build_dfm
from helper_aggregate_by_document import aggregate_by_document
import wordscores


def load_tokenized_documents(path=TOKENIZED_DOCUMENTS):
    """
    Load tokenized documents.

    Returns:
        pd.DataFrame: doc_id, tokens, ref_score

    Raises:
        FileNotFoundError: If the tokenized file doesn't exist
        ValueError: If required columns are missing
    """
    print("\n=== Loading Tokenized Documents ===")

    if not path.exists():
        raise FileNotFoundError(
            f"Tokenized documents not found at {path}\n"
            f"Expected columns: {DOC_ID_COLUMN}, {TOKENS_COLUMN}, {REFERENCE_COLUMN}"
        )

    df = pd.read_csv(path)

    missing = [c for c in (DOC_ID_COLUMN, TOKENS_COLUMN, REFERENCE_COLUMN) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    df[TOKENS_COLUMN] = df[TOKENS_COLUMN].fillna("")
    print(f"Loaded {len(df):,} tokenized segments")

    return df


def run_wordscores(df, smooth=WORDSCORES_SMOOTH, rescaling=WORDSCORES_RESCALING,
                   min_df=DFM_MIN_DF, ngram=DFM_NGRAM):
    """
    Fit Wordscores on the reference documents and score every document.

    Args:
        df (pd.DataFrame): doc_id, tokens, ref_score (NaN for virgin documents)
        smooth (float): Smoothing added to reference counts
        rescaling (str): "none", "lbg" or "mv"

    Returns:
        tuple: (results_df, model, dfm)
    """
    print("\n=== Running Wordscores ===")

    documents = aggregate_by_document(df)
    print(f"Aggregated into {len(documents):,} documents")

    dfm = build_dfm(documents[TOKENS_COLUMN], docnames=documents[DOC_ID_COLUMN],
                    min_df=min_df, ngram=ngram)
    print(f"Document-feature matrix: {dfm.shape[0]:,} documents × {dfm.shape[1]:,} features")

    scores = documents[REFERENCE_COLUMN].to_numpy(dtype=float)
    model = wordscores.fit(dfm, scores, smooth=smooth)
    print(f"Fitted {model!r}")

    results = documents[[DOC_ID_COLUMN, REFERENCE_COLUMN]].copy()
    results["is_reference"] = ~np.isnan(scores)
    results["raw_score"] = wordscores.predict(model, dfm, rescaling="none")
    results["rescaled_score"] = wordscores.predict(model, dfm, rescaling=rescaling)
    results["rescaling"] = rescaling

    n_undefined = int(results["raw_score"].isna().sum())
    if n_undefined > 0:
        print(f"  ⚠ {n_undefined:,} documents share no scored feature (score undefined)")

    return results, model, dfm


def _correlation(a, b):
    keep = ~(np.isnan(a) | np.isnan(b))
    if keep.sum() < 2 or np.std(a[keep]) == 0 or np.std(b[keep]) == 0:
        return np.nan
    return float(np.corrcoef(a[keep], b[keep])[0, 1])


def smoothing_sanity_check(dfm, scores, smooth_values=SMOOTHING_GRID):
    """
    Refit with several smoothing values and compare against smooth=0.

    Smoothing pulls word scores towards the reference mean but should not
    reorder them: word scores and raw predictions of every smoothed fit are
    correlated with the unsmoothed fit.

    Returns:
        pd.DataFrame: One row per smoothing value
    """
    print("\n=== Smoothing Sanity Check ===")

    baseline = wordscores.fit(dfm, scores, smooth=0)
    baseline_scores = baseline.word_scores
    baseline_predictions = wordscores.predict(baseline, dfm)

    results = []
    for smooth in tqdm(smooth_values, desc="Smoothing values", file=sys.stdout, leave=False):
        model = wordscores.fit(dfm, scores, smooth=smooth)
        word_scores = model.word_scores.reindex(baseline_scores.index)
        predictions = wordscores.predict(model, dfm)

        word_corr = _correlation(baseline_scores.to_numpy(), word_scores.to_numpy())
        prediction_corr = _correlation(baseline_predictions, predictions)

        results.append({
            "smooth": smooth,
            "n_scored": len(model.scored_features),
            "word_score_corr": word_corr,
            "prediction_corr": prediction_corr,
            "passed": bool(word_corr > MIN_SMOOTHING_CORRELATION),
        })

        marker = "✓" if results[-1]["passed"] else "✗"
        print(f"  {marker} smooth={smooth:<5}: word score r = {word_corr:.4f}, "
              f"prediction r = {prediction_corr:.4f}")

    return pd.DataFrame(results)


def print_summary(results_df, model, n_features=10):
    """Print reference fit, extreme words and document scores."""
    print(f"\n{'=' * 60}")
    print(f"{'WORDSCORES SUMMARY':^60}")
    print(f"{'=' * 60}")

    print(f"\nReference documents: {len(model.reference_docs)}")
    print(f"  Mean reference score: {model.reference_mean:.3f} (sd {model.reference_sd:.3f})")
    print(f"  Mean raw score:       {model.raw_mean:.3f} (sd {model.raw_sd:.3f})")
    print(f"  Scored features:      {len(model.scored_features):,}")

    lowest, highest = model.top_features(n_features)
    print(f"\nLowest word scores:")
    for word, score in lowest.items():
        print(f"  {word:20s} {score:8.3f}")
    print(f"\nHighest word scores:")
    for word, score in highest.items():
        print(f"  {word:20s} {score:8.3f}")

    print(f"\nDocument scores:")
    for _, row in results_df.iterrows():
        label = "ref" if row["is_reference"] else "   "
        print(f"  [{label}] {str(row[DOC_ID_COLUMN]):20s} raw = {row['raw_score']:8.3f}  "
              f"{row['rescaling']} = {row['rescaled_score']:8.3f}")


def main():
    """
    Main execution function for standalone runs.
    """
    print("\n" + "=" * 60)
    print("STAGE 3: WORDSCORES SCALING")
    print("=" * 60)

    start_time = time.time()

    df = load_tokenized_documents()
    results_df, model, dfm = run_wordscores(df)
    check_df = smoothing_sanity_check(dfm, results_df[REFERENCE_COLUMN].to_numpy(dtype=float))

    print_summary(results_df, model)

    WORDSCORES_PREDICTIONS.parent.mkdir(parents=True, exist_ok=True)
    results_df.to_csv(WORDSCORES_PREDICTIONS, index=False)
    print(f"\n✓ Saved predictions to {WORDSCORES_PREDICTIONS}")
    check_df.to_csv(SMOOTHING_CHECK_RESULTS, index=False)
    print(f"✓ Saved smoothing check to {SMOOTHING_CHECK_RESULTS}")
    save_pickle(model, WORDSCORES_MODEL)

    total_time = time.time() - start_time
    print(f"\n{'=' * 60}")
    print(f"{'STAGE COMPLETE':^60}")
    print(f"{'=' * 60}")
    print(f"\nTotal execution time: {total_time:.1f} seconds\n")


if __name__ == "__main__":
    main()

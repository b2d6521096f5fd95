"""
===============================================================================
FILE: wordscores.py
PROJECT: Wordscores Scaling
===============================================================================
PURPOSE:
    Wordscores estimator (Laver, Benoit & Garry 2003). Word scores are
    calibrated on reference documents with known positions and then used to
    place virgin documents on the same scale.

DESCRIPTION OF STEPS:
    Fitting (reference documents r, features w, reference scores A_r):
        1. Add `smooth` to every cell of the reference DFM
        2. F_rw = count_rw / sum_w count_rw       (relative word frequency)
        3. P_rw = F_rw / sum_r F_rw               (probability of reading r
                                                   given word w)
        4. S_w  = sum_r P_rw * A_r                (word score)
       Features that never occur in a reference document get no score.

    Prediction (document d):
        1. Keep the scored features only and renormalize: F_dw
        2. raw_d = sum_w F_dw * S_w
        3. Optionally rescale:
           - "lbg": stretch raw scores so that the raw scores of the
             reference documents take the mean and standard deviation of
             the reference scores
           - "mv":  Martin & Vanberg (2008), anchor the raw scores of the
             lowest and highest reference documents to their reference scores

    Documents without a single scored feature get NaN: an undefined score
    is a value, not an error, and NaN never enters rescaling statistics.

USAGE:
    >>> model = fit(dfm, [17.21, 5.35, 8.21, None, None, None])
    >>> predict(model, dfm.iloc[3:], rescaling="lbg")
===============================================================================
"""
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from config import INTERVAL_LEVEL, RESCALING_OPTIONS
from dfm import align_features, as_dfm, shared_features, to_csr


class WordscoresError(ValueError):
    """Base exception for Wordscores errors."""
    pass

class InvalidInput(WordscoresError):
    """Raised for inputs the estimator cannot be fit or applied on."""
    pass

class ModelMismatch(WordscoresError):
    """Raised when a DFM cannot be aligned to a fitted model's features."""
    pass


def _read_only(values):
    values = np.array(values, dtype=float)
    values.flags.writeable = False
    return values


@dataclass(frozen=True, eq=False)
class WordscoresModel:
    """Fitted Wordscores model. Immutable once fit."""
    scored_features: tuple
    scores: np.ndarray
    features: tuple
    smooth: float
    reference_docs: tuple
    reference_values: np.ndarray
    reference_raw: np.ndarray

    @property
    def word_scores(self) -> pd.Series:
        """Word score per scored feature."""
        return pd.Series(np.array(self.scores), index=list(self.scored_features),
                         name="word_score")

    @property
    def reference_scores(self) -> pd.Series:
        return pd.Series(np.array(self.reference_values), index=list(self.reference_docs),
                         name="ref_score")

    @property
    def reference_mean(self) -> float:
        return float(np.mean(self.reference_values))

    @property
    def reference_sd(self) -> float:
        return float(np.std(self.reference_values, ddof=1))

    @property
    def defined_reference_raw(self) -> np.ndarray:
        """Raw scores of the reference documents holding a scored feature."""
        raw = np.asarray(self.reference_raw)
        return raw[~np.isnan(raw)]

    @property
    def raw_mean(self) -> float:
        raw = self.defined_reference_raw
        return float(np.mean(raw)) if len(raw) else np.nan

    @property
    def raw_sd(self) -> float:
        raw = self.defined_reference_raw
        return float(np.std(raw, ddof=1)) if len(raw) > 1 else np.nan

    def top_features(self, n=10):
        """
        Most extreme word scores at each end of the scale.

        Returns:
            tuple: (lowest n word scores ascending, highest n descending)
        """
        scores = self.word_scores.sort_values()
        return scores.head(n), scores.iloc[::-1].head(n)

    def __repr__(self) -> str:
        return (f"WordscoresModel({len(self.scored_features)} scored features, "
                f"{len(self.reference_docs)} reference documents, smooth={self.smooth})")


# ============================================
# INPUT HANDLING
# ============================================

def _coerce_dfm(dfm, feature_names=None):
    try:
        return as_dfm(dfm, feature_names=feature_names)
    except ValueError as e:
        raise InvalidInput(str(e)) from e


def _check_cells(X):
    if X.nnz == 0:
        return
    if not np.all(np.isfinite(X.data)):
        raise InvalidInput("DFM cells must be finite")
    if X.data.min() < 0:
        raise InvalidInput("DFM cells must be non-negative")


def _check_rescaling(rescaling):
    if rescaling not in RESCALING_OPTIONS:
        raise InvalidInput(
            f"Invalid rescaling: '{rescaling}'. Valid options: {list(RESCALING_OPTIONS)}"
        )


def _reference_vector(scores, n_docs):
    try:
        ndim = np.ndim(scores)
    except ValueError as e:
        raise InvalidInput(f"Reference scores must be a 1-dimensional sequence: {e}") from e
    if ndim != 1:
        raise InvalidInput("Reference scores must be a 1-dimensional sequence")

    # None, NaN and pd.NA all mark a virgin document
    try:
        values = pd.to_numeric(pd.Series(list(scores), dtype=object), errors="raise")
        values = values.to_numpy(dtype=float, na_value=np.nan)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Reference scores must be numeric or missing: {e}") from e

    if len(values) != n_docs:
        raise InvalidInput(
            f"Got {len(values)} reference scores for {n_docs} documents"
        )
    if np.isinf(values).any():
        raise InvalidInput("Reference scores must be finite or missing")
    return values


# ============================================
# FITTING
# ============================================

def _raw_scores(X, word_scores):
    """Weighted mean word score per row of a DFM restricted to scored features."""
    totals = np.asarray(X.sum(axis=1)).ravel()
    weighted = X @ word_scores
    with np.errstate(divide="ignore", invalid="ignore"):
        raw = weighted / totals
    raw[totals == 0] = np.nan
    return raw, totals


def fit(dfm, scores, smooth=0, feature_names=None) -> WordscoresModel:
    """
    Fit word scores on the reference documents of a DFM.

    Args:
        dfm: Document-feature matrix (DataFrame, numpy array or scipy matrix)
        scores: One reference score per row; None, NaN or pd.NA marks a virgin document
        smooth (float): Added to every reference cell before normalization
        feature_names: Column names when `dfm` is not a DataFrame

    Returns:
        WordscoresModel: Fitted model

    Raises:
        InvalidInput: If smooth is negative, fewer than two documents carry a
            reference score, a reference document is empty while smooth is 0,
            or the DFM holds negative cells
    """
    if smooth is None or not np.isfinite(smooth) or smooth < 0:
        raise InvalidInput(f"smooth must be a non-negative number, got {smooth}")

    dfm = _coerce_dfm(dfm, feature_names)
    X = to_csr(dfm)
    _check_cells(X)

    values = _reference_vector(scores, X.shape[0])
    is_reference = ~np.isnan(values)
    n_reference = int(is_reference.sum())
    if n_reference < 2:
        raise InvalidInput(
            f"At least two reference documents are required, got {n_reference}"
        )

    X_ref = X[is_reference]
    reference_docs = dfm.index[is_reference]
    reference_values = values[is_reference]

    # Without smoothing an empty reference document has no word frequencies
    doc_totals = np.asarray(X_ref.sum(axis=1)).ravel()
    if smooth == 0 and (doc_totals <= 0).any():
        empty = list(reference_docs[doc_totals <= 0])
        raise InvalidInput(f"Reference documents without any features: {empty}")

    # Relative frequencies of the (smoothed) reference documents
    counts = X_ref.toarray() + smooth
    freqs = counts / counts.sum(axis=1, keepdims=True)

    # Words never seen in a reference document cannot be scored
    word_totals = freqs.sum(axis=0)
    scorable = word_totals > 0
    probs = freqs[:, scorable] / word_totals[scorable]
    word_scores = probs.T @ reference_values

    reference_raw, _ = _raw_scores(X_ref[:, np.flatnonzero(scorable)], word_scores)

    return WordscoresModel(
        scored_features=tuple(dfm.columns[scorable]),
        scores=_read_only(word_scores),
        features=tuple(dfm.columns),
        smooth=float(smooth),
        reference_docs=tuple(reference_docs),
        reference_values=_read_only(reference_values),
        reference_raw=_read_only(reference_raw),
    )


# ============================================
# PREDICTION
# ============================================

def _score_documents(model, dfm):
    """Align a DFM to the model and compute raw scores and recognized totals."""
    if not shared_features(dfm, model.features):
        raise ModelMismatch(
            f"DFM shares no features with the model ({len(model.features)} fitted features)"
        )

    X = to_csr(align_features(dfm, model.scored_features))
    _check_cells(X)
    raw, totals = _raw_scores(X, np.asarray(model.scores))
    return X, raw, totals


def _lbg_multiplier(model):
    reference_sd = model.reference_sd
    raw_sd = model.raw_sd
    if reference_sd == 0:
        return 0.0
    if not np.isfinite(raw_sd) or raw_sd == 0:
        warnings.warn(
            "Reference documents share a single raw score; LBG rescaling collapses "
            "every prediction onto the reference mean",
            RuntimeWarning,
            stacklevel=4,
        )
        return 0.0
    return reference_sd / raw_sd


def _mv_anchors(model):
    """(raw score at the low anchor, low reference score, multiplier)."""
    values = np.asarray(model.reference_values)
    raw = np.asarray(model.reference_raw)
    if len(values) > 2:
        warnings.warn(
            "More than two reference scores found with MV rescaling; "
            "using only min, max values",
            UserWarning,
            stacklevel=4,
        )
    # Anchors are taken among references with a defined raw score
    defined = np.flatnonzero(~np.isnan(raw))
    if len(defined) == 0:
        defined = np.arange(len(values))
    i_low = int(defined[np.argmin(values[defined])])
    i_high = int(defined[np.argmax(values[defined])])
    raw_range = raw[i_high] - raw[i_low]
    if not np.isfinite(raw_range) or raw_range == 0:
        warnings.warn(
            "Lowest and highest reference documents do not span a raw score range; MV rescaling "
            "collapses every prediction onto the lowest reference score",
            RuntimeWarning,
            stacklevel=4,
        )
        return 0.0, values[i_low], 0.0
    return raw[i_low], values[i_low], (values[i_high] - values[i_low]) / raw_range


def _rescaler(model, rescaling):
    """
    Linear map (raw - raw_anchor) * multiplier + score_anchor for a rescaling.

    Returns:
        tuple: (raw_anchor, score_anchor, multiplier)
    """
    if rescaling == "none":
        return 0.0, 0.0, 1.0
    if rescaling == "lbg":
        multiplier = _lbg_multiplier(model)
        raw_anchor = model.raw_mean if multiplier else 0.0
        return raw_anchor, model.reference_mean, multiplier
    return _mv_anchors(model)


def predict(model: WordscoresModel, dfm, rescaling="none", feature_names=None) -> np.ndarray:
    """
    Score documents with a fitted model.

    Args:
        model: Fitted WordscoresModel
        dfm: Documents to score, over any feature set overlapping the model's
        rescaling (str): "none", "lbg" or "mv"
        feature_names: Column names when `dfm` is not a DataFrame

    Returns:
        np.ndarray: One score per document in DFM order; NaN where a document
            holds no scored feature

    Raises:
        InvalidInput: Unknown rescaling option or malformed DFM
        ModelMismatch: DFM shares no feature with the model
    """
    _check_rescaling(rescaling)
    dfm = _coerce_dfm(dfm, feature_names)
    _, raw, _ = _score_documents(model, dfm)
    raw_anchor, score_anchor, multiplier = _rescaler(model, rescaling)
    return (raw - raw_anchor) * multiplier + score_anchor


def predict_interval(model: WordscoresModel, dfm, rescaling="none", level=INTERVAL_LEVEL,
                     feature_names=None) -> pd.DataFrame:
    """
    Score documents with standard errors and confidence bounds.

    The standard error of a raw score is the frequency-weighted spread of the
    document's word scores around its raw score divided by the square root
    of its number of scored tokens.

    Returns:
        pd.DataFrame: Columns fit, se, lwr, upr indexed like the DFM
    """
    _check_rescaling(rescaling)
    if level is None or not 0 < level < 1:
        raise InvalidInput(f"level must lie strictly between 0 and 1, got {level}")

    dfm = _coerce_dfm(dfm, feature_names)
    X, raw, totals = _score_documents(model, dfm)

    word_scores = np.asarray(model.scores)
    with np.errstate(divide="ignore", invalid="ignore"):
        mean_square = (X @ word_scores ** 2) / totals
        variance = np.clip(mean_square - raw ** 2, 0, None)
        raw_se = np.sqrt(variance / totals)
    raw_se[totals == 0] = np.nan

    z = stats.norm.ppf((1 + level) / 2)
    raw_anchor, score_anchor, multiplier = _rescaler(model, rescaling)
    fitted = (raw - raw_anchor) * multiplier + score_anchor
    se = raw_se * abs(multiplier)
    lwr, upr = fitted - z * se, fitted + z * se

    return pd.DataFrame(
        {"fit": fitted, "se": se, "lwr": lwr, "upr": upr},
        index=dfm.index,
    )

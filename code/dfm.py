"""
===============================================================================
FILE: dfm.py
PROJECT: Wordscores Scaling
===============================================================================
PURPOSE:
    Build and align document-feature matrices (DFMs).

    A DFM is a pandas DataFrame with one row per document (index = document
    names) and one column per vocabulary term (columns = feature names).
    Cells hold non-negative counts. Matrices are kept sparse-backed so that
    large vocabularies stay cheap in memory.

DESCRIPTION:
    - build_dfm: count pre-tokenized documents with CountVectorizer
    - as_dfm: coerce DataFrames, numpy arrays and scipy matrices into a DFM
    - to_csr: get the float CSR matrix behind a DFM
    - align_features: reorder a DFM onto a fixed feature set
    - check_unique_features: reject DFMs whose feature names repeat

DEPENDENCIES:
    - scikit-learn (CountVectorizer)
    - numpy, pandas, scipy
===============================================================================
"""
import numpy as np
import pandas as pd
import scipy.sparse as sp
from sklearn.feature_extraction.text import CountVectorizer

from config import DFM_MIN_DF, DFM_NGRAM, create_sparse_dataframe


def identity(x):
    return x


def split_tokens(tokens):
    """Accept a list of tokens or a space-joined token string."""
    if isinstance(tokens, str):
        return tokens.split()
    return list(tokens)


def create_count_vectorizer(min_df=DFM_MIN_DF, ngram=DFM_NGRAM, vocabulary=None):
    """
    Create a CountVectorizer for already-tokenized documents.

    Args:
        min_df (int): Minimum document frequency (ignore rarer terms)
        ngram (int): Largest n-gram length
        vocabulary (iterable, optional): Fixed feature set. When given,
            min_df is ignored and every document is counted against
            exactly these features.

    Returns:
        CountVectorizer: Configured vectorizer instance
    """
    return CountVectorizer(
        ngram_range=(1, ngram),
        preprocessor=identity,  # already cleaned
        tokenizer=identity,  # already tokenized
        token_pattern=None,
        lowercase=False,
        min_df=min_df,
        vocabulary=vocabulary
    )


def build_dfm(token_lists, docnames=None, min_df=DFM_MIN_DF, ngram=DFM_NGRAM,
              vocabulary=None):
    """
    Count tokens into a sparse document-feature matrix.

    Example:
        [["tax", "cut", "tax"], ["nhs", "tax"]]
        ->        cut  nhs  tax
           0        1    0    2
           1        0    1    1

    Args:
        token_lists: Sequence of token lists (or space-joined token strings)
        docnames: Row labels; defaults to 0..n-1
        min_df (int): Minimum document frequency
        ngram (int): Largest n-gram length
        vocabulary: Fixed feature set (e.g. the reference vocabulary)

    Returns:
        pd.DataFrame: Sparse-backed DFM
    """
    documents = [split_tokens(tokens) for tokens in token_lists]
    if docnames is None:
        docnames = pd.RangeIndex(len(documents))
    elif len(docnames) != len(documents):
        raise ValueError(
            f"Got {len(docnames)} document names for {len(documents)} documents"
        )

    vectorizer = create_count_vectorizer(min_df, ngram, vocabulary)
    X = vectorizer.fit_transform(documents)
    feature_names = vectorizer.get_feature_names_out()

    return create_sparse_dataframe(X, pd.Index(docnames), list(feature_names))


def check_unique_features(feature_names):
    """Raise ValueError if a feature name labels more than one column."""
    names = pd.Index(list(feature_names))
    if names.has_duplicates:
        duplicated = list(dict.fromkeys(names[names.duplicated()]))
        raise ValueError(f"Duplicate feature names in DFM: {duplicated}")


def as_dfm(x, feature_names=None, docnames=None) -> pd.DataFrame:
    """
    Coerce a matrix-like object into a DFM.

    Unnamed features are named by column position, so two unnamed matrices
    of the same width line up column by column.
    """
    if isinstance(x, pd.DataFrame):
        dfm = x
        if feature_names is not None:
            dfm = dfm.set_axis(list(feature_names), axis=1)
        if docnames is not None:
            dfm = dfm.set_axis(list(docnames), axis=0)
        check_unique_features(dfm.columns)
        return dfm

    if sp.issparse(x):
        X = sp.csr_matrix(x, dtype=float)
    else:
        X = np.asarray(x, dtype=float)
        if X.ndim != 2:
            raise ValueError(f"DFM must be 2-dimensional, got {X.ndim} dimension(s)")
        X = sp.csr_matrix(X)

    n_docs, n_features = X.shape
    if feature_names is None:
        feature_names = list(range(n_features))
    if docnames is None:
        docnames = pd.RangeIndex(n_docs)
    if len(feature_names) != n_features:
        raise ValueError(
            f"Got {len(feature_names)} feature names for {n_features} columns"
        )
    check_unique_features(feature_names)

    return create_sparse_dataframe(X, pd.Index(docnames), list(feature_names))


def to_csr(dfm: pd.DataFrame) -> sp.csr_matrix:
    """Float CSR matrix holding the cells of a DFM."""
    if len(dfm.columns) and all(isinstance(dtype, pd.SparseDtype) for dtype in dfm.dtypes):
        return dfm.sparse.to_coo().tocsr().astype(float)
    return sp.csr_matrix(dfm.to_numpy(dtype=float))


def align_features(dfm: pd.DataFrame, features) -> pd.DataFrame:
    """
    Reorder the columns of a DFM onto `features`.

    Columns not in `features` are dropped; features missing from the DFM
    become all-zero columns. Raises ValueError if a column label repeats.
    """
    features = list(features)
    check_unique_features(dfm.columns)
    X = to_csr(dfm)
    position = {feature: i for i, feature in enumerate(dfm.columns)}
    pairs = [(position[f], j) for j, f in enumerate(features) if f in position]

    if pairs:
        source, target = zip(*pairs)
        selector = sp.csr_matrix(
            (np.ones(len(pairs)), (source, target)),
            shape=(X.shape[1], len(features))
        )
        aligned = (X @ selector).tocsr()
    else:
        aligned = sp.csr_matrix((X.shape[0], len(features)))

    return create_sparse_dataframe(aligned, dfm.index, features)


def shared_features(dfm: pd.DataFrame, features):
    """Features of `features` that also label a column of the DFM."""
    columns = set(dfm.columns)
    return [f for f in features if f in columns]

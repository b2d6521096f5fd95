"""
===============================================================================
FILE: classifiers.py
PROJECT: Wordscores Scaling
===============================================================================
PURPOSE:
    Classify social-media posts as approve / disapprove / neutral from
    term-frequency features.

    The set of classifier kinds is closed: a LASSO (L1-penalised logistic
    regression) and a random forest. Each PostClassifier carries its kind
    explicitly and prediction branches on that kind, so callers never have
    to inspect the class of the fitted estimator.

DEPENDENCIES:
    - scikit-learn (LogisticRegression, RandomForestClassifier)
    - numpy, pandas
===============================================================================
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression

from config import CLASSIFIER_PARAMS, POST_LABELS, RANDOM_STATE


class ClassifierKind(str, Enum):
    LASSO = "lasso"
    RANDOM_FOREST = "random_forest"


def check_labels(labels):
    """Raise ValueError for labels outside POST_LABELS."""
    unknown = sorted({str(label) for label in labels} - set(POST_LABELS))
    if unknown:
        raise ValueError(f"Unknown post labels {unknown}. Valid labels: {list(POST_LABELS)}")


@dataclass
class PostClassifier:
    kind: ClassifierKind
    estimator: Any

    def fit(self, X, labels):
        """Fit the underlying estimator on a DFM (or matrix) and its labels."""
        labels = np.asarray(labels)
        check_labels(labels)
        self.estimator.fit(X, labels)
        return self

    def predict(self, X) -> np.ndarray:
        """One label per row of X."""
        classes = self.estimator.classes_
        if self.kind is ClassifierKind.LASSO:
            decision = self.estimator.decision_function(X)
            if decision.ndim == 1:
                return classes[(decision > 0).astype(int)]
            return classes[decision.argmax(axis=1)]
        elif self.kind is ClassifierKind.RANDOM_FOREST:
            # Soft vote: class probabilities averaged over the trees
            return classes[self.estimator.predict_proba(X).argmax(axis=1)]
        raise ValueError(f"Unsupported classifier kind: {self.kind}")

    def top_features(self, feature_names, n=10) -> pd.Series:
        """
        Most influential features.

        LASSO: largest absolute coefficient across classes (zeroed features
        are dropped). Random forest: impurity-based importances.
        """
        if self.kind is ClassifierKind.LASSO:
            weights = np.abs(np.atleast_2d(self.estimator.coef_)).max(axis=0)
        elif self.kind is ClassifierKind.RANDOM_FOREST:
            weights = self.estimator.feature_importances_
        else:
            raise ValueError(f"Unsupported classifier kind: {self.kind}")

        importance = pd.Series(weights, index=list(feature_names), name=self.kind.value)
        importance = importance[importance > 0]
        return importance.sort_values(ascending=False).head(n)


def build_classifier(kind, **params) -> PostClassifier:
    """
    Create an unfitted PostClassifier.

    Args:
        kind: ClassifierKind or its string value ("lasso", "random_forest")
        **params: Overrides of the defaults in config.CLASSIFIER_PARAMS

    Returns:
        PostClassifier
    """
    try:
        kind = ClassifierKind(kind)
    except ValueError:
        raise ValueError(
            f"Invalid classifier kind: '{kind}'. "
            f"Valid kinds: {[k.value for k in ClassifierKind]}"
        ) from None

    settings = {**CLASSIFIER_PARAMS[kind.value], 'random_state': RANDOM_STATE, **params}

    if kind is ClassifierKind.LASSO:
        estimator = LogisticRegression(**settings)
    else:
        estimator = RandomForestClassifier(**settings)

    return PostClassifier(kind=kind, estimator=estimator)

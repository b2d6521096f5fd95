# config.py
import pandas as pd
from pathlib import Path
import pickle


# ============================================
# BASE PATHS
# ============================================
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
MODELS_DIR = PROJECT_ROOT / "models"

# ============================================
# DATA PATHS
# ============================================
TOKENS_DIR = DATA_DIR / "03_tokens"
PREDICTIONS_DIR = DATA_DIR / "04_predictions"

# Tokenized documents: one row per text segment, tokens joined by spaces
TOKENIZED_DOCUMENTS = TOKENS_DIR / "tokenized_documents.csv"

# Predictions
WORDSCORES_PREDICTIONS = PREDICTIONS_DIR / "wordscores_predictions.csv"
SMOOTHING_CHECK_RESULTS = PREDICTIONS_DIR / "wordscores_smoothing_check.csv"

# ============================================
# MODEL PATHS
# ============================================
WORDSCORES_MODEL = MODELS_DIR / "wordscores_model.pkl"

# ============================================
# DATA COLUMN NAMES
# ============================================
DOC_ID_COLUMN = "doc_id"
TOKENS_COLUMN = "tokens"
REFERENCE_COLUMN = "ref_score"

# ============================================
# HYPERPARAMETERS
# ============================================

# Wordscores - smoothing added to every cell before normalization
WORDSCORES_SMOOTH = 0.0

# Rescaling of raw predictions: "none", "lbg" or "mv"
WORDSCORES_RESCALING = "lbg"
RESCALING_OPTIONS = ("none", "lbg", "mv")

# Confidence level for prediction intervals
INTERVAL_LEVEL = 0.95

# Grid used to check that smoothing does not reorder word scores
SMOOTHING_GRID = [0.0, 0.5, 1.0]
MIN_SMOOTHING_CORRELATION = 0.9

# Document-feature matrix
DFM_MIN_DF = 1
DFM_NGRAM = 1

# Expert reference scores (1992 UK manifestos, economic left-right)
UK_MANIFESTO_REFERENCE_SCORES = {
    "Con1992": 17.21,
    "Lab1992": 5.35,
    "LD1992": 8.21,
}

# ============================================
# POST CLASSIFIERS
# ============================================
POST_LABELS = ("approve", "disapprove", "neutral")

CLASSIFIER_PARAMS = {
    'lasso': {
        'l1_ratio': 1.0,  # pure L1 penalty
        'solver': 'saga',
        'C': 1.0,
        'max_iter': 5000,
    },
    'random_forest': {
        'n_estimators': 200,
        'max_features': 'sqrt',
        'min_samples_leaf': 1,
    },
}

RANDOM_STATE = 42


def save_pickle(obj, filepath):
    """Save object to pickle file"""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, 'wb') as f:
        pickle.dump(obj, f)
    print(f"Saved to {filepath}")


def load_pickle(filepath):
    """Load object from pickle file"""
    with open(filepath, 'rb') as f:
        return pickle.load(f)

def create_sparse_dataframe(X, index, feature_names):
    """Create sparse DataFrame from scipy sparse matrix"""
    return pd.DataFrame.sparse.from_spmatrix(
        X,
        index=index,
        columns=feature_names
    )

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import make_classification

FAST_MODEL_CONFIG = {
    'cv_folds': 3,
    'cv_repeats': 2,
    'n_jobs': 1,
    'progress_bar': False,
    'optuna_n_trials': 2,
    'optuna_timeout': 60
}

SMALL_GRIDS = {
    'random_forest': {'max_features': ['sqrt'], 'n_estimators': [50]},
    'logistic': {'C': [0.1, 1.0]},
    'svm': {'C': [1.0]},
    'naive_bayes': {},
    'knn': {'n_neighbors': [5]},
    'neural_net': {'hidden_layer_sizes': [(3,)]},
    'lda': {}
}


def make_transactions(n_samples=400, random_state=0, with_label=True):
    """Synthetic transactions: six informative-ish numeric columns, one categorical,
    one constant column and one almost-constant flag"""
    rng = np.random.RandomState(random_state)
    X, y = make_classification(
        n_samples=n_samples,
        n_features=6,
        n_informative=4,
        n_redundant=0,
        weights=[0.75],
        flip_y=0.01,
        random_state=random_state
    )
    df = pd.DataFrame(X, columns=[f"v{i}" for i in range(1, 7)])
    df.insert(0, "transaction_id", [f"T{random_state}-{i:05d}" for i in range(n_samples)])
    df["merchant_category"] = rng.choice(["grocery", "travel", "online"], size=n_samples)
    df["constant"] = 1.0
    df["rare_flag"] = 0
    df.loc[:1, "rare_flag"] = 1
    if with_label:
        df["is_fraud"] = y
    return df


@pytest.fixture
def transactions():
    return make_transactions()


@pytest.fixture
def scoring_transactions():
    return make_transactions(n_samples=120, random_state=1, with_label=False)


@pytest.fixture
def numeric_data():
    X, y = make_classification(n_samples=150, n_features=5, n_informative=3,
                               n_redundant=0, random_state=0)
    return pd.DataFrame(X, columns=[f"f{i}" for i in range(5)]), pd.Series(y, name="is_fraud")

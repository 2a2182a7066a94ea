import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import make_classification

from fraud_compare.models import feature_selection
from fraud_compare.models.feature_selection import RecursiveFeatureSelector

FAST_SELECTION = {
    'cv_folds': 3,
    'cv_repeats': 1,
    'n_estimators': 30,
    'n_jobs': 1,
    'progress_bar': False
}


@pytest.fixture
def selection_data():
    X, y = make_classification(n_samples=120, n_features=8, n_informative=3, n_redundant=0,
                               shuffle=False, random_state=0)
    return pd.DataFrame(X, columns=[f"x{i}" for i in range(8)]), pd.Series(y)


def test_selector_scores_every_candidate_size(selection_data):
    X, y = selection_data
    selector = RecursiveFeatureSelector({**FAST_SELECTION, 'sizes': [2, 3, 5]}).fit(X, y)

    assert selector.results_['n_features'].tolist() == [2, 3, 5, 8]
    assert selector.best_size_ in (2, 3, 5, 8)
    assert len(selector.selected_features_) == selector.best_size_
    assert set(selector.ranking_.index) == set(X.columns)
    assert (selector.ranking_[selector.selected_features_] == 1).all()


def test_selector_transform_keeps_selected_columns(selection_data):
    X, y = selection_data
    selector = RecursiveFeatureSelector({**FAST_SELECTION, 'sizes': [3]})

    X_sel = selector.fit_transform(X, y)

    assert list(X_sel.columns) == selector.selected_features_
    assert list(selector.transform(X.head(5)).columns) == selector.selected_features_


def test_candidate_sizes_are_clipped_to_available_columns():
    selector = RecursiveFeatureSelector({'sizes': [0, 1, 4, 50]})
    assert selector._candidate_sizes(4) == [1, 4]


def test_ties_resolve_to_smallest_subset(selection_data, monkeypatch):
    X, y = selection_data
    monkeypatch.setattr(feature_selection, 'cross_val_score',
                        lambda *args, **kwargs: np.array([0.8, 0.8, 0.8]))

    selector = RecursiveFeatureSelector({**FAST_SELECTION, 'sizes': [2, 4, 6]}).fit(X, y)

    assert selector.best_size_ == 2
    assert len(selector.selected_features_) == 2


def test_transform_before_fit_raises(selection_data):
    X, _ = selection_data
    with pytest.raises(ValueError, match="not fitted"):
        RecursiveFeatureSelector().transform(X)

import matplotlib.pyplot as plt
import pandas as pd
import pytest
from matplotlib.figure import Figure
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier

from fraud_compare import visualization
from fraud_compare.models.explainability import ModelExplainer


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


def test_native_importance_for_tree_and_linear_models(numeric_data):
    X, y = numeric_data
    forest = RandomForestClassifier(n_estimators=20, random_state=0).fit(X, y)
    logistic = LogisticRegression().fit(X, y)

    forest_importance = ModelExplainer(forest, X.columns).feature_importance()
    logistic_importance = ModelExplainer(logistic, X.columns).feature_importance()

    assert set(forest_importance.index) == set(X.columns)
    assert forest_importance.is_monotonic_decreasing
    assert (logistic_importance >= 0).all()


def test_native_importance_missing_for_knn(numeric_data):
    X, y = numeric_data
    knn = KNeighborsClassifier().fit(X, y)
    assert ModelExplainer(knn, X.columns).feature_importance() is None


def test_permutation_importance_is_sorted(numeric_data):
    X, y = numeric_data
    knn = KNeighborsClassifier().fit(X, y)

    importance = ModelExplainer(knn, X.columns).permutation_importance(X, y, n_repeats=3, random_state=0)

    assert list(importance.columns) == ['feature', 'importance_mean', 'importance_std']
    assert set(importance['feature']) == set(X.columns)
    assert importance['importance_mean'].is_monotonic_decreasing


def test_plot_feature_importance(numeric_data):
    X, y = numeric_data
    explainer = ModelExplainer(LogisticRegression().fit(X, y), X.columns)

    assert isinstance(explainer.plot_feature_importance([0.1, 0.5, 0.2, 0.0, 0.3]), Figure)
    assert explainer.plot_feature_importance([0.1, 0.2]) is None


def test_comparison_plots_render_and_save(tmp_path):
    resamples = {
        'logistic': pd.DataFrame({'accuracy': [0.8, 0.82, 0.79], 'kappa': [0.6, 0.64, 0.58]}),
        'knn': pd.DataFrame({'accuracy': [0.75, 0.77, 0.74], 'kappa': [0.5, 0.54, 0.48]})
    }
    results = pd.DataFrame({'n_features': [2, 4, 6], 'mean_score': [0.7, 0.8, 0.78],
                            'std_score': [0.02, 0.01, 0.02]})

    figures = [
        visualization.plot_model_comparison(resamples, 'kappa'),
        visualization.plot_feature_selection(results),
        visualization.plot_class_distribution(pd.Series([0, 1, 1, 0, 1])),
        visualization.plot_confusion_matrix([0, 1, 1, 0], [0, 1, 0, 0])
    ]
    assert all(isinstance(fig, Figure) for fig in figures)

    target = tmp_path / 'figures' / 'comparison.png'
    visualization.save_figure(figures[0], target)
    assert target.exists()

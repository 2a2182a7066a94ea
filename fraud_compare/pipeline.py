import logging
import os
import time

from fraud_compare.app.predict import FraudScorer
from fraud_compare.config import (DATA_PATHS, FEATURES, FEATURE_SELECTION_CONFIG,
                                  MODEL_CONFIG, MODEL_GRIDS, PREPROCESSING_CONFIG)
from fraud_compare.data.preprocessing import DataPreprocessor
from fraud_compare.models.explainability import ModelExplainer
from fraud_compare.models.feature_selection import RecursiveFeatureSelector
from fraud_compare.models.train import FraudModelTrainer
from fraud_compare.utils import load_data, save_data
from fraud_compare import visualization

logger = logging.getLogger(__name__)


def select_features(X_train, X_test, y_train, selection_config):
    """Run RFE when it is enabled; otherwise pass both sets through with no selector"""
    if not selection_config.get('enabled', True):
        logger.info("Feature selection disabled, keeping all preprocessed features")
        return X_train, X_test, None
    selector = RecursiveFeatureSelector(selection_config)
    X_train = selector.fit_transform(X_train, y_train)
    return X_train, selector.transform(X_test), selector


def _save_figures(figures_dir, y, selector, trainer, X_test, y_test):
    visualization.save_figure(
        visualization.plot_class_distribution(y, title="Class distribution after balancing"),
        os.path.join(figures_dir, "class_distribution.png"))
    if selector is not None:
        visualization.save_figure(
            visualization.plot_feature_selection(selector.results_),
            os.path.join(figures_dir, "feature_selection.png"))
    for metric in ('accuracy', 'kappa'):
        visualization.save_figure(
            visualization.plot_model_comparison(trainer.resamples, metric),
            os.path.join(figures_dir, f"model_comparison_{metric}.png"))

    y_pred = trainer.best_model.predict(X_test)
    visualization.save_figure(
        visualization.plot_confusion_matrix(y_test, y_pred, title=f"Confusion matrix: {trainer.best_model_name}"),
        os.path.join(figures_dir, "confusion_matrix.png"))

    explainer = ModelExplainer(trainer.best_model, X_test.columns)
    importance = explainer.permutation_importance(X_test, y_test, random_state=trainer.config['random_state'])
    fig = explainer.plot_feature_importance(importance['importance_mean'], importance['feature'])
    if fig is not None:
        visualization.save_figure(fig, os.path.join(figures_dir, "feature_importance.png"))


def run_pipeline(model_config=None, data_paths=None, features=None,
                 preprocessing_config=None, selection_config=None, param_grids=None):
    """
    Load -> clean/balance -> split -> preprocess -> select features -> train ->
    compare -> persist winner -> score the unlabelled file.

    Every argument is merged over the matching dictionary in
    ``fraud_compare.config``.
    """
    start_time = time.time()
    model_config = {**MODEL_CONFIG, **(model_config or {})}
    data_paths = {**DATA_PATHS, **(data_paths or {})}
    features = {**FEATURES, **(features or {})}
    preprocessing_config = {**PREPROCESSING_CONFIG, **(preprocessing_config or {})}
    selection_config = {**FEATURE_SELECTION_CONFIG, **(selection_config or {})}
    param_grids = MODEL_GRIDS if param_grids is None else param_grids
    target, id_col = features['target'], features['id_column']

    # 1. Load data
    logger.info("Loading data...")
    train_df = load_data(data_paths['train_data'], sep=features['sep'])
    score_df = load_data(data_paths['score_data'], sep=features['sep'])
    DataPreprocessor.validate_scoring_data(score_df, target, id_col)
    logger.info(f"Training data: {train_df.shape}, scoring data: {score_df.shape}")

    # 2. Clean and balance
    preprocessor = DataPreprocessor(preprocessing_config)
    X, y = preprocessor.clean(train_df, target, id_col)
    X, y = preprocessor.balance_classes(X, y)

    # 3. Split
    X_train, X_test, y_train, y_test = preprocessor.split(X, y)

    # 4. Preprocess
    X_train = preprocessor.fit_recipe(X_train)
    X_test = preprocessor.apply_recipe(X_test)

    # 5. Feature selection
    X_train, X_test, selector = select_features(X_train, X_test, y_train, selection_config)
    selected_features = X_train.columns.tolist()

    # 6. Train and compare
    trainer = FraudModelTrainer({**model_config, 'positive_class': features['positive_class']}, param_grids)
    trainer.train_all(X_train, y_train, model_names=model_config.get('models'))
    comparison = trainer.compare()
    pairwise = None
    if len(trainer.resamples) > 1:
        pairwise = trainer.compare_pairwise(model_config['selection_metric'])
    test_results = trainer.evaluate_all(X_test, y_test)
    winner_name, winner = trainer.select_winner()
    native_importance = ModelExplainer(winner, selected_features).feature_importance()

    if model_config['save_figures']:
        _save_figures(data_paths['figures'], y, selector, trainer, X_test, y_test)

    # 7. Persist the winner
    trainer.save_model(
        data_paths['model'],
        preprocessor=preprocessor,
        features=selected_features,
        extra_metadata={
            'target': target,
            'id_column': id_col,
            'positive_class': features['positive_class'],
            'dropped_features': preprocessor.dropped_features
        }
    )

    # 8. Score the unlabelled set with the persisted artifact
    scorer = FraudScorer(data_paths['model'])
    predictions = scorer.predict(score_df)
    save_data(predictions, data_paths['predictions'])

    logger.info(f"\n{'='*50}\nPipeline complete: winner {winner_name}\n{'='*50}")
    logger.info(f"Total pipeline time: {time.time() - start_time:.2f}s")

    return {
        'comparison': comparison,
        'pairwise': pairwise,
        'test_results': test_results,
        'winner': winner_name,
        'selected_features': selected_features,
        'dropped_features': preprocessor.dropped_features,
        'feature_selection': selector.results_ if selector is not None else None,
        'feature_importance': native_importance,
        'predictions': predictions,
        'model_path': data_paths['model'],
        'predictions_path': data_paths['predictions']
    }

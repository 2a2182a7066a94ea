# Import required libraries
import pandas as pd
import matplotlib.pyplot as plt
import logging
from fraud_compare.data.preprocessing import DataPreprocessor
from fraud_compare.models.train import FraudModelTrainer
from fraud_compare.models.explainability import ModelExplainer
from fraud_compare.app.predict import FraudScorer
from fraud_compare.pipeline import select_features
from fraud_compare.config import (MODEL_CONFIG, DATA_PATHS, FEATURES, PREPROCESSING_CONFIG,
                                  FEATURE_SELECTION_CONFIG, MODEL_GRIDS)
from fraud_compare.utils import load_data, save_data, configure_logging
from fraud_compare import visualization

# Configure logging
configure_logging(DATA_PATHS['log_file'])
logger = logging.getLogger(__name__)
pd.set_option('display.max_columns', 50)

TARGET = FEATURES['target']
SHOW_PLOTS = MODEL_CONFIG['save_figures']
ID_COL = FEATURES['id_column']

# 1. Load and Explore Data
logger.info("Loading data...")
df = load_data(DATA_PATHS['train_data'], sep=FEATURES['sep'])
score_df = load_data(DATA_PATHS['score_data'], sep=FEATURES['sep'])

print(f"Data shape: {df.shape}")
print("\nData types:")
print(df.dtypes)
print("\nMissing values:")
print(df.isnull().sum())
print("\nClass distribution:")
print(df[TARGET].value_counts(normalize=True))

# 2. Clean and Balance
logger.info("Cleaning and balancing...")
preprocessor = DataPreprocessor(PREPROCESSING_CONFIG)
X, y = preprocessor.clean(df, TARGET, ID_COL)
X, y = preprocessor.balance_classes(X, y)
if SHOW_PLOTS:
    visualization.plot_class_distribution(y, title="Class distribution after balancing")
    plt.show()

# 3. Train/Test Split
X_train, X_test, y_train, y_test = preprocessor.split(X, y)

# 4. Preprocessing recipe (fit on training rows only)
X_train = preprocessor.fit_recipe(X_train)
X_test = preprocessor.apply_recipe(X_test)
print(f"\nRemoved near-zero-variance columns: {preprocessor.dropped_features}")

# 5. Recursive Feature Elimination (skipped when disabled in the config)
X_train, X_test, selector = select_features(X_train, X_test, y_train, FEATURE_SELECTION_CONFIG)
selected_features = X_train.columns.tolist()
if selector is not None:
    print(selector.results_)
    if SHOW_PLOTS:
        visualization.plot_feature_selection(selector.results_)
        plt.show()
print(f"\nSelected features: {selected_features}")

# 6. Model Training
logger.info("Training models...")
trainer = FraudModelTrainer({**MODEL_CONFIG, 'positive_class': FEATURES['positive_class']}, MODEL_GRIDS)
trainer.train_all(X_train, y_train, model_names=MODEL_CONFIG['models'])

# 7. Compare Models
comparison = trainer.compare()
print(comparison)
print(trainer.compare_pairwise('accuracy'))
if SHOW_PLOTS:
    visualization.plot_model_comparison(trainer.resamples, 'accuracy')
    plt.show()

test_results = trainer.evaluate_all(X_test, y_test)
print(test_results)

winner_name, winner = trainer.select_winner()
if SHOW_PLOTS:
    visualization.plot_confusion_matrix(y_test, winner.predict(X_test), title=f"Confusion matrix: {winner_name}")
    plt.show()

# 8. Variable importance of the winner
explainer = ModelExplainer(winner, selected_features)
print(explainer.feature_importance())
perm_importance = explainer.permutation_importance(X_test, y_test, random_state=MODEL_CONFIG['random_state'])
print(perm_importance)
if SHOW_PLOTS:
    explainer.plot_feature_importance(perm_importance['importance_mean'], perm_importance['feature'])
    plt.show()

# 9. Save Model
logger.info("Saving model...")
trainer.save_model(
    DATA_PATHS['model'],
    preprocessor=preprocessor,
    features=selected_features,
    extra_metadata={
        'target': TARGET,
        'id_column': ID_COL,
        'positive_class': FEATURES['positive_class'],
        'dropped_features': preprocessor.dropped_features
    }
)

# 10. Predict on the scoring set
scorer = FraudScorer(DATA_PATHS['model'])
predictions = scorer.predict(score_df)
save_data(predictions, DATA_PATHS['predictions'])
print(predictions.head())

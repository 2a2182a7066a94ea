import numpy as np
import pandas as pd
import pytest

from fraud_compare.app.predict import FraudScorer
from fraud_compare.data.preprocessing import DataPreprocessor
from fraud_compare.models.train import FraudModelTrainer
from conftest import FAST_MODEL_CONFIG, SMALL_GRIDS


@pytest.fixture
def saved_model(transactions, tmp_path):
    preprocessor = DataPreprocessor({})
    X, y = preprocessor.clean(transactions, 'is_fraud', 'transaction_id')
    X, y = preprocessor.balance_classes(X, y)
    X_train = preprocessor.fit_recipe(X)
    features = preprocessor.feature_names[:4]

    trainer = FraudModelTrainer(FAST_MODEL_CONFIG, SMALL_GRIDS)
    trainer.train_all(X_train[features], y, model_names=['logistic', 'lda'])
    trainer.select_winner()

    path = tmp_path / 'winner.pkl'
    trainer.save_model(path, preprocessor=preprocessor, features=features, extra_metadata={
        'target': 'is_fraud',
        'id_column': 'transaction_id',
        'positive_class': 1
    })
    return path, trainer, preprocessor, features


def test_predictions_keep_identifiers_in_input_order(saved_model, scoring_transactions):
    path, _, _, _ = saved_model
    predictions = FraudScorer(path).predict(scoring_transactions)

    assert list(predictions.columns) == ['transaction_id', 'predicted_label', 'fraud_probability']
    assert predictions['transaction_id'].tolist() == scoring_transactions['transaction_id'].tolist()
    assert set(predictions['predicted_label'].unique()) <= {0, 1}
    assert predictions['fraud_probability'].between(0, 1).all()


def test_scorer_matches_in_memory_winner(saved_model, scoring_transactions):
    path, trainer, preprocessor, features = saved_model
    expected = trainer.best_model.predict(
        preprocessor.apply_recipe(scoring_transactions.drop(columns=['transaction_id']))[features])

    predictions = FraudScorer(path).predict(scoring_transactions)

    np.testing.assert_array_equal(predictions['predicted_label'].to_numpy(), expected)


def test_scorer_ignores_column_order(saved_model, scoring_transactions):
    path, _, _, _ = saved_model
    scorer = FraudScorer(path)
    shuffled = scoring_transactions[scoring_transactions.columns[::-1]]

    pd.testing.assert_frame_equal(scorer.predict(shuffled), scorer.predict(scoring_transactions))


def test_scorer_rejects_labelled_rows(saved_model, transactions):
    path, _, _, _ = saved_model
    with pytest.raises(ValueError, match="must not contain"):
        FraudScorer(path).predict(transactions)


def test_scorer_requires_feature_columns(saved_model, scoring_transactions):
    path, _, _, _ = saved_model
    with pytest.raises(KeyError):
        FraudScorer(path).predict(scoring_transactions.drop(columns=['v1']))


def test_score_file_writes_predictions(saved_model, scoring_transactions, tmp_path):
    path, _, _, _ = saved_model
    input_path = tmp_path / 'score.csv'
    output_path = tmp_path / 'out' / 'predictions.csv'
    scoring_transactions.to_csv(input_path, index=False)

    FraudScorer(path).score_file(input_path, output_path)

    written = pd.read_csv(output_path)
    assert len(written) == len(scoring_transactions)
    assert written['transaction_id'].tolist() == scoring_transactions['transaction_id'].tolist()

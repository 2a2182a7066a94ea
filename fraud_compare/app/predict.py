import joblib
import logging
import pandas as pd

from fraud_compare.data.preprocessing import DataPreprocessor
from fraud_compare.utils import load_data, save_data

logger = logging.getLogger(__name__)


class FraudScorer:
    """Scores unlabelled transactions with a persisted winner model"""

    def __init__(self, model_path):
        try:
            bundle = joblib.load(model_path)
            self.model = bundle['model']
            self.preprocessor = bundle['preprocessor']
            self.features = bundle['features']
            self.metadata = bundle['metadata']
        except Exception as e:
            logger.error(f"Failed to load model bundle: {str(e)}")
            raise

        self.target_col = self.metadata['target']
        self.id_col = self.metadata['id_column']
        self.positive_class = self.metadata.get('positive_class', 1)
        logger.info(f"Loaded {self.metadata['model_name']} trained on {self.metadata['timestamp']}")

    def _prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        X = df.drop(columns=[self.id_col])
        if self.preprocessor is not None:
            X = self.preprocessor.apply_recipe(X)
        if self.features is not None:
            X = X[self.features]
        return X

    def predict(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Predict a label for every row of a scoring table.

        Returns a DataFrame with the identifier and ``predicted_label``, plus
        ``fraud_probability`` when the model produces probabilities.
        """
        DataPreprocessor.validate_scoring_data(df, self.target_col, self.id_col)
        try:
            X = self._prepare(df)
            predictions = pd.DataFrame({
                self.id_col: df[self.id_col].to_numpy(),
                'predicted_label': self.model.predict(X)
            })

            classes = list(getattr(self.model, 'classes_', []))
            if hasattr(self.model, 'predict_proba') and self.positive_class in classes:
                proba = self.model.predict_proba(X)[:, classes.index(self.positive_class)]
                predictions['fraud_probability'] = proba

            logger.info(f"Scored {len(predictions)} transactions, "
                        f"{(predictions['predicted_label'] == self.positive_class).sum()} flagged")
            return predictions
        except Exception as e:
            logger.error(f"Prediction failed: {str(e)}")
            raise

    def score_file(self, input_path, output_path, sep=','):
        predictions = self.predict(load_data(input_path, sep=sep))
        save_data(predictions, output_path)
        logger.info(f"Predictions saved to {output_path}")
        return predictions

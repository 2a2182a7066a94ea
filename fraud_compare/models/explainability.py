import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import logging
from sklearn.inspection import permutation_importance

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ModelExplainer:
    def __init__(self, model, feature_names):
        self.model = model
        self.feature_names = list(feature_names)

    def feature_importance(self):
        """Native importances, or absolute coefficients for linear models"""
        if hasattr(self.model, 'feature_importances_'):
            importance = self.model.feature_importances_
        elif hasattr(self.model, 'coef_'):
            importance = np.abs(np.asarray(self.model.coef_)).ravel()
        else:
            logger.warning(f"{type(self.model).__name__} exposes no native importance")
            return None

        if len(importance) != len(self.feature_names):
            logger.warning("Feature importance length doesn't match feature names")
            return None
        return pd.Series(importance, index=self.feature_names, name='importance').sort_values(ascending=False)

    def permutation_importance(self, X, y, n_repeats=10, random_state=None, scoring='accuracy'):
        """Model-agnostic importance: drop in score when one column is shuffled"""
        try:
            result = permutation_importance(
                self.model, X, y,
                n_repeats=n_repeats,
                random_state=random_state,
                scoring=scoring,
                n_jobs=-1)

            return pd.DataFrame({
                'feature': self.feature_names,
                'importance_mean': result.importances_mean,
                'importance_std': result.importances_std
            }).sort_values('importance_mean', ascending=False).reset_index(drop=True)
        except Exception as e:
            logger.error(f"Error calculating permutation importance: {str(e)}")
            raise

    def plot_feature_importance(self, importance, feature_names=None, top_n=20):
        """Horizontal bar chart of the top features"""
        try:
            if feature_names is None:
                feature_names = self.feature_names

            if len(importance) != len(feature_names):
                logger.warning("Feature importance length doesn't match feature names")
                return None

            importance_df = pd.DataFrame({
                'Feature': list(feature_names),
                'Importance': np.asarray(importance)
            }).sort_values('Importance', ascending=False).head(top_n)

            fig, ax = plt.subplots(figsize=(10, 6))
            ax.barh(importance_df['Feature'][::-1], importance_df['Importance'][::-1])
            ax.set_xlabel('Importance')
            ax.set_title('Feature Importance')
            fig.tight_layout()
            return fig
        except Exception as e:
            logger.error(f"Error plotting feature importance: {str(e)}")
            raise

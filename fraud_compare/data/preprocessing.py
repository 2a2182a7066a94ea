import pandas as pd
import numpy as np
from sklearn.preprocessing import StandardScaler, OneHotEncoder
from sklearn.impute import SimpleImputer
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.model_selection import train_test_split
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_array, check_is_fitted
from imblearn.over_sampling import SMOTE, SMOTENC, RandomOverSampler
from imblearn.under_sampling import RandomUnderSampler
import logging
from typing import List, Optional, Tuple

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

RECIPE_STEPS = ('nzv', 'center', 'scale')
SAMPLING_STRATEGIES = ('undersample', 'oversample', 'SMOTE', None)


class NearZeroVarianceFilter(BaseEstimator, TransformerMixin):
    """
    Drops predictors that are constant or almost constant.

    A column is flagged when it holds a single distinct value, or when the
    ratio of its most frequent value count to the second most frequent one is
    above ``freq_cut`` while the share of distinct values (in percent) is at
    most ``unique_cut``.
    """

    def __init__(self, freq_cut: float = 95 / 5, unique_cut: float = 10):
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut

    def fit(self, X, y=None):
        if hasattr(X, 'columns'):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        elif hasattr(self, 'feature_names_in_'):
            del self.feature_names_in_
        X = check_array(X)
        n_samples, self.n_features_in_ = X.shape

        freq_ratio = np.empty(self.n_features_in_)
        percent_unique = np.empty(self.n_features_in_)
        zero_var = np.zeros(self.n_features_in_, dtype=bool)

        for j in range(self.n_features_in_):
            _, counts = np.unique(X[:, j], return_counts=True)
            percent_unique[j] = 100.0 * len(counts) / n_samples
            if len(counts) == 1:
                zero_var[j] = True
                freq_ratio[j] = np.inf
                continue
            counts = np.sort(counts)[::-1]
            freq_ratio[j] = counts[0] / counts[1]

        near_zero = (freq_ratio > self.freq_cut) & (percent_unique <= self.unique_cut)
        self.freq_ratio_ = freq_ratio
        self.percent_unique_ = percent_unique
        self.support_ = ~(near_zero | zero_var)

        if not self.support_.any():
            raise ValueError("All features were removed by the near-zero-variance filter")
        return self

    def transform(self, X):
        check_is_fitted(self, 'support_')
        X = check_array(X)
        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X.shape[1]} features, but NearZeroVarianceFilter "
                f"was fitted with {self.n_features_in_}")
        return X[:, self.support_]

    def get_feature_names_out(self, input_features=None):
        check_is_fitted(self, 'support_')
        if input_features is None:
            input_features = getattr(
                self, 'feature_names_in_', [f"x{i}" for i in range(self.n_features_in_)])
        elif len(input_features) != self.n_features_in_:
            raise ValueError(
                f"input_features has {len(input_features)} names, expected {self.n_features_in_}")
        return np.asarray(input_features, dtype=object)[self.support_]


class DataPreprocessor:
    """
    Data preparation for the fraud model comparison: cleaning, class
    balancing, the train/test split and the preprocessing recipe.

    The recipe is fit on training rows only. Its parameters (imputation
    values, category levels, dropped columns, means and scales) are frozen
    after ``fit_recipe`` and reused as-is by ``apply_recipe``.
    """

    def __init__(self, config: dict):
        """
        Args:
            config (dict): Configuration dictionary containing:
                - steps: ordered recipe steps out of 'nzv', 'center', 'scale'
                - freq_cut / unique_cut: near-zero-variance thresholds
                - sampling_strategy: 'undersample', 'oversample', 'SMOTE' or None
                - missing_values_strategy: 'impute' or 'drop'
                - random_state, test_size
        """
        self.config = {
            'steps': list(RECIPE_STEPS),
            'freq_cut': 95 / 5,
            'unique_cut': 10,
            'sampling_strategy': 'undersample',
            'missing_values_strategy': 'impute',
            'random_state': 42,
            'test_size': 0.2,
            **config
        }
        unknown = [s for s in self.config['steps'] if s not in RECIPE_STEPS]
        if unknown:
            raise ValueError(f"Unknown recipe steps: {unknown}")
        if self.config['sampling_strategy'] not in SAMPLING_STRATEGIES:
            raise ValueError(f"Unknown sampling strategy: {self.config['sampling_strategy']}")

        self.recipe: Optional[Pipeline] = None
        self.categorical_features: List[str] = []
        self.numerical_features: List[str] = []
        self.input_features: List[str] = []
        self.feature_names: List[str] = []
        self.dropped_features: List[str] = []

    @staticmethod
    def validate_training_data(df: pd.DataFrame, target_col: str, id_col: str):
        missing = [c for c in (target_col, id_col) if c not in df.columns]
        if missing:
            raise ValueError(f"Training data is missing required columns: {missing}")

    @staticmethod
    def validate_scoring_data(df: pd.DataFrame, target_col: str, id_col: str):
        if id_col not in df.columns:
            raise ValueError(f"Scoring data is missing the identifier column '{id_col}'")
        if target_col in df.columns:
            raise ValueError(f"Scoring data must not contain the label column '{target_col}'")

    def clean(self, df: pd.DataFrame, target_col: str, id_col: str) -> Tuple[pd.DataFrame, pd.Series]:
        """Drop unlabelled and duplicate rows, then separate features from the label"""
        self.validate_training_data(df, target_col, id_col)
        n_rows = len(df)

        df = df.dropna(subset=[target_col])
        feature_cols = [c for c in df.columns if c != id_col]
        df = df.drop_duplicates(subset=feature_cols, keep='first')
        if self.config['missing_values_strategy'] == 'drop':
            df = df.dropna()

        logger.info(f"Cleaning kept {len(df)} of {n_rows} rows")
        df = df.reset_index(drop=True)
        X = df.drop(columns=[target_col, id_col])
        y = df[target_col]
        if y.nunique() < 2:
            raise ValueError(f"Label column '{target_col}' needs two classes, found {y.unique().tolist()}")
        return X, y

    def balance_classes(self, X: pd.DataFrame, y: pd.Series) -> Tuple[pd.DataFrame, pd.Series]:
        """Correct class imbalance with the configured sampler"""
        strategy = self.config['sampling_strategy']
        random_state = self.config['random_state']
        logger.info(f"Class distribution before balancing:\n{y.value_counts().to_string()}")

        if strategy is None:
            return X, y
        if strategy == 'undersample':
            sampler = RandomUnderSampler(random_state=random_state)
        elif strategy == 'oversample':
            sampler = RandomOverSampler(random_state=random_state)
        else:
            # the recipe imputes after the split; SMOTE needs complete rows now
            incomplete = X.columns[X.isna().any()].tolist()
            if incomplete:
                raise ValueError(
                    f"SMOTE cannot resample rows with missing values (columns {incomplete}); "
                    f"set missing_values_strategy='drop' or use another sampling_strategy")
            categorical = X.select_dtypes(include=['object', 'category', 'bool']).columns
            if len(categorical) > 0:
                sampler = SMOTENC(
                    categorical_features=[X.columns.get_loc(c) for c in categorical],
                    random_state=random_state)
            else:
                sampler = SMOTE(random_state=random_state)

        X_res, y_res = sampler.fit_resample(X, y)
        logger.info(f"Class distribution after {strategy}:\n{y_res.value_counts().to_string()}")
        return X_res, y_res

    def split(self, X: pd.DataFrame, y: pd.Series):
        """Stratified train/test split"""
        X_train, X_test, y_train, y_test = train_test_split(
            X, y,
            test_size=self.config['test_size'],
            random_state=self.config['random_state'],
            stratify=y
        )
        logger.info(f"Train size: {X_train.shape[0]}, Test size: {X_test.shape[0]}")
        return X_train, X_test, y_train, y_test

    def _identify_feature_types(self, X: pd.DataFrame):
        self.categorical_features = X.select_dtypes(include=['object', 'category', 'bool']).columns.tolist()
        self.numerical_features = X.select_dtypes(include=np.number).columns.tolist()

        unsupported = [c for c in X.columns
                       if c not in self.categorical_features and c not in self.numerical_features]
        if unsupported:
            raise ValueError(f"Unsupported column types: {unsupported}")

        logger.info(f"Numerical features: {self.numerical_features}")
        logger.info(f"Categorical features: {self.categorical_features}")

    def build_recipe(self, X: pd.DataFrame) -> Pipeline:
        """Build the ordered recipe for the columns of X"""
        self._identify_feature_types(X)

        numeric_transformer = SimpleImputer(strategy='median')
        categorical_transformer = Pipeline(steps=[
            ('imputer', SimpleImputer(strategy='most_frequent')),
            ('onehot', OneHotEncoder(handle_unknown='ignore', sparse_output=False))
        ])
        encoder = ColumnTransformer(
            transformers=[
                ('num', numeric_transformer, self.numerical_features),
                ('cat', categorical_transformer, self.categorical_features)
            ],
            remainder='drop',
            verbose_feature_names_out=False
        )

        steps = [('encode', encoder)]
        for step in self.config['steps']:
            if step == 'nzv':
                steps.append(('nzv', NearZeroVarianceFilter(
                    freq_cut=self.config['freq_cut'],
                    unique_cut=self.config['unique_cut'])))
            elif step == 'center':
                steps.append(('center', StandardScaler(with_mean=True, with_std=False)))
            elif step == 'scale':
                steps.append(('scale', StandardScaler(with_mean=False, with_std=True)))

        return Pipeline(steps=steps).set_output(transform='pandas')

    def fit_recipe(self, X_train: pd.DataFrame) -> pd.DataFrame:
        """
        Fit the recipe on training data and return the transformed training set.

        Args:
            X_train: Training features (no label, no identifier)

        Returns:
            DataFrame of preprocessed training features
        """
        try:
            logger.info("Fitting preprocessing recipe...")
            self.input_features = X_train.columns.tolist()
            self.recipe = self.build_recipe(X_train)
            X_processed = self.recipe.fit_transform(X_train)

            encoded = self.recipe.named_steps['encode'].get_feature_names_out()
            self.feature_names = X_processed.columns.tolist()
            self.dropped_features = [f for f in encoded if f not in self.feature_names]

            if self.dropped_features:
                logger.info(f"Near-zero-variance columns removed: {self.dropped_features}")
            logger.info(f"Processed data shape: {X_processed.shape}")
            return X_processed

        except Exception as e:
            logger.error(f"Error during preprocessing: {str(e)}", exc_info=True)
            raise RuntimeError(f"Preprocessing failed: {str(e)}") from e

    def apply_recipe(self, X: pd.DataFrame) -> pd.DataFrame:
        """Apply the frozen recipe to test or scoring data"""
        if self.recipe is None:
            raise ValueError("Recipe has not been fitted; call fit_recipe first")
        return self.recipe.transform(X[self.input_features])

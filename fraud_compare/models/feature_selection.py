import logging
import time

import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.feature_selection import RFE
from sklearn.model_selection import RepeatedStratifiedKFold, cross_val_score
from sklearn.pipeline import Pipeline
from tqdm import tqdm

logger = logging.getLogger(__name__)


class RecursiveFeatureSelector:
    """
    Recursive feature elimination over a set of candidate subset sizes.

    Every size is scored with repeated stratified k-fold CV, with the
    elimination refit inside each training fold so the held-out fold never
    informs the ranking. The best mean score wins; on ties the smaller subset
    is kept.
    """

    def __init__(self, config=None):
        self.config = {
            'sizes': [2, 4, 6, 8, 10, 15, 20],
            'step': 1,
            'cv_folds': 5,
            'cv_repeats': 1,
            'n_estimators': 100,
            'random_state': 42,
            'n_jobs': -1,
            'scoring': 'accuracy',
            'progress_bar': True,
            **(config or {})
        }
        self.results_ = None
        self.best_size_ = None
        self.selected_features_ = []
        self.ranking_ = None

    def _make_ranker(self):
        return RandomForestClassifier(
            n_estimators=self.config['n_estimators'],
            random_state=self.config['random_state']
        )

    def _candidate_sizes(self, n_features):
        sizes = {int(s) for s in self.config['sizes'] if 0 < int(s) < n_features}
        sizes.add(n_features)
        return sorted(sizes)

    def fit(self, X: pd.DataFrame, y):
        start_time = time.time()
        logger.info(f"\n{'='*50}\nRecursive feature elimination\n{'='*50}")
        n_features = X.shape[1]
        sizes = self._candidate_sizes(n_features)
        cv = RepeatedStratifiedKFold(
            n_splits=self.config['cv_folds'],
            n_repeats=self.config['cv_repeats'],
            random_state=self.config['random_state']
        )

        iterator = sizes
        if self.config['progress_bar']:
            iterator = tqdm(sizes, desc='RFE subset sizes')

        rows = []
        for size in iterator:
            pipeline = Pipeline([
                ('rfe', RFE(self._make_ranker(), n_features_to_select=size, step=self.config['step'])),
                ('model', self._make_ranker())
            ])
            scores = cross_val_score(
                pipeline, X, y,
                cv=cv,
                scoring=self.config['scoring'],
                n_jobs=self.config['n_jobs']
            )
            rows.append({'n_features': size, 'mean_score': scores.mean(), 'std_score': scores.std()})
            logger.info(f"{size} features: {scores.mean():.4f} ± {scores.std():.4f}")

        self.results_ = pd.DataFrame(rows)
        # sizes are ascending, so idxmax resolves ties to the smaller subset
        self.best_size_ = int(self.results_.loc[self.results_['mean_score'].idxmax(), 'n_features'])

        final = RFE(self._make_ranker(), n_features_to_select=self.best_size_, step=self.config['step'])
        final.fit(X, y)
        self.ranking_ = pd.Series(final.ranking_, index=X.columns, name='rank').sort_values()
        self.selected_features_ = X.columns[final.support_].tolist()

        logger.info(f"Selected {self.best_size_} of {n_features} features: {self.selected_features_}")
        logger.info(f"Feature selection completed in {time.time() - start_time:.2f}s")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.results_ is None:
            raise ValueError("RecursiveFeatureSelector is not fitted yet")
        return X[self.selected_features_]

    def fit_transform(self, X: pd.DataFrame, y) -> pd.DataFrame:
        return self.fit(X, y).transform(X)

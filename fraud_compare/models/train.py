import pandas as pd
import numpy as np
from sklearn.model_selection import GridSearchCV, RepeatedStratifiedKFold, cross_val_score
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.svm import SVC
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.neural_network import MLPClassifier
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.metrics import (accuracy_score, cohen_kappa_score, roc_auc_score,
                             classification_report, confusion_matrix, make_scorer)
from sklearn.base import clone
from scipy import stats
from itertools import combinations
from pathlib import Path
import joblib
import logging
import optuna
from optuna.samplers import TPESampler
import time
from tqdm import tqdm

logger = logging.getLogger(__name__)

METRICS = ('accuracy', 'kappa')
SCORERS = {
    'accuracy': 'accuracy',
    'kappa': make_scorer(cohen_kappa_score)
}


class FraudModelTrainer:
    def __init__(self, config=None, param_grids=None):
        """Initialize with configuration; keys in config override the defaults"""
        self.config = {
            'random_state': 42,
            'n_jobs': -1,
            'cv_folds': 10,
            'cv_repeats': 3,
            'selection_metric': 'accuracy',
            'positive_class': 1,
            'optimize': False,
            'optuna_n_trials': 20,
            'optuna_timeout': 600,
            'progress_bar': True,
            **(config or {})
        }
        if self.config['selection_metric'] not in METRICS:
            raise ValueError(f"selection_metric must be one of {METRICS}")
        self.param_grids = param_grids or {}

        random_state = self.config['random_state']
        self.models = {
            'random_forest': RandomForestClassifier(
                n_estimators=200,
                random_state=random_state
            ),
            'logistic': LogisticRegression(
                max_iter=1000,
                random_state=random_state
            ),
            'svm': SVC(
                kernel='rbf',
                probability=True,
                random_state=random_state
            ),
            'naive_bayes': GaussianNB(),
            'knn': KNeighborsClassifier(),
            'neural_net': MLPClassifier(
                hidden_layer_sizes=(5,),
                max_iter=1000,
                random_state=random_state
            ),
            'lda': LinearDiscriminantAnalysis()
        }
        self.trained_models = {}
        self.resamples = {}
        self.training_metadata = {}
        self.test_metrics = {}
        self.best_model = None
        self.best_model_name = None
        self.best_score = 0

    def _cv_splitter(self):
        # Fixed random_state: every model sees the same folds
        return RepeatedStratifiedKFold(
            n_splits=self.config['cv_folds'],
            n_repeats=self.config['cv_repeats'],
            random_state=self.config['random_state']
        )

    def _log_data_stats(self, X, y):
        logger.info(f"\n{'='*50}\nDataset Characteristics\n{'='*50}")
        logger.info(f"Shape: {X.shape}")
        class_dist = pd.Series(np.asarray(y)).value_counts(normalize=True)
        logger.info(f"\nClass Distribution:\n{class_dist.to_string()}")
        if len(class_dist) > 1:
            logger.info(f"Imbalance Ratio: {class_dist.iloc[0]/class_dist.iloc[1]:.1f}:1")

    def check_data_quality(self, X, y):
        """Features must be numeric and complete, the label must have two classes"""
        self._log_data_stats(X, y)

        if isinstance(X, pd.DataFrame):
            non_numeric_cols = X.select_dtypes(exclude=np.number).columns
            if len(non_numeric_cols) > 0:
                raise ValueError(f"Non-numeric columns: {non_numeric_cols.tolist()}")

        nan_count = np.isnan(np.asarray(X, dtype=float)).sum()
        if nan_count > 0:
            raise ValueError(f"Feature matrix contains {nan_count} NaN values")

        n_classes = pd.Series(np.asarray(y)).nunique()
        if n_classes != 2:
            raise ValueError(f"Expected a binary label, found {n_classes} classes")

        logger.info("Data quality check passed")

    def _suggest_params(self, model_name, trial):
        if model_name == 'random_forest':
            return {
                'n_estimators': trial.suggest_int('n_estimators', 100, 500, step=100),
                'max_features': trial.suggest_float('max_features', 0.1, 1.0),
                'min_samples_leaf': trial.suggest_int('min_samples_leaf', 1, 5)
            }
        if model_name == 'logistic':
            return {'C': trial.suggest_float('C', 1e-3, 1e2, log=True)}
        if model_name == 'svm':
            return {
                'C': trial.suggest_float('C', 1e-2, 1e2, log=True),
                'gamma': trial.suggest_float('gamma', 1e-4, 1.0, log=True)
            }
        if model_name == 'naive_bayes':
            return {'var_smoothing': trial.suggest_float('var_smoothing', 1e-12, 1e-2, log=True)}
        if model_name == 'knn':
            return {
                'n_neighbors': trial.suggest_int('n_neighbors', 3, 25, step=2),
                'weights': trial.suggest_categorical('weights', ['uniform', 'distance'])
            }
        if model_name == 'neural_net':
            return {
                'hidden_layer_sizes': (trial.suggest_int('hidden_units', 1, 10),),
                'alpha': trial.suggest_float('alpha', 1e-5, 1.0, log=True)
            }
        if model_name == 'lda':
            return {'solver': trial.suggest_categorical('solver', ['svd', 'lsqr'])}
        raise ValueError(f"No search space for model '{model_name}'")

    def optimize_hyperparameters(self, model_name, X, y):
        """Optuna search over the model's space, scored by repeated CV"""
        metric = self.config['selection_metric']

        def objective(trial):
            try:
                params = self._suggest_params(model_name, trial)
                model = clone(self.models[model_name]).set_params(**params)
                scores = cross_val_score(
                    model, X, y,
                    cv=self._cv_splitter(),
                    scoring=SCORERS[metric],
                    n_jobs=self.config['n_jobs']
                )
                return scores.mean()
            except Exception as e:
                logger.warning(f"Trial failed: {str(e)}")
                raise optuna.TrialPruned()

        def callback(study, trial):
            if trial.state == optuna.trial.TrialState.COMPLETE:
                logger.info(
                    f"Trial {trial.number + 1}/{self.config['optuna_n_trials']} - "
                    f"Current best: {study.best_value:.4f} - "
                    f"Last value: {trial.value:.4f}"
                )

        try:
            logger.info(f"\n{'='*50}\nStarting {model_name} hyperparameter optimization\n{'='*50}")
            study = optuna.create_study(
                direction='maximize',
                sampler=TPESampler(seed=self.config['random_state'])
            )
            study.optimize(
                objective,
                n_trials=self.config['optuna_n_trials'],
                timeout=self.config['optuna_timeout'],
                callbacks=[callback],
                gc_after_trial=True
            )
            best_params = self._suggest_params(model_name, optuna.trial.FixedTrial(study.best_params))

            logger.info(f"\nBest trial for {model_name}:")
            logger.info(f"Value: {study.best_value:.4f}")
            logger.info(f"Params: {best_params}")
            return best_params
        except Exception as e:
            logger.error(f"Optimization failed: {str(e)}", exc_info=True)
            raise

    def train(self, X, y, model_name):
        """
        Tune one model over its grid with repeated CV and refit it on all of X.

        The per-fold accuracy and kappa of the chosen configuration are kept
        in ``self.resamples[model_name]`` for the later comparison.
        """
        if model_name not in self.models:
            raise ValueError(f"Unknown model '{model_name}'; choose from {list(self.models)}")

        start_time = time.time()
        try:
            logger.info(f"\n{'='*50}\nTraining {model_name} model\n{'='*50}")
            param_grid = self.param_grids.get(model_name) or {}
            best_params = None
            if self.config['optimize']:
                best_params = self.optimize_hyperparameters(model_name, X, y)
                param_grid = {k: [v] for k, v in best_params.items()}

            search = GridSearchCV(
                clone(self.models[model_name]),
                param_grid=param_grid,
                scoring=SCORERS,
                refit=self.config['selection_metric'],
                cv=self._cv_splitter(),
                n_jobs=self.config['n_jobs']
            )
            search.fit(X, y)

            best = search.best_index_
            folds = range(search.n_splits_)
            resamples = pd.DataFrame({
                'fold': list(folds),
                'accuracy': [search.cv_results_[f'split{k}_test_accuracy'][best] for k in folds],
                'kappa': [search.cv_results_[f'split{k}_test_kappa'][best] for k in folds]
            })
            self.resamples[model_name] = resamples

            train_time = time.time() - start_time
            self.training_metadata[model_name] = {
                'params': search.best_params_,
                'cv_accuracy': resamples['accuracy'].mean(),
                'cv_accuracy_std': resamples['accuracy'].std(),
                'cv_kappa': resamples['kappa'].mean(),
                'train_time': train_time,
                'optimized': best_params is not None
            }

            logger.info(f"Best params: {search.best_params_}")
            logger.info(
                f"CV Results - Accuracy: {resamples['accuracy'].mean():.4f} ± "
                f"{resamples['accuracy'].std():.4f}, Kappa: {resamples['kappa'].mean():.4f}")
            logger.info(f"Total training time: {train_time:.2f}s")

            model = search.best_estimator_
            self.trained_models[model_name] = model
            return model

        except Exception as e:
            logger.error(f"Training failed: {str(e)}", exc_info=True)
            raise

    def train_all(self, X, y, model_names=None):
        """Train every candidate model; a failure in any of them stops the run"""
        start_time = time.time()
        self.check_data_quality(X, y)
        model_names = model_names or list(self.models)

        iterator = model_names
        if self.config['progress_bar']:
            iterator = tqdm(model_names, desc='Models')

        for model_name in iterator:
            self.train(X, y, model_name)

        logger.info(f"Trained {len(model_names)} models in {time.time() - start_time:.2f}s")
        return {name: self.trained_models[name] for name in model_names}

    def compare(self):
        """Summary of the resampled scores, one row per model"""
        if not self.resamples:
            raise ValueError("No resamples to compare; train models first")

        rows = []
        for model_name, resamples in self.resamples.items():
            row = {'model': model_name}
            for metric in METRICS:
                scores = resamples[metric]
                row.update({
                    f'{metric}_min': scores.min(),
                    f'{metric}_q1': scores.quantile(0.25),
                    f'{metric}_median': scores.median(),
                    f'{metric}_mean': scores.mean(),
                    f'{metric}_q3': scores.quantile(0.75),
                    f'{metric}_max': scores.max()
                })
            rows.append(row)

        summary = pd.DataFrame(rows).set_index('model')
        summary = summary.sort_values(f"{self.config['selection_metric']}_mean", ascending=False)
        logger.info(f"\nResample summary:\n{summary[[f'{m}_mean' for m in METRICS]].to_string()}")
        return summary

    def compare_pairwise(self, metric='accuracy'):
        """Paired t-tests between models on the shared folds, Bonferroni adjusted"""
        if metric not in METRICS:
            raise ValueError(f"metric must be one of {METRICS}")
        if len(self.resamples) < 2:
            raise ValueError("At least two trained models are needed for a pairwise comparison")

        pairs = list(combinations(self.resamples, 2))
        rows = []
        for model_a, model_b in pairs:
            a = self.resamples[model_a][metric].to_numpy()
            b = self.resamples[model_b][metric].to_numpy()
            p_value = stats.ttest_rel(a, b).pvalue
            rows.append({
                'model_a': model_a,
                'model_b': model_b,
                'mean_diff': (a - b).mean(),
                'p_value': p_value,
                'p_adjusted': min(p_value * len(pairs), 1.0) if not np.isnan(p_value) else np.nan
            })
        return pd.DataFrame(rows)

    def evaluate_model(self, model, X_test, y_test):
        """Held-out accuracy, kappa and, when probabilities exist, ROC AUC"""
        try:
            predict_start = time.time()
            y_pred = model.predict(X_test)
            predict_time = time.time() - predict_start

            metrics = {
                'accuracy': accuracy_score(y_test, y_pred),
                'kappa': cohen_kappa_score(y_test, y_pred),
                'roc_auc': None,
                'classification_report': classification_report(y_test, y_pred, output_dict=True, zero_division=0),
                'confusion_matrix': confusion_matrix(y_test, y_pred).tolist(),
                'prediction_time_sec': predict_time
            }

            positive = self.config['positive_class']
            classes = list(getattr(model, 'classes_', []))
            if hasattr(model, 'predict_proba') and positive in classes and pd.Series(y_test).nunique() == 2:
                y_proba = model.predict_proba(X_test)[:, classes.index(positive)]
                metrics['roc_auc'] = roc_auc_score(np.asarray(y_test) == positive, y_proba)

            logger.info(f"Accuracy: {metrics['accuracy']:.4f}, Kappa: {metrics['kappa']:.4f}")
            if metrics['roc_auc'] is not None:
                logger.info(f"ROC AUC: {metrics['roc_auc']:.4f}")
            return metrics
        except Exception as e:
            logger.error(f"Evaluation error: {str(e)}", exc_info=True)
            raise

    def evaluate_all(self, X_test, y_test):
        """Evaluate every trained model once on the held-out set"""
        logger.info(f"\n{'='*50}\nHeld-out Evaluation\n{'='*50}")
        rows = []
        for model_name, model in self.trained_models.items():
            logger.info(f"Evaluating {model_name}")
            metrics = self.evaluate_model(model, X_test, y_test)
            self.test_metrics[model_name] = metrics
            rows.append({
                'model': model_name,
                'accuracy': metrics['accuracy'],
                'kappa': metrics['kappa'],
                'roc_auc': metrics['roc_auc']
            })
        return pd.DataFrame(rows).set_index('model')

    def select_winner(self, metric=None):
        """Pick the model with the best mean resampled score"""
        metric = metric or self.config['selection_metric']
        if metric not in METRICS:
            raise ValueError(f"metric must be one of {METRICS}")
        if not self.resamples:
            raise ValueError("No trained models to select from")

        scores = {name: resamples[metric].mean() for name, resamples in self.resamples.items()}
        self.best_model_name = max(scores, key=scores.get)
        self.best_model = self.trained_models[self.best_model_name]
        self.best_score = scores[self.best_model_name]

        logger.info(f"Selected best model: {self.best_model_name} with CV {metric}: {self.best_score:.4f}")
        return self.best_model_name, self.best_model

    def save_model(self, filepath, preprocessor=None, features=None, extra_metadata=None):
        """Save the winner with the fitted preprocessor, its feature subset and metadata"""
        if self.best_model is None:
            raise ValueError("No winner selected; call select_winner first")
        try:
            save_data = {
                'model': self.best_model,
                'preprocessor': preprocessor,
                'features': list(features) if features is not None else None,
                'metadata': {
                    'timestamp': pd.Timestamp.now(),
                    'model_name': self.best_model_name,
                    'config': self.config,
                    'training_metadata': self.training_metadata,
                    'best_score': self.best_score,
                    'test_metrics': self.test_metrics.get(self.best_model_name),
                    **(extra_metadata or {})
                }
            }
            Path(filepath).parent.mkdir(parents=True, exist_ok=True)
            joblib.dump(save_data, filepath)
            logger.info(f"Model and metadata saved to {filepath}")
        except Exception as e:
            logger.error(f"Save failed: {str(e)}", exc_info=True)
            raise

    def load_model(self, filepath):
        """Load a saved bundle and restore the winner on this trainer"""
        try:
            data = joblib.load(filepath)
            self.best_model = data['model']
            self.best_model_name = data['metadata'].get('model_name')
            self.best_score = data['metadata'].get('best_score')
            logger.info(f"Model loaded from {filepath}")
            logger.info(f"Originally trained on {data['metadata']['timestamp']}")
            return data
        except Exception as e:
            logger.error(f"Load failed: {str(e)}", exc_info=True)
            raise

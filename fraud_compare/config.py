MODEL_CONFIG = {
    'random_state': 42,
    'cv_folds': 10,
    'cv_repeats': 3,
    'n_jobs': -1,
    'selection_metric': 'accuracy',
    'models': ['random_forest', 'logistic', 'svm', 'naive_bayes', 'knn', 'neural_net', 'lda'],
    'optimize': False,
    'optuna_n_trials': 20,
    'optuna_timeout': 600,
    'progress_bar': True,
    'save_figures': True
}

DATA_PATHS = {
    'train_data': 'data/raw/train.csv',
    'score_data': 'data/raw/test.csv',
    'predictions': 'data/predictions/predictions.csv',
    'model': 'models/winner_model.pkl',
    'figures': 'reports/figures',
    'log_file': 'training.log'
}

FEATURES = {
    'target': 'is_fraud',
    'id_column': 'transaction_id',
    'positive_class': 1,
    'sep': ','
}

PREPROCESSING_CONFIG = {
    'steps': ['nzv', 'center', 'scale'],
    'freq_cut': 95 / 5,
    'unique_cut': 10,
    'sampling_strategy': 'undersample',  # 'undersample', 'oversample', 'SMOTE' or None
    'missing_values_strategy': 'impute',  # 'impute' or 'drop'
    'random_state': 42,
    'test_size': 0.2
}

FEATURE_SELECTION_CONFIG = {
    'enabled': True,
    'sizes': [2, 4, 6, 8, 10, 15, 20],
    'step': 1,
    'cv_folds': 5,
    'cv_repeats': 1,
    'n_estimators': 100,
    'random_state': 42,
    'n_jobs': -1,
    'progress_bar': True
}

# Small grids, roughly what a tune length of three gives per model
MODEL_GRIDS = {
    'random_forest': {'max_features': ['sqrt', 0.5, 1.0]},
    'logistic': {'C': [0.1, 1.0, 10.0]},
    'svm': {'C': [0.25, 0.5, 1.0]},
    'naive_bayes': {'var_smoothing': [1e-9, 1e-6, 1e-3]},
    'knn': {'n_neighbors': [5, 7, 9]},
    'neural_net': {'hidden_layer_sizes': [(1,), (3,), (5,)], 'alpha': [1e-4, 1e-1]},
    'lda': {'solver': ['svd']}
}

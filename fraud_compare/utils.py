import logging
from pathlib import Path

import pandas as pd


def load_data(file_path, sep=','):
    return pd.read_csv(file_path, sep=sep)


def save_data(data, file_path):
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    data.to_csv(file_path, index=False)


def configure_logging(log_file=None, level=logging.INFO):
    """Console logging, plus a log file when one is given"""
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

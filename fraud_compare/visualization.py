"""Figures for the model comparison: class balance, resamples, RFE profile, confusion matrix."""
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from sklearn.metrics import ConfusionMatrixDisplay

sns.set_palette("viridis")


def save_figure(fig, file_path, dpi=150):
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(file_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)


def plot_class_distribution(y, title="Class distribution"):
    fig, ax = plt.subplots(figsize=(6, 4))
    counts = pd.Series(y).value_counts().sort_index()
    sns.barplot(x=counts.index.astype(str), y=counts.values, ax=ax)
    ax.set_xlabel("Label")
    ax.set_ylabel("Count")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_model_comparison(resamples, metric="accuracy"):
    """Box plot of the per-fold scores of each model"""
    long_df = pd.concat(
        [df[[metric]].assign(model=name) for name, df in resamples.items()],
        ignore_index=True
    )
    order = long_df.groupby("model")[metric].mean().sort_values(ascending=False).index

    fig, ax = plt.subplots(figsize=(8, 0.6 * len(order) + 2))
    sns.boxplot(data=long_df, x=metric, y="model", order=order, ax=ax)
    ax.set_title(f"Resampled {metric}")
    fig.tight_layout()
    return fig


def plot_feature_selection(results):
    """Mean CV score against the number of retained features"""
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.errorbar(results["n_features"], results["mean_score"], yerr=results["std_score"],
                marker="o", capsize=3)
    ax.set_xlabel("Variables")
    ax.set_ylabel("Accuracy (repeated CV)")
    ax.set_title("Recursive feature elimination")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_confusion_matrix(y_true, y_pred, title="Confusion matrix"):
    fig, ax = plt.subplots(figsize=(5, 4))
    ConfusionMatrixDisplay.from_predictions(y_true, y_pred, cmap="Blues", ax=ax)
    ax.set_title(title)
    fig.tight_layout()
    return fig

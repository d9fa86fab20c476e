"""
Visualization Utilities
=======================

Functions for inspecting training and convolutional layers:
- Training progress (loss/accuracy curves)
- Filters of a Convolution or ConvHebbian layer
- Feature maps produced by the last forward call
- Pairwise filter similarity of a ConvHebbian layer

Every function returns the matplotlib Figure.
"""

import logging

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def _grid(n_images, figsize):
    n_cols = int(np.ceil(np.sqrt(n_images)))
    n_rows = int(np.ceil(n_images / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=figsize)
    axes = np.array(axes).flatten()
    for ax in axes[n_images:]:
        ax.axis('off')
    return fig, axes


def _finish(fig, save_path, show, what):
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("%s saved to %s", what, save_path)
    if show:
        plt.show()
    return fig


def plot_training_history(history, figsize=(14, 5), save_path=None, show=True):
    """
    Plot training history (loss and accuracy curves).

    Args:
        history: Dictionary with 'loss', 'accuracy', 'val_loss', 'val_accuracy'
        figsize: Figure size
        save_path: Path to save figure
        show: Call plt.show()
    """
    fig, axes = plt.subplots(1, 2, figsize=figsize)

    epochs = range(1, len(history['loss']) + 1)

    axes[0].plot(epochs, history['loss'], 'b-', label='Training Loss', linewidth=2)
    if history.get('val_loss'):
        axes[0].plot(epochs, history['val_loss'], 'r-', label='Validation Loss', linewidth=2)
    axes[0].set_xlabel('Epoch')
    axes[0].set_ylabel('Loss per sample')
    axes[0].legend()
    axes[0].grid(True, alpha=0.3)

    axes[1].plot(epochs, history['accuracy'], 'b-', label='Training Accuracy', linewidth=2)
    if history.get('val_accuracy'):
        axes[1].plot(epochs, history['val_accuracy'], 'r-', label='Validation Accuracy', linewidth=2)
    axes[1].set_xlabel('Epoch')
    axes[1].set_ylabel('Accuracy')
    axes[1].legend()
    axes[1].grid(True, alpha=0.3)

    return _finish(fig, save_path, show, "Training history plot")


def filter_images(layer):
    """
    Return the filters of a convolutional layer as 2D images.

    Multi-channel filters are averaged across input channels.
    """
    size = layer.filter_size
    images = []
    for row in layer.params['W']:
        images.append(row.reshape(layer.input_depth, size, size).mean(axis=0))
    return images


def visualize_filters(layer, max_filters=32, figsize=(12, 8), save_path=None, show=True):
    """
    Visualize convolutional filter weights.

    Args:
        layer: Convolution or ConvHebbian layer
        max_filters: Maximum number of filters to display
    """
    images = filter_images(layer)[:max_filters]
    fig, axes = _grid(len(images), figsize)

    for i, image in enumerate(images):
        # Normalize for display
        image = (image - image.min()) / (image.max() - image.min() + 1e-8)
        axes[i].imshow(image, cmap='gray')
        axes[i].set_title(f'Filter {i}', fontsize=8)
        axes[i].axis('off')

    fig.suptitle(f'{layer.name} filters')
    return _finish(fig, save_path, show, "Filters visualization")


def visualize_feature_maps(layer, sample=0, max_maps=16, figsize=(12, 12), save_path=None, show=True):
    """
    Visualize the feature maps of one sample from the layer's last forward call.

    Args:
        layer: Convolution or ConvHebbian layer
        sample: Index of the sample in the batch
        max_maps: Maximum number of feature maps to display
    """
    maps = layer.states['y'][sample].reshape(layer.output_depth, layer.output_height, layer.output_width)
    maps = maps[:max_maps]
    fig, axes = _grid(len(maps), figsize)

    for i, feature_map in enumerate(maps):
        axes[i].imshow(feature_map, cmap='viridis')
        axes[i].set_title(f'Filter {i}', fontsize=8)
        axes[i].axis('off')

    fig.suptitle(f'{layer.name} feature maps')
    return _finish(fig, save_path, show, "Feature maps")


def visualize_weight_similarity(layer, figsize=(6, 6), save_path=None, show=True):
    """
    Heatmap of ConvHebbian.weight_similarity: positive pairs above the
    diagonal, negative pairs below.
    """
    similarity = layer.weight_similarity(fill_diagonal=True)

    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(similarity, cmap='RdBu_r', vmin=-1, vmax=1)
    fig.colorbar(im, ax=ax)
    ax.set(xlabel='Filter', ylabel='Filter', title=f'{layer.name} filter similarity')

    return _finish(fig, save_path, show, "Similarity matrix")

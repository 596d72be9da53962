"""
I/O utilities for the fingerprint identification system.

Provides functions for loading and saving fingerprint scan images.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np


# Supported image extensions
SUPPORTED_EXTENSIONS = {'.tif', '.tiff', '.png', '.jpg', '.jpeg', '.bmp', '.pgm'}


def load_image(
    path: Union[str, Path],
    target_size: Optional[Tuple[int, int]] = None
) -> np.ndarray:
    """
    Load a grayscale image from disk.

    Args:
        path: Path to the image file
        target_size: Optional (width, height) to resize to

    Returns:
        Image as uint8 numpy array

    Raises:
        FileNotFoundError: If image file does not exist
        ValueError: If image cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)

    if image is None:
        raise ValueError(f"Failed to load image: {path}")

    if target_size is not None:
        image = cv2.resize(image, target_size, interpolation=cv2.INTER_LINEAR)

    return image


def save_image(
    image: np.ndarray,
    path: Union[str, Path],
    normalize_output: bool = True
) -> None:
    """
    Save an image to disk.

    Args:
        image: Image as numpy array
        path: Output path
        normalize_output: If True and image is float, scale to [0, 255]

    Raises:
        ValueError: If OpenCV cannot encode the image at that path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if normalize_output and image.dtype in [np.float32, np.float64]:
        image = (image * 255).clip(0, 255).astype(np.uint8)

    if not cv2.imwrite(str(path), image):
        raise ValueError(f"Failed to write image: {path}")


def discover_images(
    directory: Union[str, Path],
    extensions: Optional[set] = None,
    recursive: bool = False
) -> List[Path]:
    """
    Discover all images in a directory.

    Args:
        directory: Root directory to search
        extensions: Set of valid extensions (default: SUPPORTED_EXTENSIONS)
        recursive: Whether to search subdirectories

    Returns:
        Sorted list of paths to discovered images
    """
    directory = Path(directory)
    extensions = extensions or SUPPORTED_EXTENSIONS

    images = []
    pattern = '**/*' if recursive else '*'

    for path in directory.glob(pattern):
        if path.is_file() and path.suffix.lower() in extensions:
            images.append(path)

    return sorted(images)

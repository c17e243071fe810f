"""
图像处理工具模块
"""

from .image_utils import (
    load_grayscale,
    pad_to_optimal_size,
    apply_remainder_policy,
    preprocess_image,
    normalize_image,
    to_uint8,
    write_images,
    calculate_psnr,
    calculate_ssim,
    SSIM_WINDOW
)

from .random_matrix import WatermarkMatrixGenerator

from .metrics import (
    PerformanceTimer,
    benchmark_generators
)

from .visualizer import visualize_comparison

__all__ = [
    # image_utils
    'load_grayscale',
    'pad_to_optimal_size',
    'apply_remainder_policy',
    'preprocess_image',
    'normalize_image',
    'to_uint8',
    'write_images',
    'calculate_psnr',
    'calculate_ssim',
    'SSIM_WINDOW',

    # random_matrix
    'WatermarkMatrixGenerator',

    # metrics
    'PerformanceTimer',
    'benchmark_generators',

    # visualizer
    'visualize_comparison'
]

"""
图像处理工具函数
提供图像读写、预处理（填充、余量策略、归一化）和图像质量评估功能
"""

import logging
import os
from typing import Dict, Optional

import cv2
import numpy as np

from ..exceptions import InputError, ShapeError

logger = logging.getLogger(__name__)


def load_grayscale(image_path: str) -> np.ndarray:
    """
    以灰度方式读取图像

    Args:
        image_path: 图像文件路径

    Returns:
        uint8 灰度图像 (H, W)

    Raises:
        InputError: 文件不存在或无法解码
    """
    if not image_path or not os.path.isfile(image_path):
        raise InputError(f"图像文件不存在: {image_path}")

    image = cv2.imread(image_path, cv2.IMREAD_GRAYSCALE)
    if image is None or image.size == 0:
        raise InputError(f"无法读取图像: {image_path}")

    return image


def pad_to_optimal_size(image: np.ndarray) -> np.ndarray:
    """
    按FFT最优尺寸在右侧和下方补零

    Args:
        image: 灰度图像

    Returns:
        填充后的图像
    """
    rows, cols = image.shape[:2]
    optimal_rows = cv2.getOptimalDFTSize(rows)
    optimal_cols = cv2.getOptimalDFTSize(cols)

    if optimal_rows == rows and optimal_cols == cols:
        return image

    return cv2.copyMakeBorder(image, 0, optimal_rows - rows, 0, optimal_cols - cols,
                              cv2.BORDER_CONSTANT, value=0)


def apply_remainder_policy(image: np.ndarray, block_size: int,
                           policy: str = 'reject') -> np.ndarray:
    """
    处理边长不能被块大小整除的情况

    Args:
        image: 方形图像
        block_size: 块大小
        policy: 'reject' 抛出异常，'pad' 补零到整数倍，'crop' 裁掉余量

    Returns:
        边长为块大小整数倍的图像
    """
    side = image.shape[0]
    remainder = side % block_size
    if remainder == 0:
        return image

    if policy == 'reject':
        raise ShapeError(f"图像边长 {side} 不能被块大小 {block_size} 整除")
    elif policy == 'pad':
        extra = block_size - remainder
        logger.info(f"Padding image from {side} to {side + extra}")
        return cv2.copyMakeBorder(image, 0, extra, 0, extra, cv2.BORDER_CONSTANT, value=0)
    elif policy == 'crop':
        cropped = side - remainder
        if cropped == 0:
            raise ShapeError(f"图像边长 {side} 小于块大小 {block_size}")
        logger.info(f"Cropping image from {side} to {cropped}")
        return image[:cropped, :cropped].copy()
    else:
        raise ValueError(f"不支持的余量策略: {policy}")


def preprocess_image(image: np.ndarray, block_size: int,
                     image_size: Optional[int] = None,
                     remainder_policy: str = 'reject',
                     optimal_padding: bool = True) -> np.ndarray:
    """
    图像预处理: 最优尺寸填充 -> 方形检查 -> 余量策略 -> 目标尺寸检查

    Args:
        image: 灰度图像
        block_size: 块大小
        image_size: 目标边长，None表示不限制
        remainder_policy: 余量策略
        optimal_padding: 是否按FFT最优尺寸填充

    Returns:
        边长为块大小整数倍的方形图像
    """
    if image is None or image.size == 0:
        raise InputError("输入图像为空")

    if image.ndim != 2:
        raise ShapeError(f"只支持单通道灰度图像, 实际维度: {image.shape}")

    if image.dtype != np.uint8:
        raise InputError(f"只支持uint8灰度图像, 实际类型: {image.dtype}")

    processed = pad_to_optimal_size(image) if optimal_padding else image

    rows, cols = processed.shape
    if rows != cols:
        raise ShapeError(f"图像宽高不一致: {rows}x{cols}")

    processed = apply_remainder_policy(processed, block_size, remainder_policy)

    if image_size is not None and processed.shape[0] != image_size:
        raise ShapeError(
            f"图像边长 {processed.shape[0]} 与配置的目标尺寸 {image_size} 不一致")

    return processed


def normalize_image(image: np.ndarray) -> np.ndarray:
    """将uint8图像归一化到[0, 1]的float32"""
    return image.astype(np.float32) / 255.0


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    将[0, 1]浮点图像转换为uint8，四舍五入并饱和截断到[0, 255]

    Args:
        image: 浮点图像

    Returns:
        uint8图像
    """
    scaled = np.rint(np.asarray(image, dtype=np.float64) * 255.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def write_images(images: Dict[str, np.ndarray], output_dir: str) -> Dict[str, str]:
    """
    批量写出图像，任何一个写出失败时删除已写出的文件

    Args:
        images: {文件名: uint8图像}
        output_dir: 输出目录

    Returns:
        {文件名: 完整路径}
    """
    os.makedirs(output_dir, exist_ok=True)

    written = {}
    try:
        for filename, image in images.items():
            path = os.path.join(output_dir, filename)
            if not cv2.imwrite(path, image):
                raise IOError(f"无法写出图像: {path}")
            written[filename] = path
    except Exception:
        for path in written.values():
            if os.path.exists(path):
                os.remove(path)
        raise

    return written


SSIM_WINDOW = 11


def calculate_psnr(original: np.ndarray, modified: np.ndarray) -> float:
    """uint8图像的峰值信噪比(dB)，完全相同时约为361"""
    if original.shape != modified.shape:
        raise ValueError("两幅图像尺寸必须相同")

    return float(cv2.PSNR(original, modified))


def calculate_ssim(original: np.ndarray, modified: np.ndarray) -> float:
    """
    uint8灰度图像的结构相似性(SSIM)

    高斯窗口 11x11, sigma 1.5，只在窗口完全落在图像内的区域取平均。

    Raises:
        ValueError: 尺寸不同或小于窗口
    """
    if original.shape != modified.shape:
        raise ValueError("两幅图像尺寸必须相同")
    if min(original.shape[:2]) < SSIM_WINDOW:
        raise ValueError(f"图像尺寸必须不小于窗口大小 {SSIM_WINDOW}")

    x = original.astype(np.float64)
    y = modified.astype(np.float64)
    c1, c2 = (0.01 * 255) ** 2, (0.03 * 255) ** 2

    def blur(img):
        m = SSIM_WINDOW // 2
        return cv2.GaussianBlur(img, (SSIM_WINDOW, SSIM_WINDOW), 1.5)[m:-m or None, m:-m or None]

    mu_x, mu_y = blur(x), blur(y)
    var_x = blur(x * x) - mu_x ** 2
    var_y = blur(y * y) - mu_y ** 2
    cov = blur(x * y) - mu_x * mu_y

    ssim_map = ((2 * mu_x * mu_y + c1) * (2 * cov + c2)) / \
               ((mu_x ** 2 + mu_y ** 2 + c1) * (var_x + var_y + c2))
    return float(ssim_map.mean())

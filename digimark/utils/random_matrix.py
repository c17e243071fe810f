# utils/random_matrix.py

import cv2
import numpy as np
from typing import Optional


class WatermarkMatrixGenerator:
    """
    水印矩阵生成器。
    生成 G x G 的独立均匀分布随机值，取值范围 [0, 1)，每个块对应一个值。
    """

    BACKENDS = ('numpy', 'opencv')

    def __init__(self, backend: str = 'numpy', seed: Optional[int] = None):
        """
        Args:
            backend: 'numpy' 使用 numpy Generator；'opencv' 使用 cv2.randu (串行 CPU RNG)
            seed: 随机种子，None 表示不固定
        """
        if backend not in self.BACKENDS:
            raise ValueError(f"不支持的水印生成器: {backend}")
        self.backend = backend
        self.seed = seed

    def generate(self, size: int) -> np.ndarray:
        """生成 size x size 的 float32 水印矩阵"""
        if size <= 0:
            raise ValueError(f"水印矩阵尺寸必须为正数: {size}")

        if self.backend == 'opencv':
            matrix = np.empty((size, size), dtype=np.float32)
            if self.seed is not None:
                cv2.setRNGSeed(self.seed)
            cv2.randu(matrix, 0.0, 1.0)
            return matrix

        rng = np.random.default_rng(self.seed)
        return rng.random((size, size), dtype=np.float32)

"""
DCT变换适配器

对单个块做正交二维DCT-II与逆变换(DCT-III)，不修改输入。
"""

import numpy as np
from scipy.fftpack import dct, idct


class DCTTransform:
    """基于 scipy.fftpack 的二维正交DCT"""

    def __init__(self, dtype=np.float32):
        self.dtype = dtype

    def forward(self, block: np.ndarray) -> np.ndarray:
        """正向二维DCT"""
        data = np.asarray(block, dtype=np.float64)
        coeffs = dct(dct(data, axis=-1, norm='ortho'), axis=-2, norm='ortho')
        return coeffs.astype(self.dtype)

    def inverse(self, coeffs: np.ndarray) -> np.ndarray:
        """逆二维DCT"""
        data = np.asarray(coeffs, dtype=np.float64)
        block = idct(idct(data, axis=-2, norm='ortho'), axis=-1, norm='ortho')
        return block.astype(self.dtype)

    # 最后两个轴按块处理，因此同一实现可直接用于 (B, n, n) 堆叠
    forward_many = forward
    inverse_many = inverse

"""
可视化工具
把原图、水印矩阵、DCT系数图和两路水印结果拼成一张对比图
"""

from typing import Dict, Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')  # 使用非交互式后端
import matplotlib.pyplot as plt


def visualize_comparison(images: Dict[str, np.ndarray], output_path: Optional[str] = None,
                         metrics: Optional[Dict[str, float]] = None) -> np.ndarray:
    """
    可视化对比图

    Args:
        images: 图像字典 {'标题': 灰度图像, ...}
        output_path: 输出路径，None表示不保存
        metrics: 质量指标字典 {'PSNR': value, ...}

    Returns:
        RGB对比图像
    """
    if not images:
        raise ValueError("至少需要一幅图像")

    n_images = len(images)
    cols = min(n_images, 3)
    rows = (n_images + cols - 1) // cols

    fig, axes = plt.subplots(rows, cols, figsize=(6 * cols, 6 * rows), squeeze=False)

    for idx, (name, img) in enumerate(images.items()):
        ax = axes[idx // cols, idx % cols]
        ax.imshow(img, cmap='gray', interpolation='nearest')
        ax.set_title(name, fontsize=12)
        ax.axis('off')

    # 隐藏多余的子图
    for idx in range(n_images, rows * cols):
        axes[idx // cols, idx % cols].axis('off')

    if metrics:
        metrics_text = '\n'.join([f'{k}: {v:.2f}' for k, v in metrics.items()])
        fig.text(0.5, 0.02, metrics_text, ha='center', fontsize=12,
                 bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))

    plt.tight_layout()

    if output_path is not None:
        plt.savefig(output_path, dpi=150, bbox_inches='tight')

    # 转换为numpy数组
    fig.canvas.draw()
    comparison_img = np.asarray(fig.canvas.buffer_rgba())[:, :, :3].copy()

    plt.close(fig)

    return comparison_img

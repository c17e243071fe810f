"""
DCT分块水印配置模型

该模块定义了水印引擎的配置数据类和嵌入结果。
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import numpy as np
import yaml


REMAINDER_POLICIES = ('reject', 'pad', 'crop')
GENERATORS = ('numpy', 'opencv')


def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
    """取出配置小节，空小节视为默认值"""
    section = config_dict.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"配置小节 {name} 必须是字典: {section!r}")
    return section


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class WatermarkConfig:
    """水印配置"""

    # 分块配置
    block_size: int = 8
    image_size: Optional[int] = 512  # None表示使用填充后的输入尺寸
    remainder_policy: str = "reject"  # reject, pad 或 crop
    optimal_dft_padding: bool = True

    # 嵌入配置
    strength: float = 0.5
    batch_strength: float = 1.2
    strict_selection: bool = False

    # 水印矩阵配置
    generator: str = "numpy"
    seed: Optional[int] = None

    # 性能配置
    num_threads: int = 4

    # 可视化配置
    visualization_enabled: bool = False

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'WatermarkConfig':
        """
        从字典创建配置对象

        Args:
            config_dict: 嵌套配置字典

        Returns:
            WatermarkConfig实例
        """
        block = _section(config_dict, 'block')
        embedding = _section(config_dict, 'embedding')
        watermark = _section(config_dict, 'watermark')
        performance = _section(config_dict, 'performance')
        visualization = _section(config_dict, 'visualization')

        return cls(
            # 分块配置
            block_size=block.get('size', 8),
            image_size=block.get('image_size', 512),
            remainder_policy=block.get('remainder_policy', 'reject'),
            optimal_dft_padding=block.get('optimal_dft_padding', True),

            # 嵌入配置
            strength=embedding.get('strength', 0.5),
            batch_strength=embedding.get('batch_strength', 1.2),
            strict_selection=embedding.get('strict_selection', False),

            # 水印矩阵配置
            generator=watermark.get('generator', 'numpy'),
            seed=watermark.get('seed'),

            # 性能配置
            num_threads=performance.get('num_threads', 4),

            # 可视化配置
            visualization_enabled=visualization.get('enabled', False)
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'WatermarkConfig':
        """
        从YAML文件加载配置

        Args:
            yaml_path: YAML配置文件路径

        Returns:
            WatermarkConfig实例

        Raises:
            FileNotFoundError: 如果配置文件不存在
            ValueError: 如果配置文件格式错误
        """
        try:
            with open(yaml_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"配置文件不存在: {yaml_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")

        if not isinstance(config_dict, dict):
            raise ValueError("配置文件必须包含字典格式的数据")

        # 允许配置嵌套在digimark键下，也允许直接写在根节点
        section = config_dict.get('digimark') or config_dict
        if not isinstance(section, dict):
            raise ValueError("digimark 配置必须是字典格式")

        return cls.from_dict(section)

    def to_dict(self) -> Dict[str, Any]:
        """
        转换为字典格式

        Returns:
            配置字典
        """
        return {
            'block': {
                'size': self.block_size,
                'image_size': self.image_size,
                'remainder_policy': self.remainder_policy,
                'optimal_dft_padding': self.optimal_dft_padding
            },
            'embedding': {
                'strength': self.strength,
                'batch_strength': self.batch_strength,
                'strict_selection': self.strict_selection
            },
            'watermark': {
                'generator': self.generator,
                'seed': self.seed
            },
            'performance': {
                'num_threads': self.num_threads
            },
            'visualization': {
                'enabled': self.visualization_enabled
            }
        }

    def to_yaml(self, yaml_path: str) -> None:
        """
        保存配置到YAML文件

        Args:
            yaml_path: YAML配置文件路径
        """
        config_dict = {
            'digimark': self.to_dict()
        }

        with open(yaml_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False,
                      allow_unicode=True, sort_keys=False)

    def validate(self) -> bool:
        """
        验证配置的有效性

        Returns:
            配置是否有效

        Raises:
            ValueError: 配置无效时抛出
        """
        for name in ('block_size', 'num_threads'):
            if not _is_int(getattr(self, name)):
                raise ValueError(f"{name} 必须是整数: {getattr(self, name)!r}")

        if self.image_size is not None and not _is_int(self.image_size):
            raise ValueError(f"image_size 必须是整数: {self.image_size!r}")

        if self.seed is not None and not _is_int(self.seed):
            raise ValueError(f"seed 必须是整数: {self.seed!r}")

        if self.block_size < 2:
            raise ValueError(f"块大小必须至少为2: {self.block_size}")

        if self.image_size is not None:
            if self.image_size < self.block_size:
                raise ValueError(f"目标图像尺寸不能小于块大小: {self.image_size}")
            if self.image_size % self.block_size != 0:
                raise ValueError(
                    f"目标图像尺寸必须是块大小的整数倍: {self.image_size} % {self.block_size}")

        if self.remainder_policy not in REMAINDER_POLICIES:
            raise ValueError(f"不支持的余量策略: {self.remainder_policy}")

        for name in ('strength', 'batch_strength'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"嵌入强度必须是数值: {name}={value!r}")
            if not math.isfinite(value):
                raise ValueError(f"嵌入强度必须是有限数值: {name}={value}")

        if self.generator not in GENERATORS:
            raise ValueError(f"不支持的水印生成器: {self.generator}")

        if self.num_threads < 1:
            raise ValueError(f"线程数必须至少为1: {self.num_threads}")

        for name in ('optimal_dft_padding', 'strict_selection', 'visualization_enabled'):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} 必须是布尔值: {getattr(self, name)!r}")

        return True


@dataclass
class EmbedResult:
    """嵌入结果"""
    watermarked_image: np.ndarray  # 主路径输出 (uint8)
    comparison_image: np.ndarray  # 批量对比路径输出 (uint8)
    dct_image: np.ndarray  # 分块DCT系数拼接图 (uint8)
    watermark: np.ndarray  # G x G 水印矩阵
    block_count: tuple  # (行数, 列数)
    image_size: tuple  # (height, width)
    states: List[str] = field(default_factory=list)
    output_paths: Dict[str, str] = field(default_factory=dict)
    quality_metrics: Dict[str, float] = field(default_factory=dict)  # PSNR, SSIM等
    processing_time: float = 0.0

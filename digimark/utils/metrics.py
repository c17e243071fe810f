"""
性能指标模块
流水线阶段计时和水印生成器基准测试，作为可选的外部插桩层传入流水线
"""

import time
from contextlib import contextmanager
from typing import Dict, Iterable, Optional

from .random_matrix import WatermarkMatrixGenerator


class PerformanceTimer:
    """
    分阶段计时器

    自身作为上下文管理器统计总耗时，stage() 记录各阶段耗时。
    同名阶段再次计时会覆盖上一次的结果。
    """

    def __init__(self, name: str):
        self.name = name
        self.elapsed_time = 0.0
        self.sub_timers: Dict[str, 'PerformanceTimer'] = {}
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_time = time.perf_counter() - self._start
        return False

    @contextmanager
    def stage(self, name: str):
        """为一个阶段计时，阶段抛出异常时也记录已用时间"""
        timer = PerformanceTimer(name)
        self.sub_timers[name] = timer
        with timer:
            yield timer

    def get_report(self, indent: int = 0) -> str:
        """按层级缩进输出微秒耗时"""
        lines = [f"{'  ' * indent}{self.name}: {self.elapsed_time * 1e6:.0f}us\n"]
        lines.extend(t.get_report(indent + 1) for t in self.sub_timers.values())
        return ''.join(lines)


def benchmark_generators(size: int, backends: Iterable[str] = WatermarkMatrixGenerator.BACKENDS,
                         seed: Optional[int] = None) -> PerformanceTimer:
    """
    对各水印生成器后端计时

    Args:
        size: 水印矩阵边长
        backends: 待测后端
        seed: 随机种子

    Returns:
        每个后端一个阶段的计时器
    """
    timer = PerformanceTimer("watermark_generation")
    with timer:
        for backend in backends:
            generator = WatermarkMatrixGenerator(backend=backend, seed=seed)
            with timer.stage(backend):
                generator.generate(size)

    return timer

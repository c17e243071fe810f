"""
水印引擎异常定义

所有异常对单次调用都是致命的：流水线不重试、不降级输出。
"""


class WatermarkError(Exception):
    """Base exception for watermark engine errors."""
    pass


class InputError(WatermarkError):
    """Raised when the input image is missing, unreadable or empty."""
    pass


class ShapeError(WatermarkError):
    """Raised when image, grid or watermark dimensions are incompatible."""
    pass


class DegenerateBlockError(WatermarkError):
    """Raised in strict mode when every non-DC coefficient of a block is zero."""

    def __init__(self, message: str, block_index: int = None):
        super().__init__(message)
        self.block_index = block_index


class PipelineCancelledError(WatermarkError):
    """Raised when a running pipeline observes a cancelled token."""
    pass

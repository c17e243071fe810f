# Block-DCT Watermark Engine

from .config import WatermarkConfig, EmbedResult
from .exceptions import (
    WatermarkError,
    InputError,
    ShapeError,
    DegenerateBlockError,
    PipelineCancelledError
)
from .pipeline import WatermarkPipeline, PipelineState, CancellationToken

__version__ = "0.1.0"

__all__ = [
    'WatermarkConfig',
    'EmbedResult',
    'WatermarkError',
    'InputError',
    'ShapeError',
    'DegenerateBlockError',
    'PipelineCancelledError',
    'WatermarkPipeline',
    'PipelineState',
    'CancellationToken'
]

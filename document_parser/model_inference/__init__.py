"""
Model Inference Module.

Everything between extracted text and the raw model reply:
    - build_prompt: template + text → prompt
    - ModelGateway / OpenAIGateway: provider seam with error mapping
    - GatewayOutcome / ReplyStatus: tagged result of one model call
    - ExtractionResult: per-document result of the single flow
"""

from .prompt_builder import build_prompt, fill_placeholders
from .gateway import GatewayOutcome, ModelGateway, OpenAIGateway, ReplyStatus
from .extraction_result import ExtractionResult

__all__ = [
    'build_prompt',
    'fill_placeholders',
    'GatewayOutcome',
    'ModelGateway',
    'OpenAIGateway',
    'ReplyStatus',
    'ExtractionResult',
]

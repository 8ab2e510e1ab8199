"""Answer-flow orchestration: the tier gate and the answer pipeline."""

from panel_oracle.pipeline.orchestrator import AnswerPipeline
from panel_oracle.pipeline.tier_gate import TierGate

__all__ = [
    "AnswerPipeline",
    "TierGate",
]

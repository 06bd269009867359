# Pipeline stages module
from .stage1_search import SearchOrchestrator
from .stage2_embedding import EmbeddingGenerator, EntityEmbedder, fallback_embedding, needs_regeneration
from .stage3_evidence import EvidenceScoringStage, FallbackScoringStage
from .stage4_llm import IntentLLMStage
from .business_rules import BusinessRuleAdjuster

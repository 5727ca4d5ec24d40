"""
Core Processing Module
======================

Contains the main pipeline and processing components for SafeScribe:
- pipeline: Main orchestration
- risk_scanner: Emergency keyword scan
- content_extractor: Speaker-labelled statement extraction
- note_generator: SOAP note generation
- code_suggester: ICD-10 / CPT suggestions
- safety_rewriter: Absolute-claim softening
- llm_provider: Generation provider backends
- prompts: LLM prompt templates
"""

from core.code_suggester import CodeSuggester
from core.content_extractor import ContentExtractor
from core.decision_log import DecisionLog
from core.llm_provider import GenerationProvider, MockGenerationProvider, create_generation_provider
from core.note_generator import NoteGenerator
from core.pipeline import TranscriptPipeline, create_pipeline, save_result_to_file
from core.risk_scanner import RiskScanner
from core.safety_rewriter import SafetyRewriter

__all__ = [
    'TranscriptPipeline',
    'create_pipeline',
    'save_result_to_file',
    'RiskScanner',
    'ContentExtractor',
    'DecisionLog',
    'NoteGenerator',
    'CodeSuggester',
    'SafetyRewriter',
    'GenerationProvider',
    'MockGenerationProvider',
    'create_generation_provider',
]

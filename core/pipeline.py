"""
Processing Pipeline for SafeScribe
==================================

This module provides the orchestration layer that turns one transcript
into one ProcessingResult.

Architecture Pattern: Pipeline
------------------------------
A pipeline is a series of processing stages where:
1. Each stage transforms data
2. Output of one stage is input to the next
3. Stages are independent and reusable

Our Pipeline:
Transcript → [Validate + Risk Scan] → [Extract Speakers] → [SOAP Note]
           → [Coding] → [Safety Rewrite] → ProcessingResult

State machine:
    validating → extracting → generating_note → generating_codes
               → applying_safety → complete
    failed is reachable from every non-terminal state.

Only the two provider calls can block. Between stages the caller may
cancel cooperatively through ``should_cancel``; in the async path,
task cancellation is honoured as well.
"""

import asyncio
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from config import Settings, get_settings
from core.code_suggester import CodeSuggester
from core.content_extractor import ContentExtractor
from core.decision_log import DecisionLog
from core.llm_provider import GenerationProvider, create_generation_provider
from core.note_generator import NoteGenerator
from core.risk_scanner import RiskScanner
from core.safety_rewriter import SafetyRewriter
from exceptions import (
    ConfigurationError,
    EmptyTranscriptError,
    InputValidationError,
    PipelineError,
    ProcessingCancelledError,
    SafeScribeError,
    TranscriptTooLongError,
)
from models import (
    CodingResult,
    ExtractedContent,
    NoteGenerationResult,
    ProcessingResult,
    ProcessingStatus,
    PromptsUsed,
    SafetyFlags,
)


# Set up module logger
logger = logging.getLogger(__name__)


# Returns True when the caller has abandoned the request
CancelCheck = Callable[[], bool]


class _PipelineRun:
    """
    Per-request bookkeeping: job id, current state, decision log, clock.

    Nothing here is shared between requests.
    """

    def __init__(self, should_cancel: Optional[CancelCheck] = None):
        self.job_id = str(uuid.uuid4())[:8]
        self.status = ProcessingStatus.VALIDATING
        self.log = DecisionLog()
        self.started = time.perf_counter()
        self._should_cancel = should_cancel

    def enter(self, status: ProcessingStatus) -> None:
        """Move to the next state, unless the caller cancelled."""
        if self._should_cancel is not None and self._should_cancel():
            raise ProcessingCancelledError(stage=status.value)
        self.status = status
        logger.debug(f"[{self.job_id}] Entering state: {status.value}")

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


class TranscriptPipeline:
    """
    Main pipeline for turning a consultation transcript into a draft note.

    Design Principles:
    -----------------
    1. Dependency Injection: Provider and stages injected for testability
    2. Single Responsibility: Only orchestrates, doesn't implement
    3. Error Handling: One explicit error per failed request, carrying the
       partial decision log

    Usage:
        pipeline = TranscriptPipeline()
        result = pipeline.process("Patient: I have a headache.")
        print(result.soap_note.to_formatted_string())
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[GenerationProvider] = None,
        risk_scanner: Optional[RiskScanner] = None,
        content_extractor: Optional[ContentExtractor] = None,
        safety_rewriter: Optional[SafetyRewriter] = None,
    ):
        self.settings = settings or get_settings()

        # Lazy initialization - provider created when first needed
        self._provider = provider
        self._note_generator: Optional[NoteGenerator] = None
        self._code_suggester: Optional[CodeSuggester] = None

        self.risk_scanner = risk_scanner or RiskScanner()
        self.content_extractor = content_extractor or ContentExtractor()
        self.safety_rewriter = safety_rewriter or SafetyRewriter()

        logger.info("TranscriptPipeline initialized")

    @property
    def provider(self) -> GenerationProvider:
        """Lazy-load the generation provider."""
        if self._provider is None:
            self._provider = create_generation_provider(settings=self.settings)
        return self._provider

    @property
    def note_generator(self) -> NoteGenerator:
        if self._note_generator is None:
            self._note_generator = NoteGenerator(self.provider, settings=self.settings)
        return self._note_generator

    @property
    def code_suggester(self) -> CodeSuggester:
        if self._code_suggester is None:
            self._code_suggester = CodeSuggester(self.provider, settings=self.settings)
        return self._code_suggester

    # =========================================================================
    # Validation-only operations
    # =========================================================================

    def validate_input(self, transcript: object) -> str:
        """
        Check presence and size of the transcript.

        Raises:
            EmptyTranscriptError: Missing, non-text or blank transcript
            TranscriptTooLongError: Longer than settings.max_transcript_chars
        """
        if not isinstance(transcript, str) or not transcript.strip():
            raise EmptyTranscriptError(received_type=type(transcript).__name__)

        max_chars = self.settings.max_transcript_chars
        if len(transcript) > max_chars:
            raise TranscriptTooLongError(length=len(transcript), max_length=max_chars)

        return transcript

    def validate_transcript(self, transcript: object) -> SafetyFlags:
        """
        Pre-submission check: input validation and risk scan, no generation.
        """
        text = self.validate_input(transcript)
        return self.risk_scanner.scan(text)

    def extract_content(self, transcript: str) -> ExtractedContent:
        return self.content_extractor.extract(transcript)

    # =========================================================================
    # Processing
    # =========================================================================

    def process(
        self,
        transcript: str,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ProcessingResult:
        """
        Process a transcript into a ProcessingResult.

        Args:
            transcript: The consultation transcript
            should_cancel: Optional check polled at each stage boundary

        Returns:
            ProcessingResult for this transcript

        Raises:
            InputValidationError: Before any generation call
            PipelineError: A stage failed; ``stage`` names it
            ProcessingCancelledError: should_cancel returned True
        """
        run = _PipelineRun(should_cancel)
        logger.info(f"[{run.job_id}] Starting pipeline")

        try:
            safety_flags, extracted = self._prepare(run, transcript)

            run.enter(ProcessingStatus.GENERATING_NOTE)
            note_result = self.note_generator.generate(transcript, extracted)
            self._record_note(run, note_result)

            run.enter(ProcessingStatus.GENERATING_CODES)
            coding_result = self.code_suggester.generate(note_result.soap_note)
            self._record_coding(run, coding_result)

            return self._finish(run, note_result, coding_result, safety_flags)

        except Exception as e:
            failure = self._fail(run, e)
            if failure is e:
                raise
            raise failure from e

    async def aprocess(
        self,
        transcript: str,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ProcessingResult:
        """
        Async version of process() for use with FastAPI.

        Cancelling the surrounding task stops processing at the next await;
        the cancellation is recorded in the decision log and re-raised.
        """
        run = _PipelineRun(should_cancel)
        logger.info(f"[{run.job_id}] Starting async pipeline")

        try:
            safety_flags, extracted = self._prepare(run, transcript)

            run.enter(ProcessingStatus.GENERATING_NOTE)
            note_result = await self.note_generator.agenerate(transcript, extracted)
            self._record_note(run, note_result)

            run.enter(ProcessingStatus.GENERATING_CODES)
            coding_result = await self.code_suggester.agenerate(note_result.soap_note)
            self._record_coding(run, coding_result)

            return self._finish(run, note_result, coding_result, safety_flags)

        except asyncio.CancelledError:
            run.log.record("Error", f"Processing cancelled during {run.status.value}")
            run.status = ProcessingStatus.FAILED
            logger.warning(f"[{run.job_id}] Async pipeline cancelled")
            raise
        except Exception as e:
            failure = self._fail(run, e)
            if failure is e:
                raise
            raise failure from e

    # =========================================================================
    # Stages shared by the sync and async paths
    # =========================================================================

    def _prepare(self, run: _PipelineRun, transcript: str) -> tuple[SafetyFlags, ExtractedContent]:
        """validating and extracting states."""
        self.validate_input(transcript)
        safety_flags = self.risk_scanner.scan(transcript)

        description = f"Transcript received ({len(transcript)} chars). Safety scan completed."
        if safety_flags.high_risk:
            description += f" HIGH RISK: emergency terms found ({', '.join(safety_flags.emergency_terms)})."
        run.log.record("Input Validation", description)

        run.enter(ProcessingStatus.EXTRACTING)
        extracted = self.content_extractor.extract(transcript)
        run.log.record(
            "Content Extraction",
            f"Extracted {len(extracted.patient_statements)} patient statements and "
            f"{len(extracted.doctor_statements)} provider statements."
        )
        return safety_flags, extracted

    def _record_note(self, run: _PipelineRun, note_result: NoteGenerationResult) -> None:
        if note_result.used_fallback:
            description = (
                "Provider response could not be parsed; substituted fallback SOAP note "
                "requiring manual review."
            )
        else:
            description = "Generated structured SOAP note with problem list extraction."
        run.log.record("SOAP Generation", description)
        logger.info(f"[{run.job_id}] SOAP note stage complete (fallback={note_result.used_fallback})")

    def _record_coding(self, run: _PipelineRun, coding_result: CodingResult) -> None:
        count = len(coding_result.suggestions.icd_codes)
        description = f"Generated {count} ICD-10 codes and billing recommendations."
        if coding_result.used_fallback:
            description += " Provider response could not be parsed; fallback codes require manual review."
        run.log.record("Medical Coding", description)
        logger.info(f"[{run.job_id}] Coding stage complete ({count} ICD-10 codes)")

    def _finish(
        self,
        run: _PipelineRun,
        note_result: NoteGenerationResult,
        coding_result: CodingResult,
        safety_flags: SafetyFlags,
    ) -> ProcessingResult:
        """applying_safety and complete states."""
        run.enter(ProcessingStatus.APPLYING_SAFETY)
        review = self.safety_rewriter.apply(note_result.soap_note, safety_flags)
        run.log.record(
            "Safety Processing",
            f"Applied {len(review.modifications_made)} safety modifications."
        )

        run.enter(ProcessingStatus.COMPLETE)
        processing_time_ms = run.elapsed_ms()
        run.log.record("Processing Complete", f"Total processing time: {processing_time_ms}ms")

        logger.info(f"[{run.job_id}] Pipeline completed successfully in {processing_time_ms}ms")

        return ProcessingResult(
            soap_note=review.soap_note,
            coding_suggestions=coding_result.suggestions,
            safety_flags=review.safety_flags,
            decision_log=run.log.entries,
            prompts_used=PromptsUsed(
                soap_prompt=note_result.prompt,
                coding_prompt=coding_result.prompt,
            ),
            processing_time_ms=processing_time_ms,
        )

    def _fail(self, run: _PipelineRun, error: Exception) -> SafeScribeError:
        """
        Enter the failed state and build the error surfaced to the caller.

        Errors the caller must act on itself (bad input, cancellation, bad
        configuration) are surfaced unchanged. Everything else becomes a
        PipelineError naming the failed stage.
        """
        failed_stage = run.status.value
        reason = error.message if isinstance(error, SafeScribeError) else str(error)
        run.log.record("Error", f"Processing failed: {reason}")
        run.status = ProcessingStatus.FAILED

        if isinstance(error, (InputValidationError, ProcessingCancelledError, ConfigurationError)):
            logger.warning(f"[{run.job_id}] Pipeline stopped during {failed_stage}: {reason}")
            failure = error
        elif isinstance(error, SafeScribeError):
            logger.error(f"[{run.job_id}] Pipeline failed during {failed_stage}: {reason}")
            failure = PipelineError(stage=failed_stage, reason=reason)
        else:
            logger.exception(f"[{run.job_id}] Unexpected error in pipeline during {failed_stage}")
            failure = PipelineError(stage=failed_stage, reason=f"Unexpected error: {reason}")

        failure.decision_log = run.log.entries
        return failure


def save_result_to_file(
    result: ProcessingResult,
    output_dir: str = "./output",
    name: Optional[str] = None,
) -> dict[str, str]:
    """
    Save processing result to files.

    Saves:
    1. Full result as JSON (for API/database)
    2. SOAP note as formatted text (for reading)

    Args:
        result: The ProcessingResult to save
        output_dir: Directory to save files in
        name: Base name; a short random id when omitted

    Returns:
        Dict of saved file paths
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    base_name = f"SafeScribe_{name or str(uuid.uuid4())[:8]}"
    saved_files = {}

    json_path = output_path / f"{base_name}_result.json"
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump(result.model_dump(mode='json'), f, indent=2)
    saved_files['json'] = str(json_path)

    soap_path = output_path / f"{base_name}_soap.txt"
    with open(soap_path, 'w', encoding='utf-8') as f:
        f.write(result.soap_note.to_formatted_string())
    saved_files['soap'] = str(soap_path)

    logger.info(f"Saved results to {output_dir}: {list(saved_files.keys())}")

    return saved_files


def create_pipeline(
    settings: Optional[Settings] = None,
    provider: Optional[GenerationProvider] = None,
) -> TranscriptPipeline:
    """
    Factory function to create a configured pipeline instance.

    Args:
        settings: Optional custom settings. Uses default if not provided.
        provider: Optional generation provider (mock for tests/dry runs)

    Returns:
        TranscriptPipeline: Configured pipeline instance
    """
    if settings is None:
        settings = get_settings()

    return TranscriptPipeline(settings=settings, provider=provider)

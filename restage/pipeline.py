#!/usr/bin/env python3
"""
RESTAGE Pipeline - Main Orchestrator
Coordinates the quality gate, analysis, generation and critique stages to
replace the product in a marketing image.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from restage import prompts
from restage.config import Settings
from restage.errors import AnalysisError, GenerationError, InputFormatError
from restage.gate import GateDecision, QualityVerdict, Resolution, WarningCallback, evaluate, resolve
from restage.images import ImageFile
from restage.invoker import ModelInvoker
from restage.transparency import LabeledImage, LogEntry, TransparencyLog, label_images

log = logging.getLogger(__name__)

MIN_PRODUCT_IMAGES = 1
MAX_PRODUCT_IMAGES = 5

CRITIQUE_PLACEHOLDER = "The AI quality check could not be completed due to an error."

TITLE_QUALITY_GATE = "Reference Image Quality Check"
TITLE_ANALYSIS = "Pre-analysis for Logical Consistency"
TITLE_FEEDBACK_ANALYSIS = "Feedback Analysis for Revised Instruction"
TITLE_GENERATION = "Product Replacement Image Generation"
TITLE_CRITIQUE = "AI Quality Check"

ProgressCallback = Callable[[str], None]


class PipelineState(Enum):
    IDLE = 'idle'
    QUALITY_GATE = 'quality_gate'
    BLOCKED = 'blocked'
    ANALYZING = 'analyzing'
    GENERATING = 'generating'
    CRITIQUING = 'critiquing'
    DONE = 'done'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class GenerationRequest:
    """Inputs of one run: 1-5 product references, the target, and optional retry feedback."""

    products: Tuple[ImageFile, ...]
    target: ImageFile
    feedback: Optional[str] = None

    def __post_init__(self):
        count = len(self.products)
        if not MIN_PRODUCT_IMAGES <= count <= MAX_PRODUCT_IMAGES:
            raise InputFormatError(
                f"Between {MIN_PRODUCT_IMAGES} and {MAX_PRODUCT_IMAGES} product images are required, got {count}"
            )
        # Whitespace-only feedback is treated as a fresh attempt
        if self.feedback is not None and not self.feedback.strip():
            object.__setattr__(self, 'feedback', None)

    @property
    def is_retry(self) -> bool:
        return self.feedback is not None

    @property
    def images(self) -> Tuple[ImageFile, ...]:
        """Products followed by the target, the order every stage sends them in."""
        return self.products + (self.target,)


@dataclass(frozen=True)
class PipelineOutcome:
    """Result of a successful run."""

    final_image: Optional[bytes]
    final_text: Optional[str]
    quality_critique: Optional[str]
    log: Tuple[LogEntry, ...]
    final_image_mime: Optional[str] = None
    critical_instruction: Optional[str] = None
    verdict: Optional[QualityVerdict] = None


class RunStatus:
    """Mutable progress of a single run."""

    def __init__(self):
        self.state = PipelineState.IDLE


class ReplacementPipeline:
    """Runs the product replacement workflow one stage at a time."""

    def __init__(self, settings: Settings, invoker: Optional[ModelInvoker] = None):
        """Initialize the pipeline with injected settings."""
        self.settings = settings
        self.invoker = invoker or ModelInvoker(settings)
        # Each thread sees only the runs it started
        self._runs = threading.local()

    @property
    def state(self) -> PipelineState:
        """State of the latest run started on the calling thread."""
        status = getattr(self._runs, 'status', None)
        return status.state if status is not None else PipelineState.IDLE

    def _progress(self, on_progress: Optional[ProgressCallback], message: str):
        log.info(message)
        if on_progress:
            on_progress(message)

    def check_reference_quality(self, images: Sequence[ImageFile]) -> QualityVerdict:
        """
        Assess whether the reference photos are good enough to work from.

        Args:
            images: Product reference images

        Returns:
            QualityVerdict exactly as reported by the model
        """
        if not images:
            raise InputFormatError("At least one product image is required")
        prompt = prompts.reference_quality_prompt(len(images))
        verdict = self.invoker.check_suitability(prompt, images)
        log.info("Reference quality verdict: suitable=%s (%s)", verdict.suitable, verdict.reasoning)
        return verdict

    def run_replacement(
        self,
        products: Sequence[ImageFile],
        target: ImageFile,
        feedback: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_warning: Optional[WarningCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Optional[PipelineOutcome]:
        """
        Replace the product in the target image with the product in the references.

        Args:
            products: 1-5 product reference images, in order
            target: Marketing image containing the product to replace
            feedback: User feedback on a previous attempt; skips the quality gate
            on_progress: Called with a status message before each model call
            on_warning: Called with the gate's reasoning when the references look unsuitable
            cancel_event: Checked before every stage; when set the run stops

        Returns:
            PipelineOutcome, or None if the run was cancelled

        Raises:
            InputFormatError: If an image cannot be encoded for the model
            AnalysisError: If the quality gate or the analysis stage fails
            GenerationError: If no image was generated
        """
        request = GenerationRequest(products=tuple(products), target=target, feedback=feedback)

        # Fail on malformed images before spending any model calls
        for image in request.images:
            image.to_part()

        run_log = TransparencyLog()
        count = len(request.products)
        verdict = None
        status = RunStatus()
        self._runs.status = status

        try:
            # STEP 0: QUALITY GATE - fresh attempts only
            if not request.is_retry:
                if self._cancelled(cancel_event, status):
                    return None
                status.state = PipelineState.QUALITY_GATE
                self._progress(on_progress, "Checking reference image quality...")
                quality_prompt = prompts.reference_quality_prompt(count)
                verdict = self.invoker.check_suitability(quality_prompt, request.products)

                if evaluate(verdict) is GateDecision.BLOCKED:
                    status.state = PipelineState.BLOCKED
                    log.warning("Reference images flagged as unsuitable: %s", verdict.reasoning)
                    if resolve(on_warning, verdict.reasoning) is Resolution.CANCEL:
                        status.state = PipelineState.CANCELLED
                        log.info("Run cancelled at quality gate")
                        return None
                    run_log.append(
                        TITLE_QUALITY_GATE,
                        self.invoker.text_model,
                        quality_prompt,
                        label_images(request.products),
                        text=f"Unsuitable (continued by user): {verdict.reasoning}",
                    )

            # STEP 1: ANALYSIS - derive the critical instruction
            if self._cancelled(cancel_event, status):
                return None
            status.state = PipelineState.ANALYZING
            self._progress(on_progress, "Step 1/3: Analyzing images...")
            if request.is_retry:
                analysis_title = TITLE_FEEDBACK_ANALYSIS
                analysis_prompt = prompts.feedback_analysis_prompt(request.feedback, count)
            else:
                analysis_title = TITLE_ANALYSIS
                analysis_prompt = prompts.consistency_analysis_prompt(count)

            instruction = self.invoker.analyze_text(analysis_prompt, request.images)
            log.info("Critical instruction: %s", instruction)
            run_log.append(
                analysis_title,
                self.invoker.text_model,
                analysis_prompt,
                label_images(request.products, request.target),
                text=instruction,
            )

            # STEP 2: GENERATION - image output is mandatory
            if self._cancelled(cancel_event, status):
                return None
            status.state = PipelineState.GENERATING
            self._progress(on_progress, "Step 2/3: Generating new image...")
            generation_prompt = prompts.generation_prompt(count, instruction, request.feedback)
            generation_images = label_images(request.products, request.target)
            try:
                result = self.invoker.generate_image(generation_prompt, request.images)
            except GenerationError as e:
                run_log.append(
                    TITLE_GENERATION,
                    self.invoker.image_model,
                    generation_prompt,
                    generation_images,
                    text=e.text,
                )
                e.log = run_log.entries
                raise

            generated = ImageFile.from_bytes(result.image.data, result.image.mime_type)
            run_log.append(
                TITLE_GENERATION,
                self.invoker.image_model,
                generation_prompt,
                generation_images,
                text=result.text,
                image=generated,
            )

            # STEP 3: CRITIQUE - failures degrade to a placeholder
            if self._cancelled(cancel_event, status):
                return None
            status.state = PipelineState.CRITIQUING
            self._progress(on_progress, "Step 3/3: Performing quality check...")
            critique = self._critique(run_log, request, instruction, result.text, generated)

        except Exception:
            if status.state is not PipelineState.CANCELLED:
                status.state = PipelineState.FAILED
            raise

        status.state = PipelineState.DONE
        return PipelineOutcome(
            final_image=result.image.data,
            final_text=result.text,
            quality_critique=critique,
            log=run_log.entries,
            final_image_mime=result.image.mime_type,
            critical_instruction=instruction,
            verdict=verdict,
        )

    def _critique(
        self,
        run_log: TransparencyLog,
        request: GenerationRequest,
        instruction: str,
        editor_text: Optional[str],
        generated: ImageFile
    ) -> str:
        critique_prompt = prompts.quality_critique_prompt(instruction, editor_text)
        try:
            critique = self.invoker.analyze_text(
                critique_prompt,
                request.images + (generated,)
            )
        except AnalysisError as e:
            log.warning("Quality check step failed: %s", e)
            return CRITIQUE_PLACEHOLDER

        run_log.append(
            TITLE_CRITIQUE,
            self.invoker.text_model,
            critique_prompt,
            label_images(
                request.products,
                request.target,
                target_label='Original Marketing Image',
                extra=[LabeledImage('Generated Image', generated)]
            ),
            text=critique,
        )
        return critique

    def _cancelled(self, cancel_event: Optional[threading.Event], status: RunStatus) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            log.info("Run cancelled after state %s", status.state.value)
            status.state = PipelineState.CANCELLED
            return True
        return False
